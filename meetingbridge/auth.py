"""Request signing helpers for the Tencent Meeting API (AKSK authentication)."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import random
import time

__all__ = ["generate_nonce", "get_timestamp", "generate_signature"]

logger = logging.getLogger(__name__)

_NONCE_MIN = 10_000_000
_NONCE_MAX = 99_999_999  # exclusive upper bound


def generate_nonce() -> str:
    """Return a random 8-digit number as a string, used to make each request unique."""
    return str(random.randrange(_NONCE_MIN, _NONCE_MAX))


def get_timestamp() -> int:
    """Return the current Unix timestamp in whole seconds."""
    return int(time.time())


def generate_signature(
    secret_id: str,
    secret_key: str,
    method: str,
    uri: str,
    timestamp: int,
    nonce: str,
    body: str,
) -> str:
    """Sign a request.

    The string to sign is the method, the header string
    ``X-TC-Key=..&X-TC-Nonce=..&X-TC-Timestamp=..``, the URI (with its query)
    and the body, joined by newlines. The result is the Base64 encoding of the
    lowercase hex HMAC-SHA256 digest of that string.
    """
    header_string = f"X-TC-Key={secret_id}&X-TC-Nonce={nonce}&X-TC-Timestamp={timestamp}"
    content = f"{method}\n{header_string}\n{uri}\n{body}"
    logger.debug("String to sign: %s", content)

    digest = hmac.new(
        secret_key.encode("utf-8"), content.encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return base64.b64encode(digest.encode("ascii")).decode("ascii")