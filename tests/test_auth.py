import base64
import binascii
import logging
import string
import time
from unittest.mock import patch

import pytest

from meetingbridge.auth import generate_nonce, generate_signature, get_timestamp

SECRET_ID = "test_secret_id"
SECRET_KEY = "secret"
TIMESTAMP = 1677721600
NONCE = "12345678"


def _sign(**overrides):
    args = dict(
        secret_id=SECRET_ID,
        secret_key=SECRET_KEY,
        method="GET",
        uri="/v1/test",
        timestamp=TIMESTAMP,
        nonce=NONCE,
        body="",
    )
    args.update(overrides)
    return generate_signature(**args)


def test_generate_nonce_is_eight_digits():
    nonce = generate_nonce()
    assert len(nonce) == 8
    assert nonce.isdigit()
    assert int(nonce) >= 10000000


def test_generate_nonce_stays_in_range():
    values = {int(generate_nonce()) for _ in range(500)}
    assert all(10000000 <= v < 99999999 for v in values)
    assert len(values) > 1


def test_get_timestamp_is_positive_and_current():
    before = int(time.time())
    stamp = get_timestamp()
    after = int(time.time())
    assert stamp > 0
    assert before <= stamp <= after


def test_get_timestamp_truncates_to_seconds():
    with patch.object(time, "time", return_value=1677721600.9):
        assert get_timestamp() == 1677721600


def test_generate_signature_is_valid_base64():
    signature = _sign()
    assert signature
    decoded = base64.b64decode(signature, validate=True)
    assert len(decoded) > 0


def test_generate_signature_encodes_lowercase_hex_digest():
    decoded = base64.b64decode(_sign(), validate=True).decode("ascii")
    assert len(decoded) == 64
    assert set(decoded) <= set(string.hexdigits.lower())
    assert len(binascii.unhexlify(decoded)) == 32


def test_generate_signature_is_deterministic():
    keyword_signature = _sign()
    positional_signature = generate_signature(
        SECRET_ID, SECRET_KEY, "GET", "/v1/test", TIMESTAMP, NONCE, ""
    )
    assert len(keyword_signature) == 88
    assert positional_signature == keyword_signature
    assert positional_signature != _sign(nonce="87654321")


@pytest.mark.parametrize(
    "override",
    [
        {"secret_id": "other_id"},
        {"secret_key": "token"},
        {"method": "POST"},
        {"uri": "/v1/meeting-rooms?page=1"},
        {"timestamp": TIMESTAMP + 1},
        {"nonce": "87654321"},
        {"body": '{"userid":"admin"}'},
    ],
)
def test_generate_signature_depends_on_every_input(override):
    assert _sign(**override) != _sign()


def test_generate_signature_logs_string_to_sign(caplog):
    with caplog.at_level(logging.DEBUG, logger="meetingbridge.auth"):
        _sign(method="POST", uri="/v1/meetings", body="{}")
    expected = (
        "String to sign: POST\n"
        "X-TC-Key=test_secret_id&X-TC-Nonce=12345678&X-TC-Timestamp=1677721600\n"
        "/v1/meetings\n"
        "{}"
    )
    assert expected in caplog.messages


def test_generate_signature_accepts_empty_key():
    signature = _sign(secret_key="")
    decoded = base64.b64decode(signature, validate=True)
    assert len(decoded) == 64
    assert signature != _sign()