"""Signed Tencent Meeting API client, endpoint handlers and form-webhook cancellation helpers."""

__version__ = "0.1.0"