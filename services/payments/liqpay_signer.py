# services/payments/liqpay_signer.py
"""
LiqPay signature: base64(sha1(private_key + data + private_key)).

This is the gateway's own construction, not an HMAC. It has to stay
byte-for-byte compatible with what LiqPay computes on its side.
"""

from __future__ import annotations
import base64
import hashlib
import hmac


def _as_bytes(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def sign(payload: str | bytes, secret: str | bytes) -> str:
    key = _as_bytes(secret)
    digest = hashlib.sha1(key + _as_bytes(payload) + key).digest()
    return base64.b64encode(digest).decode("ascii")


def verify(payload: str | bytes, signature: str | bytes, secret: str | bytes) -> bool:
    try:
        expected = sign(payload, secret).encode("ascii")
        return hmac.compare_digest(expected, _as_bytes(signature))
    except (TypeError, ValueError):
        return False
