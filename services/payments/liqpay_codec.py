# services/payments/liqpay_codec.py
"""
LiqPay transport encoding: base64 over a JSON object.
"""

from __future__ import annotations
import base64
import binascii
import json
from decimal import Decimal
from typing import Any, Mapping

from services.payments.errors import MalformedPayload


def _json_default(value: Any):
    if isinstance(value, Decimal):
        return float(value) if value != value.to_integral_value() else int(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode(fields: Mapping[str, Any]) -> str:
    # Caller's key order is preserved; the gateway signs exactly these bytes.
    text = json.dumps(dict(fields), ensure_ascii=False,
                      separators=(",", ":"), default=_json_default)
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode(payload: str | bytes) -> dict:
    if isinstance(payload, str):
        try:
            payload = payload.encode("ascii")
        except UnicodeEncodeError as e:
            raise MalformedPayload("payload is not ASCII") from e
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedPayload(f"invalid base64: {e}") from e
    try:
        fields = json.loads(raw.decode("utf-8"), parse_float=Decimal)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedPayload(f"invalid JSON: {e}") from e
    if not isinstance(fields, dict):
        raise MalformedPayload("payload is not a JSON object")
    return fields
