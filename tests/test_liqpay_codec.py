import base64
import json
from decimal import Decimal

import pytest
from services.payments.liqpay_codec import decode, encode
from services.payments.errors import MalformedPayload


def test_encode_is_base64_of_json_in_caller_order():
    out = encode({"version": 3, "action": "pay", "amount": 5})
    raw = base64.b64decode(out).decode("utf-8")
    assert raw == '{"version":3,"action":"pay","amount":5}'


def test_encode_is_deterministic():
    fields = {"b": "x", "a": Decimal("10.50"), "c": "Оплата"}
    assert encode(fields) == encode(dict(fields))


def test_encode_decimal_amounts():
    raw = json.loads(base64.b64decode(encode({"whole": Decimal("100.00"), "frac": Decimal("10.50")})))
    assert raw == {"whole": 100, "frac": 10.5}


def test_decode_passes_unknown_fields_through():
    payload = base64.b64encode(json.dumps({
        "order_id": "req-1", "amount": 12.5, "sender_card_bank": "pb",
        "nested": {"x": [1, 2]},
    }).encode()).decode()
    out = decode(payload)
    assert out["sender_card_bank"] == "pb"
    assert out["nested"] == {"x": [1, 2]}
    assert out["amount"] == Decimal("12.5")


def test_decode_accepts_bytes():
    assert decode(encode({"a": 1}).encode("ascii")) == {"a": 1}


@pytest.mark.parametrize("payload", [
    "not base64 at all!",
    base64.b64encode(b"{not json").decode(),
    base64.b64encode(b"[1, 2, 3]").decode(),
    base64.b64encode(b"\xff\xfe").decode(),
    "данные",
])
def test_decode_rejects_malformed(payload):
    with pytest.raises(MalformedPayload):
        decode(payload)
