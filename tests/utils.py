# tests/utils.py
from urllib.parse import parse_qs, urlsplit

from services.payments import liqpay_codec, liqpay_signer

PUBLIC_KEY = "i00000000001"
PRIVATE_KEY = "sandbox_private_key_42"


def signed_callback(fields: dict, private_key: str) -> dict:
    """Form body the gateway would POST to our callback URL."""
    data = liqpay_codec.encode(fields)
    return {"data": data, "signature": liqpay_signer.sign(data, private_key)}


def gateway_payload(**overrides) -> dict:
    fields = {
        "version": 3,
        "action": "pay",
        "amount": 100.00,
        "currency": "UAH",
        "status": "success",
        "order_id": "req-42",
        "payment_id": "tx-9",
    }
    fields.update(overrides)
    return fields


def redirect_query(url: str) -> dict:
    qs = parse_qs(urlsplit(url).query)
    return {k: v[0] for k, v in qs.items()}
