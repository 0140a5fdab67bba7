from decimal import Decimal

import pytest
from services.payments.base import PaymentProfile, Purchase, PurchaseRequest
from services.payments.liqpay_codec import decode
from services.payments.liqpay_provider import API_ENDPOINT, ERR_NO_RECURRING, LiqPayProvider
from services.payments.liqpay_signer import verify
from services.payments.registry import get_provider
from tests.utils import PRIVATE_KEY, PUBLIC_KEY, redirect_query

PROFILE = PaymentProfile(id=1, provider_id="liqpay", title="LiqPay",
                         options={"public_key": PUBLIC_KEY, "private_key": PRIVATE_KEY})
REQUEST = PurchaseRequest(request_key="req-42", payment_profile_id=1, provider_id="liqpay",
                          cost_amount=Decimal("100.00"), cost_currency="UAH")
PURCHASE = Purchase(title="Gold membership", cost=Decimal("100.00"), currency="UAH",
                    return_url="https://shop.example/account/upgrades")


def test_build_redirect_targets_checkout_with_signed_data():
    url = LiqPayProvider(site_url="https://shop.example/").build_redirect(PROFILE, REQUEST, PURCHASE)
    assert url.startswith(API_ENDPOINT + "?")

    q = redirect_query(url)
    assert set(q) == {"data", "signature"}
    assert verify(q["data"], q["signature"], PRIVATE_KEY)

    fields = decode(q["data"])
    assert list(fields) == ["version", "public_key", "action", "amount", "currency",
                            "description", "order_id", "result_url", "server_url"]
    assert fields["version"] == 3
    assert fields["public_key"] == PUBLIC_KEY
    assert fields["action"] == "pay"
    assert fields["amount"] == 100
    assert fields["currency"] == "UAH"
    assert fields["description"] == "Gold membership"
    assert fields["order_id"] == "req-42"
    assert fields["result_url"] == "https://shop.example/account/upgrades"
    assert fields["server_url"] == "https://shop.example/payments/callback/liqpay"


def test_build_redirect_is_deterministic():
    provider = LiqPayProvider(site_url="https://shop.example")
    assert provider.build_redirect(PROFILE, REQUEST, PURCHASE) == \
        provider.build_redirect(PROFILE, REQUEST, PURCHASE)


def test_private_key_never_leaves_in_the_url():
    url = LiqPayProvider(site_url="https://shop.example").build_redirect(PROFILE, REQUEST, PURCHASE)
    assert PRIVATE_KEY not in url
    assert PRIVATE_KEY not in str(decode(redirect_query(url)["data"]))


def test_callback_url_falls_back_to_url_for(app):
    with app.test_request_context("/", base_url="http://localhost:8000"):
        assert LiqPayProvider().get_callback_url() == "http://localhost:8000/payments/callback/liqpay"


def test_registry_uses_site_base_url(app, monkeypatch):
    monkeypatch.setenv("SITE_BASE_URL", "https://pay.example.org")
    provider = get_provider("LiqPay")
    assert isinstance(provider, LiqPayProvider)
    assert provider.get_callback_url() == "https://pay.example.org/payments/callback/liqpay"


def test_registry_rejects_unknown_provider():
    with pytest.raises(RuntimeError):
        get_provider("paypal")


@pytest.mark.parametrize("options,ok", [
    ({"public_key": PUBLIC_KEY, "private_key": PRIVATE_KEY}, True),
    ({"public_key": PUBLIC_KEY, "private_key": ""}, False),
    ({"public_key": "   ", "private_key": PRIVATE_KEY}, False),
    ({"private_key": PRIVATE_KEY}, False),
    ({}, False),
])
def test_verify_config(app, options, ok):
    with app.app_context():
        result, errors = LiqPayProvider().verify_config(options)
    assert result is ok
    assert len(errors) == (0 if ok else 1)
    if not ok:
        assert errors[0] == "You must provide all data."


@pytest.mark.parametrize("code,ok", [
    ("UAH", True), ("USD", True), ("EUR", True), ("RUB", True), ("BYN", True), ("KZT", True),
    ("GBP", False), ("uah", False), ("", False),
])
def test_verify_currency(code, ok):
    assert LiqPayProvider().verify_currency(PROFILE, code) is ok


def test_recurring_is_never_supported(app):
    with app.app_context():
        ok, reason = LiqPayProvider().supports_recurring(PROFILE, "month", Decimal("5"))
    assert ok is False
    assert reason == ERR_NO_RECURRING


def test_title():
    assert LiqPayProvider().get_title() == "LiqPay"
