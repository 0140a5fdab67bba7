# services/payments/liqpay_provider.py
"""
LiqPay (https://www.liqpay.ua) checkout adapter.

Outbound:
- build_redirect(...) encodes the payment fields, signs them with the
  profile's private key and returns the checkout URL with `data` and
  `signature` in the query string.

Inbound:
- setup_callback(...) reads `data`/`signature` from the gateway's POST/GET.
- process_callback(...) runs the stages below in order and stops at the
  first failure:
    1. validate_callback          protocol version/action, signature present
    2. validate_transaction       order_id present, no gateway error, host check
    3. validate_purchasable_data  profile keys present, signature matches
    4. validate_cost              currency and amount match the purchase request
  then maps the gateway status and assembles log_details.
"""

from __future__ import annotations
import logging
from dataclasses import replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from flask import url_for
from flask_babel import gettext as _

from services.payments import liqpay_codec, liqpay_signer
from services.payments.base import (
    CallbackHost, CallbackState, EncodedEnvelope, LogType, PaymentOutcome,
    PaymentProfile, PaymentProvider, PaymentRequestParams, Purchase, PurchaseRequest, Rejection,
    StageResult,
)
from services.payments.errors import (
    AuthenticationFailure, CostMismatch, IdentityFailure, MalformedPayload, SignatureFailure,
)
from services.payments.pipeline import run_stages

logger = logging.getLogger(__name__)

API_ENDPOINT = "https://www.liqpay.ua/api/3/checkout"
API_VERSION = 3
ACTION_PAY = "pay"
SUPPORTED_CURRENCIES = ("RUB", "USD", "EUR", "UAH", "BYN", "KZT")
ERR_NO_RECURRING = "Recurring payments are not supported by this payment provider."

_CENT = Decimal("0.01")


def _to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def _round2(value: Any) -> Optional[Decimal]:
    """Cent-rounded amount, or None when it cannot be represented."""
    amount = _to_decimal(value)
    if not amount.is_finite():
        return None
    try:
        return amount.quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return None


def _client_ip(request) -> Optional[str]:
    fwd = request.headers.get("X-Forwarded-For", "")
    return fwd.split(",")[0].strip() or request.remote_addr


class LiqPayProvider(PaymentProvider):
    provider_id = "liqpay"

    def __init__(self, site_url: Optional[str] = None):
        self.site_url = (site_url or "").rstrip("/") or None

    def get_title(self) -> str:
        return "LiqPay"

    def get_api_endpoint(self) -> str:
        return API_ENDPOINT

    def get_callback_url(self) -> str:
        if self.site_url:
            return f"{self.site_url}/payments/callback/{self.provider_id}"
        return url_for("payments.callback", provider_id=self.provider_id, _external=True)

    # ----- admin / pre-flight -----

    def verify_config(self, options: Dict[str, Any]) -> tuple[bool, list[str]]:
        errors: list[str] = []
        public_key = str(options.get("public_key") or "").strip()
        private_key = str(options.get("private_key") or "").strip()
        if not public_key or not private_key:
            errors.append(_("You must provide all data."))
        return not errors, errors

    def verify_currency(self, profile: Optional[PaymentProfile], currency_code: str) -> bool:
        return currency_code in SUPPORTED_CURRENCIES

    def supports_recurring(self, profile: Optional[PaymentProfile], unit: str,
                           amount: Any) -> tuple[bool, str]:
        return False, _(ERR_NO_RECURRING)

    # ----- outbound -----

    def get_payment_params(self, profile: PaymentProfile, purchase_request: PurchaseRequest,
                           purchase: Purchase) -> PaymentRequestParams:
        return PaymentRequestParams(
            version=API_VERSION,
            public_key=profile.options["public_key"],
            action=ACTION_PAY,
            amount=purchase.cost,
            currency=purchase.currency,
            description=purchase.title,
            order_id=purchase_request.request_key,
            result_url=purchase.return_url,
            server_url=self.get_callback_url(),
        )

    def get_data_and_signature(self, params: PaymentRequestParams, private_key: str) -> EncodedEnvelope:
        data = liqpay_codec.encode(params.as_fields())
        return EncodedEnvelope(data=data, signature=liqpay_signer.sign(data, private_key))

    def build_redirect(self, profile: PaymentProfile, purchase_request: PurchaseRequest,
                       purchase: Purchase) -> str:
        params = self.get_payment_params(profile, purchase_request, purchase)
        envelope = self.get_data_and_signature(params, profile.options["private_key"])
        return self.get_api_endpoint() + "?" + urlencode(envelope.as_query())

    # ----- inbound -----

    def setup_callback(self, request) -> CallbackState:
        data_raw = request.values.get("data", "", type=str).strip()
        signature = request.values.get("signature", "", type=str).strip()

        try:
            fields = liqpay_codec.decode(data_raw)
        except MalformedPayload as e:
            logger.warning("LiqPay callback with undecodable data from %s: %s",
                           _client_ip(request), e)
            fields = {}

        return CallbackState(
            provider_id=self.provider_id,
            data_raw=data_raw,
            decoded_fields=fields,
            signature=signature,
            ip=_client_ip(request),
            http_code=200,
            request_key=str(fields.get("order_id") or ""),
            transaction_id=str(fields.get("payment_id") or ""),
            amount=_to_decimal(fields.get("amount", 0)),
            currency=str(fields.get("currency") or ""),
            status=str(fields.get("status") or ""),
            subscriber_id=fields.get("customer") or 0,
        )

    def validate_callback(self, state: CallbackState, host: CallbackHost) -> StageResult:
        fields = state.decoded_fields
        version = _to_decimal(fields.get("version"))
        if (state.signature and version.is_finite() and version == API_VERSION
                and fields.get("action") == ACTION_PAY):
            return state
        return Rejection(LogType.INFO, "Auth failed", AuthenticationFailure)

    def validate_transaction(self, state: CallbackState, host: CallbackHost) -> StageResult:
        if not state.request_key:
            return Rejection(LogType.INFO, "Metadata is empty!", IdentityFailure)

        err_code = state.decoded_fields.get("err_code")
        if err_code:
            err_description = state.decoded_fields.get("err_description")
            message = err_description if err_description is not None else err_code
            return Rejection(LogType.ERROR, str(message), IdentityFailure)

        return host.validate_transaction(state)

    def validate_purchasable_data(self, state: CallbackState, host: CallbackHost) -> StageResult:
        profile = host.get_payment_profile(state)
        options = profile.options if profile else {}
        private_key = options.get("private_key")
        if options.get("public_key") and private_key and state.signature:
            if liqpay_signer.verify(state.data_raw, state.signature, private_key):
                return state
            return Rejection(LogType.ERROR, "Invalid signature", SignatureFailure)
        return Rejection(LogType.ERROR, "Invalid public_key or secret_key.", SignatureFailure)

    def validate_cost(self, state: CallbackState, host: CallbackHost) -> StageResult:
        purchase_request = host.get_purchase_request(state)
        paid = _round2(state.amount)
        if (purchase_request is not None and paid is not None
                and state.currency == purchase_request.cost_currency
                and paid == _round2(purchase_request.cost_amount)):
            return state
        return Rejection(LogType.ERROR, "Invalid cost amount.", CostMismatch)

    def stages(self):
        return (
            self.validate_callback,
            self.validate_transaction,
            self.validate_purchasable_data,
            self.validate_cost,
        )

    def get_payment_result(self, state: CallbackState) -> CallbackState:
        if state.status.lower() == "success":
            return replace(state, outcome=PaymentOutcome.RECEIVED)
        return state

    def prepare_log_data(self, state: CallbackState) -> CallbackState:
        details = dict(state.decoded_fields)
        details.update({"ip": state.ip, "signature": state.signature})
        return replace(state, log_details=details)

    def process_callback(self, state: CallbackState, host: CallbackHost) -> CallbackState:
        state = run_stages(state, host, self.stages())
        if not state.rejected:
            state = self.get_payment_result(state)
        return self.prepare_log_data(state)
