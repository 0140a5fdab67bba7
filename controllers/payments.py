# controllers/payments.py
from __future__ import annotations
from decimal import Decimal, InvalidOperation

from flask import Blueprint, request, redirect, abort, current_app, jsonify

from services.payments.base import LogType, Purchase
from services.payments.errors import UnsupportedCurrency, UnsupportedRecurring
from services.payments.registry import get_provider
from services.metrics import CALLBACK_EVENTS, REDIRECTS, PREFLIGHT_REJECTIONS
from models.payments_store import (
    MAX_COST_AMOUNT,
    SqlCallbackHost,
    complete_transaction,
    create_purchase_request,
    get_profile,
    record_provider_log,
)
from models.providers_store import is_installed

payments_bp = Blueprint("payments", __name__)


@payments_bp.errorhandler(UnsupportedCurrency)
@payments_bp.errorhandler(UnsupportedRecurring)
def _preflight_error(e):
    return jsonify({"error": str(e)}), 400


# ----- purchaser starts a checkout -----

@payments_bp.post("/payments/purchase")
def start_purchase():
    """
    Create a purchase request for a profile and send the purchaser to the gateway.
    Accepts form fields or a JSON body.
    """
    payload = request.get_json(silent=True) or request.form
    try:
        profile_id = int(payload.get("profile_id") or 0)
        amount = Decimal(str(payload.get("amount") or ""))
    except (InvalidOperation, ValueError):
        return jsonify({"error": "profile_id and amount must be numeric"}), 400
    if not amount.is_finite() or amount <= 0:
        return jsonify({"error": "amount must be positive"}), 400
    if amount >= MAX_COST_AMOUNT:
        return jsonify({"error": "amount is too large"}), 400

    profile = get_profile(profile_id)
    if not profile or not profile.active or not is_installed(profile.provider_id):
        abort(404)

    provider = get_provider(profile.provider_id)
    currency = str(payload.get("currency") or "").upper()
    title = str(payload.get("title") or "Purchase")
    return_url = str(payload.get("return_url") or request.host_url)

    if not provider.verify_currency(profile, currency):
        PREFLIGHT_REJECTIONS.labels(provider=provider.provider_id, reason="currency").inc()
        raise UnsupportedCurrency(currency)

    recurring_unit = payload.get("recurring_unit")
    if recurring_unit:
        ok, reason = provider.supports_recurring(profile, recurring_unit, amount)
        if not ok:
            PREFLIGHT_REJECTIONS.labels(provider=provider.provider_id, reason="recurring").inc()
            raise UnsupportedRecurring(reason)

    try:
        purchase_request = create_purchase_request(
            profile, amount, currency, purchaser=payload.get("purchaser"), title=title)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    purchase = Purchase(title=title, cost=purchase_request.cost_amount,
                        currency=currency, return_url=return_url)
    url = provider.build_redirect(profile, purchase_request, purchase)

    REDIRECTS.labels(provider=provider.provider_id).inc()
    current_app.logger.info("Purchase request %s: redirecting to %s (%s %s)",
                            purchase_request.request_key, provider.get_title(),
                            purchase_request.cost_amount, currency)
    return redirect(url)


# ----- gateway callback (no auth, signature-verified) -----

@payments_bp.route("/payments/callback/<provider_id>", methods=["GET", "POST"])
def callback(provider_id: str):
    """
    Server-to-server notification from the gateway.
    Always answers 200 once the request is parsed so the gateway stops retrying;
    the business result only goes to the provider log.
    This route must be CSRF-exempt in app.py.
    """
    try:
        provider = get_provider(provider_id)
    except RuntimeError:
        abort(404)
    if not is_installed(provider.provider_id):
        abort(404)

    state = provider.setup_callback(request)
    state = provider.process_callback(state, SqlCallbackHost())

    log_type, message = complete_transaction(state)
    log_id = record_provider_log(state, log_type, message)
    CALLBACK_EVENTS.labels(provider=provider.provider_id, log_type=LogType(log_type).value).inc()

    current_app.logger.info("Callback %s from %s: %s %s (request_key=%s log=%s)",
                            provider.provider_id, state.ip, LogType(log_type).value, message,
                            state.request_key or "-", log_id)
    return "", state.http_code
