# models/payments_store.py (SQLAlchemy)
from __future__ import annotations
import json
import secrets
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional, Tuple

from sqlalchemy import select, update

from models.base import session_scope
from models.schema import (
    PaymentProfileRow, PaymentProviderLog, PaymentProviderRow, PurchaseRequestRow,
)
from services.payments.base import (
    CallbackState, LogType, PaymentOutcome, PaymentProfile, PurchaseRequest, Rejection, StageResult,
)
from services.payments.errors import ConfigInvalid, IdentityFailure
from services.payments.registry import get_provider

REQUEST_KEY_LENGTH = 32
# Numeric(18, 2) holds at most 16 integer digits
MAX_COST_AMOUNT = Decimal("1e16")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _money(amount: Any) -> Decimal:
    value = Decimal(str(amount))
    if not value.is_finite() or abs(value) >= MAX_COST_AMOUNT:
        raise ValueError(f"cost amount {amount} is out of range")
    value = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if abs(value) >= MAX_COST_AMOUNT:
        raise ValueError(f"cost amount {amount} is out of range")
    return value


def _json_safe(details: dict) -> dict:
    # Decimal amounts and Infinity/NaN from the gateway payload become plain strings
    return json.loads(json.dumps(details, ensure_ascii=False, default=str), parse_constant=str)


def _clip(value: Any, column: str) -> Optional[str]:
    if not value:
        return None
    return str(value)[:PaymentProviderLog.__table__.c[column].type.length]


def _to_profile(r: PaymentProfileRow) -> PaymentProfile:
    return PaymentProfile(id=r.id, provider_id=r.provider_id, title=r.title,
                          options=dict(r.options or {}), active=bool(r.active))


def _to_purchase_request(r: PurchaseRequestRow) -> PurchaseRequest:
    return PurchaseRequest(
        request_key=r.request_key, payment_profile_id=r.payment_profile_id,
        provider_id=r.provider_id, cost_amount=Decimal(str(r.cost_amount)),
        cost_currency=r.cost_currency, status=r.status,
        purchaser=r.purchaser, title=r.title,
    )


# ----- payment profiles -----

def create_profile(provider_id: str, title: str, options: dict) -> int:
    provider = get_provider(provider_id)
    ok, errors = provider.verify_config(options)
    if not ok:
        raise ConfigInvalid(errors)

    with session_scope() as s:
        if not s.get(PaymentProviderRow, provider_id):
            raise ValueError(f"Payment provider {provider_id} is not installed")
        p = PaymentProfileRow(
            provider_id=provider_id,
            title=title or provider.get_title(),
            options={k: str(v).strip() for k, v in options.items()},
            active=True,
        )
        s.add(p)
        s.flush()
        return p.id


def get_profile(profile_id: int) -> Optional[PaymentProfile]:
    with session_scope() as s:
        r = s.get(PaymentProfileRow, profile_id)
        return _to_profile(r) if r else None


def set_profile_active(profile_id: int, active: bool) -> None:
    with session_scope() as s:
        r = s.get(PaymentProfileRow, profile_id)
        if r:
            r.active = active


# ----- purchase requests -----

def create_purchase_request(profile: PaymentProfile, cost_amount: Any, cost_currency: str,
                            purchaser: Optional[str] = None, title: Optional[str] = None,
                            request_key: Optional[str] = None) -> PurchaseRequest:
    key = request_key or secrets.token_hex(REQUEST_KEY_LENGTH // 2)
    with session_scope() as s:
        r = PurchaseRequestRow(
            request_key=key, payment_profile_id=profile.id, provider_id=profile.provider_id,
            purchaser=purchaser, title=title, cost_amount=_money(cost_amount),
            cost_currency=cost_currency.upper(), status="pending",
        )
        s.add(r)
        s.flush()
        return _to_purchase_request(r)


def get_purchase_request(request_key: str) -> Optional[PurchaseRequest]:
    if not request_key:
        return None
    with session_scope() as s:
        r = s.execute(select(PurchaseRequestRow).where(
            PurchaseRequestRow.request_key == request_key)).scalars().first()
        return _to_purchase_request(r) if r else None


# ----- provider log -----

def find_logs_by_transaction_id(provider_id: str, transaction_id: str) -> list[dict]:
    if not transaction_id:
        return []
    with session_scope() as s:
        rows = s.execute(select(PaymentProviderLog).where(
            (PaymentProviderLog.provider_id == provider_id)
            & (PaymentProviderLog.transaction_id == transaction_id)
        ).order_by(PaymentProviderLog.id)).scalars().all()
        return [{"id": r.id, "log_type": r.log_type, "log_message": r.log_message} for r in rows]


def record_provider_log(state: CallbackState, log_type: LogType | str, message: str) -> int:
    with session_scope() as s:
        e = PaymentProviderLog(
            provider_id=state.provider_id,
            # gateway-supplied ids are capped to the column width; log_details keeps them whole
            transaction_id=_clip(state.transaction_id, "transaction_id"),
            subscriber_id=_clip(state.subscriber_id, "subscriber_id"),
            purchase_request_key=_clip(state.request_key, "purchase_request_key"),
            log_type=LogType(log_type).value,
            log_message=message or "",
            log_details=_json_safe(state.log_details),
            log_date=_now(),
        )
        s.add(e)
        s.flush()
        return e.id


def list_provider_logs(provider_id: Optional[str] = None, limit: int = 100) -> list[dict]:
    with session_scope() as s:
        q = select(PaymentProviderLog).order_by(PaymentProviderLog.id.desc()).limit(limit)
        if provider_id:
            q = q.where(PaymentProviderLog.provider_id == provider_id)
        return [
            {
                "id": r.id, "provider_id": r.provider_id, "transaction_id": r.transaction_id,
                "subscriber_id": r.subscriber_id, "purchase_request_key": r.purchase_request_key,
                "log_type": r.log_type, "log_message": r.log_message,
                "log_details": r.log_details, "log_date": r.log_date,
            }
            for r in s.execute(q).scalars().all()
        ]


# ----- callback collaborators -----

def validate_transaction(state: CallbackState) -> StageResult:
    """Base identity check shared by every provider."""
    purchase_request = get_purchase_request(state.request_key)
    if purchase_request is None:
        return Rejection(LogType.ERROR, "Invalid request key.", IdentityFailure)

    if not state.transaction_id and not state.subscriber_id:
        return Rejection(LogType.INFO, "No transaction or subscriber ID. No action to take.",
                         IdentityFailure)

    if purchase_request.status == "completed" or any(
            log["log_type"] == LogType.PAYMENT.value
            for log in find_logs_by_transaction_id(state.provider_id, state.transaction_id)):
        return Rejection(LogType.INFO, "Transaction already processed. Skipping.", IdentityFailure)

    return state


def complete_transaction(state: CallbackState) -> Tuple[LogType, str]:
    """
    Apply a validated callback to the purchase request.
    Returns the (log_type, message) the provider log should be written with.
    """
    if state.rejected:
        return state.log_type, state.log_message or ""

    if state.outcome != PaymentOutcome.RECEIVED:
        return LogType.INFO, "OK, no action."

    with session_scope() as s:
        # conditional update: only one delivery can flip pending -> completed
        res = s.execute(
            update(PurchaseRequestRow)
            .where((PurchaseRequestRow.request_key == state.request_key)
                   & (PurchaseRequestRow.status == "pending"))
            .values(status="completed", completed_at=_now())
        )
        flipped = res.rowcount == 1

    if not flipped:
        return LogType.INFO, "Transaction already processed. Skipping."
    return LogType.PAYMENT, "Payment received, purchase completed."


class SqlCallbackHost:
    """CallbackHost backed by the purchase_requests/payment_profiles tables."""

    def get_purchase_request(self, state: CallbackState) -> Optional[PurchaseRequest]:
        return get_purchase_request(state.request_key)

    def get_payment_profile(self, state: CallbackState) -> Optional[PaymentProfile]:
        purchase_request = self.get_purchase_request(state)
        if purchase_request is None:
            return None
        return get_profile(purchase_request.payment_profile_id)

    def validate_transaction(self, state: CallbackState) -> StageResult:
        return validate_transaction(state)
