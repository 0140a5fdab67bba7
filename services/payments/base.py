# services/payments/base.py
"""
Capability interface + value types shared by payment providers.

Adapters must implement PaymentProvider. The host application implements
CallbackHost so that providers can look up profiles and purchase requests
without knowing how they are stored.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any, Protocol, Union


class LogType(str, Enum):
    INFO = "info"
    ERROR = "error"
    PAYMENT = "payment"   # host-only: written when a payment is completed


class PaymentOutcome(str, Enum):
    RECEIVED = "received"


@dataclass(frozen=True)
class PaymentProfile:
    id: int
    provider_id: str
    title: str
    options: Dict[str, Any]       # provider specific, e.g. public_key/private_key
    active: bool = True


@dataclass(frozen=True)
class PurchaseRequest:
    request_key: str              # correlation key sent to the gateway as order_id
    payment_profile_id: int
    provider_id: str
    cost_amount: Decimal
    cost_currency: str
    status: str = "pending"       # 'pending' | 'completed'
    purchaser: Optional[str] = None
    title: Optional[str] = None


@dataclass(frozen=True)
class Purchase:
    title: str
    cost: Decimal
    currency: str
    return_url: str
    cancel_url: Optional[str] = None


@dataclass(frozen=True)
class PaymentRequestParams:
    version: int
    public_key: str
    action: str
    amount: Decimal
    currency: str
    description: str
    order_id: str
    result_url: str
    server_url: str

    def as_fields(self) -> Dict[str, Any]:
        # Key order is part of the signed payload.
        return {
            "version": self.version,
            "public_key": self.public_key,
            "action": self.action,
            "amount": self.amount,
            "currency": self.currency,
            "description": self.description,
            "order_id": self.order_id,
            "result_url": self.result_url,
            "server_url": self.server_url,
        }


@dataclass(frozen=True)
class EncodedEnvelope:
    data: str
    signature: str

    def as_query(self) -> Dict[str, str]:
        return {"data": self.data, "signature": self.signature}


@dataclass(frozen=True)
class CallbackState:
    """
    Everything known about one inbound callback.

    Stages never mutate a state; they return a new one (or a Rejection).
    Once log_type is set the pipeline has stopped.
    """
    provider_id: str
    data_raw: str = ""
    decoded_fields: Dict[str, Any] = field(default_factory=dict)
    signature: str = ""
    ip: Optional[str] = None
    http_code: int = 200
    request_key: str = ""
    transaction_id: str = ""
    amount: Decimal = Decimal("0")
    currency: str = ""
    status: str = ""
    subscriber_id: Any = 0
    outcome: Optional[PaymentOutcome] = None
    log_type: Optional[LogType] = None
    log_message: Optional[str] = None
    log_details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[type] = None  # PaymentError subclass of the failing stage

    @property
    def rejected(self) -> bool:
        return self.log_type is not None

    def reject(self, rejection: "Rejection") -> "CallbackState":
        return replace(self, log_type=rejection.log_type,
                       log_message=rejection.message, error=rejection.error)


@dataclass(frozen=True)
class Rejection:
    log_type: LogType
    message: str
    error: type                   # PaymentError subclass used for classification


StageResult = Union[CallbackState, Rejection]


class CallbackHost(Protocol):
    """Host-owned lookups the callback pipeline depends on."""

    def get_payment_profile(self, state: CallbackState) -> Optional[PaymentProfile]:
        ...

    def get_purchase_request(self, state: CallbackState) -> Optional[PurchaseRequest]:
        ...

    def validate_transaction(self, state: CallbackState) -> StageResult:
        """
        Confirm the correlation key resolves to a known purchase request
        that is still open and that the transaction was not processed yet.
        """
        ...


class PaymentProvider(Protocol):
    provider_id: str

    def get_title(self) -> str:
        ...

    def verify_config(self, options: Dict[str, Any]) -> tuple[bool, list[str]]:
        """Admission check for profile options; returns (ok, errors)."""

    def build_redirect(self, profile: PaymentProfile, purchase_request: PurchaseRequest,
                       purchase: Purchase) -> str:
        """
        Return the URL the purchaser must be sent to.
        Must not have side effects beyond building that URL.
        """

    def setup_callback(self, request) -> CallbackState:
        """
        Extract the transport fields of an inbound callback.
        Never raises for malformed payloads; validation rejects them later.
        """

    def process_callback(self, state: CallbackState, host: CallbackHost) -> CallbackState:
        """Run every validation stage, map the outcome and fill log_details."""

    def verify_currency(self, profile: Optional[PaymentProfile], currency_code: str) -> bool:
        ...

    def supports_recurring(self, profile: Optional[PaymentProfile], unit: str,
                           amount: Any) -> tuple[bool, str]:
        ...
