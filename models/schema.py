# models/schema.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- PROVIDER REGISTRATION (install/uninstall bookkeeping)


class PaymentProviderRow(Base):
    __tablename__ = "payment_providers"
    provider_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    # dotted "module:Class" of the adapter
    provider_class: Mapped[str] = mapped_column(String(255), nullable=False)
    addon_id: Mapped[str | None] = mapped_column(String(50))
    installed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow)


# --- PAYMENT PROFILES (provider credentials, owned by the admin)


class PaymentProfileRow(Base):
    __tablename__ = "payment_profiles"
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True)
    provider_id: Mapped[str] = mapped_column(String(50), ForeignKey(
        "payment_providers.provider_id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    options: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow)


Index("idx_payment_profiles_provider", PaymentProfileRow.provider_id)


# --- PURCHASE REQUESTS (one per purchase attempt)


class PurchaseRequestRow(Base):
    __tablename__ = "purchase_requests"
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True)
    request_key: Mapped[str] = mapped_column(String(32), nullable=False)
    payment_profile_id: Mapped[int] = mapped_column(Integer, ForeignKey(
        "payment_profiles.id", ondelete="CASCADE"), nullable=False)
    provider_id: Mapped[str] = mapped_column(String(50), nullable=False)
    purchaser: Mapped[str | None] = mapped_column(String(128))
    title: Mapped[str | None] = mapped_column(String(255))
    cost_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False)
    cost_currency: Mapped[str] = mapped_column(
        String(3), nullable=False)  # ISO 4217
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True))
    __table_args__ = (
        UniqueConstraint("request_key", name="uq_purchase_requests_key"),
        CheckConstraint("cost_amount >= 0",
                        name="ck_purchase_requests_cost_ge_0"),
        CheckConstraint("status in ('pending','completed')",
                        name="ck_purchase_requests_status"),
    )


# --- PROVIDER LOG (audit trail of every callback)


class PaymentProviderLog(Base):
    __tablename__ = "payment_provider_logs"
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True)
    provider_id: Mapped[str] = mapped_column(String(50), nullable=False)
    transaction_id: Mapped[str | None] = mapped_column(String(100))
    subscriber_id: Mapped[str | None] = mapped_column(String(100))
    purchase_request_key: Mapped[str | None] = mapped_column(String(32))
    log_type: Mapped[str] = mapped_column(String(16), nullable=False)
    log_message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    log_details: Mapped[Optional[dict]] = mapped_column(JSON)
    log_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow)
    __table_args__ = (
        CheckConstraint("log_type in ('payment','info','error')",
                        name="ck_provider_logs_type"),
    )


Index("idx_provider_logs_transaction",
      PaymentProviderLog.provider_id, PaymentProviderLog.transaction_id)
Index("idx_provider_logs_request_key", PaymentProviderLog.purchase_request_key)
