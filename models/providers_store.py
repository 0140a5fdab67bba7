# models/providers_store.py
"""
Install/uninstall bookkeeping for payment providers.
A provider only accepts callbacks while it is installed.
"""
from __future__ import annotations
import logging

from sqlalchemy import delete, select

from models.base import session_scope
from models.schema import PaymentProfileRow, PaymentProviderRow, PurchaseRequestRow
from services.payments.registry import PROVIDERS, provider_class_path

logger = logging.getLogger(__name__)

ADDON_ID = "PaygateLiqPay"


def install_provider(provider_id: str) -> bool:
    """Register the provider. Returns False if it was already installed."""
    if provider_id not in PROVIDERS:
        raise ValueError(f"Unknown payment provider: {provider_id}")
    with session_scope() as s:
        if s.get(PaymentProviderRow, provider_id):
            return False
        s.add(PaymentProviderRow(
            provider_id=provider_id,
            provider_class=provider_class_path(provider_id),
            addon_id=ADDON_ID,
        ))
    logger.info("Installed payment provider %s", provider_id)
    return True


def uninstall_provider(provider_id: str) -> int:
    """Remove the provider and every profile that uses it; returns profiles removed."""
    with session_scope() as s:
        profile_ids = s.execute(select(PaymentProfileRow.id).where(
            PaymentProfileRow.provider_id == provider_id)).scalars().all()
        if profile_ids:
            s.execute(delete(PurchaseRequestRow).where(
                PurchaseRequestRow.payment_profile_id.in_(profile_ids)))
            s.execute(delete(PaymentProfileRow).where(
                PaymentProfileRow.id.in_(profile_ids)))
        s.execute(delete(PaymentProviderRow).where(
            PaymentProviderRow.provider_id == provider_id))
    logger.info("Uninstalled payment provider %s (%d profiles removed)",
                provider_id, len(profile_ids))
    return len(profile_ids)


def is_installed(provider_id: str) -> bool:
    with session_scope() as s:
        return s.get(PaymentProviderRow, provider_id) is not None


def list_installed() -> list[dict]:
    with session_scope() as s:
        rows = s.execute(select(PaymentProviderRow).order_by(
            PaymentProviderRow.provider_id)).scalars().all()
        return [{"provider_id": r.provider_id, "provider_class": r.provider_class,
                 "addon_id": r.addon_id, "installed_at": r.installed_at} for r in rows]
