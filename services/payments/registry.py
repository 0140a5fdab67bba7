import os
from flask import current_app, has_app_context
# add further adapters here, keyed on provider id
from services.payments.liqpay_provider import LiqPayProvider

PROVIDERS = {
    LiqPayProvider.provider_id: LiqPayProvider,
}


def _cfg(key: str, default: str | None = None) -> str | None:
    v = os.environ.get(key)
    if v is not None:
        return v
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def get_provider(provider_id: str | None = None):
    name = (provider_id or _cfg("PAYMENT_PROVIDER") or "liqpay").lower()
    cls = PROVIDERS.get(name)
    if cls is None:
        raise RuntimeError(f"Unknown payment provider: {name}")
    return cls(site_url=_cfg("SITE_BASE_URL"))


def provider_class_path(provider_id: str) -> str:
    cls = PROVIDERS[provider_id]
    return f"{cls.__module__}:{cls.__name__}"
