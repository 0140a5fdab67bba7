# services/payments/errors.py
"""
Error taxonomy for the payments layer.

Only MalformedPayload, ConfigInvalid, UnsupportedCurrency and
UnsupportedRecurring are ever raised. The callback-stage classes are
attached to a Rejection and returned by the pipeline instead.
"""

from __future__ import annotations


class PaymentError(Exception):
    """Base class for everything the payments layer reports."""


class MalformedPayload(PaymentError):
    """The callback `data` field is not base64-encoded JSON object text."""


class AuthenticationFailure(PaymentError):
    pass


class IdentityFailure(PaymentError):
    pass


class SignatureFailure(PaymentError):
    pass


class CostMismatch(PaymentError):
    pass


class UnsupportedCurrency(PaymentError):
    def __init__(self, currency: str):
        super().__init__(f"Currency {currency!r} is not supported by this provider")
        self.currency = currency


class UnsupportedRecurring(PaymentError):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ConfigInvalid(PaymentError):
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(str(e) for e in errors))
        self.errors = list(errors)
