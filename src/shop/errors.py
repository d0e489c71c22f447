"""Exceptions raised by the storefront workflow.

Every error carries a ``key`` that ``utils.i18n.t`` turns into an Arabic or
English message for the shopper.
"""

from typing import Any, Dict, Optional

from utils.i18n import t


class StoreError(Exception):
    """Base exception for all storefront errors."""

    key = "persistence.failed"

    def localized(self, lang: str = "ar") -> str:
        return t(self.key, lang)


class OrderValidationError(StoreError):
    """Raised before any I/O when the checkout form is not submittable."""

    def __init__(self, field: str):
        self.field = field
        self.key = f"validation.{field}"
        super().__init__(f"Order validation failed: {field}")


class VerificationError(StoreError):
    """Raised by the phone gate; ``kind`` names the step that failed."""

    KINDS = ("invalid-number", "rate-limited", "invalid-code", "no-pending-code", "generic")

    def __init__(self, kind: str, detail: Optional[str] = None):
        if kind not in self.KINDS:
            kind = "generic"
        self.kind = kind
        self.key = f"verification.{kind}"
        msg = f"Phone verification failed: {kind}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


# Raised by phone-auth providers; the gate maps them onto VerificationError.


class PhoneAuthError(StoreError):
    key = "verification.generic"


class InvalidPhoneNumberError(PhoneAuthError):
    key = "verification.invalid-number"

    def __init__(self, phone: str):
        self.phone = phone
        super().__init__(f"Invalid phone number: {phone}")


class TooManyRequestsError(PhoneAuthError):
    key = "verification.rate-limited"

    def __init__(self, phone: str, retry_after: Optional[float] = None):
        self.phone = phone
        self.retry_after = retry_after
        super().__init__(f"Too many verification requests for {phone}")


class InvalidCodeError(PhoneAuthError):
    key = "verification.invalid-code"

    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"Invalid or expired code for challenge {handle}")


class PersistenceError(StoreError):
    """A write rejected by the storage layer (authorization or connectivity)."""

    key = "persistence.failed"

    def __init__(
        self,
        path: str,
        operation: str,
        request_data: Optional[Dict[str, Any]] = None,
    ):
        self.path = path
        self.operation = operation
        self.request_data = request_data or {}
        super().__init__(f"Storage rejected {operation} on {path}")

    def context(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "operation": self.operation,
            "request_data": self.request_data,
        }


class UnauthorizedError(StoreError):
    key = "auth.unauthorized"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Not allowed to {action}")


class PhoneAlreadyRegisteredError(StoreError):
    key = "profile.phone_taken"

    def __init__(self, phone: str):
        self.phone = phone
        super().__init__(f"Phone already registered: {phone}")


class InvalidStatusTransitionError(StoreError):
    key = "order.invalid_transition"

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move order from {current} to {requested}")


class OrderNotFoundError(StoreError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")
