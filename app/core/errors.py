"""Domain error codes and exceptions.

Every error carries a machine-checkable code, a user-safe message and the
HTTP status the API layer answers with.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    ALLOCATION_EXHAUSTED = "ALLOCATION_EXHAUSTED"
    COUPON_INVALID = "COUPON_INVALID"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_ROLE = "UNKNOWN_ROLE"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    PAYMENT_ORDER_FAILED = "PAYMENT_ORDER_FAILED"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    CONFLICT = "CONFLICT"
    RATE_LIMITED = "RATE_LIMITED"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str
    status_code: int = 400

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict:
        return {"success": False, "error": self.code.value, "message": self.message}


class NotFoundError(DomainError):
    """Raised when a registrant, ticket or coupon does not exist."""

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(code=ErrorCode.NOT_FOUND, message=message, status_code=404)


class ForbiddenError(DomainError):
    """Raised when the email ownership check fails."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(code=ErrorCode.FORBIDDEN, message=message, status_code=403)


class AllocationExhaustedError(DomainError):
    """Raised when no free ticket code was found within the retry bound."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            code=ErrorCode.ALLOCATION_EXHAUSTED,
            message=f"Could not allocate a unique ticket code after {attempts} attempts",
            status_code=503,
        )


class CouponInvalidError(DomainError):
    """Raised when a coupon is absent, already used or lost a consume race."""

    def __init__(self, message: str = "Coupon already used or invalid") -> None:
        super().__init__(code=ErrorCode.COUPON_INVALID, message=message, status_code=400)


class ValidationError(DomainError):
    """Raised for malformed input the schemas cannot catch."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.VALIDATION_ERROR, message=message, status_code=400)


class UnknownRoleError(DomainError):
    def __init__(self, role: str) -> None:
        super().__init__(
            code=ErrorCode.UNKNOWN_ROLE,
            message=f"Unknown registrant role: {role!r}",
            status_code=400,
        )


class StoreUnavailableError(DomainError):
    def __init__(self, message: str = "Database not available") -> None:
        super().__init__(code=ErrorCode.STORE_UNAVAILABLE, message=message, status_code=503)


class PaymentOrderError(DomainError):
    """Raised when the payment-order service refuses or cannot be reached."""

    def __init__(self, message: str = "Failed to create payment order") -> None:
        super().__init__(code=ErrorCode.PAYMENT_ORDER_FAILED, message=message, status_code=502)


class DeliveryFailedError(DomainError):
    """Carries a notification failure. Recorded as state, not raised to callers."""

    def __init__(self, message: str = "Mail failed") -> None:
        super().__init__(code=ErrorCode.DELIVERY_FAILED, message=message, status_code=502)


class ConflictError(DomainError):
    def __init__(self, message: str = "Already exists") -> None:
        super().__init__(code=ErrorCode.CONFLICT, message=message, status_code=409)


class RateLimitedError(DomainError):
    """Raised while an OTP is in its resend cooldown or out of verify attempts."""

    def __init__(self, message: str = "Too many requests", retry_after: int = 0) -> None:
        super().__init__(code=ErrorCode.RATE_LIMITED, message=message, status_code=429)
        self.retry_after = retry_after
