# backend/event_horizon/errors.py
"""Error taxonomy for the synchronization layer.

Every error carries an ErrorCode and a user-safe message. Consumers can
branch on the class or on ``error.code``.
"""

from enum import Enum


class ErrorCode(Enum):
    """Error codes surfaced to consumers."""

    CONFIGURATION = "CONFIGURATION"
    REMOTE = "REMOTE"
    AUTH = "AUTH"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    PROFILE_INCONSISTENT = "PROFILE_INCONSISTENT"
    DUPLICATE_BOOKING = "DUPLICATE_BOOKING"
    PAYMENT_FAILED = "PAYMENT_FAILED"


class EventHorizonError(Exception):
    """Base error with code and user-safe message."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ConfigurationError(EventHorizonError):
    """Raised by every gateway operation while connection parameters are missing."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            code=ErrorCode.CONFIGURATION,
            message=f"Remote store is not configured, missing: {', '.join(missing)}",
        )
        self.missing = missing


class RemoteError(EventHorizonError):
    """Raised when a table operation or auth call fails remotely."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(code=ErrorCode.REMOTE, message=message)
        self.status_code = status_code


class AuthError(EventHorizonError):
    """Raised for invalid credentials, existing accounts and password policy violations."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.AUTH) -> None:
        super().__init__(code=code, message=message)


class NotAuthenticatedError(AuthError):
    """Raised when an operation needs a signed-in principal and there is none."""

    def __init__(self, action: str = "perform this action") -> None:
        super().__init__(
            f"You must be logged in to {action}",
            code=ErrorCode.NOT_AUTHENTICATED,
        )


class NotAuthorizedError(AuthError):
    """Raised when the principal lacks the admin role."""

    def __init__(self, action: str = "perform this action") -> None:
        super().__init__(
            f"Admin role required to {action}",
            code=ErrorCode.NOT_AUTHORIZED,
        )


class ProfileInconsistencyError(AuthError):
    """Raised when an auth session has no matching profile row."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            "Signed in, but no user profile exists for this account",
            code=ErrorCode.PROFILE_INCONSISTENT,
        )
        self.user_id = user_id


class DuplicateBookingError(EventHorizonError):
    """Raised locally when the principal already booked the event."""

    def __init__(self, event_id: str, user_id: str) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_BOOKING,
            message="You have already booked this event",
        )
        self.event_id = event_id
        self.user_id = user_id


class PaymentFailedError(EventHorizonError):
    """Raised when checkout's charge did not complete."""

    def __init__(self, status: str) -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_FAILED,
            message=f"Payment was not completed (status: {status})",
        )
        self.status = status
