from enum import Enum
from typing import List, Optional


class ServiceTrackerError(Exception):
    """Base class for errors surfaced to the user as notifications."""


class AuthReason(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_IN_USE = "email_in_use"
    WEAK_PASSWORD = "weak_password"
    INVALID_EMAIL = "invalid_email"
    NETWORK = "network"
    UNKNOWN = "unknown"


AUTH_MESSAGES = {
    AuthReason.INVALID_CREDENTIALS: "Invalid email or password.",
    AuthReason.EMAIL_IN_USE: "An account with this email already exists.",
    AuthReason.WEAK_PASSWORD: "Password is too weak. Use at least 6 characters.",
    AuthReason.INVALID_EMAIL: "Please enter a valid email address.",
    AuthReason.NETWORK: "Could not reach the sign-in service. Check your connection and try again.",
    AuthReason.UNKNOWN: "Authentication failed. Please try again.",
}


class AuthError(ServiceTrackerError):
    def __init__(self, reason: AuthReason, message: Optional[str] = None):
        self.reason = reason
        self.message = message or AUTH_MESSAGES[reason]
        super().__init__(self.message)


class ValidationError(ServiceTrackerError):
    """Local input failure; never reaches the store."""

    def __init__(self, message: str, field: Optional[str] = None, index: Optional[int] = None):
        self.message = message
        self.field = field
        self.index = index
        super().__init__(message)

    def __str__(self) -> str:
        if self.index is not None:
            return f"Service entry #{self.index + 1}: {self.message}"
        return self.message


class WriteError(ServiceTrackerError):
    """Create, update or delete failed."""


class PartialCommitError(WriteError):
    """A batch write stopped part way; ``created_ids`` were persisted."""

    def __init__(self, message: str, created_ids: List[str]):
        self.created_ids = list(created_ids)
        super().__init__(message)


class SubscriptionError(ServiceTrackerError):
    """The live record query failed and stopped emitting."""


class BackendError(ServiceTrackerError):
    """Raised by storage backends; the record store converts it."""


class RecordNotFound(BackendError):
    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Service record '{record_id}' does not exist.")
