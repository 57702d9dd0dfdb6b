"""Base exception and error kinds for scanwatch."""

from enum import Enum
from typing import Dict, Optional


class ErrorKind(Enum):
    """Failure categories that decide how an error propagates.

    Soft-disable kinds switch the feature off with a diagnostic only.
    User-visible kinds end up in the status message.
    """

    INTEGRATION_ABSENT = "integration_absent"  # soft-disable
    PRECONDITION_UNMET = "precondition_unmet"  # soft-disable
    INVALID_REF_FORMAT = "invalid_ref_format"  # user-visible
    AUTH_UNAVAILABLE = "auth_unavailable"  # user-visible
    FEATURE_DISABLED = "feature_disabled"  # user-visible
    FETCH_ERROR = "fetch_error"  # user-visible

    @property
    def soft_disables(self) -> bool:
        return self in (ErrorKind.INTEGRATION_ABSENT, ErrorKind.PRECONDITION_UNMET)


class ScanwatchError(Exception):
    """Base exception for all scanwatch errors."""

    kind: Optional[ErrorKind] = None

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message
