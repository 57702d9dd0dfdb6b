"""Remote code-scanning errors: credentials, disabled feature, bad payloads."""

from typing import Optional

from .base import ErrorKind, ScanwatchError


class RemoteError(ScanwatchError):
    """Base class for errors talking to the code-scanning service."""

    pass


class AuthUnavailable(RemoteError):
    """Raised when no access token could be obtained."""

    kind = ErrorKind.AUTH_UNAVAILABLE

    def __init__(self, reason: str = "no token"):
        super().__init__("Unable to authenticate.", details={"reason": reason})
        self.reason = reason


class FeatureDisabled(RemoteError):
    """Raised when the analyses endpoint answers 403."""

    kind = ErrorKind.FEATURE_DISABLED

    def __init__(self, url: str):
        super().__init__("Code scanning is not enabled", details={"url": url})
        self.url = url


class FetchError(RemoteError):
    """Raised when a request fails or returns a body that does not validate."""

    kind = ErrorKind.FETCH_ERROR

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        details = {"url": url, "reason": reason}
        if status_code is not None:
            details["status"] = str(status_code)
        super().__init__("Failed to fetch code-scanning data", details=details)
        self.url = url
        self.reason = reason
        self.status_code = status_code
