"""Exception hierarchy for scanwatch."""

from .base import ErrorKind, ScanwatchError
from .config import ConfigurationError, InvalidConfigError
from .remote import AuthUnavailable, FeatureDisabled, FetchError, RemoteError
from .repository import IntegrationAbsent, InvalidRefFormat, PreconditionUnmet, RepositoryError

__all__ = [
    "ScanwatchError",
    "ErrorKind",
    "ConfigurationError",
    "InvalidConfigError",
    "RepositoryError",
    "IntegrationAbsent",
    "PreconditionUnmet",
    "InvalidRefFormat",
    "RemoteError",
    "AuthUnavailable",
    "FeatureDisabled",
    "FetchError",
]
