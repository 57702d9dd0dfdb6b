"""Local repository errors: missing integration, unmet guards, bad refs."""

from pathlib import Path
from typing import Optional

from .base import ErrorKind, ScanwatchError


class RepositoryError(ScanwatchError):
    """Base class for errors raised while reading local git state."""

    pass


class IntegrationAbsent(RepositoryError):
    """Raised when the git executable cannot be found or run."""

    kind = ErrorKind.INTEGRATION_ABSENT

    def __init__(self, reason: str):
        super().__init__("Git integration unavailable", details={"reason": reason})
        self.reason = reason


class PreconditionUnmet(RepositoryError):
    """Raised when a named startup guard fails.

    ``guard`` is one of ``workspace``, ``repository``, ``head_file`` or
    ``origin`` so callers and tests can tell the guards apart.
    """

    kind = ErrorKind.PRECONDITION_UNMET

    def __init__(self, guard: str, reason: str, path: Optional[Path] = None):
        details = {"guard": guard, "reason": reason}
        if path is not None:
            details["path"] = str(path)
        super().__init__(f"Precondition unmet: {guard}", details=details)
        self.guard = guard
        self.reason = reason
        self.path = path


class InvalidRefFormat(RepositoryError):
    """Raised when the head pointer is not a symbolic branch ref (e.g. detached HEAD)."""

    kind = ErrorKind.INVALID_REF_FORMAT

    def __init__(self, head_path: Path, content: str):
        super().__init__(
            f"HEAD is not on a branch: {content[:60]!r}",
            details={"head_path": str(head_path)},
        )
        self.head_path = head_path
        self.content = content
