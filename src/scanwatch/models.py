"""Data models shared by the reader, matcher and report cache."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class CommitRecord:
    hash: str


@dataclass(frozen=True)
class AnalysisRecord:
    id: int
    commit_sha: str
    created_at: datetime


@dataclass(frozen=True)
class BranchState:
    branch_name: str
    head_commit_hash: str

    @property
    def ref(self) -> str:
        return f"refs/heads/{self.branch_name}"

    @property
    def short_hash(self) -> str:
        return self.head_commit_hash[:7]


@dataclass(frozen=True)
class RepoCoordinates:
    """Owner and repository name parsed from the origin remote."""

    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


class MatchOutcome(Enum):
    """Why a matching cycle ended the way it did."""

    MATCHED = "matched"
    # Scanning disabled for the repo/branch, or enabled but still pending.
    # The service returns an empty list for both, so the two cannot be told apart.
    NO_ANALYSES = "no_analyses"
    # Every listed analysis is for a commit outside the local ancestry page.
    NO_INTERSECTION = "no_intersection"
    FEATURE_DISABLED = "feature_disabled"
    AUTH_UNAVAILABLE = "auth_unavailable"
    FETCH_FAILED = "fetch_failed"


@dataclass(frozen=True)
class SelectedAnalysis:
    """Result of one matching cycle. Replaced wholesale, never patched."""

    analysis: Optional[AnalysisRecord]
    commits_ago: Optional[int]
    status_message: str
    outcome: MatchOutcome

    @classmethod
    def absent(cls, outcome: MatchOutcome, status_message: str = "") -> SelectedAnalysis:
        return cls(analysis=None, commits_ago=None, status_message=status_message, outcome=outcome)

    @property
    def analysis_id(self) -> Optional[int]:
        return self.analysis.id if self.analysis is not None else None

    @property
    def is_stale(self) -> bool:
        return bool(self.commits_ago)


@dataclass
class Report:
    """An installed SARIF log tagged with the URI it was fetched from."""

    origin_id: str
    body: dict[str, Any]
    text: str = ""
    augmented: bool = False
    analysis_id: Optional[int] = None

    @property
    def result_count(self) -> int:
        return sum(len(run.get("results") or []) for run in self.body.get("runs") or [])


@dataclass
class StateSnapshot:
    """Read-only view handed to external collaborators."""

    branch: Optional[str]
    head_commit_hash: Optional[str]
    selection: Optional[SelectedAnalysis]
    status_message: str
    busy: bool
    reports: list[Report] = field(default_factory=list)
