"""Boundary schemas for code-scanning JSON.

Payloads are validated here so malformed data never reaches the matcher or
the report cache.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..models import AnalysisRecord

__all__ = [
    "AnalysisPayload",
    "SarifEnvelope",
    "ValidationError",
    "parse_analyses",
    "parse_sarif",
]


class AnalysisPayload(BaseModel):
    """Subset of a code-scanning analysis object."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    commit_sha: str = Field(min_length=7)
    created_at: datetime

    def to_record(self) -> AnalysisRecord:
        return AnalysisRecord(id=self.id, commit_sha=self.commit_sha, created_at=self.created_at)


class SarifEnvelope(BaseModel):
    """Top level of a SARIF log; only ``runs`` is required."""

    model_config = ConfigDict(extra="allow")

    version: str = "2.1.0"
    runs: list[dict[str, Any]]


_ANALYSIS_LIST = TypeAdapter(list[AnalysisPayload])


def parse_analyses(raw: bytes | str) -> list[AnalysisRecord]:
    """Validate an analyses list response, keeping the service's order."""
    return [item.to_record() for item in _ANALYSIS_LIST.validate_json(raw)]


def parse_sarif(raw: bytes | str) -> dict[str, Any]:
    """Validate a SARIF body and return it as a plain dict."""
    envelope = SarifEnvelope.model_validate_json(raw)
    return envelope.model_dump(mode="json")
