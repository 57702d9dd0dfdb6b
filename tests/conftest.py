"""Shared test fixtures for scanwatch: fake API, fake repository reader."""

import asyncio
import hashlib
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import pytest

from scanwatch.config import SyncConfig
from scanwatch.git.reader import RepositoryReader
from scanwatch.models import (
    AnalysisRecord,
    BranchState,
    CommitRecord,
    MatchOutcome,
    RepoCoordinates,
    SelectedAnalysis,
)
from scanwatch.remote.client import CodeScanningClient

REPO = RepoCoordinates(owner="octo", name="demo")
API_BASE = "https://api.test"


def sha(label: str) -> str:
    """Deterministic 40-char commit hash for a label like 'c1'."""
    return hashlib.sha1(label.encode()).hexdigest()


def analysis_json(analysis_id: int, commit_label: str, created_at: str = "2026-01-02T03:04:05Z") -> dict:
    return {
        "id": analysis_id,
        "commit_sha": sha(commit_label),
        "created_at": created_at,
        "ref": "refs/heads/main",
        "tool": {"name": "CodeQL"},
    }


def sarif_log(rule_id: str = "py/sql-injection", results: int = 1) -> dict:
    return {
        "version": "2.1.0",
        "runs": [
            {
                "tool": {"driver": {"name": "CodeQL", "rules": [{"id": rule_id}]}},
                "results": [
                    {"ruleId": rule_id, "ruleIndex": 0, "message": {"text": f"finding {i}"}}
                    for i in range(results)
                ],
            }
        ],
    }


def selection_for(analysis_id: int, commit_label: str = "c1", commits_ago: int = 0) -> SelectedAnalysis:
    return SelectedAnalysis(
        analysis=AnalysisRecord(
            id=analysis_id,
            commit_sha=sha(commit_label),
            created_at=datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        ),
        commits_ago=commits_ago,
        status_message="",
        outcome=MatchOutcome.MATCHED,
    )


class FakeCodeScanningApi:
    """httpx.MockTransport handler standing in for the code-scanning endpoints.

    ``gates`` maps an analysis id to an asyncio.Event the report request
    waits on, so tests can force completions out of order.
    """

    def __init__(self) -> None:
        self.analyses: list[dict] = []
        self.list_status = 200
        self.list_body: Optional[bytes] = None
        self.reports: dict[int, Any] = {}
        self.report_status = 200
        self.gates: dict[int, asyncio.Event] = {}
        self.requests: list[httpx.Request] = []

    @property
    def report_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if not r.url.path.endswith("/analyses")]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/code-scanning/analyses"):
            if self.list_body is not None:
                return httpx.Response(self.list_status, content=self.list_body)
            if self.list_status != 200:
                return httpx.Response(self.list_status, json={"message": "denied"})
            return httpx.Response(200, json=self.analyses)

        analysis_id = int(path.rsplit("/", 1)[-1])
        gate = self.gates.get(analysis_id)
        if gate is not None:
            await gate.wait()
        if self.report_status != 200:
            return httpx.Response(self.report_status, json={"message": "boom"})
        body = self.reports.get(analysis_id)
        if body is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if isinstance(body, (bytes, str)):
            return httpx.Response(200, content=body)
        return httpx.Response(200, json=body)


class FakeReader(RepositoryReader):
    """RepositoryReader with in-memory branch state and ancestry."""

    def __init__(self, workspace, branch: str = "main", commits: Optional[list[str]] = None):
        super().__init__(workspace)
        labels = commits if commits is not None else ["c1", "c2", "c3", "c4"]
        self.commits = [CommitRecord(hash=sha(label)) for label in labels]
        self.branch_state = BranchState(branch_name=branch, head_commit_hash=self.commits[0].hash)
        self.precondition_error: Optional[Exception] = None
        self.head_error: Optional[Exception] = None
        self.head_gate: Optional[asyncio.Event] = None
        self.resolve_calls = 0
        self.log_calls = 0

    async def check_preconditions(self) -> RepoCoordinates:
        if self.precondition_error is not None:
            raise self.precondition_error
        return REPO

    async def resolve_branch_state(self) -> BranchState:
        self.resolve_calls += 1
        branch_state, gate = self.branch_state, self.head_gate
        if self.head_error is not None:
            raise self.head_error
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        return branch_state

    async def commit_log(self, ref: str, max_count: Optional[int] = None) -> list[CommitRecord]:
        self.log_calls += 1
        await asyncio.sleep(0)
        return list(self.commits)


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Yield to the loop until ``predicate()`` holds."""

    async def _poll():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def api():
    return FakeCodeScanningApi()


@pytest.fixture
def http_client(api):
    return httpx.AsyncClient(transport=httpx.MockTransport(api))


@pytest.fixture
def client(http_client):
    return CodeScanningClient(REPO, api_base=API_BASE, client=http_client)


@pytest.fixture
def reader(tmp_path):
    return FakeReader(tmp_path)


@pytest.fixture
def config(tmp_path):
    return SyncConfig(api_url=API_BASE, workspace=str(tmp_path), debounce_ms=0, use_gh_cli=False)
