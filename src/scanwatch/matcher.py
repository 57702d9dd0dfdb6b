"""Select the analysis that applies to the checked-out commit.

The remote list is scanned in the service's own (recency) order and the first
analysis whose commit is anywhere in the local ancestry wins. Ties are
therefore broken by remote recency, not by distance from HEAD.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from .exceptions import FeatureDisabled, FetchError
from .git.reader import RepositoryReader
from .logging_config import get_logger
from .models import AnalysisRecord, BranchState, CommitRecord, MatchOutcome, SelectedAnalysis
from .remote.client import CodeScanningClient

logger = get_logger(__name__)

AUTH_UNAVAILABLE_MESSAGE = "Unable to authenticate."
FEATURE_DISABLED_MESSAGE = "GitHub Advanced Security is not enabled for this repository."
FETCH_FAILED_MESSAGE = "Unable to load code scanning results."


def format_timestamp(value: datetime) -> str:
    """Render a creation timestamp in UTC so messages do not depend on the host zone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def status_for_match(analysis: AnalysisRecord, commits_ago: int, head_commit: str) -> str:
    message = f"Results updated for current commit {head_commit[:7]}."
    if commits_ago == 0 or analysis.commit_sha == head_commit:
        return message
    return (
        message
        + f" The most recent scan was {commits_ago} commit(s) ago"
        + f" on {format_timestamp(analysis.created_at)}."
        + " Refresh to check for more current results."
    )


def select_analysis(
    analyses: Sequence[AnalysisRecord],
    commits: Sequence[CommitRecord],
    head_commit: str,
) -> SelectedAnalysis:
    """Intersect remote analyses with local ancestry.

    Args:
        analyses: Remote records in the service's order (not re-sorted).
        commits: Local ancestry, most recent first.
        head_commit: Hash of the checked-out commit.
    """
    if not analyses:
        return SelectedAnalysis.absent(MatchOutcome.NO_ANALYSES)

    # First occurrence wins if the log ever repeats a hash.
    positions: dict[str, int] = {}
    for index, commit in enumerate(commits):
        positions.setdefault(commit.hash, index)

    for analysis in analyses:
        commits_ago = positions.get(analysis.commit_sha)
        if commits_ago is None:
            continue
        return SelectedAnalysis(
            analysis=analysis,
            commits_ago=commits_ago,
            status_message=status_for_match(analysis, commits_ago, head_commit),
            outcome=MatchOutcome.MATCHED,
        )

    # Either the intersection lies beyond the ancestry page or the analysed
    # commits were rewritten away locally.
    return SelectedAnalysis.absent(MatchOutcome.NO_INTERSECTION)


class AnalysisMatcher:
    """Runs the remote list fetch and local ancestry lookup for one cycle."""

    def __init__(self, client: CodeScanningClient, reader: RepositoryReader, max_commits: Optional[int] = None):
        self.client = client
        self.reader = reader
        self.max_commits = max_commits

    async def match(
        self,
        branch_state: BranchState,
        token: Optional[str],
        checkpoint: Optional[Callable[[], None]] = None,
    ) -> SelectedAnalysis:
        """Compute the selection for ``branch_state``.

        ``checkpoint`` is called after every suspension; the orchestrator uses
        it to abandon cycles that a newer trigger has superseded.
        """
        if not token:
            return SelectedAnalysis.absent(MatchOutcome.AUTH_UNAVAILABLE, AUTH_UNAVAILABLE_MESSAGE)

        failure: Optional[SelectedAnalysis] = None
        analyses: list[AnalysisRecord] = []
        try:
            analyses = await self.client.list_analyses(branch_state.branch_name, token)
        except FeatureDisabled:
            failure = SelectedAnalysis.absent(MatchOutcome.FEATURE_DISABLED, FEATURE_DISABLED_MESSAGE)
        except FetchError as e:
            logger.warning("Analysis list fetch failed: %s", e)
            failure = SelectedAnalysis.absent(MatchOutcome.FETCH_FAILED, f"{FETCH_FAILED_MESSAGE} {e.reason}")

        if checkpoint is not None:
            checkpoint()
        if failure is not None:
            return failure

        if not analyses:
            return SelectedAnalysis.absent(MatchOutcome.NO_ANALYSES)

        commits = await self.reader.commit_log(branch_state.ref, self.max_commits)
        if checkpoint is not None:
            checkpoint()

        selection = select_analysis(analyses, commits, branch_state.head_commit_hash)
        logger.debug(
            "Matched %s against %d analyses / %d commits: %s",
            branch_state.branch_name,
            len(analyses),
            len(commits),
            selection.outcome.value,
        )
        return selection
