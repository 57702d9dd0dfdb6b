"""Read branch, head commit and ancestry from the local repository."""

from __future__ import annotations

import asyncio
import re
import shutil
from pathlib import Path
from typing import Optional

from ..exceptions import IntegrationAbsent, InvalidRefFormat, PreconditionUnmet, RepositoryError
from ..logging_config import get_logger
from ..models import BranchState, CommitRecord, RepoCoordinates

logger = get_logger(__name__)

HEAD_REF_PREFIX = "ref: "
BRANCH_REF_PREFIX = "refs/heads/"

# https://github.com/owner/repo(.git), optionally with credentials before the host
_HTTPS_ORIGIN_RE = re.compile(r"^https://(?:[^@/]+@)?github\.com/([^/]+)/([^/]+?)/?$")
# git@github.com:owner/repo(.git)
_SSH_ORIGIN_RE = re.compile(r"^(?:ssh://)?git@github\.com[:/]([^/]+)/([^/]+?)/?$")

_SHA_RE = re.compile(r"^[0-9a-f]{40}$")


def parse_head_ref(content: str, head_path: Path) -> str:
    """Return the branch ref (``refs/heads/<name>``) named by a HEAD file.

    Raises:
        InvalidRefFormat: HEAD is detached or otherwise not a branch ref.
    """
    text = content.strip()
    if not text.startswith(HEAD_REF_PREFIX):
        raise InvalidRefFormat(head_path, text)
    ref = text[len(HEAD_REF_PREFIX):].strip()
    if not ref.startswith(BRANCH_REF_PREFIX) or ref == BRANCH_REF_PREFIX:
        raise InvalidRefFormat(head_path, text)
    return ref


def parse_origin(url: str) -> Optional[RepoCoordinates]:
    """Extract owner/name from a GitHub remote URL, or None if it is not one."""
    url = url.strip()
    match = _HTTPS_ORIGIN_RE.match(url) or _SSH_ORIGIN_RE.match(url)
    if not match:
        return None
    owner, name = match.groups()
    # A repo name may optionally end with '.git'
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not owner or not name:
        return None
    return RepoCoordinates(owner=owner, name=name)


class RepositoryReader:
    """Async view over one working tree's git state.

    Every call recomputes from disk; nothing is cached between calls, so
    bursts of ref changes can call :meth:`resolve_branch_state` repeatedly
    and the last result is always current.
    """

    def __init__(
        self,
        workspace: str | Path,
        git_executable: str = "git",
        max_commits: int = 1000,
        timeout_seconds: float = 10.0,
    ):
        self.workspace = Path(workspace).resolve()
        self.git_executable = git_executable
        self.max_commits = max_commits
        self.timeout_seconds = timeout_seconds

    @property
    def git_dir(self) -> Path:
        return self.workspace / ".git"

    @property
    def head_path(self) -> Path:
        return self.git_dir / "HEAD"

    @property
    def refs_heads_dir(self) -> Path:
        return self.git_dir / "refs" / "heads"

    # ── Guards ───────────────────────────────────────────────────────

    def require_git(self) -> None:
        if shutil.which(self.git_executable) is None:
            raise IntegrationAbsent(f"'{self.git_executable}' not found on PATH")

    def require_workspace(self) -> None:
        if not self.workspace.is_dir():
            raise PreconditionUnmet("workspace", "not a directory", self.workspace)

    async def require_repository(self) -> None:
        code, _, stderr = await self._run_git("rev-parse", "--git-dir")
        if code != 0:
            raise PreconditionUnmet("repository", stderr.strip() or "not a git repository", self.workspace)

    def require_head_file(self) -> None:
        if not self.head_path.is_file():
            raise PreconditionUnmet("head_file", "no .git/HEAD", self.head_path)

    async def require_origin(self) -> RepoCoordinates:
        url = await self.origin_url()
        if not url:
            raise PreconditionUnmet("origin", "no remote.origin.url configured")
        coords = parse_origin(url)
        if coords is None:
            raise PreconditionUnmet("origin", f"not a GitHub remote: {url}")
        return coords

    async def check_preconditions(self) -> RepoCoordinates:
        """Run every startup guard in order and return the origin coordinates.

        Raises:
            IntegrationAbsent: git is not installed.
            PreconditionUnmet: one of the named guards failed.
        """
        self.require_git()
        self.require_workspace()
        await self.require_repository()
        self.require_head_file()
        return await self.require_origin()

    # ── Queries ──────────────────────────────────────────────────────

    async def resolve_branch_state(self) -> BranchState:
        """Read HEAD, derive the branch name and resolve its commit."""
        content = await asyncio.to_thread(self._read_head)
        ref = parse_head_ref(content, self.head_path)
        commit_hash = await self.resolve_commit(ref)
        return BranchState(
            branch_name=ref[len(BRANCH_REF_PREFIX):],
            head_commit_hash=commit_hash,
        )

    async def resolve_commit(self, ref: str) -> str:
        code, stdout, stderr = await self._run_git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        sha = stdout.strip()
        if code != 0 or not _SHA_RE.match(sha):
            raise RepositoryError(
                f"Cannot resolve {ref} to a commit",
                details={"ref": ref, "reason": stderr.strip() or "unborn branch"},
            )
        return sha

    async def commit_log(self, ref: str, max_count: Optional[int] = None) -> list[CommitRecord]:
        """Return the ancestry of ``ref``, most recent first."""
        limit = max_count or self.max_commits
        code, stdout, stderr = await self._run_git("log", "--format=%H", f"-n{limit}", ref, "--")
        if code != 0:
            logger.warning("git log failed for %s: %s", ref, stderr.strip())
            return []
        return [CommitRecord(hash=line) for line in stdout.split() if _SHA_RE.match(line)]

    async def origin_url(self) -> Optional[str]:
        code, stdout, _ = await self._run_git("config", "--get", "remote.origin.url")
        if code != 0:
            return None
        return stdout.strip() or None

    # ── Internals ────────────────────────────────────────────────────

    def _read_head(self) -> str:
        try:
            raw = self.head_path.read_bytes()
        except FileNotFoundError:
            raise PreconditionUnmet("head_file", "no .git/HEAD", self.head_path)
        except OSError as e:
            raise PreconditionUnmet("head_file", e.strerror or str(e), self.head_path)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidRefFormat(self.head_path, raw.decode("utf-8", errors="replace"))

    async def _run_git(self, *args: str) -> tuple[int, str, str]:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.git_executable,
                "-C",
                str(self.workspace),
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise IntegrationAbsent(str(e))

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise RepositoryError(
                "git command timed out",
                details={"args": " ".join(args), "timeout": str(self.timeout_seconds)},
            )

        return (
            proc.returncode if proc.returncode is not None else -1,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )
