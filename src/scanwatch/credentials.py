"""Access-token providers for the code-scanning API.

Tokens need the ``security_events`` scope. A provider returning ``None`` is
not an error; the matcher reports it as an authentication status message.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from typing import Optional, Protocol, Sequence

from .config import SyncConfig
from .exceptions import AuthUnavailable
from .logging_config import get_logger

logger = get_logger(__name__)


class CredentialProvider(Protocol):
    async def get_token(self) -> Optional[str]: ...


class StaticTokenProvider:
    """Always returns the token it was built with (``--token`` on the CLI)."""

    def __init__(self, token: Optional[str]):
        self._token = token or None

    async def get_token(self) -> Optional[str]:
        return self._token


class EnvTokenProvider:
    """Reads a token from an environment variable at call time."""

    def __init__(self, var_name: str = "GITHUB_TOKEN"):
        self.var_name = var_name

    async def get_token(self) -> Optional[str]:
        return os.environ.get(self.var_name) or None


class GhCliTokenProvider:
    """Asks the GitHub CLI for the token of the logged-in account.

    ``gh`` may prompt on first use, so this runs as a subprocess rather than
    reading its config files directly.
    """

    def __init__(self, executable: str = "gh", timeout_seconds: float = 10.0):
        self.executable = executable
        self.timeout_seconds = timeout_seconds

    async def get_token(self) -> Optional[str]:
        if shutil.which(self.executable) is None:
            logger.debug("%s not on PATH; skipping", self.executable)
            return None
        try:
            proc = await asyncio.create_subprocess_exec(
                self.executable,
                "auth",
                "token",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_seconds)
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning("gh auth token failed: %s", e)
            return None
        if proc.returncode != 0:
            logger.debug("gh auth token exited %s: %s", proc.returncode, stderr.decode(errors="replace").strip())
            return None
        return stdout.decode().strip() or None


class ChainedTokenProvider:
    """Returns the first token any of its providers yields."""

    def __init__(self, providers: Sequence[CredentialProvider]):
        self.providers = list(providers)

    async def get_token(self) -> Optional[str]:
        for provider in self.providers:
            token = await provider.get_token()
            if token:
                return token
        return None


def default_provider(config: SyncConfig, token: Optional[str] = None) -> CredentialProvider:
    """Build the provider chain for a session: explicit token, env var, gh CLI."""
    providers: list[CredentialProvider] = []
    if token:
        providers.append(StaticTokenProvider(token))
    providers.append(EnvTokenProvider(config.token_env_var))
    if config.use_gh_cli:
        providers.append(GhCliTokenProvider())
    return ChainedTokenProvider(providers)


async def require_token(provider: Optional[CredentialProvider]) -> str:
    """Return a token from ``provider``.

    Raises:
        AuthUnavailable: there is no provider or it yields no token.
    """
    if provider is None:
        raise AuthUnavailable("no credential provider")
    token = await provider.get_token()
    if not token:
        raise AuthUnavailable("no provider returned a token")
    return token
