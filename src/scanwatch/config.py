"""Configuration loading and management for scanwatch.

Configuration sources are merged in priority order:
    1. Defaults (defined in SyncConfig)
    2. Global config (~/.scanwatch.toml)
    3. Project config (./scanwatch.toml)
    4. Explicit config file
    5. Environment variables (SCANWATCH_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(verbose=True, max_commits=200)
    >>> config.verbosity
    'verbose'
    >>> config.max_commits
    200
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]


@dataclass(frozen=True)
class SyncConfig:
    """Settings for one scanwatch session.

    Attributes:
        Remote service:
            api_url: Base URL of the GitHub REST API
            request_timeout_seconds: Timeout for each HTTP request

        Local repository:
            workspace: Working tree root (the directory containing ``.git``)
            max_commits: Ancestry page size used when intersecting with analyses

        Triggering:
            debounce_ms: Quiet period before a burst of ref changes re-runs matching

        Credentials:
            token_env_var: Environment variable consulted first for a token
            use_gh_cli: Fall back to ``gh auth token`` when the variable is unset

        Output control:
            verbosity: Logging verbosity level
            log_file: Also append log records to this file (empty: stderr only)
    """

    # Remote service
    api_url: str = "https://api.github.com"
    request_timeout_seconds: float = 30.0

    # Local repository
    workspace: str = "."
    max_commits: int = 1000

    # Triggering
    debounce_ms: int = 300

    # Credentials
    token_env_var: str = "GITHUB_TOKEN"
    use_gh_cli: bool = True

    # Output control
    verbosity: Verbosity = "normal"
    log_file: str = ""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.api_url.startswith(("http://", "https://")):
            raise InvalidConfigError("api_url", self.api_url, "must be an http(s) URL")
        if self.request_timeout_seconds <= 0:
            raise InvalidConfigError(
                "request_timeout_seconds", self.request_timeout_seconds, "must be positive"
            )
        if self.max_commits < 1:
            raise InvalidConfigError("max_commits", self.max_commits, "must be at least 1")
        if self.debounce_ms < 0:
            raise InvalidConfigError("debounce_ms", self.debounce_ms, "must be non-negative")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError(
                "verbosity", self.verbosity, "expected quiet, normal or verbose"
            )

    @property
    def workspace_path(self) -> Path:
        return Path(self.workspace).expanduser().resolve()

    @property
    def api_base(self) -> str:
        return self.api_url.rstrip("/")

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


def load_config(config_file: Optional[Path] = None, **overrides) -> SyncConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). ``verbose``
            and ``quiet`` booleans are folded into ``verbosity``.

    Returns:
        Validated SyncConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
    """
    merged: dict = {}

    global_config = Path.home() / ".scanwatch.toml"
    if global_config.exists():
        try:
            merged.update(_load_toml_file(global_config))
        except Exception as e:
            raise ConfigurationError(f"Invalid global config '{global_config}': {e}")

    project_config = Path.cwd() / "scanwatch.toml"
    if project_config.exists():
        try:
            merged.update(_load_toml_file(project_config))
        except Exception as e:
            raise ConfigurationError(f"Invalid project config '{project_config}': {e}")

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        try:
            merged.update(_load_toml_file(config_file))
        except Exception as e:
            raise ConfigurationError(f"Invalid config file '{config_file}': {e}")

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return SyncConfig(**merged)
    except TypeError as e:
        # Unknown field in config
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from SCANWATCH_* environment variables.

    Returns:
        Dict of field_name -> parsed_value for any SCANWATCH_* vars found.
    """
    type_hints = get_type_hints(SyncConfig)

    result: dict[str, Any] = {}

    for field_name in SyncConfig.__dataclass_fields__:
        env_key = f"SCANWATCH_{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise ConfigurationError(f"Invalid {env_key}: {e}")
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    # String (including Literal types like Verbosity)
    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore

    with open(path, "rb") as f:
        return tomllib.load(f)
