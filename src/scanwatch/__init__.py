"""
scanwatch - keep a local branch in sync with its code-scanning results

Matches the checked-out commit's ancestry against the analyses GitHub code
scanning has completed for the branch, reports how stale the best match is,
and keeps the matching SARIF report cached for display.
"""

__version__ = "0.1.0"

from .cache import InstallResult, ReportCache
from .config import SyncConfig, load_config
from .matcher import AnalysisMatcher, select_analysis
from .models import (
    AnalysisRecord,
    BranchState,
    CommitRecord,
    MatchOutcome,
    Report,
    SelectedAnalysis,
)
from .orchestrator import Orchestrator
from .state import SharedState

__all__ = [
    "Orchestrator",  # Main entry point
    "SharedState",
    "AnalysisMatcher",
    "select_analysis",
    "ReportCache",
    "InstallResult",
    "SyncConfig",
    "load_config",
    "AnalysisRecord",
    "BranchState",
    "CommitRecord",
    "MatchOutcome",
    "Report",
    "SelectedAnalysis",
]
