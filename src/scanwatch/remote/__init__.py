"""GitHub code-scanning REST client."""

from .client import SARIF_MEDIA_TYPE, CodeScanningClient

__all__ = ["CodeScanningClient", "SARIF_MEDIA_TYPE"]
