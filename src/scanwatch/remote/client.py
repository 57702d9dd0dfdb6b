"""Async client for the two code-scanning endpoints scanwatch needs."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import httpx

from ..exceptions import FeatureDisabled, FetchError
from ..logging_config import get_logger
from ..models import AnalysisRecord, RepoCoordinates
from .schema import ValidationError, parse_analyses, parse_sarif

logger = get_logger(__name__)

SARIF_MEDIA_TYPE = "application/sarif+json"
JSON_MEDIA_TYPE = "application/vnd.github+json"


class CodeScanningClient:
    """Thin wrapper over ``httpx.AsyncClient`` for one repository.

    Transport failures, unexpected statuses and payloads that fail schema
    validation all surface as :class:`FetchError`; a 403 on the list endpoint
    is reported separately as :class:`FeatureDisabled`.
    """

    def __init__(
        self,
        repo: RepoCoordinates,
        api_base: str = "https://api.github.com",
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 30.0,
    ):
        self.repo = repo
        self.api_base = api_base.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True)

    async def __aenter__(self) -> CodeScanningClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    @property
    def analyses_url(self) -> str:
        return (
            f"{self.api_base}/repos/{quote(self.repo.owner, safe='')}/"
            f"{quote(self.repo.name, safe='')}/code-scanning/analyses"
        )

    def report_url(self, analysis_id: int) -> str:
        return f"{self.analyses_url}/{analysis_id}"

    async def list_analyses(self, branch_name: str, token: str) -> list[AnalysisRecord]:
        """List completed analyses for ``branch_name`` in the service's order.

        Raises:
            FeatureDisabled: the service answered 403.
            FetchError: transport failure, other non-2xx status or bad payload.
        """
        url = self.analyses_url
        params = {"ref": f"refs/heads/{branch_name}"}
        response = await self._get(url, token, accept=JSON_MEDIA_TYPE, params=params)

        if response.status_code == 403:
            raise FeatureDisabled(url)
        self._raise_for_status(url, response)

        try:
            analyses = parse_analyses(response.content)
        except ValidationError as e:
            raise FetchError(url, f"malformed analyses payload: {e.error_count()} error(s)")

        logger.debug("Listed %d analyses for %s@%s", len(analyses), self.repo.slug, branch_name)
        return analyses

    async def fetch_report(self, analysis_id: int, token: str) -> tuple[str, dict[str, Any], str]:
        """Download one analysis as SARIF.

        Returns:
            ``(request_uri, parsed_log, raw_text)``

        Raises:
            FetchError: transport failure, non-2xx status or invalid SARIF.
        """
        url = self.report_url(analysis_id)
        response = await self._get(url, token, accept=SARIF_MEDIA_TYPE)
        self._raise_for_status(url, response)

        try:
            body = parse_sarif(response.content)
        except ValidationError as e:
            raise FetchError(url, f"malformed SARIF payload: {e.error_count()} error(s)")

        return url, body, response.text

    async def _get(
        self,
        url: str,
        token: str,
        accept: str,
        params: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        headers = {"accept": accept, "authorization": f"Bearer {token}"}
        try:
            return await self.client.get(url, headers=headers, params=params)
        except httpx.HTTPError as e:
            raise FetchError(url, f"{type(e).__name__}: {e}")

    @staticmethod
    def _raise_for_status(url: str, response: httpx.Response) -> None:
        if response.is_success:
            return
        raise FetchError(url, response.reason_phrase or "request failed", status_code=response.status_code)
