"""Tests for cache.ReportCache: single-slot installs and ordering."""

import asyncio

import pytest

from conftest import API_BASE, sarif_log, selection_for
from scanwatch.cache import REPORT_FAILED_MESSAGE, InstallResult, ReportCache
from scanwatch.credentials import StaticTokenProvider
from scanwatch.matcher import AUTH_UNAVAILABLE_MESSAGE
from scanwatch.remote.client import SARIF_MEDIA_TYPE
from scanwatch.state import SharedState

REPORT_URL = f"{API_BASE}/repos/octo/demo/code-scanning/analyses"


class CountingPresenter:
    def __init__(self):
        self.shown = 0

    def show(self):
        self.shown += 1


def make_cache(client, state=None, **kwargs):
    state = state or SharedState()
    presenter = kwargs.pop("presenter", CountingPresenter())
    return ReportCache(state, client, presenter=presenter, **kwargs), state, presenter


class TestInstall:
    @pytest.mark.asyncio
    async def test_install_selection(self, api, client):
        api.reports[5] = sarif_log(results=3)
        cache, state, presenter = make_cache(client)

        result = await cache.install(selection_for(5), token="tok")

        assert result is InstallResult.INSTALLED
        assert len(state.reports) == 1
        report = state.reports[0]
        assert report.origin_id == f"{REPORT_URL}/5"
        assert report.analysis_id == 5
        assert report.augmented
        assert report.result_count == 3
        assert report.text
        assert cache.current_origin == report.origin_id
        assert presenter.shown == 1
        assert state.busy is False

    @pytest.mark.asyncio
    async def test_requests_sarif_media_type(self, api, client):
        api.reports[5] = sarif_log()
        cache, _, _ = make_cache(client)

        await cache.install(selection_for(5), token="tok")

        request = api.report_requests[0]
        assert request.headers["accept"] == SARIF_MEDIA_TYPE
        assert request.headers["authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_new_selection_evicts_previous(self, api, client):
        api.reports[5] = sarif_log()
        api.reports[7] = sarif_log()
        cache, state, _ = make_cache(client)

        await cache.install(selection_for(5), token="tok")
        await cache.install(selection_for(7), token="tok")

        assert [r.origin_id for r in state.reports] == [f"{REPORT_URL}/7"]

    @pytest.mark.asyncio
    async def test_absent_selection_clears(self, api, client):
        api.reports[5] = sarif_log()
        cache, state, presenter = make_cache(client)
        await cache.install(selection_for(5), token="tok")

        result = await cache.install(None)

        assert result is InstallResult.CLEARED
        assert state.reports == []
        assert cache.current_origin is None
        assert presenter.shown == 2
        assert len(api.report_requests) == 1

    @pytest.mark.asyncio
    async def test_leaves_unowned_reports_alone(self, api, client):
        """Only the report this cache installed is evicted."""
        from scanwatch.models import Report

        api.reports[5] = sarif_log()
        cache, state, _ = make_cache(client)
        state.add_report(Report(origin_id="file:///local.sarif", body={"runs": []}))

        await cache.install(selection_for(5), token="tok")
        await cache.install(None)

        assert [r.origin_id for r in state.reports] == ["file:///local.sarif"]

    @pytest.mark.asyncio
    async def test_token_from_credentials(self, api, client):
        api.reports[5] = sarif_log()
        cache, state, _ = make_cache(client, credentials=StaticTokenProvider("from-provider"))

        await cache.install(selection_for(5))

        assert api.report_requests[0].headers["authorization"] == "Bearer from-provider"

    @pytest.mark.asyncio
    async def test_no_token_no_fetch(self, api, client):
        cache, state, _ = make_cache(client, credentials=StaticTokenProvider(None))

        result = await cache.install(selection_for(5))

        assert result is InstallResult.FAILED
        assert api.requests == []
        assert state.status_message == AUTH_UNAVAILABLE_MESSAGE
        assert state.busy is False


class TestFailures:
    @pytest.mark.asyncio
    async def test_fetch_error_keeps_collection(self, api, client):
        api.reports[5] = sarif_log()
        cache, state, presenter = make_cache(client)
        await cache.install(selection_for(5), token="tok")

        api.report_status = 500
        result = await cache.install(selection_for(7), token="tok")

        assert result is InstallResult.FAILED
        assert [r.origin_id for r in state.reports] == [f"{REPORT_URL}/5"]
        assert state.status_message.startswith(REPORT_FAILED_MESSAGE)
        assert state.busy is False
        assert presenter.shown == 2

    @pytest.mark.asyncio
    async def test_failed_fetch_is_not_covered(self, api, client):
        api.reports[5] = sarif_log()
        cache, _, _ = make_cache(client)
        await cache.install(selection_for(5), token="tok")

        api.report_status = 500
        await cache.install(selection_for(7), token="tok")

        assert cache.covers(5)
        assert not cache.covers(7)

    @pytest.mark.asyncio
    async def test_inflight_fetch_is_covered(self, api, client):
        api.reports[5] = sarif_log()
        api.gates[5] = asyncio.Event()
        cache, _, _ = make_cache(client)

        pending = asyncio.create_task(cache.install(selection_for(5), token="tok"))
        await asyncio.sleep(0.01)
        assert cache.covers(5)

        api.gates[5].set()
        await pending
        assert cache.covers(5)

    @pytest.mark.asyncio
    async def test_malformed_sarif_is_not_installed(self, api, client):
        api.reports[5] = b'{"version": "2.1.0"}'
        cache, state, _ = make_cache(client)

        result = await cache.install(selection_for(5), token="tok")

        assert result is InstallResult.FAILED
        assert state.reports == []

    @pytest.mark.asyncio
    async def test_busy_cleared_when_augmenter_raises(self, api, client):
        api.reports[5] = sarif_log()

        def broken(log):
            raise RuntimeError("bad rules")

        cache, state, _ = make_cache(client, augmenter=broken)

        with pytest.raises(RuntimeError):
            await cache.install(selection_for(5), token="tok")
        assert state.busy is False
        assert state.reports == []


class TestOrdering:
    """A late completion never overwrites a newer install."""

    @pytest.mark.asyncio
    async def test_late_completion_is_discarded(self, api, client):
        api.reports[5] = sarif_log(rule_id="old")
        api.reports[7] = sarif_log(rule_id="new")
        api.gates[5] = asyncio.Event()
        state = _BusyRecordingState()
        cache, _, presenter = make_cache(client, state=state)

        first = asyncio.create_task(cache.install(selection_for(5), token="tok", sequence=1))
        await asyncio.sleep(0.01)
        assert state.busy is True

        second = await cache.install(selection_for(7), token="tok", sequence=2)
        assert second is InstallResult.INSTALLED
        assert state.busy is False

        api.gates[5].set()
        assert await first is InstallResult.SUPERSEDED

        assert [r.origin_id for r in state.reports] == [f"{REPORT_URL}/7"]
        assert state.busy is False
        assert presenter.shown == 1
        assert state.busy_seen == [True, True, False]

    @pytest.mark.asyncio
    async def test_older_sequence_arriving_late_is_ignored(self, api, client):
        api.reports[7] = sarif_log()
        cache, state, _ = make_cache(client)
        await cache.install(selection_for(7), token="tok", sequence=4)

        result = await cache.install(selection_for(5), token="tok", sequence=3)

        assert result is InstallResult.SUPERSEDED
        assert len(api.report_requests) == 1
        assert [r.analysis_id for r in state.reports] == [7]

    @pytest.mark.asyncio
    async def test_clear_supersedes_inflight_fetch(self, api, client):
        api.reports[5] = sarif_log()
        api.gates[5] = asyncio.Event()
        cache, state, _ = make_cache(client)

        pending = asyncio.create_task(cache.install(selection_for(5), token="tok"))
        await asyncio.sleep(0.01)
        assert await cache.install(None) is InstallResult.CLEARED

        api.gates[5].set()
        assert await pending is InstallResult.SUPERSEDED
        assert state.reports == []
        assert state.busy is False

    @pytest.mark.asyncio
    async def test_instances_do_not_share_origin(self, api, client):
        api.reports[5] = sarif_log()
        api.reports[7] = sarif_log()
        state = SharedState()
        first, _, _ = make_cache(client, state=state)
        second, _, _ = make_cache(client, state=state)

        await first.install(selection_for(5), token="tok")
        await second.install(selection_for(7), token="tok")

        assert first.current_origin.endswith("/5")
        assert second.current_origin.endswith("/7")
        assert len(state.reports) == 2


class _BusyRecordingState(SharedState):
    """SharedState that records every busy write."""

    def __init__(self):
        super().__init__()
        self.busy_seen = []

    def set_busy(self, busy):
        self.busy_seen.append(busy)
        super().set_busy(busy)
