"""
Integration tests for the logs page running inside the application
"""
import threading
from datetime import datetime, timedelta, timezone

import pytest

from NLOGS.config import Settings
from NLOGS.models import LogEntry
from NLOGS.sources.api_client import ConnectionStatus, LogSourceError
from NLOGS.UI.app import NLOGSApp
from NLOGS.UI.views.logs import LogFilters, LogsView
from NLOGS.UI.views.logs.components import ConnectionIndicator, LogFiltersPanel


def recent_entry(id, service, level, line):
    return LogEntry(
        id=id,
        service=service,
        line=line,
        level=level,
        timestamp=datetime.now(timezone.utc) - timedelta(seconds=30),
    )


class FakeClient:
    """Stands in for LogApiClient: serves one batch of entries, then nothing"""

    def __init__(self, entries, services=("api", "auth"), fail=False):
        self.entries = list(entries)
        self.services = list(services)
        self.fail = fail
        self.status = ConnectionStatus.CONNECTING
        self.polls = 0
        self.resets = 0

    def fetch_services(self):
        if self.fail:
            raise LogSourceError("connection refused")
        return self.services

    def poll(self, services=()):
        self.polls += 1
        if self.fail:
            raise LogSourceError("connection refused")
        self.status = ConnectionStatus.CONNECTED
        batch, self.entries = self.entries, []
        return batch

    def reset(self):
        self.resets += 1


class SlowClient(FakeClient):
    """Holds every poll until released; the first poll answers with a stale batch"""

    def __init__(self, entries):
        super().__init__(entries)
        self.release = threading.Event()
        self.lock = threading.Lock()
        self.started = 0
        self.active = 0
        self.max_active = 0

    def poll(self, services=()):
        with self.lock:
            self.started += 1
            call = self.started
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            self.release.wait(5)
            if call == 1:
                return [recent_entry("stale", "api", "info", "fetched before refresh")]
            return super().poll(services)
        finally:
            with self.lock:
                self.active -= 1


def sample_entries():
    return [
        recent_entry("1", "api", "info", "GET /health 200"),
        recent_entry("2", "auth", "error", "token expired"),
        recent_entry("3", "api", "warn", "slow response"),
    ]


def make_app(client, tmp_path, poll_interval=60, **kwargs):
    settings = Settings(poll_interval=poll_interval, export_dir=str(tmp_path / "exports"))
    return NLOGSApp(settings=settings, client=client, **kwargs)


async def wait_for_entries(app, pilot):
    await app.workers.wait_for_complete()
    await pilot.pause(0.3)


async def wait_for_polls(client, pilot, count):
    for _ in range(50):
        if client.started >= count:
            return
        await pilot.pause(0.05)


class TestLogsPage:
    """Pilot tests for the full page"""

    @pytest.mark.asyncio
    async def test_entries_flow_into_stream(self, tmp_path):
        app = make_app(FakeClient(sample_entries()), tmp_path)
        async with app.run_test(size=(160, 40)) as pilot:
            await wait_for_entries(app, pilot)
            view = app.query_one("#logs-view", LogsView)

            assert [entry.id for entry in view.filtered] == ["1", "2", "3"]
            assert view.services == ["api", "auth"]
            assert app.query_one("#connection-indicator", ConnectionIndicator).status is ConnectionStatus.CONNECTED

    @pytest.mark.asyncio
    async def test_level_filter(self, tmp_path):
        app = make_app(FakeClient(sample_entries()), tmp_path)
        async with app.run_test(size=(160, 40)) as pilot:
            await wait_for_entries(app, pilot)
            view = app.query_one("#logs-view", LogsView)

            view.set_filters(LogFilters().with_level("error"))
            await pilot.pause()
            assert [entry.id for entry in view.filtered] == ["2"]
            panel = app.query_one("#log-filters-panel", LogFiltersPanel)
            assert (panel.total_count, panel.filtered_count) == (3, 1)

    @pytest.mark.asyncio
    async def test_service_selection_and_recent(self, tmp_path):
        app = make_app(FakeClient(sample_entries()), tmp_path)
        async with app.run_test(size=(160, 40)) as pilot:
            await wait_for_entries(app, pilot)
            view = app.query_one("#logs-view", LogsView)

            view.set_selected(["auth"])
            await pilot.pause()
            assert [entry.service for entry in view.filtered] == ["auth"]
            assert view.recent == ["auth"]

            view.set_selected(["api", "auth"])
            await pilot.pause()
            assert len(view.filtered) == 3

    @pytest.mark.asyncio
    async def test_initial_state_from_share_query(self, tmp_path):
        app = make_app(
            FakeClient(sample_entries()),
            tmp_path,
            filters=LogFilters(search_text="SLOW"),
            selected_services=["api"],
        )
        async with app.run_test(size=(160, 40)) as pilot:
            await wait_for_entries(app, pilot)
            view = app.query_one("#logs-view", LogsView)
            assert [entry.id for entry in view.filtered] == ["3"]
            assert "services=api" in view.share_query()

    @pytest.mark.asyncio
    async def test_clear_and_export_keys(self, tmp_path):
        app = make_app(FakeClient(sample_entries()), tmp_path)
        async with app.run_test(size=(160, 40)) as pilot:
            await wait_for_entries(app, pilot)

            await pilot.press("e")
            await pilot.pause()
            exports = list((tmp_path / "exports").glob("logs-*.txt"))
            assert len(exports) == 1
            assert len(exports[0].read_text(encoding="utf-8").splitlines()) == 3

            await pilot.press("c")
            await pilot.pause()
            view = app.query_one("#logs-view", LogsView)
            assert view.filtered == []

    @pytest.mark.asyncio
    async def test_refresh_resets_source(self, tmp_path):
        client = FakeClient(sample_entries())
        app = make_app(client, tmp_path)
        async with app.run_test(size=(160, 40)) as pilot:
            await wait_for_entries(app, pilot)
            await pilot.press("r")
            await wait_for_entries(app, pilot)
            assert client.resets == 1
            assert client.polls >= 2

    @pytest.mark.asyncio
    async def test_source_error_disconnects(self, tmp_path):
        app = make_app(FakeClient([], fail=True), tmp_path)
        async with app.run_test(size=(160, 40)) as pilot:
            await wait_for_entries(app, pilot)
            view = app.query_one("#logs-view", LogsView)
            assert view.status is ConnectionStatus.DISCONNECTED
            assert app.query_one("#connection-indicator", ConnectionIndicator).status is ConnectionStatus.DISCONNECTED
            assert view.filtered == []

    @pytest.mark.asyncio
    async def test_slow_poll_is_not_overlapped(self, tmp_path):
        client = SlowClient(sample_entries())
        app = make_app(client, tmp_path, poll_interval=0.05)
        async with app.run_test(size=(160, 40)) as pilot:
            await wait_for_polls(client, pilot, 1)
            await pilot.pause(0.4)
            assert client.started == 1

            client.release.set()
            await wait_for_entries(app, pilot)
            assert client.max_active == 1
            ids = [entry.id for entry in app.query_one("#logs-view", LogsView).buffer.entries]
            assert len(ids) == len(set(ids))

    @pytest.mark.asyncio
    async def test_refresh_drops_poll_in_flight(self, tmp_path):
        client = SlowClient(sample_entries())
        app = make_app(client, tmp_path)
        async with app.run_test(size=(160, 40)) as pilot:
            await wait_for_polls(client, pilot, 1)
            view = app.query_one("#logs-view", LogsView)
            view.refresh_logs()
            await wait_for_polls(client, pilot, 2)
            assert client.started == 2

            client.release.set()
            await wait_for_entries(app, pilot)
            ids = [entry.id for entry in view.buffer.entries]
            assert "stale" not in ids
            assert ids == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_header_fits_small_terminal(self, tmp_path):
        app = make_app(FakeClient(sample_entries()), tmp_path)
        async with app.run_test(size=(80, 24)) as pilot:
            await wait_for_entries(app, pilot)
            for button_id in ("#refresh-btn", "#clear-logs-btn", "#download-btn", "#download-csv-btn", "#share-btn"):
                region = app.query_one(button_id).region
                assert region.width > 0
                assert region.right <= 80
