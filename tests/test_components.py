"""
Tests for the filter panel, insights panel and connection indicator
"""
from typing import List

import pytest
from textual.app import App, ComposeResult
from textual.widgets import Button, Input, Select, Static

from NLOGS.log_analysis.insights import LogInsights
from NLOGS.sources.api_client import ConnectionStatus
from NLOGS.UI.views.logs.components import ConnectionIndicator, LogFiltersPanel, LogInsightsPanel
from NLOGS.UI.views.logs.filters import LogFilters, TimeRange


class PanelApp(App):
    """Hosts a filter panel and records what it reports"""

    def __init__(self, filters=None):
        super().__init__()
        self.initial = filters
        self.changes: List[LogFilters] = []

    def compose(self) -> ComposeResult:
        yield LogFiltersPanel(self.initial, id="panel")
        yield LogInsightsPanel(id="insights")
        yield ConnectionIndicator(id="indicator")

    def on_log_filters_panel_changed(self, event: LogFiltersPanel.Changed) -> None:
        self.changes.append(event.filters)


class TestLogFiltersPanel:
    """Pilot tests for the filter controls"""

    @pytest.mark.asyncio
    async def test_initial_visibility(self):
        app = PanelApp()
        async with app.run_test(size=(160, 30)) as pilot:
            await pilot.pause()
            assert not app.query_one("#clear-filters-btn", Button).display
            assert not app.query_one("#custom-range-row").display
            assert not app.query_one("#filter-pattern-error", Static).display
            assert app.changes == []

    @pytest.mark.asyncio
    async def test_typing_reports_full_filters(self):
        app = PanelApp()
        async with app.run_test(size=(160, 30)) as pilot:
            app.query_one("#filter-search-input", Input).focus()
            await pilot.press("d", "b")
            await pilot.pause()

            assert app.changes[-1] == LogFilters(search_text="db")
            assert app.query_one("#clear-filters-btn", Button).display

    @pytest.mark.asyncio
    async def test_regex_toggle(self):
        app = PanelApp()
        async with app.run_test(size=(160, 30)) as pilot:
            await pilot.click("#regex-toggle-btn")
            await pilot.pause()
            assert app.changes == [LogFilters(regex_enabled=True)]
            assert app.query_one("#regex-toggle-btn", Button).variant == "primary"

    @pytest.mark.asyncio
    async def test_custom_range_shows_inputs(self):
        app = PanelApp()
        async with app.run_test(size=(160, 30)) as pilot:
            app.query_one("#filter-range-select", Select).value = TimeRange.CUSTOM.value
            await pilot.pause()
            assert app.changes[-1].time_range is TimeRange.CUSTOM
            assert app.query_one("#custom-range-row").display

    @pytest.mark.asyncio
    async def test_clear_filters(self):
        filters = LogFilters(search_text="boom", time_range=TimeRange.LAST_1H).with_level("error")
        app = PanelApp(filters)
        async with app.run_test(size=(160, 30)) as pilot:
            await pilot.pause()
            assert app.query_one("#clear-filters-btn", Button).display

            await pilot.click("#clear-filters-btn")
            await pilot.pause()
            assert app.changes == [LogFilters()]
            assert app.query_one("#filter-search-input", Input).value == ""
            assert app.query_one("#filter-level-select", Select).value == "all"
            assert not app.query_one("#clear-filters-btn", Button).display

    @pytest.mark.asyncio
    async def test_set_filters_does_not_echo(self):
        app = PanelApp()
        async with app.run_test(size=(160, 30)) as pilot:
            panel = app.query_one("#panel", LogFiltersPanel)
            panel.set_filters(LogFilters(search_text="x", time_range=TimeRange.LAST_24H))
            await pilot.pause()
            assert app.changes == []
            assert app.query_one("#filter-search-input", Input).value == "x"

    @pytest.mark.asyncio
    async def test_counts_and_pattern_error(self):
        app = PanelApp()
        async with app.run_test(size=(160, 30)) as pilot:
            panel = app.query_one("#panel", LogFiltersPanel)
            panel.set_counts(10, 4)
            panel.set_pattern_error("missing ), unterminated subpattern")
            await pilot.pause()
            assert str(app.query_one("#filter-count", Static).render()) == "Showing 4 of 10 logs"
            assert app.query_one("#filter-pattern-error", Static).display

            panel.set_pattern_error(None)
            await pilot.pause()
            assert not app.query_one("#filter-pattern-error", Static).display


class TestStatusWidgets:
    """Pilot tests for the sidebar and status indicator"""

    @pytest.mark.asyncio
    async def test_insights_text(self):
        app = PanelApp()
        async with app.run_test(size=(160, 30)) as pilot:
            panel = app.query_one("#insights", LogInsightsPanel)
            panel.update_insights(LogInsights(error_count=4, warning_count=1, patterns=[("db timeout", 3)]))
            await pilot.pause()
            text = str(app.query_one("#insights-content", Static).render())
            assert "Errors: 4" in text
            assert "Warnings: 1" in text
            assert "3× db timeout" in text

    @pytest.mark.asyncio
    async def test_connection_indicator(self):
        app = PanelApp()
        async with app.run_test(size=(160, 30)) as pilot:
            indicator = app.query_one("#indicator", ConnectionIndicator)
            assert str(indicator.render()) == "● Connecting..."
            indicator.status = ConnectionStatus.DISCONNECTED
            await pilot.pause()
            assert str(indicator.render()) == "● Disconnected"
