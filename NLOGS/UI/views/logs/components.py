"""
Logs Page Components - Filter controls, insights sidebar and status indicator

Handles:
- LogFiltersPanel: search, regex toggle, level and time range selects,
  custom range inputs, clear button and the count display
- LogInsightsPanel: error/warning counts and repeated error patterns
- ConnectionIndicator: upstream connection status
"""
from typing import Optional

from rich.text import Text
from textual import on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.message import Message
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Button, Input, Label, Select, Static

from NLOGS.log_analysis.insights import LogInsights
from NLOGS.models import LogLevel
from NLOGS.sources.api_client import ConnectionStatus

from .filters import LogFilters, TimeRange, format_count, format_local_datetime, parse_local_datetime

LEVEL_OPTIONS = [
    ("All Levels", "all"),
    ("Info", LogLevel.INFO.value),
    ("Warning", LogLevel.WARN.value),
    ("Error", LogLevel.ERROR.value),
    ("Debug", LogLevel.DEBUG.value),
]

RANGE_OPTIONS = [(time_range.label, time_range.value) for time_range in TimeRange]


class LogFiltersPanel(Vertical):
    """
    Filter controls for the log stream

    The panel never filters anything itself: it reports a complete new
    ``LogFilters`` with ``LogFiltersPanel.Changed`` on every control change
    and shows the counts it is handed.
    """

    DEFAULT_CSS = """
    LogFiltersPanel {
        height: auto;
    }
    LogFiltersPanel #filter-row,
    LogFiltersPanel #custom-range-row,
    LogFiltersPanel #filter-status-row {
        height: auto;
    }
    LogFiltersPanel #filter-search-input {
        width: 1fr;
        min-width: 12;
    }
    LogFiltersPanel #clear-search-btn,
    LogFiltersPanel #regex-toggle-btn {
        min-width: 5;
        width: 5;
    }
    LogFiltersPanel #filter-level-select,
    LogFiltersPanel #filter-range-select {
        width: 18;
    }
    LogFiltersPanel #clear-filters-btn {
        min-width: 8;
        width: auto;
    }
    LogFiltersPanel #filter-count {
        width: auto;
        padding: 0 1;
        color: $text-muted;
    }
    LogFiltersPanel .control-label {
        padding: 1 1 0 0;
    }
    LogFiltersPanel #custom-start-input,
    LogFiltersPanel #custom-end-input {
        width: 24;
    }
    LogFiltersPanel #filter-pattern-error {
        width: 1fr;
        height: auto;
        padding: 0 1;
    }
    """

    total_count: reactive[int] = reactive(0)
    filtered_count: reactive[int] = reactive(0)

    class Changed(Message):
        """The user edited a filter control"""

        def __init__(self, panel: "LogFiltersPanel", filters: LogFilters) -> None:
            super().__init__()
            self.panel = panel
            self.filters = filters

        @property
        def control(self) -> "LogFiltersPanel":
            return self.panel

    def __init__(self, filters: Optional[LogFilters] = None, **kwargs):
        super().__init__(**kwargs)
        self.filters = filters or LogFilters()

    def compose(self) -> ComposeResult:
        """Compose the filter panel"""
        filters = self.filters
        with Horizontal(id="filter-row"):
            yield Input(value=filters.search_text, placeholder="Search logs...", id="filter-search-input")
            yield Button("✕", id="clear-search-btn", variant="default")
            yield Button(".*", id="regex-toggle-btn", variant=self._regex_variant())
            yield Select(
                LEVEL_OPTIONS,
                value=self._level_value(),
                allow_blank=False,
                id="filter-level-select",
            )
            yield Select(
                RANGE_OPTIONS,
                value=filters.time_range.value,
                allow_blank=False,
                id="filter-range-select",
            )
            yield Button("Clear Filters", id="clear-filters-btn", variant="warning")

        with Horizontal(id="custom-range-row"):
            yield Label("From:", classes="control-label")
            yield Input(
                value=format_local_datetime(filters.custom_start),
                placeholder="YYYY-MM-DD HH:MM",
                id="custom-start-input",
            )
            yield Label("To:", classes="control-label")
            yield Input(
                value=format_local_datetime(filters.custom_end),
                placeholder="YYYY-MM-DD HH:MM",
                id="custom-end-input",
            )

        with Horizontal(id="filter-status-row"):
            yield Static(format_count(self.total_count, self.filtered_count), id="filter-count")
            yield Static("", id="filter-pattern-error")

    def on_mount(self) -> None:
        self.query_one("#filter-pattern-error", Static).display = False
        self._sync_visibility()

    def _regex_variant(self) -> str:
        return "primary" if self.filters.regex_enabled else "default"

    def _level_value(self) -> str:
        # "multiple" has no option in the single select; show it as all levels
        level = self.filters.level
        return "all" if level == "multiple" else level

    def _sync_visibility(self) -> None:
        self.query_one("#clear-filters-btn", Button).display = self.filters.has_active_filters
        self.query_one("#custom-range-row", Horizontal).display = self.filters.time_range is TimeRange.CUSTOM

    def _emit(self, filters: LogFilters) -> None:
        if filters == self.filters:
            return
        self.filters = filters
        self._sync_visibility()
        self.query_one("#regex-toggle-btn", Button).variant = self._regex_variant()
        self.post_message(self.Changed(self, filters))

    # Inputs from the parent

    def set_filters(self, filters: LogFilters) -> None:
        """
        Show a filter state chosen elsewhere (clear, share link, CLI)

        Controls whose current contents already mean the same thing are left
        alone so that text being typed is not overwritten.
        """
        self.filters = filters

        search_input = self.query_one("#filter-search-input", Input)
        if search_input.value != filters.search_text:
            search_input.value = filters.search_text

        level_select = self.query_one("#filter-level-select", Select)
        if level_select.value != self._level_value():
            level_select.value = self._level_value()

        range_select = self.query_one("#filter-range-select", Select)
        if range_select.value != filters.time_range.value:
            range_select.value = filters.time_range.value

        for input_id, value in (
            ("#custom-start-input", filters.custom_start),
            ("#custom-end-input", filters.custom_end),
        ):
            custom_input = self.query_one(input_id, Input)
            if parse_local_datetime(custom_input.value) != value:
                custom_input.value = format_local_datetime(value)

        self.query_one("#regex-toggle-btn", Button).variant = self._regex_variant()
        self._sync_visibility()

    def set_counts(self, total_count: int, filtered_count: int) -> None:
        self.total_count = total_count
        self.filtered_count = filtered_count

    def set_pattern_error(self, message: Optional[str]) -> None:
        """Show or hide the invalid pattern hint"""
        hint = self.query_one("#filter-pattern-error", Static)
        hint.display = bool(message)
        hint.update(Text(f"Invalid pattern: {message}", style="red") if message else "")

    def watch_total_count(self, value: int) -> None:
        self._update_count()

    def watch_filtered_count(self, value: int) -> None:
        self._update_count()

    def _update_count(self) -> None:
        try:
            count = self.query_one("#filter-count", Static)
        except NoMatches:
            return
        count.update(format_count(self.total_count, self.filtered_count))

    # Control events

    @on(Input.Changed, "#filter-search-input")
    def handle_search_changed(self, event: Input.Changed) -> None:
        event.stop()
        self._emit(self.filters.update(search_text=event.value))

    @on(Button.Pressed, "#clear-search-btn")
    def handle_clear_search(self, event: Button.Pressed) -> None:
        event.stop()
        self.query_one("#filter-search-input", Input).value = ""
        self._emit(self.filters.update(search_text=""))

    @on(Button.Pressed, "#regex-toggle-btn")
    def handle_regex_toggle(self, event: Button.Pressed) -> None:
        event.stop()
        self._emit(self.filters.update(regex_enabled=not self.filters.regex_enabled))

    @on(Select.Changed, "#filter-level-select")
    def handle_level_changed(self, event: Select.Changed) -> None:
        event.stop()
        if event.value == self._level_value():
            return
        self._emit(self.filters.with_level(str(event.value)))

    @on(Select.Changed, "#filter-range-select")
    def handle_range_changed(self, event: Select.Changed) -> None:
        event.stop()
        self._emit(self.filters.update(time_range=TimeRange(event.value)))

    @on(Input.Changed, "#custom-start-input")
    def handle_custom_start(self, event: Input.Changed) -> None:
        event.stop()
        self._emit(self.filters.update(custom_start=parse_local_datetime(event.value)))

    @on(Input.Changed, "#custom-end-input")
    def handle_custom_end(self, event: Input.Changed) -> None:
        event.stop()
        self._emit(self.filters.update(custom_end=parse_local_datetime(event.value)))

    @on(Button.Pressed, "#clear-filters-btn")
    def handle_clear_filters(self, event: Button.Pressed) -> None:
        event.stop()
        cleared = self.filters.cleared()
        self._emit(cleared)
        self.set_filters(cleared)


class LogInsightsPanel(Vertical):
    """Sidebar summarising errors in the visible logs"""

    def compose(self) -> ComposeResult:
        yield Label("[bold]Insights[/bold]", classes="panel-title")
        yield Static(self._format_insights(LogInsights()), id="insights-content")

    def _format_insights(self, insights: LogInsights) -> Text:
        text = Text()
        text.append(f"Errors: {insights.error_count}\n", style="red")
        text.append(f"Warnings: {insights.warning_count}\n", style="yellow")

        if insights.patterns:
            text.append("\nRepeated errors\n", style="bold")
            for pattern, count in insights.patterns:
                text.append(f"{count}× ", style="bold red")
                text.append(f"{pattern}\n")
        elif not insights.has_issues:
            text.append("\nNo issues detected", style="green")
        return text

    def update_insights(self, insights: LogInsights) -> None:
        try:
            content = self.query_one("#insights-content", Static)
        except NoMatches:
            return
        content.update(self._format_insights(insights))


class ConnectionIndicator(Widget):
    """One-line upstream connection status"""

    DEFAULT_CSS = """
    ConnectionIndicator {
        width: auto;
        height: auto;
    }
    """

    status: reactive[ConnectionStatus] = reactive(ConnectionStatus.CONNECTING)

    def render(self) -> Text:
        return Text(f"● {self.status.label}", style=self.status.color)
