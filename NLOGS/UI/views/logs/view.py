"""
Logs View Module - Main UI orchestration for the logs page

Handles:
- Page composition (header, service selector, filters, stream, insights)
- Background polling of the log API
- Throttled draining of the ingest buffer
- Re-filtering on every filter, selection or buffer change
- Refresh, Clear, Download and Share actions
"""
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.timer import Timer
from textual.widgets import Button, Label, Static
from textual.worker import get_current_worker

from NLOGS.config import Settings
from NLOGS.log_analysis.export import EXPORT_LIMIT, ExportFormat, export_logs
from NLOGS.log_analysis.insights import compute_insights
from NLOGS.models import LogEntry
from NLOGS.sources.api_client import ConnectionStatus, LogApiClient, LogSourceError

from .buffer import LogBuffer
from .components import ConnectionIndicator, LogFiltersPanel, LogInsightsPanel
from .filters import InvalidPattern, LogFilters, apply_filters, filters_to_query, update_recent
from .log_stream import LogStream
from .service_selector import ServiceSelector


class LogsView(Vertical):
    """
    Live logs page

    Entries flow from the API client into the buffer on a worker thread,
    move from the buffer into the retained list on the drain timer, and are
    filtered into the stream on the UI thread.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[LogApiClient] = None,
        filters: Optional[LogFilters] = None,
        selected_services: Sequence[str] = (),
        **kwargs,
    ):
        """
        Initialize the logs view

        Args:
            settings: Runtime settings (defaults when omitted)
            client: Log API client (built from settings when omitted)
            filters: Initial filter state
            selected_services: Initial service selection
        """
        super().__init__(**kwargs)
        self.settings = settings or Settings()
        self.client = client or LogApiClient(
            self.settings.api_url,
            timeout=self.settings.request_timeout,
            max_retries=self.settings.max_retries,
        )
        self.logger = logging.getLogger(__name__)

        self.buffer = LogBuffer(max_logs=self.settings.max_logs, batch_size=self.settings.throttle_batch)
        self.filters = filters or LogFilters()
        self.services: List[str] = []
        self.selected: List[str] = list(selected_services)
        self.recent: List[str] = []
        self.filtered: List[LogEntry] = []
        self.status = ConnectionStatus.CONNECTING

        self._polling = False
        self._generation = 0
        self._drain_timer: Optional[Timer] = None
        self._poll_timer: Optional[Timer] = None

    def compose(self) -> ComposeResult:
        """Compose the logs page layout"""
        with Vertical(id="logs-header"):
            with Horizontal(id="logs-title-row"):
                yield Label("[bold]Logs[/bold]", classes="section-title")
                yield ConnectionIndicator(id="connection-indicator")
                yield Static("Live", id="follow-state")
                yield ServiceSelector(selected=self.selected, id="service-selector")
            with Horizontal(id="logs-actions"):
                yield Button("⟳ Refresh", id="refresh-btn", variant="primary")
                yield Button("Clear", id="clear-logs-btn", variant="default")
                yield Button("⬇ Download", id="download-btn", variant="default")
                yield Button("CSV", id="download-csv-btn", variant="default")
                yield Button("Share", id="share-btn", variant="default")

        yield LogFiltersPanel(self.filters, id="log-filters-panel")

        with Horizontal(id="logs-content"):
            with Vertical(classes="main-panel", id="logs-main-panel"):
                yield LogStream(max_logs=self.settings.max_logs, id="log-stream")
            with Vertical(classes="right-panel", id="logs-sidebar"):
                yield LogInsightsPanel(id="log-insights-panel")

    def on_mount(self) -> None:
        """Start polling when the view is mounted"""
        self.logger.info(f"LogsView mounted, polling {self.settings.api_url}")
        self._drain_timer = self.set_interval(self.settings.throttle_interval, self._drain)
        self._poll_timer = self.set_interval(self.settings.poll_interval, self.poll)
        self._load_services()
        self.poll()

    def on_unmount(self) -> None:
        for timer in (self._drain_timer, self._poll_timer):
            if timer:
                timer.stop()
        self._drain_timer = None
        self._poll_timer = None

    # Background work

    @work(exclusive=True, thread=True, group="log-services")
    def _load_services(self) -> None:
        try:
            services = self.client.fetch_services()
        except LogSourceError as e:
            self.app.call_from_thread(self._handle_source_error, e)
            return
        self.app.call_from_thread(self._apply_services, services)

    @work(exclusive=True, thread=True, group="log-poll")
    def _poll_logs(self, generation: int) -> None:
        # Every service is polled; the selection narrows the display only
        worker = get_current_worker()
        try:
            entries = self.client.poll()
        except LogSourceError as e:
            if not worker.is_cancelled:
                self.app.call_from_thread(self._poll_failed, generation, e)
            return
        if not worker.is_cancelled:
            self.app.call_from_thread(self._poll_done, generation, entries)

    def poll(self) -> None:
        """Start a poll unless the previous one is still in flight"""
        if self._polling:
            return
        self._polling = True
        self._poll_logs(self._generation)

    def _apply_services(self, services: List[str]) -> None:
        self.services = services
        self.query_one("#service-selector", ServiceSelector).set_services(services)
        self._set_status(ConnectionStatus.CONNECTED)
        self.refilter()

    def _poll_done(self, generation: int, entries: List[LogEntry]) -> None:
        if generation != self._generation:
            self.logger.debug(f"Dropping {len(entries)} entries from a poll started before refresh")
            return
        self._polling = False
        if entries:
            self.logger.debug(f"Received {len(entries)} log entries")
            self.buffer.push(entries)
        self._set_status(self.client.status)
        # Relative time windows move even without new entries
        self.refilter()

    def _poll_failed(self, generation: int, error: LogSourceError) -> None:
        if generation != self._generation:
            return
        self._polling = False
        self._handle_source_error(error)

    def _handle_source_error(self, error: LogSourceError) -> None:
        self.logger.error(f"Log source error: {error}")
        if self.status is not ConnectionStatus.DISCONNECTED:
            self.notify(f"Log API unavailable: {error}", severity="error")
        self._set_status(ConnectionStatus.DISCONNECTED)

    def _set_status(self, status: ConnectionStatus) -> None:
        self.status = status
        self.query_one("#connection-indicator", ConnectionIndicator).status = status

    def _drain(self) -> None:
        if self.buffer.drain():
            self.refilter()

    # Filtering

    def refilter(self) -> None:
        """Apply filters and selection to the retained entries and update every panel"""
        entries = self.buffer.entries
        self.filtered = apply_filters(entries, self.filters, self.selected, self.services)

        self.query_one("#log-stream", LogStream).set_logs(self.filtered)

        panel = self.query_one("#log-filters-panel", LogFiltersPanel)
        panel.set_counts(len(entries), len(self.filtered))
        search = self.filters.search_mode()
        panel.set_pattern_error(search.error if isinstance(search, InvalidPattern) else None)

        self.query_one("#log-insights-panel", LogInsightsPanel).update_insights(compute_insights(self.filtered))

    def set_filters(self, filters: LogFilters) -> None:
        self.filters = filters
        self.query_one("#log-filters-panel", LogFiltersPanel).set_filters(filters)
        self.refilter()

    def set_selected(self, services: Sequence[str]) -> None:
        self.selected = list(services)
        if self.selected:
            self.recent = update_recent(self.selected, self.recent)
        selector = self.query_one("#service-selector", ServiceSelector)
        selector.set_selected(self.selected)
        selector.set_recent(self.recent)
        self.refilter()

    @on(LogFiltersPanel.Changed)
    def handle_filters_changed(self, event: LogFiltersPanel.Changed) -> None:
        event.stop()
        self.filters = event.filters
        self.refilter()

    @on(ServiceSelector.Changed)
    def handle_services_changed(self, event: ServiceSelector.Changed) -> None:
        event.stop()
        self.set_selected(event.services)

    @on(LogStream.AutoScrollChanged)
    def handle_auto_scroll_changed(self, event: LogStream.AutoScrollChanged) -> None:
        event.stop()
        self.query_one("#follow-state", Static).update("Live" if event.following else "[yellow]Paused[/yellow]")

    # Actions

    def refresh_logs(self) -> None:
        """Drop everything and reload from the start of the API's history"""
        self._generation += 1
        self._polling = False
        self.buffer.clear()
        self.client.reset()
        self._set_status(ConnectionStatus.CONNECTING)
        self.refilter()
        self._load_services()
        self.poll()
        self.notify("Refreshing logs", severity="information")

    def clear_logs(self) -> None:
        """Empty the display; entries already fetched are not fetched again"""
        self.buffer.clear()
        self.refilter()
        self.notify("Logs cleared", severity="information")

    def download_logs(self, fmt: ExportFormat = ExportFormat.TXT) -> Optional[Path]:
        """Export the filtered entries; failures are reported, not raised"""
        try:
            path = export_logs(self.filtered, self.settings.export_dir, fmt)
        except ValueError as e:
            self.notify(str(e), severity="warning")
            return None
        except OSError as e:
            self.logger.error(f"Export failed: {e}")
            self.notify(f"Error exporting logs: {e}", severity="error")
            return None

        self.notify(f"Exported {min(len(self.filtered), EXPORT_LIMIT)} entries to {path}", severity="information")
        return path

    def share_query(self) -> str:
        return filters_to_query(self.filters, self.selected)

    def share_logs(self) -> str:
        """Copy the share query for the current view to the clipboard"""
        query = self.share_query()
        self.app.copy_to_clipboard(query)
        self.notify(f"Copied: ?{query}", severity="information")
        return query

    def toggle_pause(self) -> None:
        self.query_one("#log-stream", LogStream).toggle_pause()

    @on(Button.Pressed, "#refresh-btn")
    def handle_refresh(self) -> None:
        self.refresh_logs()

    @on(Button.Pressed, "#clear-logs-btn")
    def handle_clear(self) -> None:
        self.clear_logs()

    @on(Button.Pressed, "#download-btn")
    def handle_download(self) -> None:
        self.download_logs(ExportFormat.TXT)

    @on(Button.Pressed, "#download-csv-btn")
    def handle_download_csv(self) -> None:
        self.download_logs(ExportFormat.CSV)

    @on(Button.Pressed, "#share-btn")
    def handle_share(self) -> None:
        self.share_logs()
