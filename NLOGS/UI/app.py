"""
NLOGS Main Application - Live service logs using Textual
"""
from typing import Optional, Sequence

from textual.app import App, ComposeResult
from textual.widgets import Footer, Header

from NLOGS.config import Settings
from NLOGS.log_analysis.export import ExportFormat
from NLOGS.sources.api_client import LogApiClient
from NLOGS.UI.views.logs import LogFilters, LogsView


class NLOGSApp(App):
    """nself Logs - Terminal UI Application"""

    TITLE = "nself Logs"
    CSS_PATH = "nlogs.tcss"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("space", "toggle_pause", "Pause/Resume"),
        ("e", "export", "Export"),
        ("c", "clear_logs", "Clear"),
        ("r", "refresh_logs", "Refresh"),
        ("s", "share", "Share"),
    ]

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[LogApiClient] = None,
        filters: Optional[LogFilters] = None,
        selected_services: Sequence[str] = (),
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.settings = settings or Settings()
        self.client = client
        self.initial_filters = filters
        self.selected_services = list(selected_services)

    def compose(self) -> ComposeResult:
        """Compose the main UI layout"""
        yield Header(show_clock=True)
        yield LogsView(
            settings=self.settings,
            client=self.client,
            filters=self.initial_filters,
            selected_services=self.selected_services,
            id="logs-view",
        )
        yield Footer()

    @property
    def logs_view(self) -> LogsView:
        return self.query_one("#logs-view", LogsView)

    def action_toggle_pause(self) -> None:
        """Pause or resume following new logs"""
        self.logs_view.toggle_pause()

    def action_export(self) -> None:
        """Download the visible logs as text"""
        self.logs_view.download_logs(ExportFormat.TXT)

    def action_clear_logs(self) -> None:
        self.logs_view.clear_logs()

    def action_refresh_logs(self) -> None:
        self.logs_view.refresh_logs()

    def action_share(self) -> None:
        self.logs_view.share_logs()


def run_app(
    settings: Optional[Settings] = None,
    filters: Optional[LogFilters] = None,
    selected_services: Sequence[str] = (),
) -> None:
    """Entry point to run the NLOGS application"""
    app = NLOGSApp(settings=settings, filters=filters, selected_services=selected_services)
    app.run()


if __name__ == "__main__":
    run_app()
