"""
Log Stream Module - Virtualized, auto-following log display

Handles:
- Truncation to the most recent ``max_logs`` entries with a banner
- Windowed rendering: only rows in view (plus overscan) are rendered
- FOLLOWING / PAUSED auto-scroll with manual-scroll detection
- Pause/Resume and Scroll to Bottom controls
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.geometry import Size
from textual.message import Message
from textual.scroll_view import ScrollView
from textual.strip import Strip
from textual.widgets import Button, Static

from NLOGS.models import LogEntry

from .follow import AutoScrollController, ScrollMetrics
from .log_line import LogLine
from .virtualizer import RowVirtualizer

logger = logging.getLogger(__name__)

DEFAULT_MAX_LOGS = 10000
RELATIVE_TIME_REFRESH = 30.0


def truncate_logs(logs: Sequence[LogEntry], max_logs: int) -> Tuple[List[LogEntry], bool]:
    """
    Keep the most recent ``max_logs`` entries

    Returns:
        Tuple of (entries to display, whether anything was dropped)
    """
    if len(logs) > max_logs:
        return list(logs[len(logs) - max_logs:]), True
    return list(logs), False


def buffer_banner(max_logs: int) -> str:
    return f"Buffer limit reached. Showing last {max_logs:,} logs."


class LogCanvas(ScrollView):
    """
    Scroll area that renders log rows through the line API

    Rows are rendered into strips on demand and cached per entry id; the
    virtual height is the sum of measured (or estimated) row heights.
    """

    DEFAULT_CSS = """
    LogCanvas {
        height: 1fr;
        overflow-x: hidden;
        scrollbar-gutter: stable;
    }
    """

    class ScrollChanged(Message):
        """The viewport moved"""

        def __init__(self, metrics: ScrollMetrics, programmatic: bool) -> None:
            super().__init__()
            self.metrics = metrics
            self.programmatic = programmatic

    def __init__(self, show_service: bool = True, overscan: int = 10, **kwargs):
        super().__init__(**kwargs)
        self.show_service = show_service
        self.virtualizer = RowVirtualizer(estimate_size=1, overscan=overscan)
        self.entries: List[LogEntry] = []
        self._strips: Dict[str, List[Strip]] = {}
        self._render_width = 0
        self._programmatic_scroll = False
        self._now: Optional[datetime] = None
        self.follow_tail = False

    # Geometry

    @property
    def viewport_height(self) -> int:
        return self.scrollable_content_region.height

    def metrics(self) -> ScrollMetrics:
        return ScrollMetrics(
            scroll_top=self.scroll_y,
            scroll_height=self.virtualizer.total_size(),
            client_height=self.viewport_height,
        )

    def set_entries(self, entries: List[LogEntry], pin: bool = False) -> None:
        """
        Replace the displayed rows

        Args:
            entries: Rows to display, in display order
            pin: Measure the tail of the list instead of the current window
        """
        self.entries = entries
        self.virtualizer.set_keys(entry.id for entry in entries)
        present = set(self.virtualizer.keys)
        self._strips = {key: strips for key, strips in self._strips.items() if key in present}
        self._layout(pin=pin)

    def _layout(self, pin: bool = False) -> None:
        width = self.scrollable_content_region.width
        if width <= 0:
            return
        if width != self._render_width:
            self._render_width = width
            self._strips.clear()
            self.virtualizer.reset_measurements()

        if pin:
            self._measure_tail()
        else:
            self._measure_window(round(self.scroll_y))

        self.virtual_size = Size(width, self.virtualizer.total_size())
        self.refresh()

    def _measure(self, index: int) -> bool:
        entry = self.entries[index]
        strips = self._render_entry(entry)
        self._strips[entry.id] = strips
        return self.virtualizer.measure(entry.id, len(strips))

    def _measure_window(self, scroll_offset: int) -> None:
        # Measuring can move rows, so settle the window a few times
        for _ in range(3):
            changed = False
            for item in self.virtualizer.virtual_items(scroll_offset, self.viewport_height):
                if item.key not in self._strips or not self.virtualizer.is_measured(item.index):
                    changed = self._measure(item.index) or changed
            if not changed:
                break

    def _measure_tail(self) -> None:
        covered = 0
        remaining_overscan = self.virtualizer.overscan
        index = self.virtualizer.count - 1
        while index >= 0 and (covered < self.viewport_height or remaining_overscan > 0):
            if covered >= self.viewport_height:
                remaining_overscan -= 1
            if self.entries[index].id not in self._strips:
                self._measure(index)
            covered += self.virtualizer.size_of(index)
            index -= 1

    def _render_entry(self, entry: LogEntry) -> List[Strip]:
        width = max(1, self._render_width)
        console = self.app.console
        options = console.options.update(width=width, height=None)
        lines = console.render_lines(
            LogLine(entry, show_service=self.show_service, now=self._now),
            options,
            pad=True,
        )
        return [Strip(line, width) for line in lines] or [Strip.blank(width)]

    def refresh_times(self) -> None:
        """Drop rendered rows so relative timestamps are recomputed"""
        self._now = datetime.now(timezone.utc)
        self._strips.clear()
        self._layout()

    # Scrolling

    def pin_to_bottom(self) -> None:
        """Scroll to the last row without it counting as a user scroll"""
        self._scroll_to_end()
        # The container size and max_scroll_y settle on the next layout pass
        self.call_after_refresh(self._settle_pin)

    def _settle_pin(self) -> None:
        if not self.follow_tail:
            return
        if self.scrollable_content_region.width != self._render_width:
            self._layout(pin=True)
            self.call_after_refresh(self._settle_pin)
        self._scroll_to_end()

    def _scroll_to_end(self) -> None:
        self._programmatic_scroll = True
        try:
            self.scroll_target_y = self.scroll_y = self.max_scroll_y
        finally:
            self._programmatic_scroll = False

    def watch_scroll_y(self, old_value: float, new_value: float) -> None:
        super().watch_scroll_y(old_value, new_value)
        if round(old_value) != round(new_value):
            self._measure_window(round(new_value))
            self.virtual_size = Size(max(1, self._render_width), self.virtualizer.total_size())
        self.post_message(self.ScrollChanged(self.metrics(), self._programmatic_scroll))

    def on_resize(self, event: events.Resize) -> None:
        self._layout(pin=self.follow_tail)
        if self.follow_tail:
            self.pin_to_bottom()

    # Line API

    def render_line(self, y: int) -> Strip:
        scroll_x, scroll_y = self.scroll_offset
        width = self.scrollable_content_region.width
        virtual_y = scroll_y + y

        if not self.entries or virtual_y >= self.virtualizer.total_size():
            return Strip.blank(width, self.rich_style)

        index = self.virtualizer.index_at(virtual_y)
        entry = self.entries[index]
        strips = self._strips.get(entry.id)
        if strips is None:
            if self._measure(index):
                self.call_after_refresh(self._layout)
            strips = self._strips[entry.id]

        line_no = virtual_y - self.virtualizer.start_of(index)
        if line_no < 0 or line_no >= len(strips):
            return Strip.blank(width, self.rich_style)
        return strips[line_no].crop(scroll_x, scroll_x + width)


class LogStream(Vertical):
    """
    Log display with buffer cap, virtualization and auto-follow

    The ``logs`` sequence belongs to the caller and is never modified; the
    stream only keeps a truncated copy for display.
    """

    DEFAULT_CSS = """
    LogStream {
        height: 1fr;
    }
    LogStream #log-stream-toolbar {
        height: auto;
        align-horizontal: right;
    }
    LogStream #log-stream-empty {
        height: 1fr;
        content-align: center middle;
        color: $text-muted;
    }
    LogStream #log-stream-banner {
        height: auto;
        background: $warning 80%;
        color: $text;
        padding: 0 1;
    }
    """

    class AutoScrollChanged(Message):
        """The stream switched between following and paused"""

        def __init__(self, stream: "LogStream", following: bool) -> None:
            super().__init__()
            self.stream = stream
            self.following = following

        @property
        def control(self) -> "LogStream":
            return self.stream

    def __init__(
        self,
        logs: Sequence[LogEntry] = (),
        auto_scroll: bool = True,
        max_logs: int = DEFAULT_MAX_LOGS,
        show_service: bool = True,
        pause_threshold: float = 3,
        **kwargs,
    ):
        """
        Initialize the stream

        Args:
            logs: Entries to display, already filtered
            auto_scroll: Start in following mode
            max_logs: Number of most recent entries kept for display
            show_service: Show the service column on each row
            pause_threshold: Rows from the bottom at which a user scroll pauses
        """
        super().__init__(**kwargs)
        self.logs: Sequence[LogEntry] = logs
        self.max_logs = max_logs
        self.show_service = show_service
        self.visible_logs: List[LogEntry] = []
        self.truncated = False
        self._tail_key: Optional[Tuple[int, Optional[str]]] = None
        self._time_timer = None
        self._ready = False
        self.controller = AutoScrollController(
            auto_scroll=auto_scroll,
            pause_threshold=pause_threshold,
            on_change=self._on_follow_change,
        )

    def compose(self) -> ComposeResult:
        with Horizontal(id="log-stream-toolbar"):
            yield Button(self._pause_label(), id="pause-toggle-btn", variant=self._pause_variant())
            yield Button("⬇ Scroll to Bottom", id="scroll-bottom-btn", variant="primary")
        yield Static("No logs yet\n[dim]Start a service to see logs[/dim]", id="log-stream-empty")
        yield LogCanvas(show_service=self.show_service, id="log-stream-canvas")
        yield Static("", id="log-stream-banner")

    def on_mount(self) -> None:
        self._ready = True
        self.query_one("#scroll-bottom-btn", Button).display = False
        self._time_timer = self.set_interval(RELATIVE_TIME_REFRESH, self._refresh_times)
        self.set_logs(self.logs)

    def on_unmount(self) -> None:
        if self._time_timer:
            self._time_timer.stop()
            self._time_timer = None

    @property
    def following(self) -> bool:
        return self.controller.following

    @property
    def canvas(self) -> LogCanvas:
        return self.query_one("#log-stream-canvas", LogCanvas)

    def set_logs(self, logs: Sequence[LogEntry]) -> None:
        """
        Display a new (filtered) log list

        While following, the viewport is pinned to the newest entry in the
        same call, before the next paint.
        """
        self.logs = logs
        self.visible_logs, self.truncated = truncate_logs(logs, self.max_logs)
        if not self._ready:
            return

        banner = self.query_one("#log-stream-banner", Static)
        banner.display = self.truncated
        if self.truncated:
            banner.update(buffer_banner(self.max_logs))

        has_rows = bool(self.visible_logs)
        self.query_one("#log-stream-empty", Static).display = not has_rows
        canvas = self.canvas
        canvas.display = has_rows

        tail_key = (len(self.visible_logs), self.visible_logs[-1].id if has_rows else None)
        tail_changed = tail_key != self._tail_key
        self._tail_key = tail_key

        pin = tail_changed and self.controller.should_pin_to_bottom()
        canvas.set_entries(self.visible_logs, pin=pin)
        if pin:
            canvas.pin_to_bottom()
        self._sync_controls()

    def _pin(self) -> None:
        canvas = self.canvas
        canvas.set_entries(self.visible_logs, pin=True)
        canvas.pin_to_bottom()

    def _refresh_times(self) -> None:
        self.canvas.refresh_times()

    # Follow mode

    def _on_follow_change(self, following: bool) -> None:
        logger.debug("Log stream %s", "following" if following else "paused")
        self.post_message(self.AutoScrollChanged(self, following))

    def _pause_label(self) -> str:
        return "⏸ Pause" if self.controller.following else "▶ Resume"

    def _pause_variant(self) -> str:
        return "primary" if self.controller.following else "default"

    def _sync_controls(self) -> None:
        if not self._ready:
            return
        self.canvas.follow_tail = self.controller.following
        toggle = self.query_one("#pause-toggle-btn", Button)
        toggle.label = self._pause_label()
        toggle.variant = self._pause_variant()
        self.query_one("#scroll-bottom-btn", Button).display = self.controller.show_scroll_button

    def toggle_pause(self) -> None:
        """Pause or resume following; resuming jumps to the newest entry"""
        self.controller.toggle()
        if self.controller.following:
            self._pin()
        self._sync_controls()

    def scroll_to_bottom(self) -> None:
        """Jump to the newest entry and resume following"""
        self.controller.resume()
        self._pin()
        self._sync_controls()

    @on(LogCanvas.ScrollChanged)
    def handle_canvas_scroll(self, event: LogCanvas.ScrollChanged) -> None:
        event.stop()
        self.controller.on_scroll(event.metrics, has_rows=bool(self.visible_logs), programmatic=event.programmatic)
        self._sync_controls()

    @on(Button.Pressed, "#pause-toggle-btn")
    def handle_pause_toggle(self) -> None:
        self.toggle_pause()

    @on(Button.Pressed, "#scroll-bottom-btn")
    def handle_scroll_bottom(self) -> None:
        self.scroll_to_bottom()
