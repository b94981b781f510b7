"""
Log Line Module - Rendering of a single log entry

Handles:
- Absolute and relative timestamp formatting
- Level badges (icon, colour, background)
- Deterministic service colouring
- JSON pretty-printing with plain-text fallback
"""
import json
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Optional

from rich.console import Console, ConsoleOptions, RenderResult
from rich.json import JSON
from rich.table import Table
from rich.text import Text

from NLOGS.models import LogEntry

SERVICE_PALETTE = (
    "cyan",
    "magenta",
    "green",
    "yellow",
    "bright_blue",
    "bright_red",
    "bright_cyan",
    "bright_magenta",
)


def service_color(service: str) -> str:
    """
    Colour for a service name: sum of character codes modulo palette size

    Stable across runs, so a service keeps its colour between sessions.
    Distinct names may share a colour.
    """
    return SERVICE_PALETTE[sum(ord(char) for char in service) % len(SERVICE_PALETTE)]


def format_relative(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """
    Format how long ago a timestamp was

    Args:
        timestamp: Aware datetime of the log entry
        now: Reference time (defaults to current UTC time)

    Returns:
        Short string such as "just now", "42s ago", "5m ago", "3h ago", "2d ago"
    """
    now = now or datetime.now(timezone.utc)
    seconds = int((now - timestamp).total_seconds())

    if seconds < 5:
        return "just now"
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def format_clock(timestamp: datetime) -> str:
    """Absolute local wall-clock time of a timestamp"""
    return timestamp.astimezone().strftime("%H:%M:%S")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite JSON constant {name}")


@lru_cache(maxsize=4096)
def parse_json_line(line: str) -> Optional[Any]:
    """
    Try to decode a log line as JSON

    Returns:
        A one-element tuple holding the decoded value, or None when the line
        is plain text. The tuple keeps a decoded ``null`` distinguishable.
    """
    if not line.strip():
        return None
    try:
        return (json.loads(line, parse_constant=_reject_constant),)
    except ValueError:
        return None


def format_message(line: str) -> str:
    """Message text as displayed: pretty-printed JSON or the raw line"""
    parsed = parse_json_line(line)
    if parsed is None:
        return line
    return json.dumps(parsed[0], indent=2, ensure_ascii=False)


class LogLine:
    """
    Rich renderable for one log entry

    Rendering is pure: the same entry, flag and clock always produce the same
    output, so callers may cache the rendered lines per entry.
    """

    TIME_WIDTH = 18
    LEVEL_WIDTH = 9
    SERVICE_WIDTH = 16

    def __init__(self, entry: LogEntry, show_service: bool = True, now: Optional[datetime] = None):
        self.entry = entry
        self.show_service = show_service
        self.now = now

    def time_text(self) -> Text:
        return Text.assemble(
            (format_clock(self.entry.timestamp), "bold"),
            " ",
            (format_relative(self.entry.timestamp, self.now), "dim"),
        )

    def level_badge(self) -> Text:
        level = self.entry.level
        return Text(f"{level.icon} {level.value}", style=level.style)

    def service_text(self) -> Text:
        service = self.entry.service
        return Text(service, style=f"bold {service_color(service)}")

    def message(self):
        """Message body: highlighted JSON block or plain word-wrapped text"""
        parsed = parse_json_line(self.entry.line)
        if parsed is None:
            return Text(self.entry.line)
        return JSON.from_data(parsed[0], indent=2, ensure_ascii=False)

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        grid = Table.grid(padding=(0, 1), expand=True)
        grid.add_column(width=self.TIME_WIDTH, no_wrap=True)
        grid.add_column(width=self.LEVEL_WIDTH, no_wrap=True)
        if self.show_service:
            grid.add_column(width=self.SERVICE_WIDTH, no_wrap=True, overflow="ellipsis")
        grid.add_column(ratio=1, overflow="fold")

        cells = [self.time_text(), self.level_badge()]
        if self.show_service:
            cells.append(self.service_text())
        cells.append(self.message())
        grid.add_row(*cells)
        yield grid
