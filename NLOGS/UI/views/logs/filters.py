"""
Log Filters Module - Filter state and the predicate built from it

Handles:
- Immutable filter state with defaults, reset and "active" detection
- Unified level filtering (single-select is a set of size <= 1)
- Literal/regex search modes compiled once per change
- Time range windows (relative and custom)
- Service selection semantics
- Share links (query string round trip) and recent-service tracking
"""
import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union
from urllib.parse import parse_qs, urlencode

from NLOGS.models import LogEntry, LogLevel

ALL_LEVELS: FrozenSet[LogLevel] = frozenset(LogLevel)

LOCAL_INPUT_FORMAT = "%Y-%m-%d %H:%M"


class TimeRange(Enum):
    """Time windows offered by the filter panel"""
    LAST_5M = "5m"
    LAST_1H = "1h"
    LAST_24H = "24h"
    CUSTOM = "custom"

    @property
    def label(self) -> str:
        labels = {
            TimeRange.LAST_5M: "Last 5 minutes",
            TimeRange.LAST_1H: "Last 1 hour",
            TimeRange.LAST_24H: "Last 24 hours",
            TimeRange.CUSTOM: "Custom Range",
        }
        return labels[self]

    @property
    def window(self) -> Optional[timedelta]:
        """Length of a relative window, None for CUSTOM"""
        windows = {
            TimeRange.LAST_5M: timedelta(minutes=5),
            TimeRange.LAST_1H: timedelta(hours=1),
            TimeRange.LAST_24H: timedelta(hours=24),
        }
        return windows.get(self)


@dataclass(frozen=True)
class LogFilters:
    """
    Filter state for the log stream

    Every change produces a new instance; widgets never mutate one in place.
    """
    search_text: str = ""
    levels: FrozenSet[LogLevel] = field(default_factory=frozenset)
    time_range: TimeRange = TimeRange.LAST_5M
    regex_enabled: bool = False
    custom_start: Optional[datetime] = None
    custom_end: Optional[datetime] = None

    @property
    def level(self) -> str:
        """Single-select view of ``levels``: "all", a level value, or "multiple" """
        if not self.levels or self.levels == ALL_LEVELS:
            return "all"
        if len(self.levels) == 1:
            return next(iter(self.levels)).value
        return "multiple"

    @property
    def has_active_filters(self) -> bool:
        return self != LogFilters()

    def with_level(self, level: Union[str, LogLevel]) -> "LogFilters":
        """Replace the level filter with a single level, or "all" """
        if level == "all":
            return replace(self, levels=frozenset())
        return replace(self, levels=frozenset({LogLevel(level)}))

    def update(self, **changes) -> "LogFilters":
        return replace(self, **changes)

    def cleared(self) -> "LogFilters":
        return LogFilters()

    def search_mode(self) -> "SearchMode":
        return build_search(self.search_text, self.regex_enabled)


# Search modes

@dataclass(frozen=True)
class MatchAll:
    """Empty search: every line matches"""

    def matches(self, line: str) -> bool:
        return True


@dataclass(frozen=True)
class LiteralSearch:
    """Case-insensitive substring search"""
    text: str

    def matches(self, line: str) -> bool:
        return self.text.lower() in line.lower()


@dataclass(frozen=True)
class PatternSearch:
    """Case-insensitive regular expression search"""
    pattern: "re.Pattern[str]"

    def matches(self, line: str) -> bool:
        return self.pattern.search(line) is not None


@dataclass(frozen=True)
class InvalidPattern:
    """A pattern that failed to compile; it matches nothing"""
    source: str
    error: str

    def matches(self, line: str) -> bool:
        return False


SearchMode = Union[MatchAll, LiteralSearch, PatternSearch, InvalidPattern]


def build_search(search_text: str, regex_enabled: bool) -> SearchMode:
    """
    Build the search mode for the current search box contents

    Args:
        search_text: Raw text from the search box
        regex_enabled: Whether the text is a regular expression

    Returns:
        A SearchMode; compile errors become InvalidPattern instead of raising
    """
    if not search_text:
        return MatchAll()
    if not regex_enabled:
        return LiteralSearch(search_text)

    try:
        return PatternSearch(re.compile(search_text, re.IGNORECASE))
    except re.error as e:
        return InvalidPattern(search_text, str(e))


# Predicate

def selection_is_unfiltered(selected: Iterable[str], services: Optional[Iterable[str]] = None) -> bool:
    """An empty selection and a selection of every service both mean "no filtering" """
    selected_set = set(selected)
    if not selected_set:
        return True
    return services is not None and selected_set == set(services)


def level_matches(levels: FrozenSet[LogLevel], level: LogLevel) -> bool:
    if not levels or levels == ALL_LEVELS:
        return True
    return level in levels


def time_matches(filters: LogFilters, timestamp: datetime, now: datetime) -> bool:
    if filters.time_range is TimeRange.CUSTOM:
        if filters.custom_start is not None and timestamp < filters.custom_start:
            return False
        if filters.custom_end is not None and timestamp > filters.custom_end:
            return False
        return True
    return now - timestamp < filters.time_range.window


def build_predicate(
    filters: LogFilters,
    selected_services: Sequence[str] = (),
    services: Optional[Sequence[str]] = None,
    now: Optional[datetime] = None,
) -> Callable[[LogEntry], bool]:
    """
    Convert filter state into a predicate over log entries

    The search mode is built once here, so an invalid pattern is detected a
    single time rather than on every entry.

    Args:
        filters: Current filter state
        selected_services: Services chosen in the selector
        services: All known services (lets a full selection mean "all")
        now: Reference time for relative windows (defaults to current UTC time)

    Returns:
        Callable returning True for entries that should be shown
    """
    now = now or datetime.now(timezone.utc)
    search = filters.search_mode()
    service_set = None if selection_is_unfiltered(selected_services, services) else frozenset(selected_services)

    def predicate(entry: LogEntry) -> bool:
        if service_set is not None and entry.service not in service_set:
            return False
        if not level_matches(filters.levels, entry.level):
            return False
        if not time_matches(filters, entry.timestamp, now):
            return False
        return search.matches(entry.line)

    return predicate


def apply_filters(
    entries: Sequence[LogEntry],
    filters: LogFilters,
    selected_services: Sequence[str] = (),
    services: Optional[Sequence[str]] = None,
    now: Optional[datetime] = None,
) -> List[LogEntry]:
    """Filter entries, keeping arrival order"""
    predicate = build_predicate(filters, selected_services, services, now)
    return [entry for entry in entries if predicate(entry)]


def format_count(total_count: int, filtered_count: int) -> str:
    if filtered_count != total_count:
        return f"Showing {filtered_count} of {total_count} logs"
    return f"{total_count} logs"


# Custom time range input

def parse_local_datetime(value: str) -> Optional[datetime]:
    """
    Parse a local "YYYY-MM-DD HH:MM" string into an aware UTC datetime

    Returns:
        The UTC datetime, or None when the input is blank or malformed
    """
    value = value.strip()
    if not value:
        return None
    try:
        local = datetime.strptime(value, LOCAL_INPUT_FORMAT)
    except ValueError:
        return None
    return local.astimezone().astimezone(timezone.utc)


def format_local_datetime(value: Optional[datetime]) -> str:
    """Render a stored UTC datetime back into the local input format"""
    if value is None:
        return ""
    return value.astimezone().strftime(LOCAL_INPUT_FORMAT)


# Share links

def filters_to_query(filters: LogFilters, selected_services: Sequence[str] = ()) -> str:
    """Encode filters and service selection as a query string"""
    return urlencode({
        'services': ",".join(selected_services),
        'level': filters.level,
        'search': filters.search_text,
        'range': filters.time_range.value,
    })


def filters_from_query(query: str, base: Optional[LogFilters] = None) -> Tuple[LogFilters, List[str]]:
    """
    Decode a share query string

    Missing or unknown values keep the corresponding field of ``base``.

    Returns:
        Tuple of (filters, selected services)
    """
    filters = base or LogFilters()
    params = parse_qs(query.lstrip("?"))

    def first(key: str) -> str:
        values = params.get(key)
        return values[0] if values else ""

    services = [name for name in first('services').split(",") if name]

    level = first('level')
    if level == "all" or level in {lvl.value for lvl in LogLevel}:
        filters = filters.with_level(level)

    search = first('search')
    if search:
        filters = replace(filters, search_text=search)

    range_value = first('range')
    if range_value in {tr.value for tr in TimeRange}:
        filters = replace(filters, time_range=TimeRange(range_value))

    return filters, services


# Recent services

def update_recent(new_selection: Sequence[str], recent: Sequence[str], limit: int = 5) -> List[str]:
    """Most recently selected services first, de-duplicated and capped"""
    merged: List[str] = []
    for name in list(new_selection) + list(recent):
        if name not in merged:
            merged.append(name)
    return merged[:limit]
