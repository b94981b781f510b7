"""
Logs Package - Live log viewing for nself services

This package provides the logs page with:
- Per-line rendering with level badges, service colours and JSON pretty-printing
- Multi-select service filtering with recent shortcuts
- Text/regex search, level and time range filters
- Virtualized display with auto-follow and pause/resume
- Throttled ingest with a retention cap

Package Structure:
- view: Page orchestration (LogsView)
- components: Filter controls, insights sidebar, connection indicator
- log_stream: Virtualized stream widget (LogStream)
- log_line: Rendering of a single entry (LogLine)
- service_selector: Service multi-select (ServiceSelector)
- filters: Filter state, predicate and share links (LogFilters)
- follow: Auto-scroll state machine (AutoScrollController)
- virtualizer: Row windowing over variable heights (RowVirtualizer)
- buffer: Throttled ingest buffer (LogBuffer)
- models: Data models (LogEntry, LogLevel, LogSource)
"""

from .view import LogsView

from .components import ConnectionIndicator, LogFiltersPanel, LogInsightsPanel
from .log_stream import LogStream
from .log_line import LogLine
from .service_selector import ServiceSelector
from .filters import LogFilters, TimeRange, apply_filters, build_predicate
from .follow import AutoScrollController, FollowMode
from .virtualizer import RowVirtualizer
from .buffer import LogBuffer
from NLOGS.models import LogEntry, LogLevel, LogSource

__all__ = [
    # Main view
    'LogsView',

    # UI components
    'ConnectionIndicator',
    'LogFiltersPanel',
    'LogInsightsPanel',
    'LogStream',
    'LogLine',
    'ServiceSelector',

    # Core components
    'AutoScrollController',
    'FollowMode',
    'LogBuffer',
    'RowVirtualizer',
    'apply_filters',
    'build_predicate',

    # Data models
    'LogEntry',
    'LogFilters',
    'LogLevel',
    'LogSource',
    'TimeRange',
]
