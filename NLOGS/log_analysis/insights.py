"""
Insights Module - Summary of what the visible logs are saying

Handles:
- Error and warning counts
- Most repeated error messages (grouped by their first 100 characters)
"""
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from NLOGS.models import LogEntry, LogLevel

PATTERN_PREFIX = 100
TOP_PATTERNS = 3


@dataclass(frozen=True)
class LogInsights:
    error_count: int = 0
    warning_count: int = 0
    patterns: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return bool(self.error_count or self.warning_count)


def compute_insights(entries: Iterable[LogEntry], top: int = TOP_PATTERNS) -> LogInsights:
    """
    Count errors and warnings and find repeated error messages

    Only messages seen more than once count as a pattern.

    Args:
        entries: Entries to summarise
        top: Maximum number of patterns returned

    Returns:
        LogInsights with patterns ordered by count, highest first
    """
    errors = 0
    warnings = 0
    prefixes: Counter = Counter()

    for entry in entries:
        if entry.level is LogLevel.ERROR:
            errors += 1
            prefixes[entry.line[:PATTERN_PREFIX]] += 1
        elif entry.level is LogLevel.WARN:
            warnings += 1

    patterns = [(text, count) for text, count in prefixes.most_common() if count > 1][:top]
    return LogInsights(error_count=errors, warning_count=warnings, patterns=patterns)
