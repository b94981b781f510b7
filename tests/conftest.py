"""
Shared fixtures for NLOGS tests
"""
import os
from datetime import datetime, timedelta, timezone

import pytest

from NLOGS.models import LogEntry


@pytest.fixture
def now():
    return datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_entry(now):
    """Factory for log entries, timestamped ``age`` seconds before ``now``"""
    counter = {'n': 0}

    def factory(line="hello", service="api", level="info", age=0, id=None, source=None):
        counter['n'] += 1
        return LogEntry(
            id=id or f"{service}-{counter['n']}",
            service=service,
            line=line,
            timestamp=now - timedelta(seconds=age),
            level=level,
            source=source,
        )

    return factory


@pytest.fixture(autouse=True)
def clean_nlogs_env(monkeypatch):
    """Keep NLOGS_* variables from the developer's shell out of the tests"""
    for name in list(os.environ):
        if name.startswith("NLOGS_"):
            monkeypatch.delenv(name)
