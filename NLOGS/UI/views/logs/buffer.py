"""
Log Buffer Module - Throttled ingest of incoming log entries

Handles:
- Queueing entries as they arrive from the source
- Draining a bounded batch per tick into the retained list
- Capping the retained list at MAX_LOGS (oldest dropped first)
"""
import threading
from collections import deque
from typing import Deque, Iterable, List

from NLOGS.models import LogEntry

MAX_LOGS = 10000
THROTTLE_BATCH = 10


class LogBuffer:
    """Thread-safe staging area between the log source and the stream"""

    def __init__(self, max_logs: int = MAX_LOGS, batch_size: int = THROTTLE_BATCH):
        """
        Initialize the buffer

        Args:
            max_logs: Maximum number of entries retained for display
            batch_size: Maximum number of entries moved per drain
        """
        self.max_logs = max_logs
        self.batch_size = batch_size
        self._pending: Deque[LogEntry] = deque()
        self._retained: List[LogEntry] = []
        self._lock = threading.Lock()

    def push(self, entries: Iterable[LogEntry]) -> None:
        """Queue entries in arrival order"""
        with self._lock:
            self._pending.extend(entries)

    def drain(self) -> bool:
        """
        Move up to ``batch_size`` pending entries into the retained list

        Returns:
            True if any entry was moved
        """
        with self._lock:
            if not self._pending:
                return False

            count = min(self.batch_size, len(self._pending))
            batch = [self._pending.popleft() for _ in range(count)]
            # Always a new list: snapshots handed out by ``entries`` stay unchanged
            retained = self._retained + batch
            self._retained = retained[-self.max_logs:]
            return True

    def clear(self) -> None:
        """Drop both pending and retained entries"""
        with self._lock:
            self._pending.clear()
            self._retained = []

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def entries(self) -> List[LogEntry]:
        """Snapshot of the retained entries, oldest first"""
        with self._lock:
            return self._retained
