"""
Log API Client Module - Polling client for the nself logs API

Handles:
- Service discovery (/api/project/services-detail)
- Log polling (/api/system/logs) with a moving "since" cursor
- Retries with exponential backoff and Retry-After handling
- Validation of upstream records into LogEntry objects
- Connection status tracking for the UI
"""
import logging
import threading
import time
from collections import deque
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, Set
from uuid import uuid4

import requests
from pydantic import ValidationError

from NLOGS.models import LogEntry

MAX_BACKOFF = 30.0
CLI_SERVICE = "nself"


class LogSourceError(Exception):
    """The log API could not be reached or reported a failure"""


class ConnectionStatus(Enum):
    CONNECTED = "connected"
    CONNECTING = "connecting"
    DISCONNECTED = "disconnected"

    @property
    def label(self) -> str:
        labels = {
            ConnectionStatus.CONNECTED: "Connected",
            ConnectionStatus.CONNECTING: "Connecting...",
            ConnectionStatus.DISCONNECTED: "Disconnected",
        }
        return labels[self]

    @property
    def color(self) -> str:
        colors = {
            ConnectionStatus.CONNECTED: "green",
            ConnectionStatus.CONNECTING: "yellow",
            ConnectionStatus.DISCONNECTED: "red",
        }
        return colors[self]


def parse_record(record: Dict[str, Any], default_service: Optional[str] = None) -> Optional[LogEntry]:
    """
    Validate one upstream record

    Missing ids are generated and a missing timestamp becomes the receipt
    time. Records without a service (and no default) or with an unparseable
    timestamp are dropped.

    Args:
        record: Raw record from the API
        default_service: Service to assume when the record names none

    Returns:
        LogEntry, or None if the record is unusable
    """
    logger = logging.getLogger(__name__)
    data = dict(record)
    if "line" not in data and "message" in data:
        data["line"] = data.pop("message")
    if not data.get("service"):
        if not default_service:
            logger.warning(f"Dropping log record without a service: {record!r}")
            return None
        data["service"] = default_service
    if not data.get("timestamp"):
        data["timestamp"] = datetime.now(timezone.utc)
    if not data.get("id"):
        data["id"] = f"{data['service']}-{uuid4().hex}"

    try:
        return LogEntry.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Dropping malformed log record {record!r}: {e.error_count()} error(s)")
        return None


def parse_output(output: str, service: str) -> List[LogEntry]:
    """Turn a CLI text dump into one entry per non-empty line"""
    received = datetime.now(timezone.utc)
    return [
        LogEntry(id=f"{service}-{uuid4().hex}", service=service, line=line, timestamp=received)
        for line in output.splitlines()
        if line.strip()
    ]


class LogApiClient:
    """HTTP client for the nself dashboard API"""

    SERVICES_PATH = "/api/project/services-detail"
    LOGS_PATH = "/api/system/logs"

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
        dedupe_window: int = 10000,
    ):
        """
        Initialize the client

        Args:
            base_url: Root URL of the dashboard API
            session: requests session to use (one is created if omitted)
            timeout: Per-request timeout in seconds
            max_retries: Attempts per request before giving up
            backoff: Base delay; attempt n waits backoff * 2**n seconds
            sleep: Sleep function, replaceable in tests
            dedupe_window: Number of recent entry ids remembered to skip repeats
        """
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff = backoff
        self.sleep = sleep
        self.status = ConnectionStatus.CONNECTING
        self.logger = logging.getLogger(__name__)

        self.cursor: Optional[datetime] = None
        self._seen_order: Deque[str] = deque()
        self._seen: Set[str] = set()
        self.dedupe_window = dedupe_window
        # Guards cursor and seen ids; polls may finish on different worker threads
        self._lock = threading.Lock()
        self._generation = 0

    def _delay(self, attempt: int) -> float:
        return min(self.backoff * (2 ** attempt), MAX_BACKOFF)

    def _retry_after(self, response: requests.Response, attempt: int) -> float:
        """Seconds to wait after a 429; Retry-After may be seconds or an HTTP date"""
        value = response.headers.get("Retry-After")
        if value is None:
            return self._delay(attempt)
        try:
            return max(0.0, float(value))
        except ValueError:
            pass
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            self.logger.warning(f"Ignoring malformed Retry-After header: {value!r}")
            return self._delay(attempt)
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())

    def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Centralized request method with error handling and retries."""
        url = f"{self.base_url}{path}"
        last_error = "Max retries exceeded"

        for attempt in range(self.max_retries):
            final = attempt == self.max_retries - 1
            try:
                response = self.session.get(url, params=params, timeout=self.timeout)

                if response.status_code == 429:
                    retry_after = self._retry_after(response, attempt)
                    self.logger.warning(f"Log API rate limit hit. Retry after {retry_after} seconds.")
                    last_error = "Rate limited by log API"
                    if not final:
                        self.status = ConnectionStatus.CONNECTING
                        self.sleep(min(retry_after, MAX_BACKOFF))
                        continue
                    break

                response.raise_for_status()
                data = response.json()

            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                self.logger.error(f"Log API unreachable ({url}): {e}")
                last_error = f"Connection error: {e}"
                if not final:
                    self.status = ConnectionStatus.CONNECTING
                    self.sleep(self._delay(attempt))
                    continue
                break

            except requests.RequestException as e:
                self.status = ConnectionStatus.DISCONNECTED
                raise LogSourceError(f"Error during request: {e}") from e

            except ValueError as e:
                self.status = ConnectionStatus.DISCONNECTED
                raise LogSourceError(f"Log API returned invalid JSON: {e}") from e

            if not isinstance(data, dict):
                self.status = ConnectionStatus.DISCONNECTED
                raise LogSourceError("Log API returned an unexpected payload")
            if data.get("success") is False:
                self.status = ConnectionStatus.DISCONNECTED
                raise LogSourceError(data.get("error") or "Log API reported a failure")

            self.status = ConnectionStatus.CONNECTED
            return data

        self.status = ConnectionStatus.DISCONNECTED
        raise LogSourceError(last_error)

    def fetch_services(self) -> List[str]:
        """
        List the project's services

        Returns:
            Service names in API order
        """
        data = self._get(self.SERVICES_PATH)
        names = []
        for service in data.get("services") or []:
            name = service.get("name") if isinstance(service, dict) else service
            if name:
                names.append(str(name))
        return names

    def fetch_logs(self, services: Sequence[str] = (), since: Optional[datetime] = None) -> List[LogEntry]:
        """
        Fetch log records

        Accepts either ``{"success": true, "logs": [...]}`` or the CLI wrapper
        shape ``{"success": true, "data": {"output": "..."}}``.

        Args:
            services: Services to include (empty for all)
            since: Only records after this time

        Returns:
            Validated entries in API order
        """
        params = {}
        if services:
            params["services"] = ",".join(services)
        if since is not None:
            params["since"] = since.isoformat()

        data = self._get(self.LOGS_PATH, params=params)
        # A single requested service is implied for records that omit it
        default_service = services[0] if len(services) == 1 else None

        if isinstance(data.get("logs"), list):
            entries = [parse_record(record, default_service) for record in data["logs"] if isinstance(record, dict)]
            return [entry for entry in entries if entry is not None]

        output = (data.get("data") or {}).get("output")
        if isinstance(output, str):
            return parse_output(output, default_service or CLI_SERVICE)
        return []

    def poll(self, services: Sequence[str] = ()) -> List[LogEntry]:
        """
        Fetch entries newer than the last poll, skipping ids already seen

        Polls may run concurrently; results of a poll that started before
        ``reset`` are discarded so they cannot undo it.

        Returns:
            New entries in arrival order
        """
        with self._lock:
            generation = self._generation
            since = self.cursor

        entries = self.fetch_logs(services, since=since)

        with self._lock:
            if generation != self._generation:
                self.logger.debug(f"Discarding {len(entries)} entries fetched before reset")
                return []
            fresh = []
            for entry in entries:
                if entry.id in self._seen:
                    continue
                self._remember(entry.id)
                fresh.append(entry)
                if self.cursor is None or entry.timestamp > self.cursor:
                    self.cursor = entry.timestamp
            return fresh

    def _remember(self, entry_id: str) -> None:
        self._seen.add(entry_id)
        self._seen_order.append(entry_id)
        while len(self._seen_order) > self.dedupe_window:
            self._seen.discard(self._seen_order.popleft())

    def reset(self) -> None:
        """Forget the cursor and seen ids (used by Refresh)"""
        with self._lock:
            self._generation += 1
            self.cursor = None
            self._seen.clear()
            self._seen_order.clear()
