"""
Log Models Module - Log record types shared by the log viewer

Handles:
- Log level classification and styling (colour, background, icon)
- Output stream tagging (stdout/stderr)
- Validated, immutable log entries
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)


class LogLevel(Enum):
    """Log severity levels"""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    DEBUG = "debug"

    @property
    def color(self) -> str:
        """Foreground colour for this level's badge"""
        colors = {
            LogLevel.INFO: "blue",
            LogLevel.WARN: "yellow",
            LogLevel.ERROR: "red",
            LogLevel.DEBUG: "grey62",
        }
        return colors[self]

    @property
    def background(self) -> str:
        """Background colour for this level's badge"""
        backgrounds = {
            LogLevel.INFO: "grey11",
            LogLevel.WARN: "grey15",
            LogLevel.ERROR: "grey19",
            LogLevel.DEBUG: "grey7",
        }
        return backgrounds[self]

    @property
    def icon(self) -> str:
        icons = {
            LogLevel.INFO: "ℹ",
            LogLevel.WARN: "⚠",
            LogLevel.ERROR: "✖",
            LogLevel.DEBUG: "•",
        }
        return icons[self]

    @property
    def style(self) -> str:
        """Rich style string combining colour and background"""
        return f"{self.color} on {self.background}"

    @classmethod
    def parse(cls, value: Any) -> "LogLevel":
        """
        Parse a level from upstream data, falling back to INFO

        Args:
            value: Level name, LogLevel, or None

        Returns:
            Matching LogLevel, or LogLevel.INFO when unset or unrecognized
        """
        if isinstance(value, LogLevel):
            return value
        if value is None or value == "":
            return cls.INFO

        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning("Unrecognized log level %r, using info", value)
            return cls.INFO


class LogSource(Enum):
    """Output stream a log line was written to"""
    STDOUT = "stdout"
    STDERR = "stderr"


class LogEntry(BaseModel):
    """One record of service output"""

    model_config = ConfigDict(frozen=True)

    id: str
    service: str
    line: str = ""
    timestamp: datetime
    level: LogLevel = LogLevel.INFO
    source: Optional[LogSource] = None

    @field_validator("level", mode="before")
    @classmethod
    def _coerce_level(cls, value: Any) -> LogLevel:
        return LogLevel.parse(value)

    @field_validator("source", mode="before")
    @classmethod
    def _coerce_source(cls, value: Any) -> Optional[LogSource]:
        if value is None or value == "":
            return None
        if isinstance(value, LogSource):
            return value
        try:
            return LogSource(str(value).lower())
        except ValueError:
            return None

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are taken as UTC so comparisons never mix kinds
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def __str__(self) -> str:
        return self.line

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for export"""
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'service': self.service,
            'level': self.level.value,
            'source': self.source.value if self.source else None,
            'line': self.line,
        }
