"""
Export Module - Download the visible logs to a file

Handles:
- Plain text export: "[timestamp] [service] [LEVEL] line"
- CSV export with a header row
- Limiting the download to the most recent entries
"""
import csv
import logging
import time
from enum import Enum
from pathlib import Path
from typing import Sequence, Union

from NLOGS.models import LogEntry

EXPORT_LIMIT = 1000
CSV_COLUMNS = ["timestamp", "service", "level", "source", "line"]

logger = logging.getLogger(__name__)


class ExportFormat(Enum):
    TXT = "txt"
    CSV = "csv"


def format_text_line(entry: LogEntry) -> str:
    return f"[{entry.timestamp.isoformat()}] [{entry.service}] [{entry.level.value.upper()}] {entry.line}"


def export_logs(
    entries: Sequence[LogEntry],
    directory: Union[str, Path],
    fmt: Union[str, ExportFormat] = ExportFormat.TXT,
    limit: int = EXPORT_LIMIT,
) -> Path:
    """
    Write the last ``limit`` entries to ``<directory>/logs-<epoch ms>.<ext>``

    Args:
        entries: Entries in display order
        directory: Target directory, created if missing
        fmt: "txt" or "csv"
        limit: Maximum number of entries written

    Returns:
        Path of the written file

    Raises:
        ValueError: No entries, or an unknown format
        OSError: The file could not be written
    """
    fmt = ExportFormat(fmt)
    if not entries:
        raise ValueError("No log entries to export")

    selected = list(entries)[-limit:]
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"logs-{int(time.time() * 1000)}.{fmt.value}"

    with open(path, "w", encoding="utf-8", newline="") as f:
        if fmt is ExportFormat.CSV:
            writer = csv.writer(f)
            writer.writerow(CSV_COLUMNS)
            for entry in selected:
                writer.writerow([
                    entry.timestamp.isoformat(),
                    entry.service,
                    entry.level.value,
                    entry.source.value if entry.source else "",
                    entry.line,
                ])
        else:
            f.write("\n".join(format_text_line(entry) for entry in selected))
            f.write("\n")

    logger.info(f"Exported {len(selected)} log entries to {path}")
    return path
