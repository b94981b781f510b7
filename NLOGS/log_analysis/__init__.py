"""
Log Analysis Package - Summaries and exports of retained log entries

- insights: error/warning counts and repeated error patterns
- export: text and CSV downloads
"""
from .export import EXPORT_LIMIT, ExportFormat, export_logs
from .insights import LogInsights, compute_insights

__all__ = [
    'EXPORT_LIMIT',
    'ExportFormat',
    'LogInsights',
    'compute_insights',
    'export_logs',
]
