"""
Log Sources Package - Where log entries come from

- api_client: HTTP polling client for the nself dashboard API (LogApiClient)
"""
from .api_client import ConnectionStatus, LogApiClient, LogSourceError, parse_output, parse_record

__all__ = [
    'ConnectionStatus',
    'LogApiClient',
    'LogSourceError',
    'parse_output',
    'parse_record',
]
