"""
NLOGS UI Views Package
"""

from .logs import LogsView

__all__ = [
    'LogsView'
]
