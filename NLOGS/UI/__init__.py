"""
NLOGS UI Package
"""
from .app import NLOGSApp, run_app

__all__ = [
    'NLOGSApp',
    'run_app',
]
