"""
NLOGS - Terminal log stream viewer for nself projects
"""
__version__ = "0.1.0"
