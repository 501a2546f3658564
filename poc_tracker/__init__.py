"""
POC Tracker - completion date and percentage-of-completion consistency engine.
"""

__version__ = "1.0.0"
