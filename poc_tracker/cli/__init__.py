"""
CLI Module - Command-line interface for the POC tracker.

Provides management commands for:
- Completion date uploads with conflict confirmation
- POC and sales recognition uploads
- Reports and redistribution administration
"""

from .commands import cli

__all__ = ['cli']
