"""
Infrastructure Layer - storage port, repositories and audit sink.
"""

from .storage import StoragePort, translate_error
from .audit import AuditLog, AuditEvent

__all__ = [
    'StoragePort',
    'translate_error',
    'AuditLog',
    'AuditEvent',
]
