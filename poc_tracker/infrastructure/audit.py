"""
Audit Log - structured events for the external log sink.

Services append AuditEvent objects while they work; the engine hands them
to AuditLog.emit_all() only after the owning transaction has committed, so
rolled-back work never shows up in the audit trail.
"""
import json
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, Iterable, List, Optional

from poc_tracker.models import utcnow

POC_RECORD_DEACTIVATED = "poc_record_deactivated"
REDISTRIBUTION_CREATED = "redistribution_created"
POC_UPSERTED = "poc_upserted"
COMPLETION_DATE_APPENDED = "completion_date_appended"
REDISTRIBUTION_RESOLVED = "redistribution_resolved"


@dataclass
class AuditEvent:
    """One structured audit event."""
    event_type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            'event': self.event_type,
            'timestamp': self.timestamp.isoformat(),
            **self.payload,
        }


class AuditLog:
    """
    Writes audit events as JSON lines to a dedicated logger.

    A bounded history of recent events is kept in memory for inspection.
    Storage, rotation and shipping of the log output belong to whatever
    handler is attached to the logger.
    """

    def __init__(self, logger_name: str = "poc_tracker.audit", keep_events: int = 1000):
        self._logger = logging.getLogger(logger_name)
        self._history: Deque[AuditEvent] = deque(maxlen=keep_events)

    def emit(self, event: AuditEvent) -> None:
        self._history.append(event)
        self._logger.info(json.dumps(event.to_dict(), default=str, sort_keys=True))

    def emit_all(self, events: Iterable[AuditEvent]) -> None:
        for event in events:
            self.emit(event)

    def recent(self, event_type: Optional[str] = None, limit: int = 100) -> List[AuditEvent]:
        """Most recent events first, optionally filtered by type."""
        events = [e for e in reversed(self._history) if event_type is None or e.event_type == event_type]
        return events[:limit]

    def clear(self) -> None:
        self._history.clear()
