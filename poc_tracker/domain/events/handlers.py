"""
Domain Event Handlers for the POC tables.

SQLAlchemy event listeners enforcing, at the ORM level:
- Completion date rows are immutable once written (changes are new rows)
- POC and completion date rows are never physically removed
- A deactivated POC row is terminal: it cannot be reactivated or edited
"""
from sqlalchemy import event, inspect

from poc_tracker.models import CompletionDateRecord, POCRecord
from poc_tracker.domain.exceptions import ImmutableRecordError


# =============================================================================
# Completion Date Ledger - append only
# =============================================================================

@event.listens_for(CompletionDateRecord, 'before_update')
def completion_date_before_update(mapper, connection, target):
    """A completion date change is always a new row, never an update."""
    raise ImmutableRecordError("Completion date record", target.id, "updated")


@event.listens_for(CompletionDateRecord, 'before_delete')
def completion_date_before_delete(mapper, connection, target):
    raise ImmutableRecordError("Completion date record", target.id, "deleted")


# =============================================================================
# POC Records - soft delete only
# =============================================================================

@event.listens_for(POCRecord, 'before_delete')
def poc_before_delete(mapper, connection, target):
    """POC rows are deactivated, never removed."""
    raise ImmutableRecordError("POC record", target.id, "deleted")


@event.listens_for(POCRecord, 'before_update')
def poc_before_update(mapper, connection, target):
    """
    Keep deactivation terminal.

    Allowed: edits to an active row, and the single Active -> Deleted
    transition. Rejected: Deleted -> Active, and any edit to a deleted row.
    """
    history = inspect(target).attrs.active.history

    if history.has_changes():
        old_value = history.deleted[0] if history.deleted else None
        if old_value is not None and not old_value and target.active:
            raise ImmutableRecordError("POC record", target.id, "reactivated")
    elif not target.active:
        raise ImmutableRecordError("POC record", target.id, "modified after deletion")
