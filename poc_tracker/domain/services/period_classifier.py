"""
Period Classifier - Actual/Projected classification and completion date rules.

Pure functions, no storage access:
- classify(): Actual iff the period is on or before the cutoff month
- is_month_end(): last calendar day check (next day is the 1st)
- validate_completion_date(): Actual must not be in the future, Projected must be
"""
from datetime import date, timedelta
from typing import Optional, Union

from poc_tracker.models import RecordType
from poc_tracker.domain.entities import ValidationResult


def period_of(value: date) -> tuple:
    """(year, month) of a date, for lexicographic period comparison."""
    return (value.year, value.month)


def classify(year: int, month: int, cutoff_date: date) -> RecordType:
    """
    Classify a POC period against the reporting cutoff.

    Args:
        year: Period year
        month: Period month (1-12)
        cutoff_date: Reporting boundary date

    Returns:
        RecordType.ACTUAL if (year, month) <= (cutoff year, cutoff month),
        RecordType.PROJECTED otherwise
    """
    if (year, month) <= period_of(cutoff_date):
        return RecordType.ACTUAL
    return RecordType.PROJECTED


def is_month_end(value: date) -> bool:
    """True iff the day after `value` is the first of a month."""
    return (value + timedelta(days=1)).day == 1


def month_end(year: int, month: int) -> date:
    """Last calendar day of the given month."""
    if month == 12:
        return date(year, 12, 31)
    return date(year, month + 1, 1) - timedelta(days=1)


def previous_month_end(today: Optional[date] = None) -> date:
    """Last day of the month before `today` (the default reporting cutoff)."""
    today = today or date.today()
    return today.replace(day=1) - timedelta(days=1)


def validate_completion_date(
    completion_date: date,
    completion_type: Union[RecordType, str],
    today: Optional[date] = None,
) -> ValidationResult:
    """
    Check the temporal rule for a completion date.

    Actual dates must already have happened (date <= today);
    Projected dates must still be in the future (date > today).

    Returns:
        ValidationResult with a human readable reason when invalid
    """
    today = today or date.today()
    completion_type = RecordType(completion_type)

    if completion_type is RecordType.ACTUAL and completion_date > today:
        return ValidationResult(
            False,
            f"Actual completion date {completion_date.isoformat()} cannot be in the future "
            f"(today is {today.isoformat()})"
        )
    if completion_type is RecordType.PROJECTED and completion_date <= today:
        return ValidationResult(
            False,
            f"Projected completion date {completion_date.isoformat()} must be after "
            f"today ({today.isoformat()})"
        )
    return ValidationResult(True)
