"""
Ingestion Module for the POC tracker.
Loads POC, completion date and sales recognition CSV uploads into typed entries.

Columns are positional; the first row is a header and is skipped. Row numbers
in errors are file line numbers (the header is line 1).

POC templates:
    short: project, phase, year, month, value
    long:  project, phase, year, Jan, Feb, ..., Dec
"""
import calendar
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import IO, List, Optional, Union

import pandas as pd

from poc_tracker.config import get_config
from poc_tracker.models import RecordType
from poc_tracker.domain.entities import (
    CompletionEntry,
    POCEntry,
    ProjectPhaseKey,
    RowError,
    SalesRecognitionEntry,
)
from poc_tracker.domain.services.period_classifier import is_month_end, month_end

TEMPLATES = ("short", "long")

_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")

Source = Union[str, Path, IO]


class DateFormatError(ValueError):
    """Raised when a date cell cannot be parsed into a calendar date."""


@dataclass
class LoadResult:
    """Entries parsed from an upload plus the rows that were rejected."""
    entries: list = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    row_count: int = 0

    def reject(self, row_number: int, message: str) -> None:
        self.errors.append(RowError(row_number, "VALIDATION_ERROR", message))


def parse_date(text: Union[str, date, datetime, None]) -> date:
    """
    Parse an upload date cell.

    Handles:
        "03/31/2025" → date(2025, 3, 31)
        "2025-03-31" → date(2025, 3, 31)
        datetime/date values → date

    Raises:
        DateFormatError: Empty cell, unknown format or impossible date
    """
    if isinstance(text, datetime):
        return text.date()
    if isinstance(text, date):
        return text
    s = "" if text is None else str(text).strip()
    if not s:
        raise DateFormatError("Date cannot be empty.")

    match = _US_DATE.match(s)
    if match:
        month, day, year = (int(g) for g in match.groups())
    else:
        match = _ISO_DATE.match(s)
        if not match:
            raise DateFormatError(
                f"Invalid date format '{s}'. Expected MM/DD/YYYY or YYYY-MM-DD."
            )
        year, month, day = (int(g) for g in match.groups())

    if not 1 <= month <= 12:
        raise DateFormatError(f"Invalid month ({month}). Must be 1-12.")
    try:
        return date(year, month, day)
    except ValueError:
        raise DateFormatError(f"Invalid date: {s}. Please check the date is valid.")


def parse_month_end(text: Union[str, date, None]) -> date:
    """parse_date() that also requires the last day of the month."""
    value = parse_date(text)
    if not is_month_end(value):
        expected = month_end(value.year, value.month)
        raise DateFormatError(
            f"Date {value.isoformat()} is not a month-end date. Expected last day of "
            f"{calendar.month_name[value.month]} {value.year} which is {expected.isoformat()}."
        )
    return value


def _read_csv(source: Source) -> pd.DataFrame:
    """
    Read every cell as text; blank cells become empty strings.

    Blank lines are dropped after parsing so the index still counts them:
    index + 2 is the line number in the file.
    """
    df = pd.read_csv(source, header=0, dtype=str, keep_default_na=False, skip_blank_lines=False)
    df = df.fillna("").apply(lambda col: col.str.strip())
    return df[(df != "").any(axis=1)]


def _cell(row: list, index: int) -> str:
    return row[index] if index < len(row) else ""


def _parse_int(text: str) -> Optional[int]:
    try:
        value = float(text)
    except (TypeError, ValueError):
        return None
    if not value.is_integer():
        return None
    return int(value)


def _parse_value(text: str) -> Optional[float]:
    try:
        return float(text.replace("%", "").strip())
    except (AttributeError, ValueError):
        return None


def load_poc_csv(
    source: Source,
    company_code: str,
    template: str = "short",
) -> LoadResult:
    """
    Parse a POC upload into POCEntry rows.

    Args:
        source: CSV path or file-like object
        company_code: Company the upload belongs to
        template: 'short' (one period per row) or 'long' (twelve month columns)

    Returns:
        LoadResult with one entry per non-blank POC cell
    """
    if template not in TEMPLATES:
        raise ValueError(f"Unknown template '{template}'. Expected one of {TEMPLATES}.")

    min_year = get_config().min_year
    df = _read_csv(source)
    result = LoadResult(row_count=len(df))

    for index, row in zip(df.index, df.values.tolist()):
        line = int(index) + 2
        project = _cell(row, 0)
        key = ProjectPhaseKey(company_code, project, _cell(row, 1))
        year = _parse_int(_cell(row, 2))

        if not project:
            result.reject(line, f"Row {line}: Project cannot be empty.")
            continue
        if year is None or year < min_year:
            result.reject(line, f"Row {line}: Invalid or missing Year (must be {min_year} or later).")
            continue

        if template == "short":
            month = _parse_int(_cell(row, 3))
            if month is None or not 1 <= month <= 12:
                result.reject(line, f"Row {line}: Invalid or missing Month (must be 1-12).")
                continue
            raw = _cell(row, 4)
            if raw == "":
                result.reject(line, f"Row {line}: No POC value found for month {month}.")
                continue
            value = _parse_value(raw)
            if value is None:
                result.reject(line, f"Row {line}: POC value '{raw}' is not a number.")
                continue
            result.entries.append(POCEntry(key, year, month, value, row_number=line))
            continue

        found = False
        for month in range(1, 13):
            raw = _cell(row, month + 2)
            if raw == "":
                continue
            found = True
            value = _parse_value(raw)
            if value is None:
                result.reject(line, f"Row {line}: POC value '{raw}' for month {month} is not a number.")
                continue
            result.entries.append(POCEntry(key, year, month, value, row_number=line))
        if not found:
            result.reject(line, f"Row {line}: No POC data found in any month column for long template.")

    return result


def load_completion_csv(
    source: Source,
    company_code: str,
    completion_type: Union[RecordType, str, None] = None,
) -> LoadResult:
    """
    Parse a completion date upload into CompletionEntry rows.

    Columns: project, phase, completion date (MM/DD/YYYY or YYYY-MM-DD,
    month-end). Every row of one upload carries the same type.
    """
    completion_type = RecordType(completion_type or get_config().default_completion_type)
    df = _read_csv(source)
    result = LoadResult(row_count=len(df))

    for index, row in zip(df.index, df.values.tolist()):
        line = int(index) + 2
        project = _cell(row, 0)
        if not project:
            result.reject(line, f"Row {line}: Project cannot be empty.")
            continue
        try:
            completion_date = parse_month_end(_cell(row, 2))
        except DateFormatError as e:
            result.reject(line, f"Row {line}: {e}")
            continue
        key = ProjectPhaseKey(company_code, project, _cell(row, 1))
        result.entries.append(CompletionEntry(key, completion_type, completion_date, row_number=line))

    return result


def load_sales_recognition_csv(source: Source) -> LoadResult:
    """Parse a sales recognition upload: account number, recognition date."""
    df = _read_csv(source)
    result = LoadResult(row_count=len(df))

    for index, row in zip(df.index, df.values.tolist()):
        line = int(index) + 2
        account_no = _cell(row, 0)
        if not account_no:
            result.reject(line, f"Row {line}: Account number cannot be empty.")
            continue
        try:
            recognition_date = parse_date(_cell(row, 1))
        except DateFormatError as e:
            result.reject(line, f"Row {line}: {e}")
            continue
        result.entries.append(SalesRecognitionEntry(account_no, recognition_date, row_number=line))

    return result
