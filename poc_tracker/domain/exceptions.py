"""
Domain Exceptions for the completion/POC consistency engine.

Custom exceptions enforcing business rules:
- Month-end and Actual/Projected date rules
- Project/phase allow-list membership
- Completion date preconditions for POC writes
- Conflict confirmation before retroactive completion changes
- Transactional failures (concurrency, storage)
"""


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


# =============================================================================
# Validation Exceptions
# =============================================================================

class ValidationError(DomainError):
    """Raised when data validation fails."""

    def __init__(self, field: str, message: str):
        super().__init__(f"Validation failed for '{field}': {message}", code="VALIDATION_ERROR")
        self.field = field


class NotMonthEndError(ValidationError):
    """Raised when a completion date is not the last day of its month."""

    def __init__(self, value):
        super().__init__(
            "completion_date",
            f"{value} is not a month-end date (last day of the month)"
        )
        self.value = value


class CompletionDateRuleError(ValidationError):
    """Raised when an Actual date is in the future or a Projected date is not."""

    def __init__(self, reason: str):
        super().__init__("completion_date", reason)
        self.reason = reason


class POCValueOutOfRangeError(ValidationError):
    """Raised when a POC value falls outside the permitted percentage range."""

    def __init__(self, value, min_value: float = 0, max_value: float = 100):
        super().__init__(
            "value",
            f"POC value {value} must be between {min_value:g} and {max_value:g}"
        )
        self.value = value


# =============================================================================
# Reference Exceptions
# =============================================================================

class ReferenceValidationError(DomainError):
    """Raised when an entry references something outside the allow-list."""

    def __init__(self, message: str):
        super().__init__(message, code="REFERENCE_ERROR")


class ProjectPhaseNotFoundError(ReferenceValidationError):
    """Raised when a (company, project, phase) key is not an allowed key."""

    def __init__(self, company_code: str, project: str, phase_code: str):
        message = (
            f"Project '{project}' with Phasecode '{phase_code}' "
            f"not found for company {company_code}"
        )
        super().__init__(message)
        self.company_code = company_code
        self.project = project
        self.phase_code = phase_code


# =============================================================================
# Precondition Exceptions
# =============================================================================

class PreconditionError(DomainError):
    """Raised when an operation's preconditions are not met."""

    def __init__(self, message: str):
        super().__init__(message, code="PRECONDITION_ERROR")


class MissingCompletionDateError(PreconditionError):
    """Raised when POC is written for a key with no completion date on record."""

    def __init__(self, key_label: str):
        super().__init__(
            f"POC requires a completion date first: no completion date is recorded for {key_label}"
        )
        self.key_label = key_label


class CompletionDateExceededError(PreconditionError):
    """Raised when 100% POC is recorded for a period after the completion date."""

    def __init__(self, key_label: str, year: int, month: int, completion_date):
        super().__init__(
            f"100% POC for {year}-{month:02d} is after the completion date "
            f"{completion_date.isoformat()} of {key_label}"
        )
        self.key_label = key_label
        self.year = year
        self.month = month
        self.completion_date = completion_date


# =============================================================================
# Conflict Exceptions
# =============================================================================

class ConflictError(DomainError):
    """Raised when a completion date commit has conflicts nobody confirmed."""

    def __init__(self, message: str, conflicts: list = None):
        super().__init__(message, code="CONFLICT_ERROR")
        self.conflicts = conflicts or []


class UnconfirmedConflictError(ConflictError):
    """Raised when committing would deactivate POC data that was never confirmed."""

    def __init__(self, key_label: str, conflicts: list = None):
        super().__init__(
            f"Completion date for {key_label} conflicts with existing POC data. "
            f"Check conflicts and confirm them before committing.",
            conflicts,
        )
        self.key_label = key_label


class StaleConflictError(ConflictError):
    """Raised when the live conflicting records differ from the confirmed set."""

    def __init__(self, key_label: str, conflicts: list = None):
        super().__init__(
            f"Conflicting POC data for {key_label} changed since it was confirmed. "
            f"Please re-check conflicts and confirm again.",
            conflicts,
        )
        self.key_label = key_label


# =============================================================================
# Transactional Exceptions
# =============================================================================

class ConcurrencyError(DomainError):
    """Raised when a transaction is aborted by a concurrent conflicting write."""

    def __init__(self, detail: str = ""):
        message = "Concurrent modification detected. Please refresh and try again."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, code="CONCURRENCY_ERROR")
        self.detail = detail


class StorageError(DomainError):
    """Raised when the backing store is unreachable or a transaction fails."""

    def __init__(self, detail: str = ""):
        message = "Database not available. Please try again later."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, code="STORAGE_ERROR")
        self.detail = detail


class RedistributionNotFoundError(DomainError):
    """Raised when a pending redistribution entry cannot be found."""

    def __init__(self, redistribution_id: int):
        super().__init__(
            f"Pending redistribution with id '{redistribution_id}' not found",
            code="REDISTRIBUTION_NOT_FOUND"
        )
        self.redistribution_id = redistribution_id


class ImmutableRecordError(DomainError):
    """Raised when an immutable or terminally deleted row would be changed."""

    def __init__(self, entity_type: str, entity_id, action: str = "modified"):
        super().__init__(
            f"{entity_type} '{entity_id}' cannot be {action}",
            code="IMMUTABLE_RECORD"
        )
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.action = action
