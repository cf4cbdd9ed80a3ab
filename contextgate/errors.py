"""
Shared error types for the context store.
"""

from typing import Optional


class ValidationIssue(ValueError):
    def __init__(
        self,
        message: str,
        field: str = "unknown",
        error_type: str = "invalid",
        error_code: str | None = None,
        data: dict | None = None,
    ):
        super().__init__(message)
        self.field = field
        self.error_type = error_type
        self.error_code = error_code
        self.data = data


class UnrecognizedValue(ValidationIssue):
    """Raised by strict enum parsing; keeps the raw value that failed."""

    def __init__(self, enum_name: str, raw_value: Optional[str], field: str = "unknown"):
        super().__init__(
            f"{raw_value!r} is not a valid {enum_name}",
            field=field,
            error_type="unrecognized_value",
            data={"enum": enum_name, "raw_value": raw_value},
        )
        self.enum_name = enum_name
        self.raw_value = raw_value


class ContextStoreError(RuntimeError):
    """Base class for storage-layer failures."""


class NotFound(ContextStoreError):
    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(f"{entity_type} not found: {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConflictError(ContextStoreError):
    def __init__(self, entity_type: str, entity_id: str, detail: str = "already exists"):
        super().__init__(f"{entity_type} {entity_id} {detail}")
        self.entity_type = entity_type
        self.entity_id = entity_id


class LockAcquisitionFailure(ContextStoreError):
    """The statement lock could not be acquired. Not retried."""


class StatementError(ContextStoreError):
    """A statement failed to prepare, execute, or map."""


class EncodingFailure(ContextStoreError):
    def __init__(self, column: str, raw_value, reason: str = "unparsable value"):
        super().__init__(f"{column}: {reason} ({raw_value!r})")
        self.column = column
        self.raw_value = raw_value
