"""
Error records and exceptions for epic execution.

Errors raised inside an epic never cross step boundaries as exceptions,
with one exception: a Commit step reached without a Begin. Everything else
is recorded on the context as an ``EpicError`` and observed by later steps.
"""

from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Categories of errors and diagnostics recorded on an epic context."""

    CONFIGURATION = "configuration"
    INVALID_KEY = "invalid_key"
    VALIDATION = "validation"
    PERSISTENCE = "persistence"
    # Diagnostics (recorded as warnings, never abort the epic)
    DATA_SHAPE = "data_shape"
    UNKNOWN_ACTION = "unknown_action"
    MISSING_KEY = "missing_key"
    NOT_AN_ENTITY = "not_an_entity"


@dataclass
class EpicError:
    """
    A single error or diagnostic recorded during an epic.

    Attributes:
        kind: Error category
        message: Human readable description
        step: Name of the step that recorded it
        key: Assigns key the error relates to, if any
        field: Field name for single-field errors
        details: Structured payload (per-field messages for validation errors)
    """

    kind: ErrorKind
    message: str
    step: Optional[str] = None
    key: Any = None
    field: Optional[str] = None
    details: dict[str, Any] = dataclass_field(default_factory=dict)

    def __str__(self) -> str:
        location = f" at key {self.key!r}" if self.key is not None else ""
        origin = f"[{self.step}] " if self.step else ""
        return f"{origin}{self.kind.value}{location}: {self.message}"


class EpicException(Exception):
    """Base class for exceptions raised by rail-transact."""


class CommitWithoutBeginError(EpicException, RuntimeError):
    """
    Raised when the executor reaches a Commit step directly.

    Begin always consumes the Commit sentinel while splitting the remaining
    steps, so reaching one means the step sequence is malformed.
    """


class PersistenceError(EpicException):
    """
    A persistence primitive failed.

    Attributes:
        original: The underlying exception, when there is one
    """

    def __init__(self, message: str, original: Optional[BaseException] = None):
        super().__init__(message)
        self.original = original


class StaleEntityError(PersistenceError):
    """The entity to delete no longer exists in storage."""
