"""
EpicContext - Carries state through an epic.

The context is created at the start of an epic and passed through each step.
Each step can read from and modify the context and returns it (or a copy) to
the executor.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional, TYPE_CHECKING

from .errors import EpicError, ErrorKind

if TYPE_CHECKING:
    from ..persistence.base import PersistenceProvider
    from .base import Step


@dataclass
class EpicContext:
    """
    Carries state through an epic.

    Attributes:
        next: Remaining steps, head first
        assigns: Key-value store shared by all steps
        errors: Errors recorded so far (append-only during a run)
        warnings: Diagnostics that do not abort the epic
        pending_mutations: Keys registered for the next flush, in order
        provider: Optional persistence provider override for this run
        debug: Emit per-step debug logs for this run
        name: Epic name used in logs
    """

    next: list["Step"] = field(default_factory=list)
    assigns: dict[Any, Any] = field(default_factory=dict)

    # Error handling
    errors: list[EpicError] = field(default_factory=list)
    warnings: list[EpicError] = field(default_factory=list)

    # Work queue
    pending_mutations: list[Any] = field(default_factory=list)

    provider: Optional["PersistenceProvider"] = None
    debug: bool = False
    name: str = "epic"

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def assign(self, key: Any, value: Any) -> "EpicContext":
        """Bind ``value`` under ``key`` in the assigns store."""
        self.assigns[key] = value
        return self

    def get(self, key: Any, default: Any = None) -> Any:
        return self.assigns.get(key, default)

    def add_error(
        self,
        kind: ErrorKind,
        message: str,
        *,
        step: Optional[str] = None,
        key: Any = None,
        field_name: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> EpicError:
        """
        Record an error. Any recorded error stops later mutations.

        Returns:
            The recorded EpicError
        """
        error = EpicError(
            kind=kind,
            message=message,
            step=step,
            key=key,
            field=field_name,
            details=dict(details or {}),
        )
        self.errors.append(error)
        return error

    def add_warning(
        self,
        kind: ErrorKind,
        message: str,
        *,
        step: Optional[str] = None,
        key: Any = None,
        details: Optional[dict[str, Any]] = None,
    ) -> EpicError:
        """
        Record a diagnostic (non-fatal, does not abort).

        Returns:
            The recorded EpicError
        """
        warning = EpicError(
            kind=kind,
            message=message,
            step=step,
            key=key,
            details=dict(details or {}),
        )
        self.warnings.append(warning)
        return warning

    def copy_with(self, **overrides) -> "EpicContext":
        """
        Create a shallow copy of this context with specified overrides.

        Assigns, errors and the work queue are shared with the original, so
        a nested run sees and extends the same state.
        """
        return replace(self, **overrides)
