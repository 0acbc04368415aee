"""
Changeset - a value describing an intended write.

Steps build changesets and place them in the epic's assigns; the Work step
applies them later, inside the epic's transaction. A changeset never writes
anything by itself.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from django.core.exceptions import ValidationError


class Action(str, Enum):
    """Write operations the Work step knows how to apply."""

    INSERT = "insert"
    UPDATE = "update"
    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class ConflictPolicy:
    """
    How an upsert resolves a unique-constraint conflict.

    Attributes:
        unique_fields: Fields identifying the conflicting row
        update_fields: Fields overwritten on conflict (None = all changed
            fields of the changeset)
        ignore: Keep the existing row untouched on conflict
    """

    unique_fields: Sequence[str]
    update_fields: Optional[Sequence[str]] = None
    ignore: bool = False

    def __post_init__(self):
        if not self.unique_fields:
            raise ValueError("ConflictPolicy requires at least one unique field")


@dataclass
class Changeset:
    """
    Mutation descriptor.

    Attributes:
        target: Model instance the write applies to (changes already set)
        action: Operation to apply, None when not yet decided
        changes: Field values applied to the target by ``cast``
        errors: Validation errors keyed by field name
        conflict_policy: Conflict handling for upserts
    """

    target: Any
    action: Optional[Action] = None
    changes: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, list[str]] = field(default_factory=dict)
    conflict_policy: Optional[ConflictPolicy] = None

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def changed_fields(self) -> list[str]:
        return list(self.changes)

    def add_error(self, field_name: str, message: str) -> "Changeset":
        self.errors.setdefault(field_name, []).append(str(message))
        return self

    @classmethod
    def cast(
        cls,
        target: Any,
        changes: Optional[dict[str, Any]] = None,
        *,
        action: Optional[Action] = None,
        validate: bool = True,
        exclude: Optional[Iterable[str]] = None,
        conflict_policy: Optional[ConflictPolicy] = None,
    ) -> "Changeset":
        """
        Apply ``changes`` to ``target`` and collect model validation errors.

        Args:
            target: Model instance
            changes: Field values to set on the instance
            action: Operation the Work step should apply
            validate: Run the model's ``full_clean``
            exclude: Fields skipped by ``full_clean``
            conflict_policy: Conflict handling for upserts

        Returns:
            A changeset, invalid when ``full_clean`` rejected the values
        """
        changes = dict(changes or {})
        for name, value in changes.items():
            setattr(target, name, value)

        changeset = cls(
            target=target,
            action=Action(action) if action is not None else None,
            changes=changes,
            conflict_policy=conflict_policy,
        )
        if validate:
            changeset._collect_validation_errors(exclude)
        return changeset

    def _collect_validation_errors(self, exclude: Optional[Iterable[str]]) -> None:
        exclude_list = list(exclude or [])
        if self.action == Action.UPSERT and self.conflict_policy is not None:
            # Uniqueness is resolved by the conflict policy, not rejected.
            try:
                self.target.full_clean(
                    exclude=exclude_list,
                    validate_unique=False,
                    validate_constraints=False,
                )
            except ValidationError as exc:
                self._merge_validation_error(exc)
            return
        try:
            self.target.full_clean(exclude=exclude_list)
        except ValidationError as exc:
            self._merge_validation_error(exc)

    def _merge_validation_error(self, exc: ValidationError) -> None:
        if hasattr(exc, "error_dict"):
            for field_name, messages in exc.message_dict.items():
                for message in messages:
                    self.add_error(field_name, message)
            return
        for message in exc.messages:
            self.add_error("__all__", message)

    @classmethod
    def for_insert(cls, target: Any, changes: Optional[dict[str, Any]] = None, **kwargs) -> "Changeset":
        return cls.cast(target, changes, action=Action.INSERT, **kwargs)

    @classmethod
    def for_update(cls, target: Any, changes: Optional[dict[str, Any]] = None, **kwargs) -> "Changeset":
        return cls.cast(target, changes, action=Action.UPDATE, **kwargs)

    @classmethod
    def for_upsert(
        cls,
        target: Any,
        changes: Optional[dict[str, Any]] = None,
        *,
        conflict_policy: ConflictPolicy,
        **kwargs,
    ) -> "Changeset":
        return cls.cast(
            target,
            changes,
            action=Action.UPSERT,
            conflict_policy=conflict_policy,
            **kwargs,
        )

    @classmethod
    def for_delete(cls, target: Any) -> "Changeset":
        """Mark a loaded instance for deletion (no validation)."""
        return cls(target=target, action=Action.DELETE)
