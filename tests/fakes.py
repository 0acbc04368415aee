"""
In-memory provider recording every call, for unit tests.
"""

from dataclasses import dataclass, field, replace
from itertools import count
from typing import Any, Optional

from rail_transact.epics.errors import PersistenceError, StaleEntityError
from rail_transact.persistence.base import PersistenceProvider
from rail_transact.persistence.changeset import Action, Changeset


@dataclass
class FakeEntity:
    name: str
    id: Optional[int] = None
    associations: dict[str, Any] = field(default_factory=dict)


class RecordingProvider(PersistenceProvider):
    """
    Provider storing entities by name.

    Args:
        in_transaction: Report an already open transaction
        fail_on: Entity names whose writes raise PersistenceError
        stored: Entities present before the test
    """

    def __init__(self, *, in_transaction=False, fail_on=(), stored=()):
        self.calls: list[tuple[str, Any]] = []
        self.outcomes: list[str] = []
        self.upsert_actions: list[Any] = []
        self.fail_on = set(fail_on)
        self.stored = {entity.name: entity for entity in stored}
        self._open = in_transaction
        self._ids = count(1)

    @property
    def writes(self) -> list[tuple[str, Any]]:
        return [call for call in self.calls if call[0] not in {"begin", "commit", "rollback", "mark_rollback"}]

    @property
    def transactions_opened(self) -> int:
        return sum(1 for call in self.calls if call[0] == "begin")

    def in_transaction(self) -> bool:
        return self._open

    def transact(self, fn, ctx):
        self.calls.append(("begin", None))
        snapshot = dict(self.stored)
        self._open = True
        try:
            result = fn(ctx)
        finally:
            self._open = False
        if result.errors:
            self.stored = snapshot
            self.calls.append(("rollback", None))
            self.outcomes.append("rollback")
        else:
            self.calls.append(("commit", None))
            self.outcomes.append("commit")
        return result

    @property
    def rollback_marks(self) -> int:
        return sum(1 for call in self.calls if call[0] == "mark_rollback")

    def mark_rollback(self):
        self.calls.append(("mark_rollback", None))

    def _record(self, operation: str, entity: FakeEntity) -> None:
        self.calls.append((operation, entity.name))
        if entity.name in self.fail_on:
            raise PersistenceError(f"{operation} of {entity.name} failed")

    def insert(self, changeset: Changeset):
        self._record("insert", changeset.target)
        stored = replace(changeset.target, id=next(self._ids))
        self.stored[stored.name] = stored
        return stored

    def update(self, changeset: Changeset):
        self._record("update", changeset.target)
        self.stored[changeset.target.name] = changeset.target
        return changeset.target

    def upsert(self, changeset: Changeset, conflict_policy):
        self.upsert_actions.append(changeset.action)
        self._record("upsert", changeset.target)
        existing = self.stored.get(changeset.target.name)
        stored = replace(changeset.target, id=existing.id if existing else next(self._ids))
        self.stored[stored.name] = stored
        return stored

    def delete(self, target):
        entity = target.target if isinstance(target, Changeset) else target
        self._record("delete", entity)
        if entity.name not in self.stored:
            raise StaleEntityError(f"{entity.name} no longer exists")
        del self.stored[entity.name]
        return entity

    def load_association(self, entity: FakeEntity, name: str):
        if name not in entity.associations:
            raise PersistenceError(f"{entity.name} has no association '{name}'")
        return entity.associations[name]

    def is_entity(self, value: Any) -> bool:
        return isinstance(value, FakeEntity)


def changeset(name: str, action: Optional[Action] = Action.INSERT, **kwargs) -> Changeset:
    """Build a changeset around a FakeEntity."""
    return Changeset(target=FakeEntity(name), action=action, **kwargs)


class NotAProvider:
    def __init__(self, using=None):
        self.using = using
