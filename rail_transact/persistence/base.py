"""
Persistence provider interface.

The provider is the storage-access collaborator used by the transactional
steps. The core only needs the primitives below; everything about queries,
connections and schema stays behind them.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from django.utils.module_loading import import_string

from ..conf import get_setting
from ..epics.context import EpicContext
from .changeset import Changeset, ConflictPolicy


class PersistenceProvider(ABC):
    """
    Storage primitives consumed by Begin, Work and Delete.

    Write primitives return the refreshed entity (or None when there is
    nothing to rebind) and raise ``PersistenceError`` on failure.
    """

    @abstractmethod
    def in_transaction(self) -> bool:
        """Return True when a transaction is already open."""

    @abstractmethod
    def transact(
        self,
        fn: Callable[[EpicContext], EpicContext],
        ctx: EpicContext,
    ) -> EpicContext:
        """
        Run ``fn(ctx)`` in a new transaction.

        Commits when the returned context has no errors, rolls back
        otherwise. The returned context keeps its errors either way.
        """

    @abstractmethod
    def mark_rollback(self) -> None:
        """
        Doom the transaction that is already open.

        Called when a span running inside someone else's transaction ends
        with errors; the outer scope must not commit its writes.
        """

    @abstractmethod
    def insert(self, changeset: Changeset) -> Any:
        pass

    @abstractmethod
    def update(self, changeset: Changeset) -> Any:
        pass

    @abstractmethod
    def upsert(self, changeset: Changeset, conflict_policy: Optional[ConflictPolicy]) -> Any:
        pass

    @abstractmethod
    def delete(self, target: Any) -> Any:
        """
        Delete a changeset's target or a raw entity.

        Raises:
            StaleEntityError: The entity no longer exists
            PersistenceError: Any other failure
        """

    @abstractmethod
    def load_association(self, entity: Any, name: str) -> Any:
        """Return the associated entity, a list of entities, or None."""

    @abstractmethod
    def is_entity(self, value: Any) -> bool:
        """Return True for a loaded, persisted entity."""


def get_provider(path: Optional[str] = None) -> PersistenceProvider:
    """
    Instantiate the configured provider.

    Args:
        path: Dotted path overriding the ``provider`` setting

    Returns:
        A provider bound to the ``database_alias`` setting
    """
    provider_path = path or get_setting("provider")
    provider_class = import_string(provider_path)
    provider = provider_class(using=get_setting("database_alias"))
    if not isinstance(provider, PersistenceProvider):
        raise TypeError(f"{provider_path} is not a PersistenceProvider")
    return provider
