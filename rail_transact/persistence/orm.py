"""
Django ORM persistence provider.

Maps the provider primitives onto Django models: ``transaction.atomic`` for
transaction scopes, ``Model.save`` / ``Model.delete`` for writes and
``bulk_create`` conflict handling for upserts.
"""

import logging
from typing import Any, Callable, Optional

from django.core.exceptions import (
    FieldDoesNotExist,
    ObjectDoesNotExist,
    ValidationError,
)
from django.db import DatabaseError, models, router, transaction

from ..epics.context import EpicContext
from ..epics.errors import PersistenceError, StaleEntityError
from .base import PersistenceProvider
from .changeset import Changeset, ConflictPolicy

logger = logging.getLogger(__name__)

# Failures a write primitive turns into PersistenceError.
WRITE_ERRORS = (DatabaseError, ValidationError, ValueError, ObjectDoesNotExist)


def _label(instance: Any) -> str:
    meta = getattr(instance, "_meta", None)
    if meta is None:
        return type(instance).__name__
    return f"{meta.label}(pk={instance.pk!r})"


class DjangoPersistenceProvider(PersistenceProvider):
    """
    Persistence provider backed by the Django ORM.

    Args:
        using: Database alias; None lets Django's router decide per model
    """

    def __init__(self, using: Optional[str] = None):
        self.using = using

    def _db_for_write(self, instance: models.Model) -> str:
        return self.using or router.db_for_write(type(instance), instance=instance)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def in_transaction(self) -> bool:
        return transaction.get_connection(self.using).in_atomic_block

    def transact(
        self,
        fn: Callable[[EpicContext], EpicContext],
        ctx: EpicContext,
    ) -> EpicContext:
        with transaction.atomic(using=self.using):
            result = fn(ctx)
            if result.errors:
                transaction.set_rollback(True, using=self.using)
        return result

    def mark_rollback(self) -> None:
        transaction.set_rollback(True, using=self.using)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, changeset: Changeset) -> models.Model:
        instance = changeset.target
        try:
            instance.save(force_insert=True, using=self._db_for_write(instance))
        except WRITE_ERRORS as exc:
            raise PersistenceError(f"Insert of {_label(instance)} failed: {exc}", original=exc) from exc
        return instance

    def update(self, changeset: Changeset) -> models.Model:
        instance = changeset.target
        update_fields = changeset.changed_fields or None
        try:
            instance.save(
                force_update=True,
                update_fields=update_fields,
                using=self._db_for_write(instance),
            )
        except WRITE_ERRORS as exc:
            raise PersistenceError(f"Update of {_label(instance)} failed: {exc}", original=exc) from exc
        return instance

    def upsert(
        self,
        changeset: Changeset,
        conflict_policy: Optional[ConflictPolicy],
    ) -> models.Model:
        """
        Insert the target or resolve the conflict per ``conflict_policy``.

        Uses ``bulk_create`` conflict handling, so ``save()`` and model
        signals are not triggered. The stored row is re-fetched by its
        unique fields to expose generated values.
        """
        instance = changeset.target
        policy = conflict_policy or changeset.conflict_policy
        if policy is None:
            raise PersistenceError(f"Upsert of {_label(instance)} requires a conflict policy")

        manager = type(instance)._default_manager.db_manager(self._db_for_write(instance))
        unique_fields = list(policy.unique_fields)
        update_fields = list(
            policy.update_fields
            or [name for name in changeset.changed_fields if name not in unique_fields]
        )
        try:
            if policy.ignore or not update_fields:
                manager.bulk_create([instance], ignore_conflicts=True)
            else:
                manager.bulk_create(
                    [instance],
                    update_conflicts=True,
                    unique_fields=unique_fields,
                    update_fields=update_fields,
                )
            lookup = {name: getattr(instance, name) for name in unique_fields}
            return manager.get(**lookup)
        except WRITE_ERRORS as exc:
            raise PersistenceError(f"Upsert of {_label(instance)} failed: {exc}", original=exc) from exc

    def delete(self, target: Any) -> models.Model:
        """
        Delete a changeset's target or a raw model instance.

        The primary key is kept on the returned instance so later steps can
        still identify what was removed.
        """
        instance = target.target if isinstance(target, Changeset) else target
        if not isinstance(instance, models.Model):
            raise PersistenceError(f"Cannot delete {type(instance).__name__}: not a model instance")

        pk = instance.pk
        if pk is None:
            raise StaleEntityError(f"{_label(instance)} has no primary key, already deleted")

        try:
            deleted, _ = instance.delete(using=self._db_for_write(instance))
        except WRITE_ERRORS as exc:
            raise PersistenceError(f"Delete of {_label(instance)} failed: {exc}", original=exc) from exc

        instance.pk = pk
        if deleted == 0:
            logger.debug("Delete of %s affected no rows", _label(instance))
            raise StaleEntityError(f"{_label(instance)} no longer exists")
        return instance

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_association(self, entity: models.Model, name: str) -> Any:
        try:
            field = entity._meta.get_field(name)
        except FieldDoesNotExist as exc:
            raise PersistenceError(
                f"{entity._meta.label} has no association '{name}'", original=exc
            ) from exc

        if not field.is_relation:
            raise PersistenceError(f"{entity._meta.label}.{name} is not an association")

        reverse = field.auto_created and not field.concrete
        accessor = field.get_accessor_name() if reverse else field.name

        try:
            if field.one_to_many or field.many_to_many:
                return list(getattr(entity, accessor).all())
            return getattr(entity, accessor)
        except ObjectDoesNotExist:
            return None
        except ValueError as exc:
            # Django refuses relation access on unsaved instances.
            raise PersistenceError(
                f"Cannot load {entity._meta.label}.{name}: {exc}", original=exc
            ) from exc

    def is_entity(self, value: Any) -> bool:
        """Only instances backed by a stored row count as entities."""
        return (
            isinstance(value, models.Model)
            and value.pk is not None
            and not value._state.adding
        )

    def __repr__(self) -> str:
        return f"<DjangoPersistenceProvider using={self.using or 'default'}>"
