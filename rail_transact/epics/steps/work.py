"""
Work pipeline step.

Performs queued-up writes in a transaction. Earlier steps queue work with
``register(ctx, key)``; when the Work step runs it resolves every registered
key and applies the changesets found there, in registration order.

Only writes when neither the epic nor any queued changeset has errors.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Optional, Union

from django.db import DatabaseError

from ...persistence.base import PersistenceProvider
from ...persistence.changeset import Action, Changeset
from ..base import Step, StepKind
from ..context import EpicContext
from ..errors import ErrorKind, PersistenceError
from ..utils import maybe_debug, resolve_provider

logger = logging.getLogger(__name__)


def register(ctx: EpicContext, key: Any) -> EpicContext:
    """
    Record that ``key`` holds a changeset to apply at the next flush.

    Use in earlier steps to schedule work for in-transaction. Registering a
    key again is a no-op; only the value bound at flush time matters.

    To delete, set the changeset's ``action`` to ``Action.DELETE`` (or use
    ``Changeset.for_delete``). In deletion epics a loaded instance, or a
    list of them, may be registered directly.
    """
    if key not in ctx.pending_mutations:
        ctx.pending_mutations.append(key)
    return ctx


# ---------------------------------------------------------------------------
# Resolution of queued keys
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Descriptor:
    key: Any
    changeset: Changeset


@dataclass(frozen=True)
class RawEntity:
    key: Any
    entity: Any


@dataclass(frozen=True)
class RawEntityList:
    key: Any
    entities: tuple


@dataclass(frozen=True)
class Unresolvable:
    key: Any
    reason: ErrorKind
    message: str


Resolution = Union[Descriptor, RawEntity, RawEntityList, Unresolvable]


def resolve_key(ctx: EpicContext, key: Any, provider: PersistenceProvider) -> Resolution:
    """
    Look a registered key up and classify what it holds.

    Raw entities are only meaningful in deletion epics; that is a caller
    contract and is not checked here.
    """
    value = ctx.assigns.get(key)

    if value is None:
        return Unresolvable(key, ErrorKind.MISSING_KEY, f"Skipping missing key {key!r}")

    if isinstance(value, Changeset):
        try:
            Action(value.action)
        except ValueError:
            return Unresolvable(
                key,
                ErrorKind.UNKNOWN_ACTION,
                f"Skipping changeset at key {key!r} with unknown action {value.action!r}",
            )
        return Descriptor(key, value)

    if provider.is_entity(value):
        return RawEntity(key, value)

    if isinstance(value, (list, tuple)):
        # An empty list is a deletion of nothing.
        if all(provider.is_entity(item) for item in value):
            return RawEntityList(key, tuple(value))

    return Unresolvable(
        key,
        ErrorKind.DATA_SHAPE,
        f"Skipping, not a changeset or entity at key {key!r}: {type(value).__name__}",
    )


class WorkStep(Step):
    """
    Flush the work queue.

    Applies every registered changeset in registration order, inside a new
    transaction unless the provider already is in one. Stops at the first
    failure and records it; the enclosing transaction then rolls back
    everything applied before it. Successful writes rebind their key to the
    stored value so later steps see generated ids and defaults.
    """

    kind = StepKind.WORK
    name = "work"

    register = staticmethod(register)

    def __init__(self, provider: Optional[PersistenceProvider] = None):
        """
        Args:
            provider: Optional provider overriding the context's and settings'
        """
        self.provider = provider

    def execute(self, ctx: EpicContext) -> EpicContext:
        """
        Resolve, validate and apply the queued changesets.

        Args:
            ctx: Epic context

        Returns:
            Context with refreshed assigns, or with the errors that stopped it
        """
        provider = resolve_provider(ctx, self.provider)
        entries = self._resolve_entries(ctx, provider)
        ctx = self._promote_changeset_errors(ctx, entries)

        if ctx.errors:
            maybe_debug(ctx, self, "skipping due to %d epic error(s)", len(ctx.errors))
            return ctx

        if not entries:
            maybe_debug(ctx, self, "skipping, nothing to do")
            return ctx

        if provider.in_transaction():
            maybe_debug(ctx, self, "applying %d change(s) in the current transaction", len(entries))
            ctx = self._apply(ctx, entries, provider)
            if ctx.errors:
                provider.mark_rollback()
        else:
            maybe_debug(ctx, self, "entering transaction")
            ctx = provider.transact(
                lambda inner: self._apply(inner, entries, provider),
                ctx,
            )

        if not ctx.errors:
            applied = {entry.key for entry in entries}
            ctx.pending_mutations[:] = [
                key for key in ctx.pending_mutations if key not in applied
            ]
        return ctx

    def _resolve_entries(self, ctx: EpicContext, provider: PersistenceProvider) -> list:
        entries = []
        for key in ctx.pending_mutations:
            resolution = resolve_key(ctx, key, provider)
            if isinstance(resolution, Unresolvable):
                if resolution.reason == ErrorKind.DATA_SHAPE:
                    logger.error("[%s:%s] %s", ctx.name, self.name, resolution.message)
                else:
                    maybe_debug(ctx, self, "%s", resolution.message)
                ctx.add_warning(
                    resolution.reason,
                    resolution.message,
                    step=self.name,
                    key=key,
                )
                continue
            entries.append(resolution)
        return entries

    def _promote_changeset_errors(self, ctx: EpicContext, entries: list) -> EpicContext:
        for entry in entries:
            if isinstance(entry, Descriptor) and not entry.changeset.valid:
                maybe_debug(ctx, self, "adding changeset at key %r to epic errors", entry.key)
                ctx.add_error(
                    ErrorKind.VALIDATION,
                    f"Invalid changeset at key {entry.key!r}",
                    step=self.name,
                    key=entry.key,
                    details={
                        field_name: list(messages)
                        for field_name, messages in entry.changeset.errors.items()
                    },
                )
        return ctx

    # all the checks passed and we are in a transaction, actually do the stuff.
    def _apply(
        self,
        ctx: EpicContext,
        entries: list,
        provider: PersistenceProvider,
    ) -> EpicContext:
        for entry in entries:
            try:
                value = self._apply_entry(ctx, entry, provider)
            except (PersistenceError, DatabaseError) as exc:
                logger.info(
                    "[%s:%s] error applying change at key %r: %s",
                    ctx.name,
                    self.name,
                    entry.key,
                    exc,
                )
                original = getattr(exc, "original", None) or exc
                ctx.add_error(
                    ErrorKind.PERSISTENCE,
                    str(exc),
                    step=self.name,
                    key=entry.key,
                    details={"exception": type(original).__name__},
                )
                return ctx

            if value is None:
                maybe_debug(ctx, self, "applied change at key %r, continue", entry.key)
            else:
                maybe_debug(ctx, self, "applied change at key %r, assigning the stored value", entry.key)
                ctx.assign(entry.key, value)
        return ctx

    def _apply_entry(self, ctx: EpicContext, entry: Resolution, provider: PersistenceProvider) -> Any:
        from .delete import direct_delete

        if isinstance(entry, (RawEntity, RawEntityList)):
            target = entry.entity if isinstance(entry, RawEntity) else list(entry.entities)
            maybe_debug(ctx, self, "no changeset at key %r, deleting as object", entry.key)
            direct_delete(target, provider)
            return None

        changeset = entry.changeset
        action = Action(changeset.action)

        if action == Action.INSERT:
            maybe_debug(ctx, self, "inserting changeset at key %r", entry.key)
            return provider.insert(changeset)

        if action == Action.UPDATE:
            maybe_debug(ctx, self, "applying update to changeset at key %r", entry.key)
            return provider.update(changeset)

        if action == Action.UPSERT:
            maybe_debug(ctx, self, "applying upsert to changeset at key %r", entry.key)
            # upsert has its own primitive; clear the action so it is not
            # dispatched as a plain insert
            return provider.upsert(replace(changeset, action=None), changeset.conflict_policy)

        maybe_debug(ctx, self, "deleting changeset at key %r", entry.key)
        if isinstance(changeset.target, (list, tuple)):
            return [
                provider.delete(replace(changeset, target=item))
                for item in changeset.target
            ]
        return provider.delete(changeset)
