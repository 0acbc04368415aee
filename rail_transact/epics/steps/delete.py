"""
Delete pipeline step.

Marks a loaded entity for deletion together with its associations, queuing
everything for the Work step of the same transaction.
"""

import logging
from typing import Any, Iterable, Optional

from ...conf import get_setting
from ...persistence.base import PersistenceProvider
from ..base import Step, StepKind
from ..context import EpicContext
from ..errors import ErrorKind, PersistenceError, StaleEntityError
from ..utils import is_valid_key, maybe_debug, resolve_provider
from .work import register

logger = logging.getLogger(__name__)


def direct_delete(entity_or_list: Any, provider: PersistenceProvider) -> int:
    """
    Delete a loaded entity or a list of them.

    An entity that is already gone counts as a successful no-op, so
    duplicate or concurrent deletion requests do not fail the epic.

    Args:
        entity_or_list: Model instance or list of instances
        provider: Persistence provider

    Returns:
        Number of entities actually deleted

    Raises:
        PersistenceError: On the first failure other than a stale entity;
            the remaining elements are not attempted
    """
    if isinstance(entity_or_list, (list, tuple)):
        return sum(direct_delete(entity, provider) for entity in entity_or_list)

    try:
        provider.delete(entity_or_list)
    except StaleEntityError as exc:
        logger.debug("Ignoring stale delete: %s", exc)
        return 0
    return 1


def _dedupe(names: Iterable[str]) -> list[str]:
    seen = set()
    result = []
    for name in names:
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result


class DeleteStep(Step):
    """
    Queue an entity and its associations for deletion.

    Associations are loaded and registered first, in the configured order,
    and the entity itself last. Since Work applies the queue in registration
    order, rows referencing the entity are removed before it.

    Associations come from ``ctx.assigns["options"]["delete_associations"]``
    (or the ``delete_associations`` setting when the epic has none), merged
    with the ``extra_associations`` of this step.

    Example:
        Epic([
            DeleteStep(on="post", extra_associations=["comments"]),
            BeginStep(),
            WorkStep(),
            CommitStep(),
        ]).run(post=post)
    """

    kind = StepKind.DELETE
    name = "delete"

    def __init__(
        self,
        on: Any,
        extra_associations: Iterable[str] = (),
        provider: Optional[PersistenceProvider] = None,
    ):
        """
        Args:
            on: Assigns key holding the entity to delete
            extra_associations: Associations deleted on top of the defaults
            provider: Optional provider overriding the context's and settings'
        """
        self.on = on
        self.extra_associations = list(extra_associations or [])
        self.provider = provider

    def get_associations(self, ctx: EpicContext) -> list[str]:
        # Options may also be given as a list of (name, value) pairs.
        options = dict(ctx.get("options") or {})
        defaults = options.get("delete_associations")
        if defaults is None:
            defaults = get_setting("delete_associations") or []
        return _dedupe(list(defaults) + self.extra_associations)

    def association_key(self, name: str) -> str:
        return f"{self.on}__{name}"

    def execute(self, ctx: EpicContext) -> EpicContext:
        if ctx.errors:
            maybe_debug(ctx, self, "skipping because of epic errors")
            return ctx

        if not is_valid_key(self.on):
            logger.error("[%s:%s] invalid `on` key provided: %r", ctx.name, self.name, self.on)
            ctx.add_error(
                ErrorKind.INVALID_KEY,
                f"Invalid `on` key provided: {self.on!r}",
                step=self.name,
                key=self.on,
            )
            return ctx

        provider = resolve_provider(ctx, self.provider)
        subject = ctx.get(self.on)

        if not provider.is_entity(subject):
            logger.warning(
                "[%s:%s] don't know how to delete %s at key %r, expected a model instance",
                ctx.name,
                self.name,
                type(subject).__name__,
                self.on,
            )
            ctx.add_warning(
                ErrorKind.NOT_AN_ENTITY,
                f"Expected a model instance at key {self.on!r}, got {type(subject).__name__}",
                step=self.name,
                key=self.on,
            )
            return ctx

        associations = self.get_associations(ctx)
        maybe_debug(ctx, self, "deleting %r including associations %s", self.on, associations)

        for name in associations:
            try:
                loaded = provider.load_association(subject, name)
            except PersistenceError as exc:
                ctx.add_error(
                    ErrorKind.CONFIGURATION,
                    str(exc),
                    step=self.name,
                    key=self.on,
                    details={"association": name},
                )
                return ctx

            if loaded is None or (isinstance(loaded, (list, tuple)) and not loaded):
                continue

            key = self.association_key(name)
            ctx.assign(key, loaded)
            register(ctx, key)

        ctx.assign(self.on, subject)
        return register(ctx, self.on)
