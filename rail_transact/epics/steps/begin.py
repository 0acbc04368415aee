"""
Begin pipeline step.

Runs the steps up to the next Commit inside one transaction, unless it
senses that opening one would be futile.
"""

import logging
from typing import Optional

from ...conf import get_setting
from ...persistence.base import PersistenceProvider
from ..base import Step, StepKind, run_steps
from ..context import EpicContext
from ..utils import maybe_debug, resolve_provider

logger = logging.getLogger(__name__)


def split_at_commit(steps: list[Step]) -> tuple[list[Step], list[Step]]:
    """
    Split ``steps`` at the first Commit sentinel.

    Returns:
        ``(nested, rest)``: the steps before the sentinel and the steps after
        it, sentinel dropped. Without a sentinel, everything is nested.
    """
    for index, step in enumerate(steps):
        if step.kind == StepKind.COMMIT:
            return list(steps[:index]), list(steps[index + 1:])
    return list(steps), []


class BeginStep(Step):
    """
    Open a transaction around the steps up to the next CommitStep.

    - With errors already on the context, the nested steps run without a
      transaction (they degrade to no-ops by themselves).
    - When the provider is already inside a transaction, that scope is
      reused instead of opening a nested one.
    - Otherwise the nested steps run in a new transaction, committed when
      they finish without errors and rolled back otherwise. Errors stay on
      the returned context after a rollback.

    The outer epic resumes with the steps after the Commit in every case.
    """

    kind = StepKind.BEGIN
    name = "begin"

    def __init__(self, provider: Optional[PersistenceProvider] = None):
        """
        Args:
            provider: Optional provider overriding the context's and settings'
        """
        self.provider = provider

    def execute(self, ctx: EpicContext) -> EpicContext:
        nested_steps, rest = split_at_commit(ctx.next)
        nested = ctx.copy_with(next=nested_steps)

        if ctx.errors:
            maybe_debug(
                ctx,
                self,
                "not entering transaction because of %d error(s)",
                len(ctx.errors),
            )
            result = run_steps(nested)
            return result.copy_with(next=rest)

        provider = resolve_provider(ctx, self.provider)

        if provider.in_transaction():
            if get_setting("warn_on_nested_transaction"):
                logger.warning(
                    "Epic '%s' is already inside a transaction; reusing it "
                    "instead of opening a nested one",
                    ctx.name,
                )
            result = run_steps(nested)
            if result.errors:
                maybe_debug(ctx, self, "marking the open transaction for rollback")
                provider.mark_rollback()
            return result.copy_with(next=rest)

        maybe_debug(ctx, self, "entering transaction")
        result = provider.transact(run_steps, nested)
        if result.errors:
            maybe_debug(ctx, self, "rolled back because of %d error(s)", len(result.errors))
        else:
            maybe_debug(ctx, self, "committed successfully")
        return result.copy_with(next=rest)
