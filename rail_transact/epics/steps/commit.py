"""
Commit pipeline step.

A placeholder marking where the transaction opened by BeginStep ends.
"""

from ..base import Step, StepKind
from ..context import EpicContext
from ..errors import CommitWithoutBeginError


class CommitStep(Step):
    """
    Sentinel closing a Begin..Commit span.

    BeginStep consumes this step while splitting the remaining sequence, so
    it never runs when the epic is well formed.
    """

    kind = StepKind.COMMIT
    name = "commit"

    def execute(self, ctx: EpicContext) -> EpicContext:
        remaining = [step.name for step in ctx.next]
        raise CommitWithoutBeginError(
            f"Attempted to commit without a Begin first in epic '{ctx.name}' "
            f"(step: {self!r}, remaining steps: {remaining}, "
            f"errors: {len(ctx.errors)})"
        )
