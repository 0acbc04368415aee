"""
Base classes for epics.

Provides the Step abstract base class, the StepKind tag used to recognise
the transaction sentinels, and the Epic executor.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional

from .context import EpicContext


class StepKind(str, Enum):
    """
    Identity of a step as seen by the transaction boundary.

    Begin splits the remaining steps at the first COMMIT-kind step, so the
    sentinel is recognised by this tag, never by class inspection.
    """

    BEGIN = "begin"
    WORK = "work"
    COMMIT = "commit"
    DELETE = "delete"
    OTHER = "other"


class Step(ABC):
    """
    Base class for epic steps.

    Attributes:
        kind: StepKind tag, OTHER for ordinary steps
        name: String identifier for debugging and logging

    Example:
        class LoadPost(Step):
            name = "load_post"

            def execute(self, ctx: EpicContext) -> EpicContext:
                return ctx.assign("post", Post.objects.get(pk=ctx.get("id")))
    """

    kind: StepKind = StepKind.OTHER

    name: str = "step"

    @abstractmethod
    def execute(self, ctx: EpicContext) -> EpicContext:
        """
        Execute this step.

        Args:
            ctx: Current epic context

        Returns:
            Updated context (can be same instance)
        """
        pass

    def should_run(self, ctx: EpicContext) -> bool:
        """
        Check if this step should run.

        Steps run even when the context has errors: the transactional steps
        inspect the error list themselves and degrade to a no-op.
        """
        return True

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self.kind.value} name={self.name}>"


class FunctionStep(Step):
    """
    Wraps a plain callable as an ordinary step.

    The callable receives the context and may return an updated one; a
    ``None`` return keeps the context it was given.

    Example:
        step = FunctionStep(lambda ctx: register(ctx, "post"), name="queue_post")
    """

    def __init__(
        self,
        func: Callable[[EpicContext], Optional[EpicContext]],
        name: Optional[str] = None,
    ):
        self._func = func
        self.name = name or getattr(func, "__name__", "function")

    def execute(self, ctx: EpicContext) -> EpicContext:
        result = self._func(ctx)
        return ctx if result is None else result


def run_steps(ctx: EpicContext) -> EpicContext:
    """
    Run the context's remaining steps until none are left.

    The head of ``ctx.next`` is removed before the step executes, so a step
    can rewrite the remainder (Begin does).

    Args:
        ctx: Context whose ``next`` holds the steps to run

    Returns:
        Final context
    """
    while ctx.next:
        step, remaining = ctx.next[0], list(ctx.next[1:])
        ctx = ctx.copy_with(next=remaining)
        if step.should_run(ctx):
            ctx = step.execute(ctx)
    return ctx


class Epic:
    """
    An ordered sequence of steps sharing one context.

    Example:
        epic = Epic([
            ValidatePost(),
            BeginStep(),
            WorkStep(),
            CommitStep(),
            NotifyFollowers(),
        ])
        ctx = epic.run(post=changeset)
    """

    def __init__(self, steps: Iterable[Step], name: str = "epic"):
        self.steps: List[Step] = list(steps)
        self.name = name

    def build_context(self, **kwargs: Any) -> EpicContext:
        """
        Build the initial context.

        ``provider`` and ``debug`` are context options; every other keyword
        becomes an assign.
        """
        provider = kwargs.pop("provider", None)
        debug = bool(kwargs.pop("debug", False))
        return EpicContext(
            next=list(self.steps),
            assigns=dict(kwargs),
            provider=provider,
            debug=debug,
            name=self.name,
        )

    def run(self, ctx: Optional[EpicContext] = None, **kwargs: Any) -> EpicContext:
        """
        Execute every step in order.

        Args:
            ctx: Optional prepared context; its ``next`` is replaced by this
                epic's steps
            **kwargs: Initial assigns (plus ``provider`` / ``debug``)

        Returns:
            Final epic context
        """
        if ctx is None:
            ctx = self.build_context(**kwargs)
        else:
            ctx.assigns.update(kwargs)
            ctx = ctx.copy_with(next=list(self.steps))
        return run_steps(ctx)

    def get_step_names(self) -> List[str]:
        return [s.name for s in self.steps]

    def __repr__(self) -> str:
        return f"<Epic name={self.name} steps={self.get_step_names()}>"
