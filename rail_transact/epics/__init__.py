"""
Epic architecture.

An epic is an ordered sequence of steps sharing one EpicContext. Ordinary
steps compute and queue changesets; Begin/Work/Commit apply them in one
transaction.

Core Components:
- EpicContext: Carries state (assigns, errors, work queue) through the epic
- Step: Abstract base for each step, tagged with a StepKind
- Epic: Runs the steps in order

Usage:
    from rail_transact.epics import Epic, BeginStep, WorkStep, CommitStep

    epic = Epic([BuildPost(), BeginStep(), WorkStep(), CommitStep()])
    ctx = epic.run(attrs={"title": "Hello"})
"""

from .context import EpicContext
from .base import Epic, FunctionStep, Step, StepKind, run_steps
from .errors import (
    CommitWithoutBeginError,
    EpicError,
    EpicException,
    ErrorKind,
    PersistenceError,
    StaleEntityError,
)
from .steps import (
    BeginStep,
    CommitStep,
    DeleteStep,
    WorkStep,
    direct_delete,
    register,
)

__all__ = [
    "EpicContext",
    "Epic",
    "FunctionStep",
    "Step",
    "StepKind",
    "run_steps",
    "CommitWithoutBeginError",
    "EpicError",
    "EpicException",
    "ErrorKind",
    "PersistenceError",
    "StaleEntityError",
    "BeginStep",
    "CommitStep",
    "DeleteStep",
    "WorkStep",
    "direct_delete",
    "register",
]
