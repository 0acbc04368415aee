"""
rail-transact: transactional work queues for Django step pipelines.

Steps of an epic queue changesets against values they do not persist
themselves; Begin/Work/Commit apply everything queued in one transaction
and roll it all back on the first failure.
"""

from .defaults import LIBRARY_VERSION as __version__
from .epics import (
    BeginStep,
    CommitStep,
    DeleteStep,
    Epic,
    EpicContext,
    FunctionStep,
    Step,
    StepKind,
    WorkStep,
    register,
)
from .persistence import Action, Changeset, ConflictPolicy, PersistenceProvider

__all__ = [
    "__version__",
    "Action",
    "BeginStep",
    "Changeset",
    "CommitStep",
    "ConflictPolicy",
    "DeleteStep",
    "Epic",
    "EpicContext",
    "FunctionStep",
    "PersistenceProvider",
    "Step",
    "StepKind",
    "WorkStep",
    "register",
]
