"""
Transactional steps.

- BeginStep / CommitStep: transaction boundary around the steps between them
- WorkStep: applies the changesets queued with ``register``
- DeleteStep: queues an entity and its associations for deletion
"""

from .begin import BeginStep, split_at_commit
from .commit import CommitStep
from .work import WorkStep, register, resolve_key
from .delete import DeleteStep, direct_delete

__all__ = [
    # Transaction boundary
    "BeginStep",
    "CommitStep",
    "split_at_commit",
    # Work queue
    "WorkStep",
    "register",
    "resolve_key",
    # Deletion
    "DeleteStep",
    "direct_delete",
]
