"""
Persistence layer: changesets and the providers that apply them.
"""

from .changeset import Action, Changeset, ConflictPolicy
from .base import PersistenceProvider, get_provider

__all__ = [
    "Action",
    "Changeset",
    "ConflictPolicy",
    "PersistenceProvider",
    "get_provider",
]
