"""
Default configuration for the rail-transact library.

The goal of this module is to expose a single source of truth for every
setting that the library actually consumes. Projects override any of these
keys through the ``RAIL_TRANSACT`` dict in their Django settings.
"""

from __future__ import annotations

from typing import Any

LIBRARY_VERSION = "0.1.0"
LIBRARY_NAME = "rail-transact"


TRANSACT_DEFAULTS: dict[str, Any] = {
    # Dotted path of the PersistenceProvider used when neither the step nor
    # the context carries one.
    "provider": "rail_transact.persistence.orm.DjangoPersistenceProvider",
    # Database alias handed to the provider (None = Django's default router).
    "database_alias": None,
    # Associations deleted alongside every entity handled by DeleteStep.
    "delete_associations": [],
    # Log a warning when Begin/Work reuse an already open transaction.
    "warn_on_nested_transaction": True,
    # Emit per-step debug logs for every epic, not only verbose ones.
    "debug_steps": False,
}
