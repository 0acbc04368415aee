"""
Shared helpers for epic steps.
"""

import logging
from typing import Any, Optional, TYPE_CHECKING

from ..conf import get_setting

if TYPE_CHECKING:
    from ..persistence.base import PersistenceProvider
    from .base import Step
    from .context import EpicContext

logger = logging.getLogger("rail_transact.epics")


def debug_enabled(ctx: "EpicContext") -> bool:
    return bool(ctx.debug or get_setting("debug_steps"))


def maybe_debug(ctx: "EpicContext", step: "Step", message: str, *args: Any) -> None:
    """
    Log a step decision at DEBUG level when the epic runs verbosely.

    Args:
        ctx: Current epic context
        step: Step emitting the message
        message: %-style format string
        *args: Format arguments
    """
    if not debug_enabled(ctx):
        return
    logger.debug("[%s:%s] " + message, ctx.name, step.name, *args)


def is_valid_key(key: Any) -> bool:
    """Assigns keys used by DeleteStep must be Python identifiers."""
    return isinstance(key, str) and key.isidentifier()


def resolve_provider(
    ctx: "EpicContext", provider: Optional["PersistenceProvider"] = None
) -> "PersistenceProvider":
    """
    Pick the provider for a step: step argument, then context, then settings.
    """
    if provider is not None:
        return provider
    if ctx.provider is not None:
        return ctx.provider

    from ..persistence.base import get_provider

    return get_provider()
