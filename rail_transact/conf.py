"""
Configuration management for rail-transact.

Settings are resolved in the following order:
1. Django setting ``RAIL_TRANSACT`` (a dict)
2. Library defaults (``TRANSACT_DEFAULTS``)
"""

from copy import deepcopy
from typing import Any, Optional

from django.conf import settings

from .defaults import TRANSACT_DEFAULTS

SETTINGS_NAME = "RAIL_TRANSACT"


def _get_django_config() -> dict[str, Any]:
    config = getattr(settings, SETTINGS_NAME, None) or {}
    if not isinstance(config, dict):
        raise TypeError(
            f"{SETTINGS_NAME} must be a dict, got {type(config).__name__}"
        )
    return config


def get_settings() -> dict[str, Any]:
    """
    Return the effective settings dict.

    Unknown keys in ``RAIL_TRANSACT`` are kept so that custom providers can
    read their own options from the same block.
    """
    resolved = deepcopy(TRANSACT_DEFAULTS)
    for key, value in _get_django_config().items():
        resolved[str(key).lower()] = value
    return resolved


def get_setting(key: str, default: Optional[Any] = None) -> Any:
    """
    Get a single setting value.

    Args:
        key: Setting key (case-insensitive)
        default: Returned when neither Django settings nor defaults define it

    Returns:
        The setting value from the highest priority source
    """
    normalized = key.lower()
    django_config = {str(k).lower(): v for k, v in _get_django_config().items()}
    if normalized in django_config:
        return django_config[normalized]
    return deepcopy(TRANSACT_DEFAULTS.get(normalized, default))
