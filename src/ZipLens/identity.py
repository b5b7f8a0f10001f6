"""User identity for scoping the recent-files history."""

from __future__ import annotations

import getpass
import logging

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "default"


def resolve_user_id(override: str | None = None) -> str:
    """Return *override* if given, else the OS login name, else DEFAULT_USER_ID."""
    if override and override.strip():
        return override.strip()
    try:
        name = getpass.getuser()
    except Exception:
        logger.warning("Could not determine login name; using %r", DEFAULT_USER_ID)
        return DEFAULT_USER_ID
    return name or DEFAULT_USER_ID
