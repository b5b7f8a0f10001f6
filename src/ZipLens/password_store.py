"""Remembered archive passwords, kept per user in the OS keychain.

Each entry lives under the ``ZipLens`` service with the account name
``<user_id>:<absolute archive path>``, so one user never sees a password
another user saved for the same archive. Every call degrades to ``None`` /
``False`` when no keychain backend is usable.
"""

from __future__ import annotations

import logging
import os
import sys

logger = logging.getLogger(__name__)

_SERVICE_NAME = "ZipLens"
_AVAILABLE = False

try:
    import keyring

    # Frozen bundles cannot discover keyring backends through entry points
    if getattr(sys, "frozen", False):
        if sys.platform == "darwin":
            from keyring.backends import macOS

            keyring.set_keyring(macOS.Keyring())
        elif sys.platform == "win32":
            from keyring.backends import Windows

            keyring.set_keyring(Windows.WinVaultKeyring())

    _AVAILABLE = True
except Exception:
    logger.warning("keyring not available; archive passwords will not be remembered")


def is_available() -> bool:
    return _AVAILABLE


def entry_key(user_id: str, archive_path: str) -> str:
    """Keychain account name for one user's password to one archive."""
    resolved = os.path.normcase(os.path.abspath(archive_path))
    return f"{user_id}:{resolved}"


def load(user_id: str, archive_path: str) -> str | None:
    """Return the password *user_id* saved for *archive_path*, if any."""
    if not _AVAILABLE:
        return None
    try:
        return keyring.get_password(_SERVICE_NAME, entry_key(user_id, archive_path))
    except Exception:
        logger.warning("Could not read saved password for %s", archive_path)
        return None


def save(user_id: str, archive_path: str, password: str) -> bool:
    """Remember *password* for *archive_path*. Returns True on success."""
    if not _AVAILABLE or not password:
        return False
    try:
        keyring.set_password(
            _SERVICE_NAME, entry_key(user_id, archive_path), password
        )
    except Exception:
        logger.warning("Failed to save password for %s to keyring", archive_path)
        return False
    logger.info("Saved password for %s", archive_path)
    return True


def delete(user_id: str, archive_path: str) -> bool:
    """Forget a saved password, e.g. after it stopped working."""
    if not _AVAILABLE:
        return False
    try:
        keyring.delete_password(_SERVICE_NAME, entry_key(user_id, archive_path))
    except Exception:
        return False
    logger.info("Forgot saved password for %s", archive_path)
    return True
