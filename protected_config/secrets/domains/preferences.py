"""Persistent user preferences for protected-config.

Preferences live in the XDG Base Directory location
~/.config/protected-config/preferences.json. Today the only preference is
``config_path``, the location of the tool settings file.
"""
import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any

from .fileio import atomic_write_text

logger = logging.getLogger(__name__)

PREFERENCES_DIR = Path.home() / ".config" / "protected-config"
PREFERENCES_FILE = PREFERENCES_DIR / "preferences.json"


def _read_all() -> Dict[str, Any]:
    """Read the preferences file, treating a missing or unreadable file as empty."""
    if not PREFERENCES_FILE.exists():
        return {}

    try:
        data = json.loads(PREFERENCES_FILE.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable preferences file {PREFERENCES_FILE}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Ignoring preferences file {PREFERENCES_FILE}: expected a JSON object")
        return {}
    return data


def _write_all(preferences: Dict[str, Any]) -> None:
    atomic_write_text(PREFERENCES_FILE, json.dumps(preferences, indent=2) + "\n")


def get_preference(key: str) -> Optional[str]:
    """
    Get preference value by key.

    Returns:
        Preference value if set, None otherwise
    """
    return _read_all().get(key)


def set_preference(key: str, value: str) -> None:
    """Store a preference, replacing any previous value."""
    preferences = _read_all()
    preferences[key] = value
    _write_all(preferences)
    logger.info(f"Preference '{key}' set to: {value}")


def clear_preference(key: str) -> None:
    """Remove a preference. Clearing an unset preference is a no-op."""
    preferences = _read_all()
    if key not in preferences:
        logger.debug(f"Preference '{key}' not set, nothing to clear")
        return
    del preferences[key]
    _write_all(preferences)
    logger.info(f"Preference '{key}' cleared")


def get_all_preferences() -> Dict[str, Any]:
    return _read_all()
