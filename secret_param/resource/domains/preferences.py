"""Persistent user preferences for secret-param.

Stored as JSON under the XDG config directory:
~/.config/secret-param/preferences.json
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

APP_DIR_NAME = "secret-param"
PREFERENCES_DIR = Path.home() / ".config" / APP_DIR_NAME
PREFERENCES_FILE = PREFERENCES_DIR / "preferences.json"


def default_config_path() -> Path:
    """Default YAML config location, resolved against the current home directory."""
    return Path.home() / ".config" / APP_DIR_NAME / "config.yml"


def _load_preferences() -> Dict[str, Any]:
    """
    Read the preferences file.

    Returns:
        Preferences dictionary; empty when the file is missing or unreadable
    """
    if not PREFERENCES_FILE.exists():
        return {}

    try:
        with open(PREFERENCES_FILE, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read preferences file {PREFERENCES_FILE}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Ignoring preferences file {PREFERENCES_FILE}: expected a JSON object")
        return {}
    return data


def _save_preferences(preferences: Dict[str, Any]) -> None:
    """
    Write the preferences file, creating its directory first.

    Raises:
        OSError: If the directory or file cannot be written
    """
    try:
        PREFERENCES_DIR.mkdir(parents=True, exist_ok=True)
        with open(PREFERENCES_FILE, 'w') as f:
            json.dump(preferences, f, indent=2)
    except OSError as e:
        logger.error(f"Failed to save preferences to {PREFERENCES_FILE}: {e}")
        raise


def get_preference(key: str) -> Optional[str]:
    """Return the stored value for ``key``, or None."""
    return _load_preferences().get(key)


def set_preference(key: str, value: str) -> None:
    """
    Store a preference value.

    Args:
        key: Preference key
        value: Preference value
    """
    preferences = _load_preferences()
    preferences[key] = value
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' set to: {value}")


def clear_preference(key: str) -> bool:
    """
    Remove a preference.

    Returns:
        True if the key was present
    """
    preferences = _load_preferences()
    if key not in preferences:
        logger.debug(f"Preference '{key}' not set, nothing to clear")
        return False

    del preferences[key]
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' cleared")
    return True


def get_all_preferences() -> Dict[str, Any]:
    return _load_preferences()
