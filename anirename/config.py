"""Configuration: API credentials and persisted default options."""
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

log = logging.getLogger(__name__)


DEFAULT_LANGUAGE = "zh-CN"

# Default values for every known settings key
DEFAULT_SETTINGS: dict[str, Any] = {
    "language": DEFAULT_LANGUAGE,
    "use_anilist": False,
    "prefer_romaji": False,
    "keep_tags": False,
    "season_folders": False,
    "workers": 1,
}


def settings_dir() -> Path:
    """Return the platform settings directory (not created)."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home()))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / "anirename"


def load_api_key() -> str | None:
    """
    Load TMDB API key from environment or .env file.

    Priority:
    1. TMDB_API_KEY environment variable
    2. .env file in current directory
    3. .env file in user home directory

    Returns:
        API key string or None if not found
    """
    api_key = os.environ.get("TMDB_API_KEY")
    if api_key:
        return api_key

    for env_path in (Path.cwd() / ".env", Path.home() / ".env"):
        if env_path.exists():
            load_dotenv(env_path)
            api_key = os.environ.get("TMDB_API_KEY")
            if api_key:
                return api_key

    return None


def load_settings(path: Path | None = None) -> dict[str, Any]:
    """
    Load settings, falling back to defaults for missing keys.

    Unknown keys and values of the wrong type are ignored.
    """
    path = path or settings_dir() / "settings.json"
    settings = dict(DEFAULT_SETTINGS)
    if not path.exists():
        return settings

    try:
        with open(path, 'r', encoding='utf-8') as f:
            stored = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        log.warning("Ignoring unreadable settings file %s: %s", path, e)
        return settings

    if not isinstance(stored, dict):
        log.warning("Ignoring settings file %s: not a JSON object", path)
        return settings

    for key, default in DEFAULT_SETTINGS.items():
        value = stored.get(key)
        if value is not None and type(value) is type(default):
            settings[key] = value
    return settings
