"""Formatter module for generating final file names."""
import re
from pathlib import Path

from .models import ResolvedEntry


def sanitize_filename(name: str) -> str:
    """
    Remove or replace characters that are invalid in file names.

    Args:
        name: The name to sanitize

    Returns:
        Sanitized name safe for use as a filename
    """
    # Characters not allowed in Windows filenames: / \ : * ? " < > |
    invalid_chars = r'[<>:"/\\|?*]'
    sanitized = re.sub(invalid_chars, '', name)
    # Remove leading/trailing dots and spaces
    sanitized = sanitized.strip('. ')
    sanitized = re.sub(r'\s+', ' ', sanitized)
    return sanitized


def format_episode_code(season: int, episode: int) -> str:
    """
    Format season and episode numbers.

    Returns:
        Formatted episode code (e.g., 'S01E04', 'S00E01' for specials)
    """
    return f"S{season:02d}E{episode:02d}"


def format_tags(tags: tuple[str, ...] | list[str]) -> str:
    """Render kept tags as "[tag][tag]"."""
    return ''.join(f"[{sanitize_filename(tag)}]" for tag in tags if tag.strip())


def format_entry_name(entry: ResolvedEntry, keep_tags: bool = True) -> str:
    """
    Format a resolved episode filename.

    Format: {Title} S{season:02}E{episode:02}{[tags]}{extension}

    Args:
        entry: Resolved episode
        keep_tags: Append the entry's kept tags (there are none unless the
                   resolver ran with keep_tags)

    Returns:
        Formatted filename
    """
    title = sanitize_filename(entry.title)
    tags = format_tags(entry.kept_tags) if keep_tags else ""
    return f"{title} {format_episode_code(entry.season, entry.episode)}{tags}{entry.extension}"


def season_folder_name(season: int) -> str:
    """Folder used with --season-folders; specials go to "Season 0"."""
    return f"Season {season}"


def get_new_path(
    original_path: Path,
    new_filename: str,
    season: int | None = None,
    season_folders: bool = False
) -> Path:
    """
    Get the new full path for a renamed file.

    Args:
        original_path: Original file path
        new_filename: New filename (with extension)
        season: Season of the file, used with *season_folders*
        season_folders: Place the file in a per-season subfolder

    Returns:
        New full path
    """
    parent = original_path.parent
    if season_folders and season is not None:
        parent = parent / season_folder_name(season)
    return parent / new_filename


def filenames_match(name1: str, name2: str) -> bool:
    """
    Check if two filenames are essentially the same.

    Returns:
        True if filenames match (case-insensitive)
    """
    return name1.lower().strip() == name2.lower().strip()
