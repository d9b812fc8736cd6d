"""Parser module for extracting episode information from file names."""
import logging
import re
from dataclasses import replace
from pathlib import Path

from .cleaner import strip_tags
from .matchers import (
    is_movie,
    match_episode,
    match_season,
    match_special,
    standalone_integers,
)
from .models import (
    Confidence,
    EpisodeMatch,
    ErrorKind,
    Extraction,
    ParsedEntry,
    ParseError,
    SpecialType,
)

log = logging.getLogger(__name__)


VIDEO_EXTENSIONS = {
    '.mkv', '.mp4', '.avi', '.flv', '.rmvb', '.mov', '.wmv', '.webm',
    '.m4v', '.ts', '.m2ts',
}

SUBTITLE_EXTENSIONS = {'.ass', '.ssa', '.srt', '.vtt', '.sub', '.sup'}

# Language suffixes carried by fansub subtitle files (".sc.ass", ".chs.ass")
LANGUAGE_CODES = {
    'sc', 'tc', 'chs', 'cht', 'jpsc', 'jptc', 'gb', 'big5', 'zh', 'zh-cn',
    'zh-tw', 'zh-hans', 'zh-hant', 'ja', 'jp', 'jpn', 'en', 'eng', 'ko',
    'kor', 'default', 'forced',
}

# Output of this tool: "Title S01E05" optionally followed by kept tags
ALREADY_FORMATTED = re.compile(r'^.+ S\d{2}E\d{2,4}(?:\[[^\]]*\])*$')


def is_media_file(filepath: Path) -> bool:
    """Check if file is a video file based on extension."""
    return filepath.suffix.lower() in VIDEO_EXTENSIONS


def is_subtitle_file(filepath: Path) -> bool:
    """Check if file is a subtitle file based on extension."""
    return filepath.suffix.lower() in SUBTITLE_EXTENSIONS


def split_extension(filepath: str | Path) -> tuple[str, str]:
    """
    Split a file name into stem and extension.

    For subtitles the language suffix stays with the extension:
    "Show - 01.sc.ass" -> ("Show - 01", ".sc.ass").
    """
    path = Path(filepath)
    suffixes = path.suffixes
    if is_subtitle_file(path) and len(suffixes) >= 2:
        language = suffixes[-2]
        if language.lstrip('.').lower() in LANGUAGE_CODES:
            cut = len(language) + len(path.suffix)
            return path.name[:-cut], f"{language}{path.suffix}"
    return path.stem, path.suffix


def extract_episode(
    residual: str,
    source_path: Path | None = None
) -> Extraction | ParseError:
    """
    Find the episode number and special marker in a residual token stream.

    A number attached to a special marker ("OVA 02") is the special's own
    number; otherwise the matcher chain decides.  A special without any
    number is valid and gets numbered later by the resolver.
    """
    special = match_special(residual)
    special_type = special.special_type if special else SpecialType.NONE

    episode: EpisodeMatch | None
    if special and special.number is not None:
        episode = EpisodeMatch(
            value=special.number,
            confidence=Confidence.HIGH,
            rule="special",
            start=special.start,
            end=special.end,
        )
    else:
        episode = match_episode(residual)

    if episode is None and special_type is SpecialType.NONE:
        return ParseError(
            kind=ErrorKind.NO_EPISODE_FOUND,
            source_path=source_path,
            message=f"No episode number found in '{residual}'" if residual
            else "No episode number found",
        )

    return Extraction(episode=episode, special_type=special_type)


def parse_filename(
    filepath: str | Path,
    keep_tags: bool = False,
    strict: bool = False
) -> ParsedEntry | ParseError:
    """
    Parse an episode filename.

    Args:
        filepath: Path to the video or subtitle file
        keep_tags: Keep removed bracket tags for the new name
        strict: Refuse episode numbers that were only guessed by position

    Returns:
        ParsedEntry on success, ParseError naming why the file is skipped
    """
    path = Path(filepath)
    stem, extension = split_extension(path)

    if ALREADY_FORMATTED.match(stem):
        return ParseError(ErrorKind.ALREADY_FORMATTED, path, "Already named correctly")

    if is_movie(stem):
        return ParseError(ErrorKind.MOVIE, path, "Theatrical release, not an episode")

    season_hint = match_season(stem)
    stripped = strip_tags(stem, keep_tags)

    extraction = extract_episode(stripped.residual, path)
    if isinstance(extraction, ParseError):
        return extraction

    episode = extraction.episode
    # Title still holds numbers, so the positional pick is a guess
    if (episode is not None and episode.rule == "standalone"
            and standalone_integers(stripped.title_guess)):
        episode = replace(episode, confidence=Confidence.LOW)
    if episode is not None and episode.season is not None:
        season_hint = episode.season

    if strict and episode is not None and episode.confidence is Confidence.LOW:
        return ParseError(
            ErrorKind.LOW_CONFIDENCE,
            path,
            f"Episode {episode.value} guessed from position only; "
            "rename manually or pass --season/--offset",
        )

    parsed = ParsedEntry(
        source_path=path,
        title_guess=stripped.title_guess,
        local_episode=episode.value if episode else None,
        special_type=extraction.special_type,
        season_hint=season_hint,
        kept_tags=stripped.preserved_tags,
        extension=extension,
        confidence=episode.confidence if episode else Confidence.HIGH,
    )
    log.debug(
        "Parsed %s: title=%r, episode=%s, special=%s, season=%s, rule=%s",
        path.name, parsed.title_guess, parsed.local_episode,
        parsed.special_type.value, season_hint,
        episode.rule if episode else None,
    )
    return parsed
