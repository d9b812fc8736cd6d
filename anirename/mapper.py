"""Map local episode numbers onto catalog seasons."""
from .models import (
    ErrorKind,
    Override,
    ParsedEntry,
    ParseError,
    ResolvedEntry,
    SeasonInfo,
    SeriesMetadata,
    SpecialType,
)

SPECIALS_SEASON = 0


def map_absolute(
    absolute: int,
    seasons: tuple[SeasonInfo, ...] | list[SeasonInfo]
) -> tuple[int, int] | None:
    """
    Locate an absolute episode number in consecutive seasons.

    Returns (season, episode) or None when *absolute* lies past the last
    season.  Seasons [{1,12},{2,24}] put absolute 27 at (2, 15).
    """
    accumulated = 0
    for season in seasons:
        if season.season_number == SPECIALS_SEASON:
            continue
        if absolute <= accumulated + season.episode_count:
            return season.season_number, absolute - accumulated
        accumulated += season.episode_count
    return None


def _offset_episode(local_episode: int, offset: int) -> int | ParseError:
    episode = local_episode + offset
    if episode < 1:
        return ParseError(
            ErrorKind.RESOLUTION_ERROR,
            None,
            f"Episode {local_episode} with offset {offset:+d} gives {episode}",
        )
    return episode


def map_episode(
    local_episode: int,
    special_type: SpecialType,
    seasons: tuple[SeasonInfo, ...] | list[SeasonInfo],
    override: Override | None = None,
    season_hint: int | None = None
) -> tuple[int, int] | ParseError:
    """
    Compute the (season, episode) pair for one file.

    Precedence: specials (season 0, offset ignored), manual season, a
    season named in the filename, a catalog without season breakdown
    (season 1), and finally automatic absolute mapping across *seasons*.
    """
    override = override or Override()
    offset = override.episode_offset

    if special_type is not SpecialType.NONE:
        if local_episode < 1:
            return ParseError(
                ErrorKind.RESOLUTION_ERROR, None,
                f"Special number {local_episode} is below 1",
            )
        return SPECIALS_SEASON, local_episode

    if override.manual_season is not None or season_hint is not None or not seasons:
        if override.manual_season is not None:
            season = override.manual_season
        elif season_hint is not None:
            season = season_hint
        else:
            season = 1
        episode = _offset_episode(local_episode, offset)
        if isinstance(episode, ParseError):
            return episode
        return season, episode

    absolute = _offset_episode(local_episode, offset)
    if isinstance(absolute, ParseError):
        return absolute

    mapped = map_absolute(absolute, seasons)
    if mapped is None:
        total = sum(s.episode_count for s in seasons if s.season_number != SPECIALS_SEASON)
        return ParseError(
            ErrorKind.EPISODE_OUT_OF_RANGE,
            None,
            f"Absolute episode {absolute} exceeds the {total} episodes known to the catalog",
        )
    return mapped


def map_entry(
    parsed: ParsedEntry,
    metadata: SeriesMetadata,
    override: Override | None = None,
    special_number: int | None = None
) -> ResolvedEntry | ParseError:
    """
    Resolve a parsed file against its series metadata.

    Args:
        parsed: Parser output for the file
        metadata: Catalog data shared by the file's title cluster
        override: Manual season/offset for the run
        special_number: Counter value for a special that carries no number

    Returns:
        ResolvedEntry, or ParseError carrying the file's path
    """
    local_episode = parsed.local_episode
    if local_episode is None:
        local_episode = special_number
    if local_episode is None:
        return ParseError(
            ErrorKind.NO_EPISODE_FOUND, parsed.source_path, "No episode number found"
        )

    result = map_episode(
        local_episode,
        parsed.special_type,
        metadata.seasons,
        override,
        parsed.season_hint,
    )
    if isinstance(result, ParseError):
        return ParseError(result.kind, parsed.source_path, result.message)

    season, episode = result
    return ResolvedEntry(
        title=metadata.canonical_title,
        season=season,
        episode=episode,
        original_path=parsed.source_path,
        kept_tags=parsed.kept_tags,
        special_type=parsed.special_type,
        extension=parsed.extension,
    )
