"""Data models for the anirename package."""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class SpecialType(Enum):
    """Special-episode classification. Specials always land in season 0."""
    NONE = "none"
    OVA = "ova"
    SP = "sp"
    OAD = "oad"


class Confidence(Enum):
    HIGH = "high"
    LOW = "low"


class ErrorKind(Enum):
    """Why a file was left out of the rename plan."""
    NO_EPISODE_FOUND = "no_episode_found"
    EPISODE_OUT_OF_RANGE = "episode_out_of_range"
    RESOLUTION_ERROR = "resolution_error"
    LOOKUP_ERROR = "lookup_error"
    LOW_CONFIDENCE = "low_confidence"
    ALREADY_FORMATTED = "already_formatted"
    MOVIE = "movie"


@dataclass(frozen=True)
class EpisodeMatch:
    """An episode number found by one rule of the matcher chain."""
    value: int
    confidence: Confidence
    rule: str
    start: int = 0
    end: int = 0
    season: int | None = None


@dataclass(frozen=True)
class Extraction:
    """Extractor output: episode match (if any) plus special marker."""
    episode: EpisodeMatch | None
    special_type: SpecialType = SpecialType.NONE


@dataclass(frozen=True)
class StrippedName:
    """Tokenizer output."""
    title_guess: str
    residual: str
    preserved_tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class ParsedEntry:
    """Represents parsed episode file information."""
    source_path: Path
    title_guess: str
    local_episode: int | None
    special_type: SpecialType = SpecialType.NONE
    season_hint: int | None = None
    kept_tags: tuple[str, ...] = ()
    extension: str = ""
    confidence: Confidence = Confidence.HIGH

    @property
    def is_special(self) -> bool:
        return self.special_type is not SpecialType.NONE


@dataclass(frozen=True)
class SeasonInfo:
    """One regular season of a series as reported by the catalog."""
    season_number: int
    episode_count: int


@dataclass(frozen=True)
class SeriesMetadata:
    """Series information fetched once per title cluster."""
    canonical_title: str
    seasons: tuple[SeasonInfo, ...] = ()
    catalog_id: int | None = None
    source: str = "tmdb"

    @property
    def total_episodes(self) -> int:
        return sum(s.episode_count for s in self.seasons)


@dataclass(frozen=True)
class ResolvedEntry:
    """Final (title, season, episode) for one file, ready for renaming."""
    title: str
    season: int
    episode: int
    original_path: Path
    kept_tags: tuple[str, ...] = ()
    special_type: SpecialType = SpecialType.NONE
    extension: str = ""


@dataclass(frozen=True)
class Override:
    """Manual season/offset supplied once per run."""
    manual_season: int | None = None
    episode_offset: int = 0


@dataclass(frozen=True)
class ParseError:
    """Named failure for one file (or every file of a title cluster)."""
    kind: ErrorKind
    source_path: Path | None
    message: str


@dataclass(frozen=True)
class LookupFailure:
    """Returned by a catalog client when a lookup cannot produce metadata."""
    query: str
    message: str


@dataclass
class ResolveOptions:
    """Options consumed by the parsing and resolution core."""
    name: str | None = None
    language: str = "zh-CN"
    keep_tags: bool = False
    season: int | None = None
    offset: int = 0
    use_anilist: bool = False
    prefer_romaji: bool = False
    strict: bool = False
    workers: int = 1
    # Scanned directory; folder tmdbid markers are honoured up to here
    root: Path | None = None

    @property
    def override(self) -> Override:
        return Override(manual_season=self.season, episode_offset=self.offset)


@dataclass
class RenameResult:
    """Represents a rename operation result."""
    original_path: str
    new_path: str
    success: bool
    error: str | None = None
    skipped: bool = False
    skip_reason: str | None = None
