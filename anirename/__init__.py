"""
anirename - Anime episode renamer

A CLI tool for renaming fansub anime releases to "Title SxxEyy" using
TMDB/AniList metadata.
"""
from .models import (
    Confidence,
    ErrorKind,
    LookupFailure,
    Override,
    ParsedEntry,
    ParseError,
    RenameResult,
    ResolvedEntry,
    ResolveOptions,
    SeasonInfo,
    SeriesMetadata,
    SpecialType,
)
from .cleaner import strip_tags
from .parser import (
    extract_episode,
    parse_filename,
    is_media_file,
    is_subtitle_file
)
from .mapper import map_episode, map_entry
from .catalog import CatalogClient, CatalogError, ChainedCatalog
from .tmdb import TMDBClient, TMDBError
from .anilist import AniListClient
from .resolver import Resolver, resolve
from .formatter import format_entry_name
from .cache import LookupMemo

__version__ = "0.1.0"
__all__ = [
    "Confidence",
    "ErrorKind",
    "LookupFailure",
    "Override",
    "ParsedEntry",
    "ParseError",
    "RenameResult",
    "ResolvedEntry",
    "ResolveOptions",
    "SeasonInfo",
    "SeriesMetadata",
    "SpecialType",
    "strip_tags",
    "extract_episode",
    "parse_filename",
    "is_media_file",
    "is_subtitle_file",
    "map_episode",
    "map_entry",
    "CatalogClient",
    "CatalogError",
    "ChainedCatalog",
    "TMDBClient",
    "TMDBError",
    "AniListClient",
    "Resolver",
    "resolve",
    "format_entry_name",
    "LookupMemo",
]
