#!/usr/bin/env python3
"""
anirename - Anime episode renamer

A CLI tool for renaming fansub releases to "Title SxxEyy" using
TMDB/AniList metadata.
"""
import argparse
import logging
import sys
from pathlib import Path

from .anilist import AniListClient
from .catalog import CatalogClient, CatalogError, ChainedCatalog
from .config import load_api_key, load_settings
from .formatter import filenames_match, format_entry_name, get_new_path
from .models import ErrorKind, ParseError, RenameResult, ResolveOptions
from .parser import is_media_file, is_subtitle_file
from .resolver import ResolveOutcome, Resolver
from .tmdb import TMDBClient

log = logging.getLogger(__name__)

ALREADY_NAMED = "Already named correctly"

# Skips that are expected and not worth a line in the preview
QUIET_SKIPS = {ErrorKind.ALREADY_FORMATTED}


def file_type(path: Path) -> str:
    return "Subtitle" if is_subtitle_file(path) else "Video"


def print_diff(old_name: str, new_name: str, kind: str = "Video") -> None:
    """Print the rename diff."""
    print(f"{kind}:")
    print(f"  {old_name}")
    print(f"  -> {new_name}")


def print_skip(old_name: str, reason: str, kind: str = "Video") -> None:
    """Print skip message."""
    print(f"{kind}:")
    print(f"  [SKIP] {old_name}")
    print(f"         Reason: {reason}")


def print_error(old_name: str, error: str, kind: str = "Video") -> None:
    """Print error message."""
    print(f"{kind}:")
    print(f"  [ERROR] {old_name}")
    print(f"          {error}")


def rename_file(source: Path, dest: Path, dry_run: bool) -> tuple[bool, str | None]:
    """
    Rename a file safely.

    Args:
        source: Source path
        dest: Destination path
        dry_run: If True, don't actually rename

    Returns:
        Tuple of (success, error_message)
    """
    # Check if destination already exists (and is not the same file)
    if dest.exists() and source.resolve() != dest.resolve():
        return False, "Destination file already exists"

    if not dry_run:
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            source.rename(dest)
        except OSError as e:
            return False, str(e)

    return True, None


def find_media_files(path: Path, recursive: bool = False) -> list[Path]:
    """
    Find all video and subtitle files in a directory.

    Args:
        path: Directory or file path
        recursive: Whether to search recursively

    Returns:
        Sorted list of file paths
    """
    def wanted(item: Path) -> bool:
        return item.is_file() and (is_media_file(item) or is_subtitle_file(item))

    if path.is_file():
        return [path] if wanted(path) else []

    if not path.is_dir():
        return []

    items = path.rglob("*") if recursive else path.iterdir()
    return sorted(item for item in items if wanted(item))


def build_catalog(options: ResolveOptions) -> CatalogClient:
    """
    Build the catalog chain for a run.

    TMDB first with AniList as fallback; with --use-anilist the order is
    reversed and TMDB is only added when an API key is configured.

    Raises:
        CatalogError: TMDB is required but no API key is available
    """
    anilist = AniListClient()
    if options.use_anilist:
        clients: list[CatalogClient] = [anilist]
        api_key = load_api_key()
        if api_key:
            clients.append(TMDBClient(api_key=api_key, language=options.language))
        return ChainedCatalog(clients)
    return ChainedCatalog([TMDBClient(language=options.language), anilist])


def plan_renames(
    outcomes: list[ResolveOutcome],
    paths: list[Path],
    season_folders: bool = False
) -> list[RenameResult]:
    """
    Turn resolver outcomes into a rename plan.

    Nothing is renamed here.  Targets that already exist, and targets
    claimed by two files, are reported as errors.
    """
    plan: list[RenameResult] = []
    for path, outcome in zip(paths, outcomes):
        if isinstance(outcome, ParseError):
            plan.append(RenameResult(
                original_path=str(path),
                new_path=str(path),
                success=False,
                skipped=True,
                skip_reason=ALREADY_NAMED if outcome.kind in QUIET_SKIPS
                else f"{outcome.kind.value}: {outcome.message}",
            ))
            continue

        new_name = format_entry_name(outcome)
        new_path = get_new_path(path, new_name, outcome.season, season_folders)
        if filenames_match(path.name, new_name) and new_path.parent == path.parent:
            plan.append(RenameResult(
                original_path=str(path),
                new_path=str(new_path),
                success=True,
                skipped=True,
                skip_reason=ALREADY_NAMED,
            ))
            continue

        exists = new_path.exists() and path.resolve() != new_path.resolve()
        plan.append(RenameResult(
            original_path=str(path),
            new_path=str(new_path),
            success=not exists,
            error="Destination file already exists" if exists else None,
        ))

    targets: dict[str, list[RenameResult]] = {}
    for item in plan:
        if not item.skipped:
            targets.setdefault(item.new_path.lower(), []).append(item)
    for items in targets.values():
        if len(items) > 1:
            for item in items:
                item.success = False
                item.error = f"{len(items)} files would be renamed to {Path(item.new_path).name}"

    return plan


def print_plan(plan: list[RenameResult]) -> int:
    """Print the preview. Returns the number of pending renames."""
    rename_count = 0
    for item in plan:
        source = Path(item.original_path)
        kind = file_type(source)
        if item.skipped:
            if item.skip_reason != ALREADY_NAMED:
                print_skip(source.name, item.skip_reason or "Unknown", kind)
                print()
        elif item.success:
            print_diff(source.name, str(Path(item.new_path).relative_to(source.parent)), kind)
            print()
            rename_count += 1
        else:
            print_error(source.name, item.error or "Unknown error", kind)
            print()
    return rename_count


def confirm_proceed(count: int) -> bool:
    """
    Ask user to confirm proceeding with rename.

    Args:
        count: Number of files to rename

    Returns:
        True if user confirms, False otherwise
    """
    while True:
        response = input(f"\nProceed with renaming {count} files? [Y/n]: ").strip().lower()
        if response in ('', 'y', 'yes'):
            return True
        if response in ('n', 'no'):
            return False
        print("Please enter 'y' or 'n'.")


def build_parser(settings: dict) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="anirename",
        description="Rename anime episode files to 'Title SxxEyy' using TMDB/AniList metadata."
    )

    parser.add_argument(
        "path",
        type=Path,
        help="File or directory to process"
    )
    parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Process directories recursively"
    )
    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Show what would be renamed without actually renaming"
    )
    parser.add_argument(
        "--name",
        type=str,
        default=None,
        help="Series name to search for (skips title guessing)"
    )
    parser.add_argument(
        "--language", "-l",
        type=str,
        default=settings["language"],
        help=f"Language for TMDB results (default: {settings['language']})"
    )
    parser.add_argument(
        "--keep-tags",
        action="store_true",
        default=settings["keep_tags"],
        help="Keep bracket tags such as [LoliHouse][1080p] in new names"
    )
    parser.add_argument(
        "--season",
        type=int,
        default=None,
        metavar="N",
        help="Force season N (disables automatic season mapping)"
    )
    parser.add_argument(
        "--offset",
        type=int,
        default=0,
        metavar="N",
        help="Add N (may be negative) to every regular episode number"
    )
    parser.add_argument(
        "--season-folders",
        action="store_true",
        default=settings["season_folders"],
        help="Move files into 'Season N' folders"
    )
    parser.add_argument(
        "--use-anilist",
        action="store_true",
        default=settings["use_anilist"],
        help="Search AniList before TMDB"
    )
    parser.add_argument(
        "--romaji",
        action="store_true",
        default=settings["prefer_romaji"],
        help="Prefer romaji titles from AniList"
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Skip files whose episode number is only a positional guess"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=settings["workers"],
        metavar="N",
        help="Resolve files on N threads"
    )
    parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Rename without asking for confirmation"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed debug information"
    )
    return parser


def main(args: list[str] | None = None, catalog: CatalogClient | None = None) -> int:
    """Main entry point."""
    parsed_args = build_parser(load_settings()).parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed_args.verbose else logging.WARNING,
        format="  [%(levelname)s] %(name)s: %(message)s",
    )

    if not parsed_args.path.exists():
        print(f"Error: Path does not exist: {parsed_args.path}")
        return 1

    options = ResolveOptions(
        name=parsed_args.name,
        language=parsed_args.language,
        keep_tags=parsed_args.keep_tags,
        season=parsed_args.season,
        offset=parsed_args.offset,
        use_anilist=parsed_args.use_anilist,
        prefer_romaji=parsed_args.romaji,
        strict=parsed_args.strict,
        workers=max(1, parsed_args.workers),
        root=parsed_args.path if parsed_args.path.is_dir() else parsed_args.path.parent,
    )

    files = find_media_files(parsed_args.path, parsed_args.recursive)
    if not files:
        print("No media files found.")
        return 0

    try:
        catalog = catalog or build_catalog(options)
    except CatalogError as e:
        print(f"Error: {e}")
        return 1

    print(f"Found {len(files)} media file(s)")
    if parsed_args.dry_run:
        print("[DRY RUN - no files will be renamed]\n")
    else:
        print()

    log.debug("Resolving %d file(s) with %d worker(s)", len(files), options.workers)

    # First pass: resolve everything and preview
    outcomes = Resolver(catalog, options).resolve(files)
    plan = plan_renames(outcomes, files, parsed_args.season_folders)
    rename_count = print_plan(plan)

    skipped_count = sum(1 for item in plan if item.skipped)
    error_count = sum(1 for item in plan if not item.skipped and not item.success)

    if parsed_args.dry_run:
        print("-" * 50)
        print(f"Would rename: {rename_count} | Skipped: {skipped_count} | Errors: {error_count}")
        return 0 if error_count == 0 else 1

    if rename_count == 0:
        print("-" * 50)
        print("No files to rename.")
        return 0 if error_count == 0 else 1

    if not parsed_args.yes and not confirm_proceed(rename_count):
        print("Cancelled.")
        return 0

    # Second pass: actually perform renames
    print("\nRenaming files...")
    print("-" * 50)

    renamed_count = 0
    for item in plan:
        if item.skipped or not item.success:
            continue
        success, error = rename_file(Path(item.original_path), Path(item.new_path), dry_run=False)
        if success:
            renamed_count += 1
        else:
            item.success = False
            item.error = error
            error_count += 1
            print_error(Path(item.original_path).name, error or "Unknown error",
                        file_type(Path(item.original_path)))

    print()
    print("-" * 50)
    print(f"Renamed: {renamed_count} | Skipped: {skipped_count} | Errors: {error_count}")

    return 0 if error_count == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
