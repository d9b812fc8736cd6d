"""Batch resolution of episode files against catalog metadata.

Parsing and mapping are pure per-file steps.  The only shared state is the
lookup memo, so files of one title cluster cost a single catalog request
even when they are resolved on several threads.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, TypeVar

from .cache import LookupMemo
from .catalog import CatalogClient
from .cleaner import extract_catalog_id, normalize_title
from .mapper import map_entry
from .models import (
    ErrorKind,
    LookupFailure,
    ParsedEntry,
    ParseError,
    ResolvedEntry,
    ResolveOptions,
    SeriesMetadata,
)
from .parser import parse_filename

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ResolveOutcome = ResolvedEntry | ParseError


class Resolver:
    """Resolves batches of filenames for one run.

    Usage::

        resolver = Resolver(TMDBClient(), ResolveOptions(offset=-12))
        for outcome in resolver.resolve(paths):
            ...
    """

    def __init__(
        self,
        catalog: CatalogClient,
        options: ResolveOptions | None = None,
        memo: LookupMemo | None = None,
    ):
        self.catalog = catalog
        self.options = options or ResolveOptions()
        self.memo = memo or LookupMemo()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _map(self, fn: Callable[[T], R], items: list[T]) -> list[R]:
        """Apply *fn* to every item, on a thread pool when workers > 1."""
        if self.options.workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=self.options.workers) as executor:
                return list(executor.map(fn, items))
        return [fn(item) for item in items]

    def _catalog_id(self, path: Path) -> int | None:
        """TMDB id of the nearest marked folder between *path* and the scan root."""
        root = self.options.root
        for folder in path.parents:
            catalog_id = extract_catalog_id(folder.name)
            if catalog_id is not None:
                return catalog_id
            if root is None or folder == root or root not in folder.parents:
                break
        return None

    def cluster_key(self, parsed: ParsedEntry) -> str | None:
        """Key shared by every file that needs the same catalog entry."""
        catalog_id = self._catalog_id(parsed.source_path)
        if catalog_id is not None:
            return f"tmdbid:{catalog_id}"
        if self.options.name:
            return f"title:{normalize_title(self.options.name)}"
        if parsed.title_guess:
            return f"title:{normalize_title(parsed.title_guess)}"
        return None

    def _fetch(self, parsed: ParsedEntry) -> SeriesMetadata | LookupFailure:
        key = self.cluster_key(parsed)
        if key is None:
            return LookupFailure("", "No title could be guessed; pass --name")

        catalog_id = self._catalog_id(parsed.source_path)
        if catalog_id is not None:
            def fetch():
                log.info("Using TMDB id %s from folder name", catalog_id)
                return self.catalog.lookup_by_id(catalog_id)
        else:
            query = self.options.name or parsed.title_guess

            def fetch():
                log.info("Searching catalog for '%s'", query)
                return self.catalog.lookup(query, self.options.prefer_romaji)

        return self.memo.get(key, fetch)

    def _special_numbers(self, parsed: list[ParsedEntry]) -> dict[Path, int]:
        """Number unnumbered specials per cluster, in path order.

        Numbers already used by numbered specials of the same cluster are
        skipped, so "OVA 01" and "[OVA]" never share S00E01.
        """
        taken: dict[str | None, set[int]] = {}
        for entry in parsed:
            if entry.is_special and entry.local_episode is not None:
                taken.setdefault(self.cluster_key(entry), set()).add(entry.local_episode)

        counters: dict[str | None, int] = {}
        numbers: dict[Path, int] = {}
        specials = sorted(
            (p for p in parsed if p.is_special and p.local_episode is None),
            key=lambda p: str(p.source_path),
        )
        for entry in specials:
            key = self.cluster_key(entry)
            number = counters.get(key, 0) + 1
            while number in taken.get(key, ()):
                number += 1
            counters[key] = number
            numbers[entry.source_path] = number
        return numbers

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, path: str | Path) -> ParsedEntry | ParseError:
        return parse_filename(
            path, keep_tags=self.options.keep_tags, strict=self.options.strict
        )

    def resolve_parsed(
        self,
        parsed: ParsedEntry,
        special_number: int | None = None,
    ) -> ResolveOutcome:
        """Look up (memoized) metadata for one parsed file and map it."""
        metadata = self._fetch(parsed)
        if isinstance(metadata, LookupFailure):
            return ParseError(ErrorKind.LOOKUP_ERROR, parsed.source_path, metadata.message)
        return map_entry(parsed, metadata, self.options.override, special_number)

    def resolve(self, entries: Iterable[str | Path]) -> list[ResolveOutcome]:
        """
        Resolve a batch of files.

        Args:
            entries: File paths (only the names and parent folder names are used)

        Returns:
            One ResolvedEntry or ParseError per input, in input order
        """
        paths = [Path(entry) for entry in entries]
        parsed = self._map(self.parse, paths)

        good = [p for p in parsed if isinstance(p, ParsedEntry)]
        clusters: dict[str | None, int] = {}
        for entry in good:
            key = self.cluster_key(entry)
            clusters[key] = clusters.get(key, 0) + 1
        for key, count in clusters.items():
            log.info("Group '%s': %d file(s)", key, count)

        special_numbers = self._special_numbers(good)

        def finish(outcome: ParsedEntry | ParseError) -> ResolveOutcome:
            if isinstance(outcome, ParseError):
                return outcome
            return self.resolve_parsed(outcome, special_numbers.get(outcome.source_path))

        results = self._map(finish, parsed)

        failed = sum(1 for r in results if isinstance(r, ParseError))
        log.info("Resolved %d file(s), skipped %d", len(results) - failed, failed)
        return results


def resolve(
    entries: Iterable[str | Path],
    options: ResolveOptions,
    catalog: CatalogClient,
) -> list[ResolveOutcome]:
    """Resolve *entries* with a fresh, run-scoped lookup memo."""
    return Resolver(catalog, options).resolve(entries)
