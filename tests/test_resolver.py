"""Tests for batch resolution."""

from __future__ import annotations

from pathlib import Path

from anirename.formatter import format_entry_name
from anirename.models import (
    ErrorKind,
    ParseError,
    ResolvedEntry,
    ResolveOptions,
    SeasonInfo,
    SeriesMetadata,
)
from anirename.resolver import Resolver, resolve


SHOW = SeriesMetadata("Show", (SeasonInfo(1, 12),), catalog_id=1)


class TestEndToEnd:
    """Raw filename to final filename."""

    def test_fansub_release(self, fake_catalog, bocchi) -> None:
        catalog = fake_catalog(default=bocchi)
        [result] = Resolver(catalog).resolve(["[LoliHouse] 孤独搖滾！- 01 [WebRip 1080p].mkv"])

        assert isinstance(result, ResolvedEntry)
        assert (result.title, result.season, result.episode) == ("孤独搖滾！", 1, 1)
        assert format_entry_name(result) == "孤独搖滾！ S01E01.mkv"
        assert catalog.calls == ["孤独搖滾！"]

    def test_absolute_numbering(self, fake_catalog, kimetsu) -> None:
        [result] = Resolver(fake_catalog(default=kimetsu)).resolve(["鬼灭之刃 27.mkv"])

        assert isinstance(result, ResolvedEntry)
        assert format_entry_name(result) == "鬼灭之刃 S02E01.mkv"

    def test_special_ignores_overrides(self, fake_catalog) -> None:
        metadata = SeriesMetadata("进击的巨人", (SeasonInfo(1, 25),))
        options = ResolveOptions(season=2, offset=5)
        [result] = Resolver(fake_catalog(default=metadata), options).resolve(["进击的巨人 OVA 01.mkv"])

        assert isinstance(result, ResolvedEntry)
        assert format_entry_name(result) == "进击的巨人 S00E01.mkv"

    def test_kept_tags(self, fake_catalog, bocchi) -> None:
        options = ResolveOptions(keep_tags=True)
        [result] = Resolver(fake_catalog(default=bocchi), options).resolve(
            ["[LoliHouse] 孤独搖滾！- 01 [WebRip 1080p].mkv"]
        )

        assert isinstance(result, ResolvedEntry)
        assert format_entry_name(result) == "孤独搖滾！ S01E01[LoliHouse][WebRip 1080p].mkv"

    def test_module_level_resolve(self, fake_catalog) -> None:
        results = resolve(["Show - 01.mkv"], ResolveOptions(), fake_catalog(default=SHOW))

        assert isinstance(results[0], ResolvedEntry)


class TestClustering:
    """One catalog lookup per title cluster."""

    def test_same_title_looked_up_once(self, fake_catalog) -> None:
        catalog = fake_catalog(default=SHOW)
        results = Resolver(catalog).resolve([
            "[A] Show - 01.mkv",
            "[B] show - 02.mkv",
            "[A] SHOW - 03.mkv",
        ])

        assert [r.episode for r in results] == [1, 2, 3]
        assert len(catalog.calls) == 1

    def test_distinct_titles_looked_up_separately(self, fake_catalog) -> None:
        catalog = fake_catalog(default=SHOW)
        Resolver(catalog).resolve(["Show - 01.mkv", "Other - 01.mkv", "Show - 02.mkv"])

        assert sorted(catalog.calls) == ["Other", "Show"]

    def test_name_option_replaces_title_guess(self, fake_catalog) -> None:
        catalog = fake_catalog(metadata={"Frieren": SHOW})
        options = ResolveOptions(name="Frieren")
        results = Resolver(catalog, options).resolve([
            "[A] Sousou no Frieren - 01.mkv",
            "[B] 葬送的芙莉莲 - 02.mkv",
        ])

        assert all(isinstance(r, ResolvedEntry) for r in results)
        assert catalog.calls == ["Frieren"]

    def test_tmdbid_folder_bypasses_search(self, fake_catalog) -> None:
        catalog = fake_catalog(by_id={209867: SHOW})
        folder = Path("/anime/Frieren [tmdbid=209867]")
        results = Resolver(catalog).resolve([
            folder / "[A] Sousou no Frieren - 05.mkv",
            folder / "[B] 葬送的芙莉莲 - 06.mkv",
        ])

        assert [r.episode for r in results] == [5, 6]
        assert catalog.id_calls == [209867]
        assert catalog.calls == []

    def test_tmdbid_on_scan_root_reaches_nested_files(self, fake_catalog) -> None:
        """A marker on the scanned folder covers files in its season folders."""
        catalog = fake_catalog(by_id={5: SHOW})
        root = Path("/anime/Frieren [tmdbid=5]")
        results = Resolver(catalog, ResolveOptions(root=root)).resolve([
            root / "Season 1" / "[A] Sousou no Frieren - 05.mkv",
            root / "[A] Sousou no Frieren - 06.mkv",
        ])

        assert [r.episode for r in results] == [5, 6]
        assert catalog.id_calls == [5]
        assert catalog.calls == []

    def test_tmdbid_above_scan_root_is_ignored(self, fake_catalog) -> None:
        catalog = fake_catalog(default=SHOW)
        root = Path("/anime/Frieren [tmdbid=5]/Season 1")
        results = Resolver(catalog, ResolveOptions(root=root / "Extras")).resolve([
            root / "Extras" / "Show - 05.mkv",
        ])

        assert isinstance(results[0], ResolvedEntry)
        assert catalog.id_calls == []
        assert catalog.calls == ["Show"]

    def test_parallel_lookup_is_single_flight(self, fake_catalog) -> None:
        catalog = fake_catalog(default=SHOW, delay=0.05)
        options = ResolveOptions(workers=4)
        files = [f"Show - {n:02d}.mkv" for n in range(1, 13)]
        results = Resolver(catalog, options).resolve(files)

        assert len(catalog.calls) == 1
        assert [r.episode for r in results] == list(range(1, 13))


class TestFailures:
    """Per-file and per-cluster failures do not stop the batch."""

    def test_lookup_failure_skips_whole_cluster(self, fake_catalog) -> None:
        catalog = fake_catalog(metadata={"Show": SHOW})
        results = Resolver(catalog).resolve([
            "Show - 01.mkv",
            "Unknown Thing - 01.mkv",
            "Unknown Thing - 02.mkv",
        ])

        assert isinstance(results[0], ResolvedEntry)
        assert all(
            isinstance(r, ParseError) and r.kind is ErrorKind.LOOKUP_ERROR
            for r in results[1:]
        )
        assert results[2].source_path == Path("Unknown Thing - 02.mkv")
        assert len(catalog.calls) == 2

    def test_parse_errors_keep_input_order(self, fake_catalog) -> None:
        results = Resolver(fake_catalog(default=SHOW)).resolve([
            "Some Title.mkv",
            "Show - 01.mkv",
        ])

        assert isinstance(results[0], ParseError)
        assert results[0].kind is ErrorKind.NO_EPISODE_FOUND
        assert isinstance(results[1], ResolvedEntry)

    def test_out_of_range(self, fake_catalog) -> None:
        [result] = Resolver(fake_catalog(default=SHOW)).resolve(["Show - 13.mkv"])

        assert isinstance(result, ParseError)
        assert result.kind is ErrorKind.EPISODE_OUT_OF_RANGE
        assert result.source_path == Path("Show - 13.mkv")


class TestSpecials:
    """Unnumbered specials are counted per cluster."""

    def test_unnumbered_specials_counted_in_path_order(self, fake_catalog) -> None:
        results = Resolver(fake_catalog(default=SHOW)).resolve([
            "Show [OVA][B].mkv",
            "Show [OVA][A].mkv",
        ])

        assert [(r.season, r.episode) for r in results] == [(0, 2), (0, 1)]

    def test_unnumbered_special_skips_taken_number(self, fake_catalog) -> None:
        """An unnumbered special never reuses a number an "OVA 01" already has."""
        results = Resolver(fake_catalog(default=SHOW)).resolve([
            "Show OVA 01.mkv",
            "Show [OVA].mkv",
        ])

        assert [(r.season, r.episode) for r in results] == [(0, 1), (0, 2)]

    def test_counters_skip_every_taken_number(self, fake_catalog) -> None:
        results = Resolver(fake_catalog(default=SHOW)).resolve([
            "Show OVA 01.mkv",
            "Show OVA 02.mkv",
            "Show [OVA][A].mkv",
            "Show [OVA][B].mkv",
        ])

        assert [r.episode for r in results] == [1, 2, 3, 4]
