"""Tests for the CLI and the rename plan."""

from __future__ import annotations

from pathlib import Path

import pytest

from anirename import renamer
from anirename.models import ErrorKind, ParseError, SeasonInfo, SeriesMetadata


BOCCHI_VIDEO = "[LoliHouse] 孤独搖滾！- 01 [WebRip 1080p].mkv"
BOCCHI_SUB = "[LoliHouse] 孤独搖滾！- 01 [WebRip 1080p].sc.ass"
SHOW = SeriesMetadata("Show", (SeasonInfo(1, 12),))


def _touch(directory: Path, *names: str) -> None:
    for name in names:
        (directory / name).write_bytes(b"")


class TestFindMediaFiles:
    """Tests for find_media_files."""

    def test_videos_and_subtitles(self, tmp_path: Path) -> None:
        _touch(tmp_path, "b.mkv", "a.sc.ass", "notes.txt")
        (tmp_path / "sub").mkdir()
        _touch(tmp_path / "sub", "c.mp4")

        flat = renamer.find_media_files(tmp_path)
        deep = renamer.find_media_files(tmp_path, recursive=True)

        assert [p.name for p in flat] == ["a.sc.ass", "b.mkv"]
        assert [p.name for p in deep] == ["a.sc.ass", "b.mkv", "c.mp4"]

    def test_single_file(self, tmp_path: Path) -> None:
        _touch(tmp_path, "a.mkv", "a.txt")

        assert renamer.find_media_files(tmp_path / "a.mkv") == [tmp_path / "a.mkv"]
        assert renamer.find_media_files(tmp_path / "a.txt") == []


class TestPlanRenames:
    """Tests for plan_renames."""

    def test_parse_error_is_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "Some Title.mkv"
        error = ParseError(ErrorKind.NO_EPISODE_FOUND, path, "No episode number found")

        [item] = renamer.plan_renames([error], [path])

        assert item.skipped
        assert item.skip_reason == "no_episode_found: No episode number found"


class TestMain:
    """End-to-end runs of the CLI against a temporary directory."""

    def test_dry_run_changes_nothing(self, tmp_path, fake_catalog, bocchi, default_settings, capsys) -> None:
        _touch(tmp_path, BOCCHI_VIDEO)

        code = renamer.main([str(tmp_path), "--dry-run"], catalog=fake_catalog(default=bocchi))

        assert code == 0
        assert (tmp_path / BOCCHI_VIDEO).exists()
        out = capsys.readouterr().out
        assert "-> 孤独搖滾！ S01E01.mkv" in out
        assert "Would rename: 1" in out

    def test_renames_video_and_subtitle(self, tmp_path, fake_catalog, bocchi, default_settings, capsys) -> None:
        _touch(tmp_path, BOCCHI_VIDEO, BOCCHI_SUB)
        catalog = fake_catalog(default=bocchi)

        code = renamer.main([str(tmp_path), "--yes"], catalog=catalog)

        assert code == 0
        assert (tmp_path / "孤独搖滾！ S01E01.mkv").exists()
        assert (tmp_path / "孤独搖滾！ S01E01.sc.ass").exists()
        assert not (tmp_path / BOCCHI_VIDEO).exists()
        assert len(catalog.calls) == 1
        assert "Renamed: 2 | Skipped: 0 | Errors: 0" in capsys.readouterr().out

    def test_season_folders(self, tmp_path, fake_catalog, bocchi, default_settings) -> None:
        _touch(tmp_path, BOCCHI_VIDEO)

        code = renamer.main(
            [str(tmp_path), "--yes", "--season-folders"], catalog=fake_catalog(default=bocchi)
        )

        assert code == 0
        assert (tmp_path / "Season 1" / "孤独搖滾！ S01E01.mkv").exists()

    def test_second_run_skips_renamed_files(self, tmp_path, fake_catalog, bocchi, default_settings, capsys) -> None:
        _touch(tmp_path, BOCCHI_VIDEO)
        renamer.main([str(tmp_path), "--yes"], catalog=fake_catalog(default=bocchi))
        capsys.readouterr()

        code = renamer.main([str(tmp_path), "--yes"], catalog=fake_catalog(default=bocchi))

        assert code == 0
        assert "No files to rename." in capsys.readouterr().out

    def test_duplicate_targets_are_errors(self, tmp_path, fake_catalog, default_settings, capsys) -> None:
        _touch(tmp_path, "Show - 01.mkv", "[G] Show - 01.mkv")

        code = renamer.main([str(tmp_path), "--yes"], catalog=fake_catalog(default=SHOW))

        assert code == 1
        assert (tmp_path / "Show - 01.mkv").exists()
        assert (tmp_path / "[G] Show - 01.mkv").exists()
        assert "2 files would be renamed to Show S01E01.mkv" in capsys.readouterr().out

    def test_existing_target_is_an_error(self, tmp_path, fake_catalog, default_settings, capsys) -> None:
        _touch(tmp_path, "Show - 01.mkv", "Show S01E01.mkv")

        code = renamer.main([str(tmp_path), "--yes"], catalog=fake_catalog(default=SHOW))

        assert code == 1
        assert (tmp_path / "Show - 01.mkv").exists()
        assert "Destination file already exists" in capsys.readouterr().out

    def test_failures_do_not_block_other_files(self, tmp_path, fake_catalog, default_settings, capsys) -> None:
        _touch(tmp_path, "Show - 01.mkv", "Show - 13.mkv", "Some Title.mkv")

        code = renamer.main([str(tmp_path), "--yes"], catalog=fake_catalog(default=SHOW))

        assert code == 0
        assert (tmp_path / "Show S01E01.mkv").exists()
        assert (tmp_path / "Show - 13.mkv").exists()
        out = capsys.readouterr().out
        assert "episode_out_of_range" in out
        assert "no_episode_found" in out
        assert "Renamed: 1 | Skipped: 2 | Errors: 0" in out

    def test_numbered_and_unnumbered_specials_both_renamed(
        self, tmp_path, fake_catalog, default_settings, capsys
    ) -> None:
        _touch(tmp_path, "Show OVA 01.mkv", "Show [OVA].mkv")

        code = renamer.main([str(tmp_path), "--yes"], catalog=fake_catalog(default=SHOW))

        assert code == 0
        assert (tmp_path / "Show S00E01.mkv").exists()
        assert (tmp_path / "Show S00E02.mkv").exists()
        assert "Renamed: 2 | Skipped: 0 | Errors: 0" in capsys.readouterr().out

    def test_tmdbid_on_scanned_folder_covers_season_folders(
        self, tmp_path, fake_catalog, default_settings
    ) -> None:
        root = tmp_path / "Frieren [tmdbid=5]"
        season = root / "Season 1"
        season.mkdir(parents=True)
        _touch(season, "[A] Sousou no Frieren - 05.mkv")
        catalog = fake_catalog(by_id={5: SHOW})

        code = renamer.main([str(root), "--yes", "--recursive"], catalog=catalog)

        assert code == 0
        assert (season / "Show S01E05.mkv").exists()
        assert catalog.id_calls == [5]
        assert catalog.calls == []

    def test_manual_season_and_offset(self, tmp_path, fake_catalog, default_settings) -> None:
        _touch(tmp_path, "Show - 13.mkv")

        code = renamer.main(
            [str(tmp_path), "--yes", "--season", "2", "--offset", "-12"],
            catalog=fake_catalog(default=SHOW),
        )

        assert code == 0
        assert (tmp_path / "Show S02E01.mkv").exists()

    def test_confirmation_declined(self, tmp_path, fake_catalog, default_settings, monkeypatch, capsys) -> None:
        _touch(tmp_path, "Show - 01.mkv")
        monkeypatch.setattr("builtins.input", lambda _prompt: "n")

        code = renamer.main([str(tmp_path)], catalog=fake_catalog(default=SHOW))

        assert code == 0
        assert (tmp_path / "Show - 01.mkv").exists()
        assert "Cancelled." in capsys.readouterr().out

    def test_missing_api_key(self, tmp_path, default_settings, monkeypatch, capsys) -> None:
        _touch(tmp_path, "Show - 01.mkv")
        monkeypatch.setattr("anirename.tmdb.load_api_key", lambda: None)

        code = renamer.main([str(tmp_path)])

        assert code == 1
        assert "TMDB API key not found" in capsys.readouterr().out

    def test_missing_path(self, tmp_path, default_settings, capsys) -> None:
        code = renamer.main([str(tmp_path / "nope")])

        assert code == 1
        assert "Path does not exist" in capsys.readouterr().out


@pytest.mark.parametrize("answer,expected", [("", True), ("y", True), ("no", False)])
def test_confirm_proceed(monkeypatch, answer: str, expected: bool) -> None:
    monkeypatch.setattr("builtins.input", lambda _prompt: answer)
    assert renamer.confirm_proceed(3) is expected
