from __future__ import annotations

import os
from pathlib import Path

import pytest

from filesystem import LocalFileSystem
from models import DirEntry, PermissionState, PlatformInfo, ScanOutcome, ScanPlan
from scanner import CANONICAL_ROOT, StorageLayout, build_scan_plan, dedupe, scan


class FakeFileSystem:
    """In-memory tree: directory path -> entries, or an exception to raise."""

    def __init__(self, tree: dict, missing: set[str] | None = None) -> None:
        self.tree = tree
        self.missing = missing or set()
        self.listed: list[str] = []

    def exists(self, path: str) -> bool:
        value = self.tree.get(path)
        if isinstance(value, Exception) and path in self.missing:
            raise value
        return path in self.tree

    def list_entries(self, path: str) -> list[DirEntry]:
        self.listed.append(path)
        value = self.tree[path]
        if isinstance(value, Exception):
            raise value
        return value


def file(directory: str, name: str, size: int = 10) -> DirEntry:
    return DirEntry(name=name, path=f"{directory}/{name}", is_directory=False, size=size)


def folder(directory: str, name: str) -> DirEntry:
    return DirEntry(name=name, path=f"{directory}/{name}", is_directory=True)


def touch(path: Path, size: int = 4) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x00" * size)
    return path


def run(roots, max_depth: int = 3, fs=None, **kwargs):
    plan = ScanPlan(roots=tuple(str(r) for r in roots), max_depth=max_depth, **kwargs)
    return scan(PermissionState.GRANTED, plan, fs=fs)


def test_scan_real_tree(tmp_path: Path) -> None:
    touch(tmp_path / "Music" / "Artist" / "My.Song.MP3", size=2048)
    touch(tmp_path / "Music" / "notes.txt")
    touch(tmp_path / "Music" / "README")

    result = run([tmp_path / "Music"])

    assert result.outcome == ScanOutcome.COMPLETED
    assert len(result.entries) == 1
    entry = result.entries[0]
    assert entry.display_name == "My.Song"
    assert entry.extension == ".mp3"
    assert entry.size_bytes == 2048
    assert entry.path == str(tmp_path / "Music" / "Artist" / "My.Song.MP3")
    assert entry.id == os.path.realpath(entry.path)


@pytest.mark.parametrize("ext", [".mp3", ".m4a", ".wav", ".flac", ".aac", ".ogg", ".OGG", ".Flac"])
def test_allowed_extensions_included(tmp_path: Path, ext: str) -> None:
    touch(tmp_path / f"track{ext}")
    result = run([tmp_path])
    assert [e.extension for e in result.entries] == [ext.lower()]


@pytest.mark.parametrize("name", ["cover.jpg", "song.mp3.part", "mp3", "playlist.m3u", "video.mp4"])
def test_other_extensions_excluded(tmp_path: Path, name: str) -> None:
    touch(tmp_path / name)
    assert run([tmp_path]).entries == []


def test_depth_bound(tmp_path: Path) -> None:
    touch(tmp_path / "top.mp3")
    touch(tmp_path / "a" / "b" / "at_max.mp3")
    touch(tmp_path / "a" / "b" / "c" / "too_deep.mp3")

    names = {e.display_name for e in run([tmp_path], max_depth=2).entries}

    assert names == {"top", "at_max"}


def test_depth_zero_only_lists_root(tmp_path: Path) -> None:
    touch(tmp_path / "top.mp3")
    touch(tmp_path / "sub" / "nested.mp3")

    assert [e.display_name for e in run([tmp_path], max_depth=0).entries] == ["top"]


def test_missing_roots_are_skipped(tmp_path: Path) -> None:
    touch(tmp_path / "Music" / "song.mp3")

    result = run([tmp_path / "nope", tmp_path / "Music", tmp_path / "also-nope"])

    assert [e.display_name for e in result.entries] == ["song"]
    assert result.skipped == []


def test_overlapping_roots_are_deduplicated(tmp_path: Path) -> None:
    touch(tmp_path / "Music" / "Album" / "song.mp3")

    result = run([tmp_path / "Music", tmp_path / "Music" / "Album"])

    assert len(result.entries) == 1
    assert result.entries[0].path == str(tmp_path / "Music" / "Album" / "song.mp3")


def test_symlink_into_other_root_collapses(tmp_path: Path) -> None:
    root_a = tmp_path / "A"
    root_b = tmp_path / "B"
    touch(root_a / "song.mp3")
    root_b.mkdir()
    (root_b / "link").symlink_to(root_a, target_is_directory=True)

    result = run([root_a, root_b])

    assert len(result.entries) == 1
    assert result.entries[0].path == str(root_a / "song.mp3")


def test_symlink_cycle_is_bounded_by_depth(tmp_path: Path) -> None:
    touch(tmp_path / "song.mp3")
    (tmp_path / "loop").symlink_to(tmp_path, target_is_directory=True)

    result = run([tmp_path], max_depth=4)

    assert [e.display_name for e in result.entries] == ["song"]


def test_idempotent_regardless_of_root_order(tmp_path: Path) -> None:
    touch(tmp_path / "Music" / "one.mp3")
    touch(tmp_path / "Download" / "two.flac")
    touch(tmp_path / "Download" / "deep" / "three.ogg")
    roots = [tmp_path / "Music", tmp_path / "Download"]

    first = {e.id for e in run(roots).entries}
    second = {e.id for e in run(list(reversed(roots))).entries}

    assert first == second
    assert len(first) == 3


def test_not_granted_reports_permission_denied() -> None:
    fs = FakeFileSystem({"/music": [file("/music", "a.mp3")]})
    plan = ScanPlan(roots=("/music",))

    for state in (PermissionState.DENIED, PermissionState.UNKNOWN):
        result = scan(state, plan, fs=fs)
        assert result.outcome == ScanOutcome.PERMISSION_DENIED
        assert result.entries == []
    assert fs.listed == []


def test_granted_with_no_files_is_completed() -> None:
    fs = FakeFileSystem({"/music": []})
    result = run(["/music"], fs=fs)
    assert result.outcome == ScanOutcome.COMPLETED
    assert result.entries == []


def test_unreadable_subtree_is_skipped() -> None:
    fs = FakeFileSystem(
        {
            "/music": [folder("/music", "locked"), folder("/music", "open"), file("/music", "a.mp3")],
            "/music/locked": PermissionError("denied"),
            "/music/open": [file("/music/open", "b.wav")],
        }
    )

    result = run(["/music"], fs=fs)

    assert [e.display_name for e in result.entries] == ["b", "a"]
    assert result.skipped == ["/music/locked"]


def test_failing_root_does_not_abort_others() -> None:
    fs = FakeFileSystem(
        {
            "/broken": OSError("io"),
            "/gone": FileNotFoundError("gone"),
            "/music": [file("/music", "a.mp3")],
        },
        missing={"/broken"},
    )

    result = run(["/broken", "/gone", "/music"], fs=fs)

    assert [e.display_name for e in result.entries] == ["a"]
    assert result.skipped == ["/broken", "/gone"]


def test_fallback_runs_once_when_primary_is_empty() -> None:
    fs = FakeFileSystem(
        {
            "/primary": [file("/primary", "notes.txt")],
            "/fallback/Music": [folder("/fallback/Music", "x")],
            "/fallback/Music/x": [folder("/fallback/Music/x", "y"), file("/fallback/Music/x", "hit.mp3")],
            "/fallback/Music/x/y": [folder("/fallback/Music/x/y", "z"), file("/fallback/Music/x/y", "edge.mp3")],
            "/fallback/Music/x/y/z": [file("/fallback/Music/x/y/z", "deep.mp3")],
        }
    )

    result = run(
        ["/primary"],
        fs=fs,
        fallback_roots=("/fallback/Music", "/fallback/Podcasts"),
        fallback_depth=2,
    )

    assert result.fallback_used is True
    assert [e.display_name for e in result.entries] == ["edge", "hit"]
    assert fs.listed.count("/fallback/Music") == 1


def test_fallback_skipped_when_primary_has_entries() -> None:
    fs = FakeFileSystem(
        {
            "/primary": [file("/primary", "a.mp3")],
            "/fallback": [file("/fallback", "b.mp3")],
        }
    )

    result = run(["/primary"], fs=fs, fallback_roots=("/fallback",))

    assert result.fallback_used is False
    assert "/fallback" not in fs.listed
    assert [e.display_name for e in result.entries] == ["a"]


def test_dedupe_keeps_first_seen() -> None:
    fs = FakeFileSystem(
        {
            "/one": [DirEntry(name="a.mp3", path="/shared/a.mp3", is_directory=False, size=1)],
            "/two": [DirEntry(name="a.mp3", path="/shared/a.mp3", is_directory=False, size=2)],
        }
    )

    entries = dedupe(run(["/one", "/two"], fs=fs).entries)

    assert len(entries) == 1
    assert entries[0].size_bytes == 1


def test_local_filesystem_lists_sorted(tmp_path: Path) -> None:
    touch(tmp_path / "b.mp3", size=3)
    touch(tmp_path / "a.mp3", size=5)
    (tmp_path / "dir").mkdir()

    entries = LocalFileSystem().list_entries(str(tmp_path))

    assert [e.name for e in entries] == ["a.mp3", "b.mp3", "dir"]
    assert entries[0].size == 5
    assert entries[2].is_directory is True


def test_local_filesystem_missing_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        LocalFileSystem().list_entries(str(tmp_path / "missing"))


def test_build_scan_plan_for_scoped_android() -> None:
    layout = StorageLayout(
        external_storage="/sdcard",
        documents="/data/docs",
        app_external="/sdcard/Android/data/app/files",
    )

    plan = build_scan_plan(PlatformInfo("android", 31), layout, extra_roots=["/mnt/usb"])

    assert plan.roots == (
        "/sdcard/Music",
        "/sdcard/Download",
        "/sdcard/Downloads",
        "/data/docs",
        "/sdcard/Android/data/app/files",
        f"{CANONICAL_ROOT}/Music",
        f"{CANONICAL_ROOT}/Download",
        f"{CANONICAL_ROOT}/Downloads",
        "/mnt/usb",
    )
    assert plan.max_depth == 3
    assert plan.fallback_depth == 2
    assert f"{CANONICAL_ROOT}/Podcasts" in plan.fallback_roots
    assert len(plan.fallback_roots) == 5


@pytest.mark.parametrize("platform", [PlatformInfo("android", 29), PlatformInfo("darwin")])
def test_build_scan_plan_without_fallback(platform: PlatformInfo) -> None:
    layout = StorageLayout(external_storage="/home/me", documents="/home/me/Documents")

    plan = build_scan_plan(platform, layout)

    assert plan.roots == (
        "/home/me/Music",
        "/home/me/Download",
        "/home/me/Downloads",
        "/home/me/Documents",
    )
    assert plan.fallback_roots == ()
