"""Tests for templify.sources."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from templify.models import SourceFile, TreeEntry
from templify.sources import (
    FileSource,
    InMemorySource,
    LocalRepositorySource,
    ScopedSource,
    fetch_sources,
    parse_ignore_rule,
)
from tests._fixtures.repo_builder import RepoBuilder


def test_local_source_lists_files_and_directories(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/app.py": "print('hi')\n",
            "src/lib/util.py": "X = 1\n",
            "README.md": "# Demo\n",
            ".venv/lib/site.py": "nope\n",
            ".git/HEAD": "ref: refs/heads/main\n",
            "node_modules/pkg/index.js": "nope\n",
        }
    )

    entries = repo_builder.source().list_entries()
    files = {entry.path: entry for entry in entries if not entry.is_dir}
    directories = {entry.path for entry in entries if entry.is_dir}

    assert set(files) == {"README.md", "src/app.py", "src/lib/util.py"}
    assert directories == {"src", "src/lib"}
    assert files["src/app.py"].size == len("print('hi')\n")


def test_local_source_listing_is_sorted(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"b.txt": "b\n", "a.txt": "a\n", "c/z.txt": "z\n"})

    paths = [entry.path for entry in repo_builder.source().list_entries()]

    assert paths == ["c", "a.txt", "b.txt", "c/z.txt"]


def test_local_source_honours_gitignore(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".gitignore": "*.log\nsecrets/\n/build-output\n!keep.log\n",
            "app.log": "noise\n",
            "keep.log": "keep\n",
            "secrets/key.pem": "-----\n",
            "build-output/a.js": "x\n",
            "nested/build-output/b.js": "y\n",
            "src/main.go": "package main\n",
        }
    )

    files = {entry.path for entry in repo_builder.source().list_entries() if not entry.is_dir}

    assert "app.log" not in files
    assert "keep.log" in files
    assert "secrets/key.pem" not in files
    assert "build-output/a.js" not in files
    assert "nested/build-output/b.js" in files
    assert "src/main.go" in files


def test_parse_ignore_rule_shapes() -> None:
    assert parse_ignore_rule("# comment") is None
    assert parse_ignore_rule("   ") is None

    rule = parse_ignore_rule("!/dist/")
    assert rule is not None
    assert rule.negate and rule.anchored and rule.directory_only
    assert rule.pattern == "dist"


def test_local_source_reads_with_replacement(repo_builder: RepoBuilder) -> None:
    repo_builder.write_bytes("data.txt", b"caf\xe9\n")

    source = repo_builder.source()
    loaded = source.read_source("data.txt")

    assert loaded.content == "caf�\n"
    assert loaded.size_bytes == 5


def test_local_source_rejects_missing_and_escaping_paths(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    (tmp_path / "outside.txt").write_text("secret\n", encoding="utf-8")
    source = repo_builder.source()

    with pytest.raises(FileNotFoundError):
        source.read("missing.txt")
    with pytest.raises(FileNotFoundError):
        source.read("../outside.txt")


def test_local_source_rejects_bad_roots(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="not found"):
        LocalRepositorySource(tmp_path / "missing")

    file_path = tmp_path / "file.txt"
    file_path.write_text("x", encoding="utf-8")
    with pytest.raises(NotADirectoryError):
        LocalRepositorySource(file_path)


def test_in_memory_source_synthesises_directories() -> None:
    source = InMemorySource({"src/lib/a.ts": "a", "README.md": "r"})

    entries = source.list_entries()

    assert [entry.path for entry in entries if entry.is_dir] == ["src", "src/lib"]
    assert source.read("README.md") == "r"
    with pytest.raises(FileNotFoundError):
        source.read("nope")


def test_scoped_source_rebases_paths() -> None:
    base = InMemorySource({"packages/web/src/a.ts": "a", "packages/api/main.go": "m"})

    scoped = ScopedSource(base, "/packages/web/")

    assert [entry.path for entry in scoped.list_entries()] == ["src", "src/a.ts"]
    assert scoped.read_source("src/a.ts") == SourceFile(path="src/a.ts", content="a", size_bytes=1)


class _FlakySource(FileSource):
    def __init__(self) -> None:
        self.files = {"a.txt": "a", "b.txt": "b", "c.txt": "c"}

    def list_entries(self) -> list[TreeEntry]:
        return [TreeEntry(path=path) for path in self.files]

    def read(self, path: str) -> str:
        if path == "b.txt":
            raise PermissionError("denied")
        return self.files[path]


def test_fetch_sources_keeps_order_and_reports_failures() -> None:
    sources, notes = asyncio.run(fetch_sources(_FlakySource(), ["c.txt", "b.txt", "a.txt"]))

    assert [source.path for source in sources] == ["c.txt", "a.txt"]
    assert notes == ["Skipped b.txt because it could not be read (denied)."]


def test_fetch_sources_propagates_unexpected_errors() -> None:
    class _Broken(_FlakySource):
        def read(self, path: str) -> str:
            raise KeyError(path)

    with pytest.raises(KeyError):
        asyncio.run(fetch_sources(_Broken(), ["a.txt"]))
