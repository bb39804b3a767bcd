"""Repository access handles and the async fetch boundary."""

from __future__ import annotations

import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Mapping, Optional, Sequence, Tuple

from .logging import get_logger
from .models import SourceFile, TreeEntry

logger = get_logger("sources")

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}


class FileSource(ABC):
    """Caller-owned handle over one repository's listing and contents."""

    @abstractmethod
    def list_entries(self) -> List[TreeEntry]:
        """Return the repository listing, files and directories, in a stable order."""

    @abstractmethod
    def read(self, path: str) -> str:
        """Return the text of ``path``. Raises ``FileNotFoundError`` when absent."""

    def read_source(self, path: str) -> SourceFile:
        return SourceFile.from_text(path, self.read(path))


class InMemorySource(FileSource):
    """Serves files from a mapping of relative path to text."""

    def __init__(self, files: Mapping[str, str]) -> None:
        self._files = dict(files)

    def list_entries(self) -> List[TreeEntry]:
        directories = sorted(
            {
                "/".join(parts[:index])
                for parts in (path.split("/") for path in self._files)
                for index in range(1, len(parts))
            }
        )
        entries = [TreeEntry(path=directory, type="dir") for directory in directories]
        entries.extend(
            TreeEntry(path=path, type="file", size=len(content.encode("utf-8")))
            for path, content in self._files.items()
        )
        return entries

    def read(self, path: str) -> str:
        try:
            return self._files[path]
        except KeyError:
            raise FileNotFoundError(path) from None


class ScopedSource(FileSource):
    """Exposes one subdirectory of another source as if it were the root."""

    def __init__(self, source: FileSource, prefix: str) -> None:
        self.source = source
        self.prefix = prefix.strip("/")

    def list_entries(self) -> List[TreeEntry]:
        if not self.prefix:
            return self.source.list_entries()
        lead = f"{self.prefix}/"
        return [
            TreeEntry(path=entry.path[len(lead) :], type=entry.type, size=entry.size)
            for entry in self.source.list_entries()
            if entry.path.startswith(lead)
        ]

    def _full(self, path: str) -> str:
        return f"{self.prefix}/{path}" if self.prefix else path

    def read(self, path: str) -> str:
        return self.source.read(self._full(path))

    def read_source(self, path: str) -> SourceFile:
        inner = self.source.read_source(self._full(path))
        return SourceFile(path=path, content=inner.content, size_bytes=inner.size_bytes)


@dataclass
class IgnoreRule:
    """A single ``.gitignore`` rule."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False
        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")
        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def parse_ignore_rule(line: str) -> Optional[IgnoreRule]:
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    negate = line.startswith("!")
    if negate:
        line = line[1:]
    directory_only = line.endswith("/")
    if directory_only:
        line = line[:-1]
    anchored = line.startswith("/")
    if anchored:
        line = line[1:]
    if not line:
        return None
    return IgnoreRule(
        pattern=line,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in line,
    )


def load_ignore_rules(root: Path) -> List[IgnoreRule]:
    gitignore = root / ".gitignore"
    if not gitignore.exists():
        return []
    rules: List[IgnoreRule] = []
    for raw_line in gitignore.read_text(encoding="utf-8", errors="replace").splitlines():
        rule = parse_ignore_rule(raw_line)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


class LocalRepositorySource(FileSource):
    """Reads a repository checkout from disk, honouring ``.gitignore``."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Repository path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Repository path is not a directory: {root}")
        self.root = root_path
        self._rules = load_ignore_rules(root_path)

    def list_entries(self) -> List[TreeEntry]:
        return list(self._walk())

    def _walk(self) -> Iterator[TreeEntry]:
        for dirpath, dirnames, filenames in os.walk(self.root):
            current = Path(dirpath)
            rel_dir = current.relative_to(self.root).as_posix() if current != self.root else ""

            kept_dirs = []
            for name in sorted(dirnames):
                if name in _EXCLUDED_DIRS:
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if _should_ignore(rel_path, True, self._rules):
                    continue
                kept_dirs.append(name)
                yield TreeEntry(path=rel_path, type="dir")
            dirnames[:] = kept_dirs

            for filename in sorted(filenames):
                if filename in _EXCLUDED_FILES:
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, self._rules):
                    continue
                try:
                    size = (current / filename).stat().st_size
                except OSError:
                    continue
                yield TreeEntry(path=rel_path, type="file", size=size)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if target != self.root and self.root not in target.parents:
            raise FileNotFoundError(f"Path escapes the repository root: {path}")
        if not target.is_file():
            raise FileNotFoundError(f"File not found in repository: {path}")
        return target

    def read(self, path: str) -> str:
        return self._resolve(path).read_bytes().decode("utf-8", errors="replace")

    def read_source(self, path: str) -> SourceFile:
        raw = self._resolve(path).read_bytes()
        return SourceFile(path=path, content=raw.decode("utf-8", errors="replace"), size_bytes=len(raw))


async def fetch_sources(
    source: FileSource,
    paths: Sequence[str],
) -> Tuple[List[SourceFile], List[str]]:
    """Read ``paths`` concurrently. Results keep the order of ``paths``; failures become notes."""

    def read_one(path: str) -> SourceFile:
        return source.read_source(path)

    results = await asyncio.gather(
        *(asyncio.to_thread(read_one, path) for path in paths),
        return_exceptions=True,
    )

    sources: List[SourceFile] = []
    notes: List[str] = []
    for path, outcome in zip(paths, results):
        if isinstance(outcome, SourceFile):
            sources.append(outcome)
            continue
        if isinstance(outcome, (OSError, UnicodeError)):
            logger.warning("Could not read %s: %s", path, outcome)
            notes.append(f"Skipped {path} because it could not be read ({outcome}).")
            continue
        raise outcome
    return sources, notes


__all__ = [
    "FileSource",
    "IgnoreRule",
    "InMemorySource",
    "LocalRepositorySource",
    "ScopedSource",
    "fetch_sources",
    "load_ignore_rules",
    "parse_ignore_rule",
]
