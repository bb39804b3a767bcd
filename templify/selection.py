"""File selection: glob matching, hard filters, ranking and per-file screening."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Dict, Generic, List, Optional, Protocol, Sequence, TypeVar

from .languages import is_source_path
from .logging import get_logger

logger = get_logger("selection")

EXCLUDED_SEGMENTS = frozenset(
    {
        "node_modules",
        ".git",
        "dist",
        "build",
        "coverage",
        ".next",
        ".vercel",
        "tmp",
        "logs",
        ".cache",
        "vendor",
        "__pycache__",
        ".venv",
        "target",
    }
)

_LOCKFILES = frozenset(
    {
        "package-lock.json",
        "npm-shrinkwrap.json",
        "yarn.lock",
        "pnpm-lock.yaml",
        "poetry.lock",
        "pipfile.lock",
        "cargo.lock",
        "composer.lock",
        "gemfile.lock",
        "go.sum",
    }
)
_GENERATED_SUFFIX = re.compile(r"\.(lock|min\.js|min\.css|bundle\.js)$", re.IGNORECASE)

_SKELETON_NOISE_DIR = re.compile(
    r"(^|/)(__tests__|tests?|spec|fixtures?|mocks?|stories|examples?)/", re.IGNORECASE
)
_SKELETON_NOISE_FILE = re.compile(
    r"\.(test|spec|stories)\.|(^|/)test_[^/]*\.py$|_test\.(py|go)$", re.IGNORECASE
)
_BUSINESS_DIR = re.compile(
    r"(^|/)(services?|repositories?|usecases?|daos?|migrations?|seeds?|sql|queries|workers?)/",
    re.IGNORECASE,
)
_BUSINESS_FILE = re.compile(r"service\.(ts|js|py|go|java|rb|php)$", re.IGNORECASE)

SKELETON_MAX_LINES = 400
BINARY_SAMPLE_CHARS = 1000

_DIRECTORY_WEIGHTS = {
    "src": 10,
    "lib": 9,
    "components": 8,
    "pages": 8,
    "app": 8,
    "api": 8,
}
_CONFIG_SUFFIXES = frozenset({".json", ".yml", ".yaml", ".toml", ".ini", ".env"})
_DOC_SUFFIXES = frozenset({".md", ".rst", ".txt"})


class _HasPath(Protocol):
    path: str


T = TypeVar("T", bound=_HasPath)


def _clean(pattern: str) -> str:
    cleaned = pattern.strip()
    return cleaned[2:] if cleaned.startswith("./") else cleaned


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a glob with ``*``, ``**``, ``?``, ``[...]`` and ``{a,b}`` into a regex.

    A glob that does not translate to a valid regex (``src/[z-a].ts``) matches only
    its own literal text.
    """
    cleaned = _clean(pattern)
    try:
        return re.compile(_translate(cleaned), re.IGNORECASE | re.DOTALL)
    except re.error as exc:
        logger.warning("Treating glob %r as a literal path: %s", pattern, exc)
        return re.compile(re.escape(cleaned) + r"\Z", re.IGNORECASE)


def glob_error(pattern: str) -> Optional[str]:
    """Why ``pattern`` cannot be used as a glob, or ``None`` when it is valid."""
    try:
        re.compile(_translate(_clean(pattern)))
    except re.error as exc:
        return str(exc)
    return None


def _translate(pattern: str) -> str:
    out: List[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if char == "*":
            if pattern.startswith("**", index):
                index += 2
                if index < length and pattern[index] == "/":
                    index += 1
                    out.append("(?:.*/)?")
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            end = pattern.find("]", index + 1)
            if end == -1:
                out.append(re.escape(char))
            else:
                body = pattern[index + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                index = end
        elif char == "{":
            end = _matching_brace(pattern, index)
            if end == -1:
                out.append(re.escape(char))
            else:
                options = _split_alternatives(pattern[index + 1 : end])
                out.append("(?:" + "|".join(_translate(option) for option in options) + ")")
                index = end
        else:
            out.append(re.escape(char))
        index += 1
    return "".join(out) + r"\Z"


def _matching_brace(pattern: str, start: int) -> int:
    depth = 0
    for position in range(start, len(pattern)):
        if pattern[position] == "{":
            depth += 1
        elif pattern[position] == "}":
            depth -= 1
            if depth == 0:
                return position
    return -1


def _split_alternatives(body: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in body:
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current.append(char)
    parts.append("".join(current))
    return parts


def glob_match(path: str, pattern: str) -> bool:
    normalized = path.replace("\\", "/")
    return compile_glob(pattern).match(normalized) is not None


def matches_any(path: str, patterns: Sequence[str]) -> bool:
    return any(glob_match(path, pattern) for pattern in patterns if pattern and pattern.strip())


def has_excluded_segment(path: str) -> bool:
    parts = path.replace("\\", "/").lower().split("/")
    return any(part in EXCLUDED_SEGMENTS for part in parts[:-1])


def is_generated_or_lock(path: str) -> bool:
    name = PurePosixPath(path.lower()).name
    return name in _LOCKFILES or _GENERATED_SUFFIX.search(name) is not None


def is_binary_content(content: str) -> bool:
    return "\x00" in content[:BINARY_SAMPLE_CHARS]


def path_priority(path: str) -> int:
    """Score a path; higher ranks first."""
    normalized = path.replace("\\", "/").lower()
    pure = PurePosixPath(normalized)
    score = max(
        (_DIRECTORY_WEIGHTS.get(part, 0) for part in pure.parts[:-1]),
        default=0,
    )
    if is_source_path(normalized):
        score += 7
    elif pure.suffix in _CONFIG_SUFFIXES or pure.name.startswith(".env"):
        score += 3

    if pure.suffix in _DOC_SUFFIXES or normalized.startswith("docs/"):
        score -= 2
    if "license" in pure.name:
        score -= 3
    if normalized.startswith(".github/workflows/"):
        score -= 4
    return score


def unconditional_rejection(path: str) -> Optional[str]:
    """Reason a path is dropped in every mode, or ``None``."""
    if has_excluded_segment(path):
        return f"Skipped {path} (vendor/build asset)."
    if is_generated_or_lock(path):
        return f"Skipped {path} (generated or lock file)."
    return None


def skeleton_rejection(
    path: str, content: str, *, remove_business_logic: bool = True
) -> Optional[str]:
    """Reason a file is left out of skeleton output, or ``None``."""
    if _SKELETON_NOISE_DIR.search(path) or _SKELETON_NOISE_FILE.search(path):
        return (
            f"Removed {path} to keep the skeleton focused on core structure "
            "(tests/fixtures/examples omitted)."
        )
    if remove_business_logic and (_BUSINESS_DIR.search(path) or _BUSINESS_FILE.search(path)):
        return f"Removed {path} because it is mostly business logic."
    line_count = content.count("\n") + 1
    if line_count > SKELETON_MAX_LINES:
        return (
            f"Skipped {path} because it exceeds {SKELETON_MAX_LINES} lines; "
            "consider linking to the source repository instead."
        )
    return None


@dataclass
class Selection(Generic[T]):
    """Outcome of listing-level selection."""

    selected: List[T] = field(default_factory=list)
    rejected: Dict[str, str] = field(default_factory=dict)


class FileSelector:
    """Applies include/exclude globs, hard filters, ranking and the file cap."""

    def __init__(
        self,
        include_patterns: Sequence[str],
        exclude_patterns: Sequence[str] = (),
        max_files: int = 60,
    ) -> None:
        self.include_patterns = [pattern for pattern in include_patterns if pattern.strip()]
        self.exclude_patterns = [pattern for pattern in exclude_patterns if pattern.strip()]
        self.max_files = max(0, max_files)

    def select(self, entries: Sequence[T]) -> Selection[T]:
        result: Selection[T] = Selection()
        candidates: List[T] = []
        for entry in entries:
            path = entry.path
            if not matches_any(path, self.include_patterns):
                continue
            if self.exclude_patterns and matches_any(path, self.exclude_patterns):
                result.rejected[path] = f"Skipped {path} (matched an exclude pattern)."
                continue
            reason = unconditional_rejection(path)
            if reason:
                result.rejected[path] = reason
                continue
            candidates.append(entry)

        ranked = [
            entry
            for _, _, entry in sorted(
                ((-path_priority(entry.path), index, entry) for index, entry in enumerate(candidates)),
                key=lambda item: (item[0], item[1]),
            )
        ]
        for entry in ranked[self.max_files :]:
            result.rejected[entry.path] = (
                f"Skipped {entry.path} because the selection is capped at {self.max_files} files."
            )
        result.selected = ranked[: self.max_files]
        logger.debug(
            "Selected %d of %d listing entries (%d rejected)",
            len(result.selected),
            len(entries),
            len(result.rejected),
        )
        return result


__all__ = [
    "EXCLUDED_SEGMENTS",
    "FileSelector",
    "SKELETON_MAX_LINES",
    "Selection",
    "compile_glob",
    "glob_error",
    "glob_match",
    "has_excluded_segment",
    "is_binary_content",
    "is_generated_or_lock",
    "matches_any",
    "path_priority",
    "skeleton_rejection",
    "unconditional_rejection",
]
