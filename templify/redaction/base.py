"""Base classes for redaction strategies."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import List, Optional, Sequence

from ..errors import Issue
from ..languages import LanguageFamily


@dataclass(frozen=True)
class RedactionContext:
    """Per-file inputs a redactor may consult."""

    path: str
    language: Optional[str] = None
    grammar: Optional[str] = None
    keep_comments: bool = True
    include_types: bool = True

    @property
    def suffix(self) -> str:
        return PurePosixPath(self.path.lower()).suffix


@dataclass
class RedactionResult:
    """Transformed content plus what happened while producing it."""

    content: str
    redacted: int = 0
    notes: List[str] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)


class Redactor(ABC):
    """Strategy that strips implementation detail for one language family."""

    family: LanguageFamily

    @abstractmethod
    def redact(self, content: str, context: RedactionContext) -> RedactionResult:
        """Return the skeleton form of ``content``. May raise ``TransformFailure``."""


def indent_unit(indent: str) -> str:
    return "\t" if "\t" in indent else "    "


def leading_whitespace(line: str) -> str:
    return line[: len(line) - len(line.lstrip(" \t"))]


def strip_comment_lines(content: str, prefixes: Sequence[str], keep: Sequence[str] = ()) -> str:
    """Drop lines that hold only a comment. Block comments count when they span whole lines."""
    kept: List[str] = []
    in_block = False
    for number, line in enumerate(content.split("\n")):
        stripped = line.strip()
        if in_block:
            if "*/" in stripped:
                in_block = False
                remainder = stripped.split("*/", 1)[1].strip()
                if remainder:
                    kept.append(line)
            continue
        if number == 0 and stripped.startswith("#!"):
            kept.append(line)
            continue
        if any(stripped.startswith(marker) for marker in keep):
            kept.append(line)
            continue
        if "/*" in prefixes and stripped.startswith("/*"):
            if "*/" not in stripped:
                in_block = True
                continue
            if stripped.endswith("*/"):
                continue
        if any(stripped.startswith(prefix) for prefix in prefixes if prefix != "/*"):
            continue
        kept.append(line)
    return "\n".join(kept)


_CODING_LINE = re.compile(r"^#.*coding[:=]")


def strip_hash_comments(content: str) -> str:
    kept: List[str] = []
    for number, line in enumerate(content.split("\n")):
        stripped = line.strip()
        if stripped.startswith("#"):
            if number == 0 and stripped.startswith("#!"):
                kept.append(line)
            elif number < 2 and _CODING_LINE.match(stripped):
                kept.append(line)
            continue
        kept.append(line)
    return "\n".join(kept)


__all__ = [
    "RedactionContext",
    "RedactionResult",
    "Redactor",
    "indent_unit",
    "leading_whitespace",
    "strip_comment_lines",
    "strip_hash_comments",
]
