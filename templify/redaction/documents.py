"""Redactors for documents, data files and unrecognised file types."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import List

from ..errors import ErrorKind, Issue
from ..languages import LanguageFamily
from .base import RedactionContext, RedactionResult, Redactor

_HEADER_LINE = re.compile(r"^\s*(import\b|from\s+\S+\s+import\b|require\(|#include\b|using\s)")
_HASH_COMMENT_SUFFIXES = {".py", ".rb", ".sh", ".bash", ".zsh", ".r", ".pl", ".yml", ".yaml", ".toml"}
_QUOTE_SUFFIXES = {".md", ".markdown"}
_DOTTED_SUFFIXES = {".rst"}


def comment_for(path: str, message: str) -> str:
    """Render ``message`` as a single-line comment in the syntax ``path`` implies."""
    pure = PurePosixPath(path.lower())
    suffix = pure.suffix
    if suffix in _HASH_COMMENT_SUFFIXES or pure.name in {"dockerfile", "makefile"}:
        return f"# {message}"
    if suffix in _QUOTE_SUFFIXES:
        return f"> {message}"
    if suffix in _DOTTED_SUFFIXES:
        return f".. {message}"
    if suffix == ".txt":
        return message
    return f"// {message}"


def build_stub(path: str, content: str) -> str:
    """Keep the leading import-like lines and replace the rest with one TODO comment."""
    kept: List[str] = []
    for line in content.split("\n"):
        if _HEADER_LINE.match(line) or not line.strip():
            kept.append(line)
            continue
        break
    while kept and not kept[-1].strip():
        kept.pop()
    kept.append(comment_for(path, f"TODO: Implement {path}"))
    return "\n".join(kept) + "\n"


class DocumentRedactor(Redactor):
    family = LanguageFamily.DOCUMENT

    def redact(self, content: str, context: RedactionContext) -> RedactionResult:
        return RedactionResult(
            content=build_stub(context.path, content),
            notes=[f"Collapsed {context.path} into a short skeleton summary."],
        )


class PassthroughRedactor(Redactor):
    """Data and configuration files carry no implementation to strip."""

    family = LanguageFamily.DATA

    def redact(self, content: str, context: RedactionContext) -> RedactionResult:
        return RedactionResult(content=content)


class UnsupportedRedactor(Redactor):
    family = LanguageFamily.OTHER

    def redact(self, content: str, context: RedactionContext) -> RedactionResult:
        message = (
            f"Replaced {context.path} with a TODO stub because skeleton mode has no "
            "transformer for this file type."
        )
        return RedactionResult(
            content=build_stub(context.path, content),
            notes=[message],
            issues=[Issue(ErrorKind.UNSUPPORTED_LANGUAGE, message, context.path)],
        )


__all__ = [
    "DocumentRedactor",
    "PassthroughRedactor",
    "UnsupportedRedactor",
    "build_stub",
    "comment_for",
]
