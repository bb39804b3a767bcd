"""Indentation-scoped redaction for Python sources."""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from ..languages import LanguageFamily
from .base import (
    RedactionContext,
    RedactionResult,
    Redactor,
    indent_unit,
    leading_whitespace,
    strip_hash_comments,
)

_HEADER = re.compile(r"^([ \t]*)(?:async[ \t]+)?(def|class)[ \t]+([A-Za-z_]\w*)")
_TRIPLE_QUOTE = re.compile(r"\"\"\"|'''")


def _width(indent: str) -> int:
    return len(indent.expandtabs(8))


def _header_end(lines: List[str], start: int) -> Tuple[int, Optional[int]]:
    """Find the line index and column of the colon that closes a def/class header."""
    depth = 0
    quote: Optional[str] = None
    for index in range(start, len(lines)):
        line = lines[index]
        column = 0
        while column < len(line):
            char = line[column]
            if quote:
                if char == "\\":
                    column += 2
                    continue
                if line.startswith(quote, column):
                    column += len(quote)
                    quote = None
                    continue
            elif char == "#":
                break
            elif char in "\"'":
                quote = line[column : column + 3] if line.startswith(char * 3, column) else char
                column += len(quote)
                continue
            elif char in "([{":
                depth += 1
            elif char in ")]}":
                depth -= 1
            elif char == ":" and depth == 0:
                return index, column
            column += 1
        if quote and len(quote) == 1:
            quote = None
    return len(lines) - 1, None


def _open_triple_quote(line: str, open_quote: Optional[str]) -> Optional[str]:
    """Return the triple quote still open at the end of ``line``."""
    column = 0
    while column <= len(line):
        if open_quote:
            end = line.find(open_quote, column)
            if end == -1:
                return open_quote
            column = end + 3
            open_quote = None
            continue
        match = _TRIPLE_QUOTE.search(line, column)
        if match is None:
            return None
        comment = line.find("#", column, match.start())
        if comment != -1:
            return None
        open_quote = match.group(0)
        column = match.end()
    return open_quote


class IndentationRedactor(Redactor):
    """Replaces each outermost ``def``/``class`` body with a TODO and ``pass``."""

    family = LanguageFamily.INDENTED

    def redact(self, content: str, context: RedactionContext) -> RedactionResult:
        working = content if context.keep_comments else strip_hash_comments(content)
        lines = working.split("\n")
        output: List[str] = []
        redacted = 0
        index = 0

        while index < len(lines):
            line = lines[index]
            match = _HEADER.match(line)
            if not match:
                output.append(line)
                index += 1
                continue

            indent, _, name = match.groups()
            end_line, colon = _header_end(lines, index)
            output.extend(lines[index:end_line])
            closing = lines[end_line]
            inline_body = colon is not None and closing[colon + 1 :].split("#", 1)[0].strip()
            output.append(closing[: colon + 1] if inline_body else closing)

            inner = indent + indent_unit(indent)
            output.append(f"{inner}# TODO: Implement {name}")
            output.append(f"{inner}pass")
            redacted += 1

            index = end_line + 1
            trailing_blanks: List[str] = []
            open_quote: Optional[str] = None
            while index < len(lines):
                current = lines[index]
                if open_quote is None and not current.strip():
                    trailing_blanks.append(current)
                    index += 1
                    continue
                if open_quote is not None or _width(leading_whitespace(current)) > _width(indent):
                    open_quote = _open_triple_quote(current, open_quote)
                    trailing_blanks = []
                    index += 1
                    continue
                break
            output.extend(trailing_blanks)

        notes = [f"Redacted {redacted} Python block(s) in {context.path}."] if redacted else []
        return RedactionResult(content="\n".join(output), redacted=redacted, notes=notes)


__all__ = ["IndentationRedactor"]
