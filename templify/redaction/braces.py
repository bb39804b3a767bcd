"""Brace-depth redaction for C-like sources without a usable syntax tree."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..errors import TransformFailure
from ..languages import LanguageFamily
from .base import (
    RedactionContext,
    RedactionResult,
    Redactor,
    leading_whitespace,
    strip_comment_lines,
)
from .stubs import StubSignature, StubStyle, go_results_are_named, style_for

_CONTROL_WORDS = {
    "if",
    "else",
    "elif",
    "elseif",
    "for",
    "foreach",
    "while",
    "do",
    "switch",
    "case",
    "catch",
    "try",
    "with",
    "using",
    "lock",
    "synchronized",
    "return",
    "throw",
    "await",
    "yield",
    "match",
    "loop",
    "unsafe",
    "defer",
    "go",
    "select",
}
_NOT_NAMES = _CONTROL_WORDS | {
    "function",
    "func",
    "fn",
    "fun",
    "def",
    "new",
    "typeof",
    "sizeof",
    "super",
    "this",
    "async",
    "static",
}
_TYPE_DECLARATIONS = re.compile(
    r"\b(class|interface|struct|enum|namespace|module|impl|trait|object|record|extension)\b"
)
_MODIFIERS = {
    "public",
    "private",
    "protected",
    "internal",
    "static",
    "final",
    "abstract",
    "synchronized",
    "native",
    "default",
    "override",
    "virtual",
    "inline",
    "async",
    "export",
    "strictfp",
    "transient",
    "get",
    "set",
}
_CONTINUATION_PREFIXES = ("->", ":", "throws", "where", "=>", "const", "noexcept")
_ANNOTATIONS = re.compile(r"@[\w.]+(?:\([^()]*\))?")
_ATTRIBUTES = re.compile(r"^\s*(?:\[[^\]]*\]\s*)+")
_CANDIDATE = re.compile(r"([A-Za-z_$][\w$]*)\s*(?:<[^()]*>)?\s*\(")
_FUNCTION_KEYWORD = re.compile(r"\bfunction\b\s*\*?\s*([A-Za-z_$][\w$]*)?\s*\(")
_ARROW_NAME = re.compile(
    r"([A-Za-z_$][\w$]*)\s*(?::[^=()]*)?[=:]\s*(?:async\s*)?"
    r"(?:\([^()]*\)|[A-Za-z_$][\w$]*)\s*(?::[^=]*)?=>$"
)
_ARROW_RETURN = re.compile(r"\)\s*:\s*([^=]+?)\s*=>$")
_ASSIGNED_NAME = re.compile(r"([A-Za-z_$][\w$]*)\s*[=:]\s*(?:async\s+)?$")
_CHAR_LITERAL = re.compile(r"'(?:\\.[^'\n]{0,8}|[^'\\\n])'")
_VALID_TAIL = re.compile(
    r"^(?:"
    r"|(?:->|:)\s*.+"
    r"|(?:throws|where)\s+.+"
    r"|(?:const|noexcept|override|final|mutating|async|throws|rethrows)(?:\s.*)?"
    r")$"
)
_GO_TAIL = re.compile(r"[\w\s*\[\].,()]*")


@dataclass(frozen=True)
class _Header:
    text: str
    offset: int


def mask_code(content: str, *, hash_comments: bool = False, char_literals: bool = True) -> str:
    """Blank out comments and string bodies, preserving offsets and newlines."""
    chars = list(content)
    length = len(content)

    def blank(start: int, end: int) -> None:
        for position in range(start, min(end, length)):
            if chars[position] != "\n":
                chars[position] = " "

    index = 0
    while index < length:
        char = content[index]
        following = content[index + 1] if index + 1 < length else ""
        if (char == "/" and following == "/") or (hash_comments and char == "#"):
            end = content.find("\n", index)
            end = length if end == -1 else end
            blank(index, end)
            index = end
            continue
        if char == "/" and following == "*":
            end = content.find("*/", index + 2)
            end = length if end == -1 else end + 2
            blank(index, end)
            index = end
            continue
        if char in "\"`" or (char == "'" and not char_literals):
            end = _string_end(content, index, char)
            blank(index + 1, end - 1)
            index = end
            continue
        if char == "'":
            literal = _CHAR_LITERAL.match(content, index)
            if literal:
                blank(index + 1, literal.end() - 1)
                index = literal.end()
                continue
        index += 1
    return "".join(chars)


def _string_end(content: str, start: int, quote: str) -> int:
    index = start + 1
    length = len(content)
    while index < length:
        char = content[index]
        if char == "\\":
            index += 2
            continue
        if char == quote:
            return index + 1
        if char == "\n" and quote != "`":
            return index
        index += 1
    return length


def match_braces(masked: str, path: str = "") -> Dict[int, int]:
    """Map every ``{`` offset to its closing ``}``. Raises on imbalance."""
    stack: List[int] = []
    pairs: Dict[int, int] = {}
    for index, char in enumerate(masked):
        if char == "{":
            stack.append(index)
        elif char == "}":
            if not stack:
                line = masked.count("\n", 0, index) + 1
                raise TransformFailure(f"Unbalanced '}}' at line {line} in {path or 'source'}")
            pairs[stack.pop()] = index
    if stack:
        line = masked.count("\n", 0, stack[-1]) + 1
        raise TransformFailure(f"Unclosed '{{' at line {line} in {path or 'source'}")
    return pairs


def _header_before(masked: str, brace: int) -> Optional[_Header]:
    start = max(masked.rfind(delimiter, 0, brace) for delimiter in ";{}") + 1
    lines = masked[start:brace].split("\n")
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        return None

    taken: List[str] = []
    for line in reversed(lines):
        taken.insert(0, line)
        text = "\n".join(taken)
        if text.count("(") != text.count(")"):
            continue
        if taken[0].strip().startswith(_CONTINUATION_PREFIXES):
            continue
        break

    skipped = lines[: len(lines) - len(taken)]
    offset = start + sum(len(line) + 1 for line in skipped)
    return _Header(text="\n".join(taken), offset=offset)


def _close_paren(text: str, open_index: int) -> int:
    depth = 0
    for index in range(open_index, len(text)):
        if text[index] == "(":
            depth += 1
        elif text[index] == ")":
            depth -= 1
            if depth == 0:
                return index
    return -1


def parse_header(header: str, language: Optional[str]) -> Optional[StubSignature]:
    """Return a stub signature when ``header`` opens a function body."""
    text = " ".join(_ATTRIBUTES.sub("", _ANNOTATIONS.sub("", header)).split())
    if not text or "(" not in text and not text.endswith("=>"):
        return None
    first = re.match(r"[A-Za-z_]\w*", text)
    if first and first.group(0) in _CONTROL_WORDS:
        return None

    if text.endswith("=>"):
        named = _ARROW_NAME.search(text)
        returns = _ARROW_RETURN.search(text)
        return StubSignature(
            name=named.group(1) if named else "anonymous function",
            return_type=returns.group(1).strip() if returns else None,
            is_async=bool(re.search(r"\basync\b[^=]*=>$", text)),
        )

    keywords = list(_FUNCTION_KEYWORD.finditer(text))
    keyword = keywords[-1] if keywords else None
    if keyword is not None:
        open_index = keyword.end() - 1
        close = _close_paren(text, open_index)
        if close == -1:
            return None
        tail = text[close + 1 :].strip()
        if not _VALID_TAIL.match(tail):
            return None
        before = text[: keyword.start()]
        name = keyword.group(1)
        if not name:
            assigned = _ASSIGNED_NAME.search(before)
            name = assigned.group(1) if assigned else "anonymous function"
        return StubSignature(
            name=name,
            return_type=_return_type(language, before, tail),
            is_async="async" in before.split(),
        )

    if _TYPE_DECLARATIONS.search(text.split("(", 1)[0]):
        return None

    for candidate in _CANDIDATE.finditer(text):
        name = candidate.group(1)
        if name in _NOT_NAMES:
            continue
        before = text[: candidate.start()].strip()
        if "=" in before.replace("=>", "") or before.endswith(".") or re.search(r"\bnew$", before):
            return None
        close = _close_paren(text, candidate.end() - 1)
        if close == -1:
            return None
        tail = text[close + 1 :].strip()
        if language == "Go":
            if not _GO_TAIL.fullmatch(tail):
                return None
        elif not _VALID_TAIL.match(tail):
            return None
        words = before.split()
        return_type = _return_type(language, before, tail)
        return StubSignature(
            name=name,
            return_type=return_type,
            constructor=name == "constructor" or (language == "Java" and return_type is None),
            setter="set" in words,
            is_async="async" in words,
            named_results=language == "Go" and go_results_are_named(tail),
        )
    return None


def _return_type(language: Optional[str], before: str, tail: str) -> Optional[str]:
    if tail.startswith("->"):
        return re.split(r"\bwhere\b", tail[2:], maxsplit=1)[0].strip() or None
    if tail.startswith(":"):
        return tail[1:].strip() or None
    if language == "Go":
        return tail or None
    if language == "Java":
        tokens = [
            token
            for token in before.split()
            if token not in _MODIFIERS and not token.startswith("<")
        ]
        return tokens[-1] if tokens else None
    return None


def find_function_bodies(
    content: str,
    masked: str,
    pairs: Dict[int, int],
    language: Optional[str],
) -> List[Tuple[int, int, StubSignature, str]]:
    """Locate outermost function bodies as ``(open, close, signature, indent)``."""
    found: List[Tuple[int, int, StubSignature, str]] = []
    skip_until = -1
    for brace in sorted(pairs):
        if brace < skip_until:
            continue
        header = _header_before(masked, brace)
        if header is None:
            continue
        signature = parse_header(header.text, language)
        if signature is None:
            continue
        found.append((brace, pairs[brace], signature, _indent_at(content, header)))
        skip_until = pairs[brace]
    return found


def _indent_at(content: str, header: _Header) -> str:
    position = header.offset + (len(header.text) - len(header.text.lstrip()))
    line_start = content.rfind("\n", 0, position) + 1
    return leading_whitespace(content[line_start:position + 1])


def redact_braces(
    content: str,
    context: RedactionContext,
    style: Optional[StubStyle] = None,
) -> RedactionResult:
    """Replace each outermost function body with a stub block."""
    language = context.language
    style = style or style_for(language)
    ruby = language == "Ruby"
    working = content
    if not context.keep_comments:
        working = strip_comment_lines(working, ("#",) if ruby else ("//", "/*"))

    masked = mask_code(
        working,
        hash_comments=ruby,
        char_literals=language not in {"JavaScript", "TypeScript", "PHP", "Ruby"},
    )
    pairs = match_braces(masked, context.path)
    bodies = find_function_bodies(working, masked, pairs, language)

    pieces: List[str] = []
    cursor = 0
    for open_index, close_index, signature, indent in bodies:
        pieces.append(working[cursor:open_index])
        pieces.append(style.render_block(signature, indent))
        cursor = close_index + 1
    pieces.append(working[cursor:])

    notes = [f"Redacted {len(bodies)} block(s) in {context.path}."] if bodies else []
    return RedactionResult(content="".join(pieces), redacted=len(bodies), notes=notes)


class BraceRedactor(Redactor):
    """Generic brace-delimited languages: each function body becomes one TODO comment."""

    family = LanguageFamily.GENERIC_BRACE

    def redact(self, content: str, context: RedactionContext) -> RedactionResult:
        return redact_braces(content, context)


__all__ = [
    "BraceRedactor",
    "find_function_bodies",
    "mask_code",
    "match_braces",
    "parse_header",
    "redact_braces",
]
