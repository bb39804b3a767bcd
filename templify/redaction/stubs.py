"""Stub bodies emitted in place of redacted function bodies."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from .base import indent_unit

TODO_PREFIX = "TODO: Implement"

_JS_SIDE_EFFECT_TYPES = {"void", "never", "undefined"}
_JAVA_NUMERIC = {"int": "0", "long": "0L", "short": "0", "byte": "0", "float": "0.0f", "double": "0.0"}
_JAVA_FUTURES = ("CompletableFuture", "CompletionStage", "Future")
_GO_NUMERIC = re.compile(r"u?int(8|16|32|64)?|uintptr|byte|rune|float(32|64)|complex(64|128)")
_GO_NIL_PREFIXES = ("*", "[]", "map[", "chan ", "chan<-", "<-chan", "func", "interface")
_GO_TYPE_WORDS = {"chan", "func", "map", "struct", "interface", "<-chan"}


@dataclass(frozen=True)
class StubSignature:
    """What a stub needs to know about the function it replaces."""

    name: str
    return_type: Optional[str] = None
    constructor: bool = False
    setter: bool = False
    is_async: bool = False
    named_results: bool = False


class StubStyle:
    """Language conventions for diagnostics and placeholder returns."""

    def diagnostic(self, name: str) -> str:
        return f"// {TODO_PREFIX} {name}"

    def return_statement(self, signature: StubSignature) -> Optional[str]:
        return None

    def render_block(self, signature: StubSignature, indent: str) -> str:
        inner = indent + indent_unit(indent)
        lines = ["{", inner + self.diagnostic(signature.name)]
        statement = self.return_statement(signature)
        if statement:
            lines.append(inner + statement)
        lines.append(indent + "}")
        return "\n".join(lines)


class CommentStubStyle(StubStyle):
    def __init__(self, marker: str = "//") -> None:
        self.marker = marker

    def diagnostic(self, name: str) -> str:
        return f"{self.marker} {TODO_PREFIX} {name}"


class ScriptStubStyle(StubStyle):
    """JavaScript and TypeScript."""

    def diagnostic(self, name: str) -> str:
        return f'console.warn("{TODO_PREFIX} {_quote(name)}");'

    def return_statement(self, signature: StubSignature) -> Optional[str]:
        if signature.constructor or signature.setter or not signature.return_type:
            return None
        return_type = signature.return_type.strip()
        if return_type in _JS_SIDE_EFFECT_TYPES:
            return None
        if return_type.startswith("asserts "):
            return None
        if re.match(r"^[\w$]+\s+is\s+", return_type):
            return "return false;"
        if return_type.startswith("Promise"):
            if signature.is_async:
                inner = return_type[len("Promise") :].strip().strip("<>").strip()
                return None if inner in _JS_SIDE_EFFECT_TYPES else "return undefined;"
            return "return Promise.resolve(undefined);"
        return "return undefined;"


class JavaStubStyle(StubStyle):
    def diagnostic(self, name: str) -> str:
        return f'System.err.println("{TODO_PREFIX} {_quote(name)}");'

    def return_statement(self, signature: StubSignature) -> Optional[str]:
        if signature.constructor or not signature.return_type:
            return None
        return_type = signature.return_type.strip()
        if return_type == "void":
            return None
        if return_type == "boolean":
            return "return false;"
        if return_type == "char":
            return "return '\\0';"
        if return_type in _JAVA_NUMERIC:
            return f"return {_JAVA_NUMERIC[return_type]};"
        if return_type.split("<", 1)[0].split(".")[-1] in _JAVA_FUTURES:
            return "return CompletableFuture.completedFuture(null);"
        return "return null;"


class GoStubStyle(StubStyle):
    def diagnostic(self, name: str) -> str:
        return f'println("{TODO_PREFIX} {_quote(name)}")'

    def return_statement(self, signature: StubSignature) -> Optional[str]:
        if signature.named_results:
            return "return"
        if not signature.return_type:
            return None
        results = split_go_results(signature.return_type)
        if not results:
            return None
        return "return " + ", ".join(go_zero_value(result) for result in results)


class RustStubStyle(StubStyle):
    def diagnostic(self, name: str) -> str:
        return f'eprintln!("{TODO_PREFIX} {_quote(name)}");'

    def return_statement(self, signature: StubSignature) -> Optional[str]:
        if not signature.return_type:
            return None
        return_type = signature.return_type.strip()
        if return_type in {"()", "!"}:
            return None
        return "Default::default()"


_STYLES: Dict[str, StubStyle] = {
    "JavaScript": ScriptStubStyle(),
    "TypeScript": ScriptStubStyle(),
    "Java": JavaStubStyle(),
    "Go": GoStubStyle(),
    "Rust": RustStubStyle(),
}


def style_for(language: Optional[str]) -> StubStyle:
    style = _STYLES.get(language or "")
    if style is not None:
        return style
    return CommentStubStyle("#" if language == "Ruby" else "//")


def go_zero_value(go_type: str) -> str:
    go_type = go_type.strip()
    if go_type in {"error", "any"} or go_type.startswith(_GO_NIL_PREFIXES):
        return "nil"
    if go_type == "string":
        return '""'
    if go_type == "bool":
        return "false"
    if _GO_NUMERIC.fullmatch(go_type):
        return "0"
    return f"*new({go_type})"


def split_go_results(text: str) -> List[str]:
    """Split a Go result list such as ``(int, error)`` into its types."""
    text = text.strip()
    if text.startswith("(") and text.endswith(")"):
        text = text[1:-1]
    return [part.strip() for part in split_top_level(text, ",") if part.strip()]


def go_results_are_named(text: str) -> bool:
    text = text.strip()
    if not text.startswith("("):
        return False
    for part in split_go_results(text):
        tokens = part.split()
        if len(tokens) < 2:
            continue
        first = tokens[0]
        if first in _GO_TYPE_WORDS or first.startswith(("*", "[", ".")):
            continue
        return True
    return False


def split_top_level(text: str, separator: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    start = 0
    for index, char in enumerate(text):
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth = max(0, depth - 1)
        elif char == separator and depth == 0:
            parts.append(text[start:index])
            start = index + 1
    parts.append(text[start:])
    return parts


def _quote(name: str) -> str:
    return name.replace("\\", "\\\\").replace('"', '\\"')


__all__ = [
    "CommentStubStyle",
    "StubSignature",
    "StubStyle",
    "TODO_PREFIX",
    "go_results_are_named",
    "go_zero_value",
    "split_go_results",
    "split_top_level",
    "style_for",
]
