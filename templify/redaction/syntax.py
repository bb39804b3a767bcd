"""Tree-sitter powered redaction for curly-brace languages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import tree_sitter_go
import tree_sitter_java
import tree_sitter_javascript
import tree_sitter_rust
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from ..languages import LanguageFamily
from ..logging import get_logger
from .base import (
    RedactionContext,
    RedactionResult,
    Redactor,
    leading_whitespace,
    strip_comment_lines,
)
from .braces import redact_braces
from .stubs import StubSignature, style_for

logger = get_logger("redaction.syntax")

_GRAMMARS: Dict[str, Callable[[], object]] = {
    "javascript": tree_sitter_javascript.language,
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
    "java": tree_sitter_java.language,
    "go": tree_sitter_go.language,
    "rust": tree_sitter_rust.language,
}

_SCRIPT_FUNCTIONS = frozenset(
    {
        "function_declaration",
        "function_expression",
        "function",
        "generator_function_declaration",
        "generator_function",
        "method_definition",
        "arrow_function",
    }
)
_FUNCTION_NODES: Dict[str, frozenset[str]] = {
    "javascript": _SCRIPT_FUNCTIONS,
    "typescript": _SCRIPT_FUNCTIONS,
    "tsx": _SCRIPT_FUNCTIONS,
    "java": frozenset(
        {
            "method_declaration",
            "constructor_declaration",
            "compact_constructor_declaration",
            "lambda_expression",
        }
    ),
    "go": frozenset({"function_declaration", "method_declaration", "func_literal"}),
    "rust": frozenset({"function_item", "closure_expression"}),
}
_BLOCK_BODIES = frozenset({"statement_block", "block", "constructor_body"})
_BLOCK_ONLY = frozenset({"lambda_expression", "closure_expression"})
_TYPE_DECLARATIONS = frozenset({"interface_declaration", "type_alias_declaration"})
_TYPED_SCRIPTS = frozenset({"typescript", "tsx"})
_NAME_FIELDS = {
    "variable_declarator": "name",
    "pair": "key",
    "assignment_expression": "left",
    "public_field_definition": "name",
    "field_definition": "property",
    "let_declaration": "pattern",
}


@dataclass
class _Plan:
    grammar: str
    function_nodes: frozenset[str]
    strip_types: bool
    functions: List[Tuple[Node, Node]] = field(default_factory=list)
    deletions: List[Tuple[int, int]] = field(default_factory=list)


class SyntaxTreeRedactor(Redactor):
    """Replaces outermost function bodies found in a tree-sitter parse."""

    family = LanguageFamily.CURLY

    def __init__(self) -> None:
        self._parsers: Dict[str, Parser] = {}

    def redact(self, content: str, context: RedactionContext) -> RedactionResult:
        style = style_for(context.language)
        parser = self._get_parser(context.grammar) if context.grammar else None
        if parser is None:
            logger.debug("No grammar bound for %s; using brace matching", context.path)
            return redact_braces(content, context, style)

        working = content if context.keep_comments else strip_comment_lines(content, ("//", "/*"))
        source = working.encode("utf-8")
        tree = parser.parse(source)
        if tree.root_node.has_error:
            logger.debug("Syntax errors in %s; using brace matching", context.path)
            result = redact_braces(content, context, style)
            result.notes.append(
                f"Parsed {context.path} with brace matching because the syntax tree had errors."
            )
            return result

        plan = _Plan(
            grammar=context.grammar or "",
            function_nodes=_FUNCTION_NODES.get(context.grammar or "", frozenset()),
            strip_types=not context.include_types and context.grammar in _TYPED_SCRIPTS,
        )
        self._collect(tree.root_node, plan)

        edits: List[Tuple[int, int, bytes]] = []
        for node, body in plan.functions:
            signature = self._signature(node, plan.grammar, source)
            indent = _line_indent(source, node.start_byte)
            block = style.render_block(signature, indent)
            edits.append((body.start_byte, body.end_byte, block.encode("utf-8")))
        for start, end in plan.deletions:
            edits.append((*_expand_to_lines(source, start, end), b""))

        buffer = bytearray(source)
        for start, end, replacement in sorted(edits, key=lambda edit: edit[0], reverse=True):
            buffer[start:end] = replacement

        notes: List[str] = []
        if plan.functions:
            notes.append(f"Redacted {len(plan.functions)} function(s) in {context.path}.")
        if plan.deletions:
            notes.append(f"Removed {len(plan.deletions)} type declaration(s) from {context.path}.")
        return RedactionResult(
            content=buffer.decode("utf-8"),
            redacted=len(plan.functions),
            notes=notes,
        )

    def _get_parser(self, grammar: str) -> Optional[Parser]:
        parser = self._parsers.get(grammar)
        if parser is not None:
            return parser
        loader = _GRAMMARS.get(grammar)
        if loader is None:
            return None
        parser = Parser(Language(loader()))
        self._parsers[grammar] = parser
        return parser

    @staticmethod
    def _collect(root: Node, plan: _Plan) -> None:
        stack = [root]
        while stack:
            node = stack.pop()
            if plan.strip_types and _is_type_declaration(node):
                plan.deletions.append((node.start_byte, node.end_byte))
                continue
            if node.type in plan.function_nodes:
                body = node.child_by_field_name("body")
                if body is not None and _redactable(node, body):
                    plan.functions.append((node, body))
                    continue
            stack.extend(reversed(node.children))

    def _signature(self, node: Node, grammar: str, source: bytes) -> StubSignature:
        name = _function_name(node, source)
        if grammar == "java":
            return_node = node.child_by_field_name("type")
            return StubSignature(
                name=name,
                return_type=_text(return_node, source) if return_node else None,
                constructor=node.type in {"constructor_declaration", "compact_constructor_declaration"},
            )
        if grammar == "go":
            result = node.child_by_field_name("result")
            named = result is not None and result.type == "parameter_list" and any(
                child.child_by_field_name("name") is not None
                for child in result.named_children
                if child.type == "parameter_declaration"
            )
            return StubSignature(
                name=name,
                return_type=_text(result, source) if result else None,
                named_results=named,
            )
        if grammar == "rust":
            return_node = node.child_by_field_name("return_type")
            return StubSignature(
                name=name,
                return_type=_text(return_node, source) if return_node else None,
            )

        return_node = node.child_by_field_name("return_type")
        return_type = _text(return_node, source).lstrip(":").strip() if return_node else None
        tokens = {child.type for child in node.children}
        is_method = node.type == "method_definition"
        return StubSignature(
            name=name,
            return_type=return_type or None,
            constructor=is_method and name == "constructor",
            setter=is_method and "set" in tokens,
            is_async="async" in tokens,
        )


def _redactable(node: Node, body: Node) -> bool:
    if node.type == "arrow_function":
        return True
    if node.type in _BLOCK_ONLY:
        return body.type == "block"
    return body.type in _BLOCK_BODIES


def _is_type_declaration(node: Node) -> bool:
    if node.type in _TYPE_DECLARATIONS:
        return True
    if node.type == "export_statement":
        declaration = node.child_by_field_name("declaration")
        return declaration is not None and declaration.type in _TYPE_DECLARATIONS
    return False


def _function_name(node: Node, source: bytes) -> str:
    name_node = node.child_by_field_name("name")
    if name_node is not None:
        return _text(name_node, source)
    parent = node.parent
    if parent is not None:
        field_name = _NAME_FIELDS.get(parent.type)
        if field_name:
            target = parent.child_by_field_name(field_name)
            if target is not None:
                return _text(target, source)
    return "anonymous function"


def _text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _line_indent(source: bytes, offset: int) -> str:
    line_start = source.rfind(b"\n", 0, offset) + 1
    line_end = source.find(b"\n", line_start)
    line = source[line_start : line_end if line_end != -1 else len(source)]
    return leading_whitespace(line.decode("utf-8", errors="replace"))


def _expand_to_lines(source: bytes, start: int, end: int) -> Tuple[int, int]:
    line_start = source.rfind(b"\n", 0, start) + 1
    if not source[line_start:start].strip():
        start = line_start
    if source[end : end + 1] == b"\n":
        end += 1
    return start, end


__all__ = ["SyntaxTreeRedactor"]
