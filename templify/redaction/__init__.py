"""Redaction strategies keyed by language family."""

from __future__ import annotations

from typing import Callable, Dict, Optional

from ..languages import LanguageFamily, classify
from .base import RedactionContext, RedactionResult, Redactor
from .braces import BraceRedactor
from .documents import DocumentRedactor, PassthroughRedactor, UnsupportedRedactor
from .indentation import IndentationRedactor
from .syntax import SyntaxTreeRedactor

_BUILTIN_FACTORIES: Dict[LanguageFamily, Callable[[], Redactor]] = {
    LanguageFamily.CURLY: SyntaxTreeRedactor,
    LanguageFamily.INDENTED: IndentationRedactor,
    LanguageFamily.GENERIC_BRACE: BraceRedactor,
    LanguageFamily.DOCUMENT: DocumentRedactor,
    LanguageFamily.DATA: PassthroughRedactor,
    LanguageFamily.OTHER: UnsupportedRedactor,
}


class RedactorRegistry:
    """Instantiates one redactor per family on first use."""

    def __init__(self, factories: Optional[Dict[LanguageFamily, Callable[[], Redactor]]] = None) -> None:
        self._factories = dict(factories or _BUILTIN_FACTORIES)
        missing = set(LanguageFamily) - set(self._factories)
        if missing:
            names = ", ".join(sorted(family.value for family in missing))
            raise ValueError(f"No redactor registered for: {names}")
        self._instances: Dict[LanguageFamily, Redactor] = {}

    def for_family(self, family: LanguageFamily) -> Redactor:
        instance = self._instances.get(family)
        if instance is None:
            instance = self._factories[family]()
            if not isinstance(instance, Redactor):
                raise TypeError(f"Redactor factory for '{family.value}' did not return a Redactor")
            self._instances[family] = instance
        return instance

    def redact(
        self,
        path: str,
        content: str,
        *,
        keep_comments: bool = True,
        include_types: bool = True,
    ) -> RedactionResult:
        info = classify(path)
        context = RedactionContext(
            path=path,
            language=info.language,
            grammar=info.grammar,
            keep_comments=keep_comments,
            include_types=include_types,
        )
        return self.for_family(info.family).redact(content, context)


__all__ = [
    "RedactionContext",
    "RedactionResult",
    "Redactor",
    "RedactorRegistry",
]
