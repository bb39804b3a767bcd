"""Language and framework classification for repository paths."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Iterable, Optional


class LanguageFamily(str, Enum):
    """Redaction strategy families. Adding a family means adding a redactor for it."""

    CURLY = "curly"
    INDENTED = "indented"
    GENERIC_BRACE = "generic_brace"
    DOCUMENT = "document"
    DATA = "data"
    OTHER = "other"


@dataclass(frozen=True)
class LanguageInfo:
    """Classification result for a single path."""

    language: Optional[str]
    family: LanguageFamily
    grammar: Optional[str] = None


# suffix -> (language, family, tree-sitter grammar key)
_BY_SUFFIX: dict[str, tuple[str, LanguageFamily, Optional[str]]] = {
    ".ts": ("TypeScript", LanguageFamily.CURLY, "typescript"),
    ".mts": ("TypeScript", LanguageFamily.CURLY, "typescript"),
    ".cts": ("TypeScript", LanguageFamily.CURLY, "typescript"),
    ".tsx": ("TypeScript", LanguageFamily.CURLY, "tsx"),
    ".js": ("JavaScript", LanguageFamily.CURLY, "javascript"),
    ".mjs": ("JavaScript", LanguageFamily.CURLY, "javascript"),
    ".cjs": ("JavaScript", LanguageFamily.CURLY, "javascript"),
    ".jsx": ("JavaScript", LanguageFamily.CURLY, "javascript"),
    ".java": ("Java", LanguageFamily.CURLY, "java"),
    ".go": ("Go", LanguageFamily.CURLY, "go"),
    ".rs": ("Rust", LanguageFamily.CURLY, "rust"),
    ".py": ("Python", LanguageFamily.INDENTED, None),
    ".pyi": ("Python", LanguageFamily.INDENTED, None),
    ".c": ("C", LanguageFamily.GENERIC_BRACE, None),
    ".h": ("C", LanguageFamily.GENERIC_BRACE, None),
    ".cpp": ("C++", LanguageFamily.GENERIC_BRACE, None),
    ".cc": ("C++", LanguageFamily.GENERIC_BRACE, None),
    ".hpp": ("C++", LanguageFamily.GENERIC_BRACE, None),
    ".hh": ("C++", LanguageFamily.GENERIC_BRACE, None),
    ".cs": ("C#", LanguageFamily.GENERIC_BRACE, None),
    ".php": ("PHP", LanguageFamily.GENERIC_BRACE, None),
    ".rb": ("Ruby", LanguageFamily.GENERIC_BRACE, None),
    ".kt": ("Kotlin", LanguageFamily.GENERIC_BRACE, None),
    ".kts": ("Kotlin", LanguageFamily.GENERIC_BRACE, None),
    ".swift": ("Swift", LanguageFamily.GENERIC_BRACE, None),
    ".scala": ("Scala", LanguageFamily.GENERIC_BRACE, None),
    ".dart": ("Dart", LanguageFamily.GENERIC_BRACE, None),
    ".m": ("Objective-C", LanguageFamily.GENERIC_BRACE, None),
    ".mm": ("Objective-C++", LanguageFamily.GENERIC_BRACE, None),
    ".md": ("Markdown", LanguageFamily.DOCUMENT, None),
    ".markdown": ("Markdown", LanguageFamily.DOCUMENT, None),
    ".rst": ("reStructuredText", LanguageFamily.DOCUMENT, None),
    ".txt": ("Text", LanguageFamily.DOCUMENT, None),
    ".json": ("JSON", LanguageFamily.DATA, None),
    ".yaml": ("YAML", LanguageFamily.DATA, None),
    ".yml": ("YAML", LanguageFamily.DATA, None),
    ".toml": ("TOML", LanguageFamily.DATA, None),
    ".ini": ("INI", LanguageFamily.DATA, None),
    ".cfg": ("INI", LanguageFamily.DATA, None),
    ".xml": ("XML", LanguageFamily.DATA, None),
    ".properties": ("Properties", LanguageFamily.DATA, None),
    ".env": ("Dotenv", LanguageFamily.DATA, None),
}

_DATA_FILENAMES = {".env", ".env.example", ".env.local", ".env.sample", ".npmrc", ".editorconfig"}

SOURCE_SUFFIXES = frozenset(
    suffix
    for suffix, (_, family, _) in _BY_SUFFIX.items()
    if family in {LanguageFamily.CURLY, LanguageFamily.INDENTED, LanguageFamily.GENERIC_BRACE}
)

MANIFEST_FILENAMES = frozenset(
    {
        "package.json",
        "composer.json",
        "pyproject.toml",
        "cargo.toml",
        "requirements.txt",
        "go.mod",
        "pom.xml",
        "build.gradle",
        "build.gradle.kts",
        "gemfile",
    }
)

_FRAMEWORK_MARKERS: tuple[tuple[str, str], ...] = (
    ("next.config", "Next.js"),
    ("nuxt.config", "Nuxt"),
    ("angular.json", "Angular"),
    ("gatsby-config", "Gatsby"),
    ("svelte.config", "SvelteKit"),
    ("vue.config", "Vue"),
    ("remix.config", "Remix"),
    ("manage.py", "Django"),
)

_FRAMEWORK_HINTS: dict[str, tuple[tuple[str, str], ...]] = {
    "TypeScript": (("gatsby", "Gatsby"), ("remix", "Remix"), ("react", "React")),
    "JavaScript": (("express", "Express"), ("react", "React")),
    "Python": (("django", "Django"), ("flask", "Flask"), ("fastapi", "FastAPI")),
    "Java": (("spring", "Spring"),),
}


def classify(path: str) -> LanguageInfo:
    """Return the language, redaction family and grammar key for ``path``."""
    pure = PurePosixPath(path.replace("\\", "/"))
    name = pure.name.lower()
    if name in _DATA_FILENAMES or name.startswith(".env."):
        return LanguageInfo(language="Dotenv", family=LanguageFamily.DATA)

    suffix = pure.suffix.lower()
    entry = _BY_SUFFIX.get(suffix)
    if entry is None:
        return LanguageInfo(language=None, family=LanguageFamily.OTHER)
    language, family, grammar = entry
    return LanguageInfo(language=language, family=family, grammar=grammar)


def is_source_path(path: str) -> bool:
    return PurePosixPath(path.lower()).suffix in SOURCE_SUFFIXES


def is_manifest_path(path: str) -> bool:
    return PurePosixPath(path.lower()).name in MANIFEST_FILENAMES


def framework_hint(path: str, language: Optional[str]) -> Optional[str]:
    """Best-guess framework signal carried by a single path."""
    normalized = path.lower()
    if language in {"TypeScript", "JavaScript"}:
        segments = normalized.split("/")
        if "next.config" in normalized or "pages" in segments[:-1] or "app" in segments[:-1]:
            return "Next.js"
    for needle, framework in _FRAMEWORK_HINTS.get(language or "", ()):
        if needle in normalized:
            return framework
    return None


def detect_framework(paths: Iterable[str]) -> str:
    """Detect a framework from marker files, falling back to path hints."""
    lowered = [path.lower() for path in paths]
    for marker, framework in _FRAMEWORK_MARKERS:
        if any(PurePosixPath(path).name.startswith(marker) for path in lowered):
            return framework

    for path in lowered:
        info = classify(path)
        hint = framework_hint(path, info.language)
        if hint:
            return hint
    return "unknown"


__all__ = [
    "LanguageFamily",
    "LanguageInfo",
    "MANIFEST_FILENAMES",
    "SOURCE_SUFFIXES",
    "classify",
    "detect_framework",
    "framework_hint",
    "is_manifest_path",
    "is_source_path",
]
