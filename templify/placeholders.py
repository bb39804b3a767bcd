"""Identity scrubbing and placeholder bookkeeping for extracted templates."""

from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .logging import get_logger
from .models import RepositoryIdentity

logger = get_logger("placeholders")

DEFAULT_DESCRIPTIONS: Dict[str, str] = {
    "REPO_URL": "GitHub repository URL",
    "PROJECT_DESCRIPTION": "Short project description",
    "PROJECT_NAME": "Repository name placeholder",
    "OWNER_NAME": "GitHub owner or organization name",
    "DEFAULT_BRANCH": "Default Git branch",
    "PROJECT_VERSION": "Project semantic version",
    "PROJECT_REPOSITORY": "Repository URL",
    "PROJECT_HOMEPAGE": "Project homepage URL",
    "PROJECT_TITLE": "Title to show at the top of the README",
    "COMPONENT_NAME": "Name of the exported component",
    "VARIABLE_NAME": "Local variable to customise",
    "value": "Provide configuration value",
}

_PLACEHOLDER_TOKEN = re.compile(r"\{\{[^{}\n]*\}\}")
_SEPARATORS = re.compile(r"[\s_-]+")
_BRANCH_CONTEXTS = (
    r"refs/heads/",
    r"/tree/",
    r"/blob/",
    r"\borigin/",
    r"--branch[ =]\s*",
    r"\s-b\s+",
    r"\bbranch\s*[:=]\s*['\"]?",
    r"\bbranches\s*:\s*\[\s*['\"]?",
    r"\bgit\s+(?:checkout|switch|pull|push|merge|rebase)\s+(?:origin\s+)?",
)

_JSON_MANIFESTS = {"package.json", "composer.json"}
_TOML_MANIFESTS = {"pyproject.toml", "cargo.toml"}
_MARKDOWN_SUFFIXES = {".md", ".markdown"}
_SCRIPT_SUFFIXES = {".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".mts", ".cts"}
_CONFIG_SUFFIXES = {".yaml", ".yml", ".env", ".ini", ".cfg", ".toml", ".properties"}
_QUOTED_CONFIG_SUFFIXES = {".yaml", ".yml", ".toml"}

_FIRST_HEADING = re.compile(r"^#[ \t]+\S.*$", re.MULTILINE)
_DEFAULT_EXPORT = re.compile(r"(export\s+default\s+function\s+)([A-Za-z_$][\w$]*)")
_GENERIC_NAMES = (
    "data",
    "result",
    "value",
    "item",
    "items",
    "temp",
    "tmp",
    "res",
    "response",
    "obj",
    "val",
    "foo",
    "bar",
)
_GENERIC_BINDING = re.compile(
    r"\b(?:const|let|var)\s+(" + "|".join(_GENERIC_NAMES) + r")\b\s*[:=]"
)
_SECRET_WORDS = r"(?:api[_-]?key|apikey|token|secret|password|passwd)"
_SECRET_ASSIGNMENT = re.compile(
    r"^([ \t]*(?:export[ \t]+)?[\w.-]*"
    + _SECRET_WORDS
    + r"[\w.-]*['\"]?[ \t]*[:=][ \t]*)(\S[^\r\n]*?)[ \t]*(?=\r?$)",
    re.IGNORECASE | re.MULTILINE,
)
_SECRET_LITERAL = re.compile(
    r"(" + _SECRET_WORDS + r"\w*['\"]?[ \t]*[:=][ \t]*)(['\"])([^'\"\n]+)\2",
    re.IGNORECASE,
)


def identity_pattern(value: Optional[str]) -> Optional[re.Pattern[str]]:
    """Case-insensitive pattern for ``value`` treating whitespace, ``-`` and ``_`` alike."""
    if not value:
        return None
    tokens = [token for token in _SEPARATORS.split(value.strip()) if token]
    if not tokens:
        return None
    body = r"[\s_-]+".join(re.escape(token) for token in tokens)
    return re.compile(rf"(?<![A-Za-z0-9]){body}(?![A-Za-z0-9])", re.IGNORECASE)


def branch_patterns(branch: Optional[str]) -> Tuple[re.Pattern[str], ...]:
    if not branch or not branch.strip():
        return ()
    escaped = re.escape(branch.strip())
    return tuple(
        re.compile(rf"(?P<lead>{context}){escaped}(?![\w-]|\.\w)", re.IGNORECASE)
        for context in _BRANCH_CONTEXTS
    )


def substitute(pattern: re.Pattern[str], key: str, text: str) -> Tuple[str, int]:
    """Replace matches of ``pattern`` with ``{{key}}`` outside existing placeholders."""
    token = "{{" + key + "}}"
    total = 0
    pieces: List[str] = []
    cursor = 0

    def replace(match: re.Match[str]) -> str:
        lead = match.groupdict().get("lead") or ""
        return lead + token

    for existing in _PLACEHOLDER_TOKEN.finditer(text):
        segment, count = pattern.subn(replace, text[cursor : existing.start()])
        pieces.append(segment)
        pieces.append(existing.group(0))
        total += count
        cursor = existing.end()
    segment, count = pattern.subn(replace, text[cursor:])
    pieces.append(segment)
    total += count
    return "".join(pieces), total


@dataclass(frozen=True)
class Replacement:
    key: str
    patterns: Tuple[re.Pattern[str], ...]


class ReplacementSet:
    """Ordered identity replacements built once per request."""

    ORDER = ("REPO_URL", "PROJECT_DESCRIPTION", "PROJECT_NAME", "OWNER_NAME", "DEFAULT_BRANCH")

    def __init__(self, replacements: Sequence[Replacement] = ()) -> None:
        self.replacements = tuple(replacements)

    @classmethod
    def from_identity(cls, identity: Optional[RepositoryIdentity]) -> "ReplacementSet":
        if identity is None:
            return cls()
        candidates: Dict[str, Tuple[re.Pattern[str], ...]] = {
            "REPO_URL": _compact(identity_pattern(identity.url)),
            "PROJECT_DESCRIPTION": _compact(identity_pattern(identity.description)),
            "PROJECT_NAME": _compact(identity_pattern(identity.name)),
            "OWNER_NAME": _compact(identity_pattern(identity.owner)),
            "DEFAULT_BRANCH": branch_patterns(identity.default_branch),
        }
        return cls(
            [Replacement(key, candidates[key]) for key in cls.ORDER if candidates[key]]
        )

    def apply(self, text: str) -> Tuple[str, List[str]]:
        fired: List[str] = []
        for replacement in self.replacements:
            for pattern in replacement.patterns:
                text, count = substitute(pattern, replacement.key, text)
                if count and replacement.key not in fired:
                    fired.append(replacement.key)
        return text, fired

    def __len__(self) -> int:
        return len(self.replacements)


def _compact(pattern: Optional[re.Pattern[str]]) -> Tuple[re.Pattern[str], ...]:
    return (pattern,) if pattern is not None else ()


@dataclass
class ScrubResult:
    content: str
    placeholders: List[str] = field(default_factory=list)

    def add(self, key: str) -> None:
        if key not in self.placeholders:
            self.placeholders.append(key)


class PlaceholderScrubber:
    """Applies file-type rules then identity replacement to one file at a time."""

    def __init__(
        self,
        identity: Optional[RepositoryIdentity] = None,
        *,
        strict: bool = False,
        replacements: Optional[ReplacementSet] = None,
    ) -> None:
        self.replacements = (
            replacements if replacements is not None else ReplacementSet.from_identity(identity)
        )
        self.strict = strict

    def scrub(self, path: str, content: str) -> ScrubResult:
        pure = PurePosixPath(path.replace("\\", "/").lower())
        result = ScrubResult(content=content)

        rule = self._rule_for(pure)
        if rule is not None:
            rule(result)

        result.content, fired = self.replacements.apply(result.content)
        for key in fired:
            result.add(key)

        if pure.suffix in _CONFIG_SUFFIXES or pure.name.startswith(".env"):
            _scrub_config_secrets(result, quoted=pure.suffix in _QUOTED_CONFIG_SUFFIXES)
        if self.strict:
            _scrub_secret_literals(result)
        return result

    @staticmethod
    def _rule_for(pure: PurePosixPath) -> Optional[Callable[[ScrubResult], None]]:
        if pure.name in _JSON_MANIFESTS:
            return _scrub_json_manifest
        if pure.name in _TOML_MANIFESTS:
            return _scrub_toml_manifest
        if pure.suffix in _MARKDOWN_SUFFIXES:
            return _scrub_heading
        if pure.suffix in _SCRIPT_SUFFIXES:
            return _scrub_script_names
        return None


_MANIFEST_KEYS = (
    ("name", "PROJECT_NAME"),
    ("description", "PROJECT_DESCRIPTION"),
    ("version", "PROJECT_VERSION"),
    ("repository", "PROJECT_REPOSITORY"),
    ("homepage", "PROJECT_HOMEPAGE"),
)


def _scrub_json_manifest(result: ScrubResult) -> None:
    try:
        manifest = json.loads(result.content)
    except json.JSONDecodeError as exc:
        logger.debug("Manifest is not valid JSON (%s); using text rules", exc)
        _scrub_manifest_text(result, quoted_json=True)
        return
    if not isinstance(manifest, dict):
        return

    changed = False
    for field_name, key in _MANIFEST_KEYS:
        value = manifest.get(field_name)
        if field_name in {"name", "version"} and not (isinstance(value, str) and value.strip()):
            continue
        if field_name == "description" and not isinstance(value, str):
            continue
        if field_name in {"repository", "homepage"} and not value:
            continue
        manifest[field_name] = "{{" + key + "}}"
        result.add(key)
        changed = True
    if changed:
        trailing = "\n" if result.content.endswith("\n") else ""
        result.content = json.dumps(manifest, indent=2, ensure_ascii=False) + trailing


def _scrub_toml_manifest(result: ScrubResult) -> None:
    try:
        document = tomllib.loads(result.content)
    except tomllib.TOMLDecodeError as exc:
        logger.debug("Manifest is not valid TOML (%s); using text rules", exc)
        _scrub_manifest_text(result, quoted_json=False)
        return

    table = _toml_table(document)
    if not table:
        return
    for field_name, key in _MANIFEST_KEYS:
        value = table.get(field_name)
        if isinstance(value, str) and value:
            _replace_toml_value(result, field_name, value, key)
    urls = table.get("urls")
    if isinstance(urls, dict):
        for url_key, value in urls.items():
            lowered = str(url_key).lower()
            if not isinstance(value, str):
                continue
            if lowered == "homepage":
                _replace_toml_value(result, str(url_key), value, "PROJECT_HOMEPAGE")
            elif lowered in {"repository", "source"}:
                _replace_toml_value(result, str(url_key), value, "PROJECT_REPOSITORY")


def _toml_table(document: Mapping[str, Any]) -> Dict[str, Any]:
    for path in (("project",), ("package",), ("tool", "poetry"), ("workspace", "package")):
        node: Any = document
        for part in path:
            node = node.get(part) if isinstance(node, dict) else None
        if isinstance(node, dict) and node:
            return node
    return {}


def _replace_toml_value(result: ScrubResult, field_name: str, value: str, key: str) -> None:
    pattern = re.compile(
        r"^(\s*[\"']?" + re.escape(field_name) + r"[\"']?\s*=\s*)([\"']{1,3})"
        + re.escape(value)
        + r"\2",
        re.MULTILINE,
    )
    replaced, count = pattern.subn(
        lambda match: match.group(1) + match.group(2) + "{{" + key + "}}" + match.group(2),
        result.content,
        count=1,
    )
    if count:
        result.content = replaced
        result.add(key)


def _scrub_manifest_text(result: ScrubResult, *, quoted_json: bool) -> None:
    for field_name, key in _MANIFEST_KEYS[:3]:
        if quoted_json:
            pattern = re.compile(r'("' + field_name + r'"\s*:\s*")[^"]*(")')
        else:
            pattern = re.compile(r"^(\s*" + field_name + r"\s*=\s*\")[^\"]*(\")", re.MULTILINE)
        replaced, count = pattern.subn(
            lambda match: match.group(1) + "{{" + key + "}}" + match.group(2),
            result.content,
            count=1,
        )
        if count:
            result.content = replaced
            result.add(key)


def _scrub_heading(result: ScrubResult) -> None:
    match = _FIRST_HEADING.search(result.content)
    if match is None:
        return
    content = result.content
    result.content = content[: match.start()] + "# {{PROJECT_TITLE}}" + content[match.end() :]
    result.add("PROJECT_TITLE")


def _scrub_script_names(result: ScrubResult) -> None:
    replaced, count = _DEFAULT_EXPORT.subn(
        lambda match: match.group(1) + "{{COMPONENT_NAME}}", result.content
    )
    if count:
        result.content = replaced
        result.add("COMPONENT_NAME")

    binding = _GENERIC_BINDING.search(result.content)
    if binding is None:
        return
    name = binding.group(1)
    usage = re.compile(rf"(?<![\w$.]){re.escape(name)}(?![\w$])")
    result.content, count = substitute(usage, "VARIABLE_NAME", result.content)
    if count:
        result.add("VARIABLE_NAME")


def _scrub_config_secrets(result: ScrubResult, *, quoted: bool) -> None:
    replacement = '"{{value}}"' if quoted else "{{value}}"

    def replace(match: re.Match[str]) -> str:
        current = match.group(2).strip("'\"")
        if current == "{{value}}":
            return match.group(0)
        return match.group(1) + replacement

    replaced = _SECRET_ASSIGNMENT.sub(replace, result.content)
    if replaced != result.content:
        result.content = replaced
        result.add("value")


def _scrub_secret_literals(result: ScrubResult) -> None:
    def replace(match: re.Match[str]) -> str:
        if match.group(3) == "{{value}}":
            return match.group(0)
        return match.group(1) + match.group(2) + "{{value}}" + match.group(2)

    replaced = _SECRET_LITERAL.sub(replace, result.content)
    if replaced != result.content:
        result.content = replaced
        result.add("value")


class PlaceholderCatalog:
    """Placeholder key to description, in first-discovery order. First writer wins."""

    def __init__(self, overrides: Optional[Mapping[str, str]] = None) -> None:
        self._overrides = dict(overrides or {})
        self._entries: Dict[str, str] = {}

    def record(self, keys: Iterable[str]) -> None:
        for key in keys:
            if key in self._entries:
                continue
            self._entries[key] = (
                self._overrides.get(key) or DEFAULT_DESCRIPTIONS.get(key) or f"Value for {key}"
            )

    def declare(self, key: str, description: str) -> None:
        self._entries.setdefault(key, self._overrides.get(key) or description)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> List[str]:
        return list(self._entries)

    def to_dict(self) -> Dict[str, str]:
        return dict(self._entries)


__all__ = [
    "DEFAULT_DESCRIPTIONS",
    "PlaceholderCatalog",
    "PlaceholderScrubber",
    "Replacement",
    "ReplacementSet",
    "ScrubResult",
    "branch_patterns",
    "identity_pattern",
    "substitute",
]
