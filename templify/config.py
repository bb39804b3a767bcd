"""Extraction options and per-repository configuration (.templify.json / .templify.yml)."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from .errors import ErrorKind, Issue
from .logging import get_logger
from .models import FallbackMode, Mode

if TYPE_CHECKING:  # pragma: no cover
    from .sources import FileSource

logger = get_logger("config")

REPO_CONFIG_PATHS = (".templify.json", ".templify.yml", ".templify.yaml")

DEFAULT_MAX_FILES = {Mode.SKELETON: 60, Mode.COPIER: 40}
DEFAULT_MAX_FILE_SIZE_KB = 180
DEFAULT_MIN_SKELETON_FILES = 3
DEFAULT_INCLUDE_PATTERNS = ("**/*",)


class ConfigError(RuntimeError):
    """Raised when a repository config or option payload cannot be parsed."""


@dataclass
class ExtractionOptions:
    """Caller-supplied knobs. ``None`` means "not set"."""

    mode: Optional[Mode] = None
    fallback_mode: Optional[FallbackMode] = None
    max_files: Optional[int] = None
    max_file_size_kb: Optional[int] = None
    min_skeleton_files: Optional[int] = None
    include_patterns: Optional[List[str]] = None
    exclude_patterns: Optional[List[str]] = None
    preserve_structure: Optional[bool] = None
    keep_comments: Optional[bool] = None
    include_types: Optional[bool] = None
    remove_business_logic: Optional[bool] = None
    strict_redaction: Optional[bool] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "ExtractionOptions":
        """Build options from a camelCase or snake_case mapping."""
        if not data:
            return cls()
        normalized = {_snake_case(str(key)): value for key, value in data.items()}
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(normalized) - known)
        if unknown:
            raise ConfigError(f"Unknown extraction option(s): {', '.join(unknown)}")

        mode_value = normalized.get("mode")
        mode = _as_enum(Mode, mode_value)
        if mode_value is not None and mode is None:
            raise ConfigError(f"Unsupported mode: {mode_value!r}")
        fallback_value = normalized.get("fallback_mode")
        fallback_mode = _as_enum(FallbackMode, fallback_value)
        if fallback_value is not None and fallback_mode is None:
            raise ConfigError(f"Unsupported fallback mode: {fallback_value!r}")

        return cls(
            mode=mode,
            fallback_mode=fallback_mode,
            max_files=_as_int(normalized.get("max_files")),
            max_file_size_kb=_as_int(normalized.get("max_file_size_kb")),
            min_skeleton_files=_as_int(normalized.get("min_skeleton_files")),
            include_patterns=_optional_list(normalized.get("include_patterns")),
            exclude_patterns=_optional_list(normalized.get("exclude_patterns")),
            preserve_structure=_as_bool(normalized.get("preserve_structure")),
            keep_comments=_as_bool(normalized.get("keep_comments")),
            include_types=_as_bool(normalized.get("include_types")),
            remove_business_logic=_as_bool(normalized.get("remove_business_logic")),
            strict_redaction=_as_bool(normalized.get("strict_redaction")),
        )


@dataclass
class RepoConfig:
    """Per-repository extraction settings checked into the source repository."""

    path: Optional[str] = None
    mode: Optional[Mode] = None
    include_patterns: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)
    placeholder_mappings: Dict[str, str] = field(default_factory=dict)
    preserve_files: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    max_files: Optional[int] = None
    max_file_size_kb: Optional[int] = None
    min_skeleton_files: Optional[int] = None
    strict_redaction: Optional[bool] = None


@dataclass(frozen=True)
class ResolvedOptions:
    """Options with every field decided."""

    mode: Mode
    fallback_mode: FallbackMode
    max_files: int
    max_file_size_kb: int
    min_skeleton_files: int
    include_patterns: Tuple[str, ...]
    exclude_patterns: Tuple[str, ...]
    preserve_files: Tuple[str, ...]
    preserve_structure: bool
    keep_comments: bool
    include_types: bool
    remove_business_logic: bool
    strict_redaction: bool

    def with_mode(self, mode: Mode) -> "ResolvedOptions":
        return replace(self, mode=mode)


def resolve_options(
    options: Optional[ExtractionOptions] = None,
    repo_config: Optional[RepoConfig] = None,
    fallback_patterns: Sequence[str] = (),
) -> ResolvedOptions:
    """Merge caller options over repository config over computed defaults."""
    options = options or ExtractionOptions()
    config = repo_config or RepoConfig()

    mode = _first(options.mode, config.mode, Mode.SKELETON)
    include = (
        options.include_patterns
        or config.include_patterns
        or list(fallback_patterns)
        or list(DEFAULT_INCLUDE_PATTERNS)
    )
    exclude = options.exclude_patterns if options.exclude_patterns is not None else config.exclude_patterns

    return ResolvedOptions(
        mode=mode,
        fallback_mode=_first(options.fallback_mode, FallbackMode.COPIER),
        max_files=max(0, _first(options.max_files, config.max_files, DEFAULT_MAX_FILES[mode])),
        max_file_size_kb=max(
            0, _first(options.max_file_size_kb, config.max_file_size_kb, DEFAULT_MAX_FILE_SIZE_KB)
        ),
        min_skeleton_files=max(
            0,
            _first(options.min_skeleton_files, config.min_skeleton_files, DEFAULT_MIN_SKELETON_FILES),
        ),
        include_patterns=tuple(include),
        exclude_patterns=tuple(exclude),
        preserve_files=tuple(config.preserve_files),
        preserve_structure=_first(options.preserve_structure, True),
        keep_comments=_first(options.keep_comments, True),
        include_types=_first(options.include_types, True),
        remove_business_logic=_first(options.remove_business_logic, mode is Mode.SKELETON),
        strict_redaction=_first(options.strict_redaction, config.strict_redaction, False),
    )


def load_repo_config(text: str, path: str = ".templify.json") -> RepoConfig:
    """Parse a repository config payload. JSON for ``.json`` paths, YAML otherwise."""
    data = _read_payload(text, path)
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the root")

    normalized = {_snake_case(str(key)): value for key, value in data.items()}
    mappings = _as_dict(normalized.get("placeholder_mappings"))

    return RepoConfig(
        path=path,
        mode=_as_enum(Mode, normalized.get("mode")),
        include_patterns=_as_str_list(normalized.get("include_patterns")),
        exclude_patterns=_as_str_list(normalized.get("exclude_patterns")),
        instructions=_as_str_list(normalized.get("instructions")),
        placeholder_mappings={
            str(key): description
            for key, description in ((key, _as_str(value)) for key, value in mappings.items())
            if description
        },
        preserve_files=_as_str_list(normalized.get("preserve_files")),
        notes=_as_str_list(normalized.get("notes")),
        max_files=_as_int(normalized.get("max_files")),
        max_file_size_kb=_as_int(normalized.get("max_file_size_kb")),
        min_skeleton_files=_as_int(normalized.get("min_skeleton_files")),
        strict_redaction=_as_bool(normalized.get("strict_redaction")),
    )


def discover_repo_config(
    source: "FileSource",
    listed_paths: Optional[Sequence[str]] = None,
) -> Tuple[Optional[RepoConfig], List[Issue]]:
    """Find and parse the first conventional config file exposed by ``source``."""
    available = set(listed_paths) if listed_paths is not None else None
    for candidate in REPO_CONFIG_PATHS:
        if available is not None and candidate not in available:
            continue
        try:
            text = source.read(candidate)
        except FileNotFoundError:
            continue
        try:
            config = load_repo_config(text, candidate)
        except ConfigError as exc:
            logger.warning("Ignoring %s: %s", candidate, exc)
            return None, [Issue(ErrorKind.CONFIG_PARSE_FAILURE, str(exc), candidate)]
        logger.debug("Loaded repository config from %s", candidate)
        return config, []
    return None, []


def _read_payload(text: str, path: str) -> Any:
    if not text.strip():
        return {}
    if PurePosixPath(path).suffix.lower() == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    return loaded if loaded is not None else {}


def _snake_case(key: str) -> str:
    chars: List[str] = []
    for index, char in enumerate(key):
        if char.isupper() and index:
            chars.append("_")
        chars.append(char.lower())
    return "".join(chars).replace("-", "_")


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _as_enum(enum_type: Any, value: Any) -> Any:
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        try:
            return enum_type(value.strip().lower())
        except ValueError:
            return None
    return None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


def _optional_list(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    return _as_str_list(value)


__all__ = [
    "ConfigError",
    "DEFAULT_MAX_FILES",
    "ExtractionOptions",
    "REPO_CONFIG_PATHS",
    "RepoConfig",
    "ResolvedOptions",
    "discover_repo_config",
    "load_repo_config",
    "resolve_options",
]
