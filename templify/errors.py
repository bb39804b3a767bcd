"""Error taxonomy shared by the extraction engine.

Only :class:`InvalidRepositoryReference` escapes the engine. Every other condition
is recoverable and is reported to callers as an :class:`Issue` attached to the
template metadata, so callers never have to inspect control flow to tell a fatal
failure from a degraded result.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class ErrorKind(str, Enum):
    """Closed set of conditions the engine can report."""

    INVALID_REPOSITORY_REFERENCE = "invalid_repository_reference"
    UNSUPPORTED_LANGUAGE = "unsupported_language"
    TRANSFORM_FAILURE = "transform_failure"
    DEGENERATE_SKELETON = "degenerate_skeleton"
    CONFIG_PARSE_FAILURE = "config_parse_failure"

    @property
    def fatal(self) -> bool:
        return self is ErrorKind.INVALID_REPOSITORY_REFERENCE


@dataclass(frozen=True)
class Issue:
    """Recoverable condition recorded while building a template."""

    kind: ErrorKind
    message: str
    path: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"kind": self.kind.value, "message": self.message, "path": self.path}


class TemplifyError(RuntimeError):
    """Base class for errors raised by templify."""

    kind: ErrorKind


class InvalidRepositoryReference(TemplifyError, ValueError):
    """Raised when a repository identity or URL cannot be interpreted."""

    kind = ErrorKind.INVALID_REPOSITORY_REFERENCE


class TransformFailure(TemplifyError):
    """Raised by a redactor that cannot process a single file."""

    kind = ErrorKind.TRANSFORM_FAILURE


__all__ = [
    "ErrorKind",
    "InvalidRepositoryReference",
    "Issue",
    "TemplifyError",
    "TransformFailure",
]
