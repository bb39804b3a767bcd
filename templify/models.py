"""Core data models shared across templify components."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import InvalidRepositoryReference, Issue

_TREE_URL = re.compile(
    r"github\.com/([^/\s]+)/([^/\s]+?)(?:\.git)?/tree/([^/\s]+)(?:/(\S+?))?/?$",
    re.IGNORECASE,
)
_REPO_URL = re.compile(r"github\.com/([^/\s]+)/([^/\s]+?)(?:\.git)?(?:/|$)", re.IGNORECASE)


class Mode(str, Enum):
    SKELETON = "skeleton"
    COPIER = "copier"


class FallbackMode(str, Enum):
    COPIER = "copier"
    SKIP = "skip"


@dataclass(frozen=True)
class SourceFile:
    """Raw repository file handed to the engine. Never mutated."""

    path: str
    content: str
    size_bytes: int

    @classmethod
    def from_text(cls, path: str, content: str) -> "SourceFile":
        return cls(path=path, content=content, size_bytes=len(content.encode("utf-8")))


@dataclass(frozen=True)
class TreeEntry:
    """One row of a repository listing."""

    path: str
    type: str = "file"
    size: int = 0

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"


@dataclass(frozen=True)
class RepositoryIdentity:
    """Identity fields that are scrubbed from every extracted file."""

    owner: str
    name: str
    url: str = ""
    default_branch: str = "main"
    description: Optional[str] = None
    language: Optional[str] = None
    topics: Tuple[str, ...] = ()
    subpath: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise InvalidRepositoryReference("Repository name must not be empty")
        if "/" in self.name or "/" in self.owner:
            raise InvalidRepositoryReference(
                f"Repository owner/name must not contain '/': {self.owner}/{self.name}"
            )

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        default_branch: str | None = None,
        description: str | None = None,
        language: str | None = None,
        topics: Sequence[str] = (),
    ) -> "RepositoryIdentity":
        """Parse a GitHub URL, including ``/tree/<branch>/<path>`` forms."""
        cleaned = (url or "").strip()
        tree_match = _TREE_URL.search(cleaned)
        if tree_match:
            owner, repo, branch, subpath = tree_match.groups()
            return cls(
                owner=owner,
                name=repo,
                url=f"https://github.com/{owner}/{repo}",
                default_branch=default_branch or branch,
                description=description,
                language=language,
                topics=tuple(topics),
                subpath=subpath,
            )

        match = _REPO_URL.search(cleaned)
        if not match:
            raise InvalidRepositoryReference(f"Invalid GitHub repository URL: {url!r}")
        owner, repo = match.groups()
        return cls(
            owner=owner,
            name=repo,
            url=f"https://github.com/{owner}/{repo}",
            default_branch=default_branch or "main",
            description=description,
            language=language,
            topics=tuple(topics),
        )


@dataclass
class TemplateFile:
    """Transformed file emitted in the template bundle."""

    path: str
    content: str
    description: str
    placeholders: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "path": self.path,
            "content": self.content,
            "description": self.description,
            "placeholders": list(self.placeholders),
        }
        if self.notes:
            payload["notes"] = list(self.notes)
        return payload


@dataclass
class TemplateMetadata:
    """Audit record describing how a template was produced."""

    mode_used: Mode
    redacted_functions: int = 0
    dropped_files: List[str] = field(default_factory=list)
    total_files_considered: int = 0
    warnings: List[str] = field(default_factory=list)
    fallback_reason: Optional[str] = None
    notes: List[str] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "modeUsed": self.mode_used.value,
            "redactedFunctions": self.redacted_functions,
            "droppedFiles": list(self.dropped_files),
            "totalFilesConsidered": self.total_files_considered,
            "warnings": list(self.warnings),
            "notes": list(self.notes),
            "issues": [issue.to_dict() for issue in self.issues],
        }
        if self.fallback_reason:
            payload["fallbackReason"] = self.fallback_reason
        return payload


@dataclass
class StructureAnalysis:
    """Heuristic view of a repository listing."""

    main_language: str
    framework: str
    key_files: List[str]
    directories: List[str]
    recommended_patterns: List[str]
    template_worthiness: float
    redaction_confidence: float
    insights: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    heuristics: Dict[str, int] = field(default_factory=dict)
    config_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mainLanguage": self.main_language,
            "framework": self.framework,
            "keyFiles": list(self.key_files),
            "directories": list(self.directories),
            "recommendedPatterns": list(self.recommended_patterns),
            "templateWorthiness": self.template_worthiness,
            "redactionConfidence": self.redaction_confidence,
            "insights": list(self.insights),
            "warnings": list(self.warnings),
            "heuristics": dict(self.heuristics),
            "configPath": self.config_path,
        }


@dataclass
class ExtractedTemplate:
    """Final bundle returned to hosting layers."""

    files: List[TemplateFile]
    structure: str
    instructions: List[str]
    placeholders: Dict[str, str]
    metadata: TemplateMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": [file.to_dict() for file in self.files],
            "structure": self.structure,
            "instructions": list(self.instructions),
            "placeholders": dict(self.placeholders),
            "metadata": self.metadata.to_dict(),
        }


__all__ = [
    "ExtractedTemplate",
    "FallbackMode",
    "Mode",
    "RepositoryIdentity",
    "SourceFile",
    "StructureAnalysis",
    "TemplateFile",
    "TemplateMetadata",
    "TreeEntry",
]
