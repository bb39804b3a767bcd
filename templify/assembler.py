"""Assembly of the final template bundle: tree, instructions and catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

from .config import RepoConfig
from .languages import classify
from .models import ExtractedTemplate, Mode
from .placeholders import PlaceholderCatalog

if TYPE_CHECKING:  # pragma: no cover
    from .coordinator import BuildResult

ROOT_LABEL = "{{PROJECT_NAME}}"

DEFAULT_INSTRUCTIONS = (
    "Replace TODO comments with the intended implementation.",
    "Review placeholders (`{{...}}`) and supply project-specific values.",
    "Install dependencies and verify the template runs end-to-end.",
    "Update documentation files so they match your project context.",
)
SKELETON_GUIDANCE = (
    "Skeleton mode stripped business logic. Re-implement the TODO sections before shipping."
)
FALLBACK_GUIDANCE = (
    "Skeleton extraction was unavailable; carefully review copied files for sensitive logic."
)

_NAMED_DESCRIPTIONS = {
    "package.json": "Package configuration file",
    "composer.json": "Composer package configuration file",
    "pyproject.toml": "Python project configuration file",
    "cargo.toml": "Cargo package manifest",
    "go.mod": "Go module definition",
    "pom.xml": "Maven project configuration",
    "build.gradle": "Gradle build script",
    "requirements.txt": "Python dependency list",
    "dockerfile": "Container build recipe",
    "makefile": "Build automation recipes",
    ".gitignore": "Git ignore rules",
}
_STYLESHEET_SUFFIXES = {".css", ".scss", ".sass", ".less"}


def describe_file(path: str) -> str:
    """Human-readable description of a template file."""
    normalized = path.replace("\\", "/").lower()
    pure = PurePosixPath(normalized)
    if pure.name in _NAMED_DESCRIPTIONS:
        return _NAMED_DESCRIPTIONS[pure.name]
    if "readme" in pure.name:
        return "Project documentation"
    if normalized.startswith(".github/workflows/"):
        return "GitHub Actions workflow for CI/CD automation"
    if pure.name.startswith("license"):
        return "License terms for project distribution"
    if pure.suffix in _STYLESHEET_SUFFIXES:
        return "Stylesheet file"

    info = classify(normalized)
    if info.language == "Markdown":
        return "Markdown documentation file"
    if info.language in {"YAML", "JSON", "TOML", "INI", "XML", "Properties"}:
        return f"{info.language} configuration file"
    if info.language == "Dotenv":
        return "Environment variable template"
    if info.language in {"Text", "reStructuredText"}:
        return "Documentation file"
    if info.language:
        return f"{info.language} source file"
    return f"Template file: {pure.suffix.lstrip('.') or 'text'}"


@dataclass
class _Node:
    name: str
    is_file: bool = False
    children: Dict[str, "_Node"] = field(default_factory=dict)


def render_structure(paths: Iterable[str], root: str = ROOT_LABEL) -> str:
    """Render paths as a box-drawing tree rooted at ``root``, children sorted by name."""
    tree = _Node(name=root)
    for path in paths:
        node = tree
        segments = [segment for segment in path.split("/") if segment]
        for index, segment in enumerate(segments):
            child = node.children.get(segment)
            if child is None:
                child = _Node(name=segment, is_file=index == len(segments) - 1)
                node.children[segment] = child
            node = child

    lines = [f"└── {root}/"]

    def walk(node: _Node, prefix: str) -> None:
        children = sorted(node.children.values(), key=lambda item: item.name.lower())
        for index, child in enumerate(children):
            last = index == len(children) - 1
            connector = "└── " if last else "├── "
            suffix = "" if child.is_file else "/"
            lines.append(f"{prefix}{connector}{child.name}{suffix}")
            walk(child, prefix + ("    " if last else "│   "))

    walk(tree, "    ")
    return "\n".join(lines)


def build_instructions(
    mode_used: Mode,
    fallback_reason: Optional[str] = None,
    repo_config: Optional[RepoConfig] = None,
    notes: Sequence[str] = (),
) -> List[str]:
    """Ordered, de-duplicated setup instructions for the template consumer."""
    instructions = list(repo_config.instructions) if repo_config and repo_config.instructions else list(
        DEFAULT_INSTRUCTIONS
    )
    if mode_used is Mode.SKELETON:
        instructions.insert(0, SKELETON_GUIDANCE)
    elif fallback_reason:
        instructions.insert(0, FALLBACK_GUIDANCE)
    if repo_config is not None:
        instructions.extend(repo_config.notes)

    ordered = list(dict.fromkeys(instructions))
    ordered.extend(f"NOTE: {note}" for note in notes)
    return ordered


class TemplateAssembler:
    """Combines a build pass into the bundle handed back to callers."""

    def __init__(self, repo_config: Optional[RepoConfig] = None) -> None:
        self.repo_config = repo_config

    def assemble(self, build: "BuildResult") -> ExtractedTemplate:
        mappings = self.repo_config.placeholder_mappings if self.repo_config else {}
        catalog = PlaceholderCatalog(overrides=mappings)
        for template_file in build.files:
            catalog.record(template_file.placeholders)
        for key, description in mappings.items():
            catalog.declare(key, description)

        metadata = build.metadata
        return ExtractedTemplate(
            files=list(build.files),
            structure=render_structure(template_file.path for template_file in build.files),
            instructions=build_instructions(
                metadata.mode_used,
                metadata.fallback_reason,
                self.repo_config,
                metadata.notes,
            ),
            placeholders=catalog.to_dict(),
            metadata=metadata,
        )


__all__ = [
    "DEFAULT_INSTRUCTIONS",
    "FALLBACK_GUIDANCE",
    "SKELETON_GUIDANCE",
    "TemplateAssembler",
    "build_instructions",
    "describe_file",
    "render_structure",
]
