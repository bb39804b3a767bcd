"""Per-mode template build and skeleton-to-copier fallback."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Sequence

from .assembler import describe_file
from .config import ResolvedOptions
from .errors import ErrorKind, Issue, TransformFailure
from .logging import get_logger
from .models import FallbackMode, Mode, SourceFile, TemplateFile, TemplateMetadata
from .placeholders import PlaceholderScrubber
from .redaction import RedactorRegistry
from .selection import is_binary_content, matches_any, skeleton_rejection, unconditional_rejection

logger = get_logger("coordinator")

NO_FILES_REASON = "Skeleton extraction produced no files after filtering."
UNSAFE_REASON = "Skeleton extraction could not safely strip business logic from the selected files."


@dataclass
class BuildResult:
    """Output of one pass over the selected sources."""

    files: List[TemplateFile] = field(default_factory=list)
    metadata: TemplateMetadata = field(default_factory=lambda: TemplateMetadata(Mode.SKELETON))

    @property
    def notes(self) -> List[str]:
        return self.metadata.notes


class TemplateBuilder:
    """Turns selected sources into template files for one mode."""

    def __init__(
        self,
        scrubber: PlaceholderScrubber,
        registry: Optional[RedactorRegistry] = None,
        preserve_files: Sequence[str] = (),
    ) -> None:
        self.scrubber = scrubber
        self.registry = registry or RedactorRegistry()
        self.preserve_files = list(preserve_files)

    def build(self, sources: Sequence[SourceFile], options: ResolvedOptions) -> BuildResult:
        metadata = TemplateMetadata(mode_used=options.mode, total_files_considered=len(sources))
        result = BuildResult(metadata=metadata)
        seen: set[str] = set()
        output_paths: Dict[str, str] = {}
        skeleton = options.mode is Mode.SKELETON

        for source in sources:
            path = source.path
            if path in seen:
                continue
            seen.add(path)

            if len(result.files) >= options.max_files:
                metadata.notes.append(
                    f"Reached the {options.max_files} file limit; remaining files were not processed."
                )
                break

            reason = self._screen(source, options, skeleton)
            if reason is not None:
                logger.debug("Dropping %s: %s", path, reason)
                metadata.dropped_files.append(path)
                metadata.notes.append(reason)
                continue

            file_notes: List[str] = []
            content = source.content
            if skeleton and not self._preserved(path):
                try:
                    redaction = self.registry.redact(
                        path,
                        content,
                        keep_comments=options.keep_comments,
                        include_types=options.include_types,
                    )
                except TransformFailure as exc:
                    message = f"Could not redact {path}: {exc}; kept the original content."
                    logger.warning("%s", message)
                    metadata.warnings.append(message)
                    metadata.issues.append(Issue(ErrorKind.TRANSFORM_FAILURE, str(exc), path))
                else:
                    content = redaction.content
                    metadata.redacted_functions += redaction.redacted
                    metadata.issues.extend(redaction.issues)
                    file_notes.extend(redaction.notes)

            scrubbed = self.scrubber.scrub(path, content)
            metadata.notes.extend(file_notes)
            result.files.append(
                TemplateFile(
                    path=self._output_path(path, options, output_paths),
                    content=scrubbed.content,
                    description=describe_file(path),
                    placeholders=scrubbed.placeholders,
                    notes=file_notes,
                )
            )

        logger.debug(
            "%s pass kept %d file(s), dropped %d, redacted %d function(s)",
            options.mode.value,
            len(result.files),
            len(metadata.dropped_files),
            metadata.redacted_functions,
        )
        return result

    def _screen(self, source: SourceFile, options: ResolvedOptions, skeleton: bool) -> Optional[str]:
        path = source.path
        reason = unconditional_rejection(path)
        if reason:
            return reason
        size_kb = source.size_bytes / 1024
        if size_kb > options.max_file_size_kb:
            return (
                f"Skipped {path} ({round(size_kb)}KB) because it exceeds the "
                f"{options.max_file_size_kb}KB limit."
            )
        if is_binary_content(source.content):
            return f"Skipped {path} because it appears to be a binary file."
        if skeleton and not self._preserved(path):
            return skeleton_rejection(
                path, source.content, remove_business_logic=options.remove_business_logic
            )
        return None

    def _preserved(self, path: str) -> bool:
        return bool(self.preserve_files) and matches_any(path, self.preserve_files)

    @staticmethod
    def _output_path(path: str, options: ResolvedOptions, used: Dict[str, str]) -> str:
        if options.preserve_structure:
            return path
        candidate = PurePosixPath(path).name
        if candidate in used and used[candidate] != path:
            candidate = path.replace("/", "__")
        used[candidate] = path
        return candidate


def evaluate_fallback(result: BuildResult, min_skeleton_files: int) -> Optional[str]:
    """Return why a skeleton build is degenerate, or ``None`` when it is usable."""
    metadata = result.metadata
    if not result.files:
        return NO_FILES_REASON
    if metadata.redacted_functions == 0 and metadata.dropped_files:
        return UNSAFE_REASON
    expected = min(min_skeleton_files, metadata.total_files_considered)
    if len(result.files) < expected:
        return (
            f"Skeleton extraction only produced {len(result.files)} file(s); "
            f"expected at least {expected}."
        )
    return None


class ModeCoordinator:
    """Runs the requested mode and falls back to copier when skeleton output is degenerate."""

    def __init__(self, builder: TemplateBuilder) -> None:
        self.builder = builder

    def run(self, sources: Sequence[SourceFile], options: ResolvedOptions) -> BuildResult:
        result = self.builder.build(sources, options)
        if options.mode is not Mode.SKELETON:
            return result

        reason = evaluate_fallback(result, options.min_skeleton_files)
        if reason is None:
            return result

        if options.fallback_mode is FallbackMode.SKIP:
            logger.warning("Skeleton output is degenerate; keeping it as requested: %s", reason)
            result.metadata.warnings.append(reason)
            result.metadata.issues.append(Issue(ErrorKind.DEGENERATE_SKELETON, reason))
            return result

        logger.warning("Falling back to copier mode: %s", reason)
        fallback = self.builder.build(sources, options.with_mode(Mode.COPIER))
        fallback.metadata.fallback_reason = reason
        fallback.metadata.notes.append(f"Fallback to copier mode: {reason}")
        fallback.metadata.issues.insert(0, Issue(ErrorKind.DEGENERATE_SKELETON, reason))
        return fallback


__all__ = [
    "BuildResult",
    "ModeCoordinator",
    "NO_FILES_REASON",
    "TemplateBuilder",
    "UNSAFE_REASON",
    "evaluate_fallback",
]
