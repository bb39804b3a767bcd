"""End-to-end extraction pipeline: analyze, select, fetch, transform and assemble."""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

from .assembler import TemplateAssembler
from .config import (
    REPO_CONFIG_PATHS,
    ExtractionOptions,
    RepoConfig,
    ResolvedOptions,
    discover_repo_config,
    resolve_options,
)
from .coordinator import ModeCoordinator, TemplateBuilder
from .errors import ErrorKind, Issue
from .heuristics import HeuristicScorer
from .logging import get_logger, repository_logger
from .models import ExtractedTemplate, RepositoryIdentity, SourceFile, StructureAnalysis, TreeEntry
from .placeholders import PlaceholderScrubber
from .redaction import RedactorRegistry
from .selection import FileSelector, glob_error
from .sources import FileSource, ScopedSource, fetch_sources


class TemplateEngine:
    """Coordinates the template pipeline for one request at a time."""

    def __init__(
        self,
        scorer: HeuristicScorer | None = None,
        registry: RedactorRegistry | None = None,
    ) -> None:
        self.scorer = scorer or HeuristicScorer()
        self.registry = registry or RedactorRegistry()
        self.logger = get_logger("engine")

    def analyze(
        self,
        entries: Sequence[TreeEntry],
        identity: Optional[RepositoryIdentity] = None,
    ) -> StructureAnalysis:
        """Score a repository listing."""
        analysis = self.scorer.analyze(entries, identity)
        self.logger.debug(
            "Analysis: language=%s framework=%s worthiness=%.2f",
            analysis.main_language,
            analysis.framework,
            analysis.template_worthiness,
        )
        return analysis

    def extract(
        self,
        identity: Optional[RepositoryIdentity],
        sources: Sequence[SourceFile],
        options: Optional[ExtractionOptions] = None,
        repo_config: Optional[RepoConfig] = None,
        patterns: Sequence[str] = (),
        *,
        issues: Sequence[Issue] = (),
        notes: Sequence[str] = (),
    ) -> ExtractedTemplate:
        """Run the synchronous core over sources that are already in memory.

        ``patterns`` are include globs used only when neither the caller nor the
        repository config names any. ``issues`` and ``notes`` gathered before the core
        ran (config parsing, unreadable files) are carried into the metadata.
        """
        log = repository_logger("engine", identity)
        resolved = resolve_options(options, repo_config, patterns)
        glob_issues = _glob_issues(resolved, repo_config)
        sources = [source for source in sources if source.path not in REPO_CONFIG_PATHS]
        selection = FileSelector(
            resolved.include_patterns,
            resolved.exclude_patterns,
            resolved.max_files,
        ).select(list(sources))
        for path, reason in selection.rejected.items():
            log.debug("Not selected %s: %s", path, reason)

        scrubber = PlaceholderScrubber(identity, strict=resolved.strict_redaction)
        builder = TemplateBuilder(scrubber, self.registry, resolved.preserve_files)
        result = ModeCoordinator(builder).run(selection.selected, resolved)

        metadata = result.metadata
        metadata.notes[:0] = list(notes)
        metadata.issues[:0] = [*issues, *glob_issues]

        template = TemplateAssembler(repo_config).assemble(result)
        log.info(
            "Extracted %d file(s) in %s mode (%d function(s) redacted)",
            len(template.files),
            metadata.mode_used.value,
            metadata.redacted_functions,
        )
        return template

    async def extract_from(
        self,
        source: FileSource,
        identity: RepositoryIdentity,
        options: Optional[ExtractionOptions] = None,
    ) -> ExtractedTemplate:
        """Discover config, analyze, select, fetch and extract from ``source``."""
        if identity.subpath:
            source = ScopedSource(source, identity.subpath)

        entries = await asyncio.to_thread(source.list_entries)
        files = [entry for entry in entries if not entry.is_dir]
        listed = [entry.path for entry in files]

        repo_config, issues = await asyncio.to_thread(discover_repo_config, source, listed)
        analysis = self.analyze(entries, identity)
        patterns = analysis.recommended_patterns

        resolved = resolve_options(options, repo_config, patterns)
        candidates = [entry for entry in files if entry.path not in REPO_CONFIG_PATHS]
        selection = FileSelector(
            resolved.include_patterns,
            resolved.exclude_patterns,
            resolved.max_files,
        ).select(candidates)
        repository_logger("engine", identity).debug(
            "Fetching %d of %d listed file(s)", len(selection.selected), len(files)
        )

        sources, notes = await fetch_sources(source, [entry.path for entry in selection.selected])
        return await asyncio.to_thread(
            self.extract,
            identity,
            sources,
            options,
            repo_config,
            patterns,
            issues=issues,
            notes=notes,
        )


def _glob_issues(resolved: ResolvedOptions, repo_config: Optional[RepoConfig]) -> List[Issue]:
    configured: set[str] = set()
    if repo_config is not None:
        configured.update(repo_config.include_patterns)
        configured.update(repo_config.exclude_patterns)
        configured.update(repo_config.preserve_files)
    issues: List[Issue] = []
    patterns = (*resolved.include_patterns, *resolved.exclude_patterns, *resolved.preserve_files)
    for pattern in dict.fromkeys(patterns):
        error = glob_error(pattern)
        if error is None:
            continue
        path = repo_config.path if repo_config is not None and pattern in configured else None
        issues.append(
            Issue(
                ErrorKind.CONFIG_PARSE_FAILURE,
                f"Invalid glob {pattern!r} ({error}); it only matches its literal text.",
                path,
            )
        )
    return issues


def analyze_source(
    source: FileSource,
    identity: Optional[RepositoryIdentity] = None,
    engine: Optional[TemplateEngine] = None,
) -> StructureAnalysis:
    """List ``source`` and score it."""
    engine = engine or TemplateEngine()
    if identity is not None and identity.subpath:
        source = ScopedSource(source, identity.subpath)
    entries: List[TreeEntry] = source.list_entries()
    return engine.analyze(entries, identity)


__all__ = ["TemplateEngine", "analyze_source"]
