"""Heuristic scoring of repository listings for template extraction."""

from __future__ import annotations

import re
from collections import Counter
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Optional, Sequence

from .languages import classify, detect_framework, is_manifest_path, is_source_path
from .models import RepositoryIdentity, StructureAnalysis, TreeEntry

# Tunable weights; only ranges and relative ordering are meaningful.
BASE_WORTHINESS = 0.35
BASE_REDACTION_CONFIDENCE = 0.4
WORTHINESS_BOUNDS = (0.05, 0.95)
REDACTION_BOUNDS = (0.1, 0.9)

HEURISTIC_KEYS = (
    "configSignals",
    "docsSignals",
    "dataSignals",
    "testSignals",
    "businessLogicSignals",
    "uiSignals",
    "infraSignals",
)

_FILE_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("configSignals", re.compile(r"(^|\.)config(\.|$)|\.env|\.toml$|\.ya?ml$|tsconfig|jsconfig|package\.json$")),
    ("docsSignals", re.compile(r"readme|(^|/)docs?/|changelog|guides?")),
    ("testSignals", re.compile(r"\.test\.|\.spec\.|__tests__|__mocks__|(^|/)tests?/|(^|/)test_[^/]+\.py$")),
    ("dataSignals", re.compile(r"seed|fixture|dataset|sample-data|backfill|migrations?")),
    ("businessLogicSignals", re.compile(r"service|controller|resolver|usecase|workflow|pipeline")),
    ("businessLogicSignals", re.compile(r"router|route|(^|/)api/")),
    ("infraSignals", re.compile(r"terraform|docker|k8s|helm|cloudformation")),
    ("uiSignals", re.compile(r"component|page|layout|view|(^|/)ui/")),
)

_DIR_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("configSignals", re.compile(r"^config|configs?$")),
    ("docsSignals", re.compile(r"^docs?$")),
    ("testSignals", re.compile(r"test|spec|__tests__")),
    ("dataSignals", re.compile(r"mocks?|fixtures?|samples?|examples?")),
    ("businessLogicSignals", re.compile(r"services?|api|routes?|controllers?")),
    ("uiSignals", re.compile(r"ui|components?|views?|pages?|app")),
    ("infraSignals", re.compile(r"infra|ops|deploy|terraform|helm")),
)


def capture_file_heuristics(path: str, heuristics: Dict[str, int]) -> None:
    normalized = path.lower()
    for key, pattern in _FILE_RULES:
        if pattern.search(normalized):
            heuristics[key] += 1


def capture_directory_heuristics(name: str, heuristics: Dict[str, int]) -> None:
    normalized = name.lower()
    for key, pattern in _DIR_RULES:
        if pattern.search(normalized):
            heuristics[key] += 1


class HeuristicScorer:
    """Scores a flat repository listing along independent signal axes."""

    def __init__(self, depth: int = 3) -> None:
        self.depth = depth

    def analyze(
        self,
        entries: Sequence[TreeEntry],
        identity: Optional[RepositoryIdentity] = None,
    ) -> StructureAnalysis:
        heuristics: Dict[str, int] = {key: 0 for key in HEURISTIC_KEYS}
        files = [entry.path for entry in entries if not entry.is_dir]
        directories = self._collect_directories(entries)

        for path in files:
            capture_file_heuristics(path, heuristics)
        for name in directories:
            capture_directory_heuristics(name, heuristics)

        main_language = self._main_language(files, identity)
        framework = detect_framework(files)
        key_files = self._key_files(files)

        has_manifest = any(is_manifest_path(path) for path in files)
        has_readme = any(PurePosixPath(path.lower()).name.startswith("readme") for path in files)
        has_source = any(is_source_path(path) for path in files)
        has_config = heuristics["configSignals"] > 0

        worthiness = BASE_WORTHINESS
        worthiness += 0.2 if has_manifest else -0.05
        worthiness += 0.2 if has_source else -0.1
        worthiness += 0.15 if has_config else 0.0
        worthiness += 0.1 if len(directories) > 2 else 0.0
        worthiness += 0.05 if heuristics["docsSignals"] > 0 else 0.0
        if identity is not None and {"starter", "template"} & set(identity.topics):
            worthiness += 0.1
        worthiness = _clamp(worthiness, *WORTHINESS_BOUNDS)

        confidence = BASE_REDACTION_CONFIDENCE
        confidence += heuristics["configSignals"] * 0.05
        confidence += heuristics["infraSignals"] * 0.04
        confidence -= heuristics["businessLogicSignals"] * 0.08
        confidence -= heuristics["dataSignals"] * 0.05
        confidence = _clamp(confidence, *REDACTION_BOUNDS)

        insights: List[str] = []
        warnings: List[str] = []
        suffix = f" using {framework}" if framework != "unknown" else ""
        insights.append(f"Detected {main_language} project{suffix}")
        if has_manifest:
            insights.append("Found a package manifest for dependency management")
        if has_readme:
            insights.append("Includes top-level documentation")
        if heuristics["businessLogicSignals"] > 0:
            insights.append(
                "Repository contains business logic routes/services that may need redaction"
            )
        if heuristics["testSignals"] > 0:
            insights.append("Tests detected; consider excluding to keep template minimal")
        if not has_source:
            warnings.append("No obvious source files found; template extraction may be limited")
        if heuristics["dataSignals"] > 0:
            warnings.append("Data/backfill files detected; ensure proprietary datasets are stripped")

        config_path = next(
            (path for path in files if path in {".templify.json", ".templify.yml", ".templify.yaml"}),
            None,
        )

        return StructureAnalysis(
            main_language=main_language,
            framework=framework,
            key_files=key_files,
            directories=directories[:10],
            recommended_patterns=recommend_patterns(
                main_language, framework, heuristics, directories, self.depth
            ),
            template_worthiness=round(worthiness, 4),
            redaction_confidence=round(confidence, 4),
            insights=insights,
            warnings=warnings,
            heuristics=heuristics,
            config_path=config_path,
        )

    def _collect_directories(self, entries: Iterable[TreeEntry]) -> List[str]:
        seen: Dict[str, None] = {}
        for entry in entries:
            parts = [part for part in entry.path.split("/") if part]
            if entry.is_dir:
                candidates = parts[: self.depth]
            else:
                candidates = parts[: min(self.depth, len(parts) - 1)]
            for part in candidates:
                if "." not in part:
                    seen.setdefault(part, None)
        return list(seen)

    @staticmethod
    def _main_language(files: Sequence[str], identity: Optional[RepositoryIdentity]) -> str:
        counts: Counter[str] = Counter()
        for path in files:
            if not is_source_path(path):
                continue
            language = classify(path).language
            if language:
                counts[language] += 1
        if counts:
            # most_common is stable for ties, so listing order decides.
            return counts.most_common(1)[0][0]
        if identity is not None and identity.language:
            return identity.language
        return "unknown"

    @staticmethod
    def _key_files(files: Sequence[str]) -> List[str]:
        key_files: List[str] = []
        for path in files:
            lower = path.lower()
            name = PurePosixPath(lower).name
            if (
                "readme" in name
                or "license" in name
                or lower.startswith(".github/workflows/")
                or lower.startswith("docs/")
                or is_manifest_path(path)
                or "__tests__" in lower
                or ".test." in lower
                or ".spec." in lower
            ):
                if path not in key_files:
                    key_files.append(path)
        return key_files[:10]


def recommend_patterns(
    main_language: str,
    framework: str,
    heuristics: Dict[str, int],
    directories: Sequence[str],
    depth: int = 3,
) -> List[str]:
    """Return the include patterns suggested for a repository profile."""
    patterns: Dict[str, None] = {}

    def add(*items: str) -> None:
        for item in items:
            patterns.setdefault(item, None)

    add("package.json", "tsconfig.json", "jsconfig.json", "README.md")

    if main_language in {"TypeScript", "JavaScript"}:
        add("**/*.ts", "**/*.tsx", "**/*.js", "**/*.jsx")
        if framework == "Next.js":
            add("app/**/*", "pages/**/*", "components/**/*", "lib/**/*")
        elif framework == "React":
            add("src/**/*", "public/**/*")
    elif main_language == "Python":
        add("**/*.py", "pyproject.toml", "requirements.txt", "setup.cfg")
    elif main_language == "Go":
        add("**/*.go", "go.mod", "go.sum")
    elif main_language == "Java":
        add("**/*.java", "pom.xml", "build.gradle")
    elif main_language == "Rust":
        add("**/*.rs", "Cargo.toml")

    if heuristics.get("configSignals", 0) > 0:
        add("**/*.config.*", "**/*config/*", "**/.env*", "config/**/*")
    if heuristics.get("uiSignals", 0) > 0:
        add("components/**/*", "layouts/**/*")

    lowered = {directory.lower() for directory in directories}
    if "src" in lowered:
        add("src/**/*")
    if "lib" in lowered:
        add("lib/**/*")

    if depth > 4:
        add("**/*.d.ts", "**/*.interface.ts")

    return list(patterns)


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


__all__ = [
    "HEURISTIC_KEYS",
    "HeuristicScorer",
    "capture_directory_heuristics",
    "capture_file_heuristics",
    "recommend_patterns",
]
