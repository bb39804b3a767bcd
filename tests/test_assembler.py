"""Tests for templify.assembler."""

from __future__ import annotations

from templify.assembler import (
    DEFAULT_INSTRUCTIONS,
    FALLBACK_GUIDANCE,
    SKELETON_GUIDANCE,
    TemplateAssembler,
    build_instructions,
    describe_file,
    render_structure,
)
from templify.config import RepoConfig
from templify.coordinator import BuildResult
from templify.models import Mode, TemplateFile, TemplateMetadata


def test_describe_file_known_names_and_languages() -> None:
    assert describe_file("package.json") == "Package configuration file"
    assert describe_file("backend/pyproject.toml") == "Python project configuration file"
    assert describe_file("README.md") == "Project documentation"
    assert describe_file(".github/workflows/ci.yml") == "GitHub Actions workflow for CI/CD automation"
    assert describe_file("LICENSE") == "License terms for project distribution"
    assert describe_file("src/styles/main.scss") == "Stylesheet file"
    assert describe_file("src/index.ts") == "TypeScript source file"
    assert describe_file("config/app.yaml") == "YAML configuration file"
    assert describe_file("docs/guide.md") == "Markdown documentation file"
    assert describe_file("scripts/run.sh") == "Template file: sh"


def test_render_structure_sorts_and_nests() -> None:
    tree = render_structure(["src/b.ts", "README.md", "src/a.ts", "docs/Guide.md", "src/lib/x.ts"])

    assert tree == "\n".join(
        [
            "└── {{PROJECT_NAME}}/",
            "    ├── docs/",
            "    │   └── Guide.md",
            "    ├── README.md",
            "    └── src/",
            "        ├── a.ts",
            "        ├── b.ts",
            "        └── lib/",
            "            └── x.ts",
        ]
    )


def test_render_structure_for_empty_bundle() -> None:
    assert render_structure([]) == "└── {{PROJECT_NAME}}/"


def test_instructions_for_skeleton_mode() -> None:
    instructions = build_instructions(Mode.SKELETON, notes=["Redacted 2 function(s) in a.ts."])

    assert instructions[0] == SKELETON_GUIDANCE
    assert instructions[1 : 1 + len(DEFAULT_INSTRUCTIONS)] == list(DEFAULT_INSTRUCTIONS)
    assert instructions[-1] == "NOTE: Redacted 2 function(s) in a.ts."


def test_instructions_for_fallback_use_config_and_dedupe() -> None:
    config = RepoConfig(
        instructions=["Run make setup", "Run make setup"],
        notes=["Ask the maintainers for credentials", "Run make setup"],
    )

    instructions = build_instructions(Mode.COPIER, "no files", config, ["Fallback to copier mode: no files"])

    assert instructions == [
        FALLBACK_GUIDANCE,
        "Run make setup",
        "Ask the maintainers for credentials",
        "NOTE: Fallback to copier mode: no files",
    ]


def test_plain_copier_has_no_mode_guidance() -> None:
    instructions = build_instructions(Mode.COPIER)

    assert instructions == list(DEFAULT_INSTRUCTIONS)


def test_assemble_builds_catalog_in_discovery_order() -> None:
    metadata = TemplateMetadata(mode_used=Mode.COPIER, total_files_considered=2)
    build = BuildResult(
        files=[
            TemplateFile("package.json", "{}", "Package configuration file", ["PROJECT_NAME", "PROJECT_VERSION"]),
            TemplateFile("src/index.ts", "", "TypeScript source file", ["OWNER_NAME", "PROJECT_NAME"]),
        ],
        metadata=metadata,
    )
    config = RepoConfig(placeholder_mappings={"PROJECT_NAME": "Your package name", "API_URL": "Backend URL"})

    template = TemplateAssembler(config).assemble(build)

    assert list(template.placeholders) == ["PROJECT_NAME", "PROJECT_VERSION", "OWNER_NAME", "API_URL"]
    assert template.placeholders["PROJECT_NAME"] == "Your package name"
    assert template.placeholders["API_URL"] == "Backend URL"
    assert template.structure.splitlines()[0] == "└── {{PROJECT_NAME}}/"
    assert template.metadata is metadata

    payload = template.to_dict()
    assert payload["metadata"]["modeUsed"] == "copier"
    assert "fallbackReason" not in payload["metadata"]
    assert payload["files"][0]["placeholders"] == ["PROJECT_NAME", "PROJECT_VERSION"]
