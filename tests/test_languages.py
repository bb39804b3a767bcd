"""Tests for templify.languages."""

from __future__ import annotations

import pytest

from templify.languages import (
    LanguageFamily,
    classify,
    detect_framework,
    is_manifest_path,
    is_source_path,
)


@pytest.mark.parametrize(
    ("path", "language", "family", "grammar"),
    [
        ("src/index.ts", "TypeScript", LanguageFamily.CURLY, "typescript"),
        ("src/App.tsx", "TypeScript", LanguageFamily.CURLY, "tsx"),
        ("lib/util.jsx", "JavaScript", LanguageFamily.CURLY, "javascript"),
        ("Main.java", "Java", LanguageFamily.CURLY, "java"),
        ("cmd/server/main.go", "Go", LanguageFamily.CURLY, "go"),
        ("src/lib.rs", "Rust", LanguageFamily.CURLY, "rust"),
        ("pkg/app.py", "Python", LanguageFamily.INDENTED, None),
        ("native/buffer.cpp", "C++", LanguageFamily.GENERIC_BRACE, None),
        ("app/models/user.rb", "Ruby", LanguageFamily.GENERIC_BRACE, None),
        ("docs/guide.md", "Markdown", LanguageFamily.DOCUMENT, None),
        ("config/settings.yml", "YAML", LanguageFamily.DATA, None),
    ],
)
def test_classify_maps_suffixes(path: str, language: str, family: LanguageFamily, grammar: str | None) -> None:
    info = classify(path)

    assert info.language == language
    assert info.family is family
    assert info.grammar == grammar


def test_classify_handles_dotenv_and_unknown_files() -> None:
    assert classify(".env.production").family is LanguageFamily.DATA
    assert classify(".env.example").language == "Dotenv"

    unknown = classify("scripts/build.sh")
    assert unknown.language is None
    assert unknown.family is LanguageFamily.OTHER


def test_classify_is_case_insensitive_on_suffix() -> None:
    assert classify("SRC/INDEX.TS").language == "TypeScript"


def test_every_family_is_reachable() -> None:
    samples = ["a.ts", "a.py", "a.c", "a.md", "a.json", "a.unknown"]
    assert {classify(path).family for path in samples} == set(LanguageFamily)


def test_source_and_manifest_predicates() -> None:
    assert is_source_path("src/app.go")
    assert not is_source_path("README.md")
    assert is_manifest_path("backend/Cargo.toml")
    assert is_manifest_path("package.json")
    assert not is_manifest_path("tsconfig.json")


def test_detect_framework_prefers_marker_files() -> None:
    paths = ["src/App.tsx", "next.config.js", "package.json"]
    assert detect_framework(paths) == "Next.js"
    assert detect_framework(["angular.json", "src/main.ts"]) == "Angular"


def test_detect_framework_uses_path_hints() -> None:
    assert detect_framework(["myproject/django_app/views.py"]) == "Django"
    assert detect_framework(["src/main/java/com/acme/spring/App.java"]) == "Spring"
    assert detect_framework(["README.md"]) == "unknown"
