"""Tests for templify.coordinator."""

from __future__ import annotations

from typing import Mapping

import pytest

from templify.config import ExtractionOptions, ResolvedOptions, resolve_options
from templify.coordinator import (
    NO_FILES_REASON,
    UNSAFE_REASON,
    BuildResult,
    ModeCoordinator,
    TemplateBuilder,
    evaluate_fallback,
)
from templify.errors import ErrorKind
from templify.models import FallbackMode, Mode, RepositoryIdentity, SourceFile, TemplateMetadata
from templify.placeholders import PlaceholderScrubber
from templify.selection import EXCLUDED_SEGMENTS
from tests._fixtures.repo_builder import make_sources

IDENTITY = RepositoryIdentity(
    owner="acme",
    name="acme-widgets",
    url="https://github.com/acme/acme-widgets",
)

USERS_TS = """
import { db } from "./db";

export function loadUser(id: string): Promise<User> {
  return db.users.find(id);
}

export class UserService {
  async rename(id: string, name: string): Promise<void> {
    await db.users.update(id, { name });
  }
}

export const isAdmin = (user: User): boolean => {
  return user.roles.includes("admin");
};
"""


def _options(**kwargs: object) -> ResolvedOptions:
    return resolve_options(ExtractionOptions(**kwargs))  # type: ignore[arg-type]


def _run(files: Mapping[str, str], preserve: tuple[str, ...] = (), **kwargs: object) -> BuildResult:
    options = _options(**kwargs)
    builder = TemplateBuilder(PlaceholderScrubber(IDENTITY), preserve_files=preserve)
    return ModeCoordinator(builder).run(make_sources(files), options)


def _check_metadata_invariant(result: BuildResult) -> None:
    metadata = result.metadata
    assert len(metadata.dropped_files) + len(result.files) <= metadata.total_files_considered


def test_three_functions_give_three_redactions_and_markers() -> None:
    result = _run({"src/users.ts": USERS_TS})

    assert result.metadata.mode_used is Mode.SKELETON
    assert result.metadata.redacted_functions == 3
    assert result.files[0].content.count("TODO: Implement") == 3
    assert result.files[0].description == "TypeScript source file"
    assert "Redacted 3 function(s) in src/users.ts." in result.notes
    _check_metadata_invariant(result)


def test_python_bodies_are_skipped() -> None:
    source = "def handler(event):\n    total = 0\n\n    for item in event:\n        total += item\n    return total\n"

    result = _run({"app/handler.py": source})

    content = result.files[0].content
    assert "total" not in content
    assert "    # TODO: Implement handler\n    pass\n" in content
    assert result.metadata.redacted_functions == 1


def test_extraction_is_deterministic() -> None:
    files = {
        "package.json": '{"name": "acme-widgets", "version": "1.0.0"}\n',
        "src/users.ts": USERS_TS,
        "README.md": "# Acme Widgets\n",
        "app/handler.py": "def run():\n    return 1\n",
    }

    first = _run(files)
    second = _run(files)

    assert [file.to_dict() for file in first.files] == [file.to_dict() for file in second.files]
    assert first.metadata.to_dict() == second.metadata.to_dict()


def test_builder_enforces_file_cap() -> None:
    files = {f"src/module{i}.py": f"def f{i}():\n    return {i}\n" for i in range(5)}

    result = _run(files, max_files=2, min_skeleton_files=1)

    assert len(result.files) == 2
    assert "Reached the 2 file limit; remaining files were not processed." in result.notes
    _check_metadata_invariant(result)


@pytest.mark.parametrize("mode", [Mode.SKELETON, Mode.COPIER])
def test_vendor_and_build_paths_never_reach_output(mode: Mode) -> None:
    files = {
        "node_modules/left-pad/index.js": "module.exports = 1;\n",
        "dist/app.js": "console.log(1);\n",
        "target/release/notes.txt": "x\n",
        "package-lock.json": "{}\n",
        "src/index.py": "def main():\n    return 0\n",
        "src/util.py": "def util():\n    return 0\n",
        "src/more.py": "def more():\n    return 0\n",
    }

    result = _run(files, mode=mode)

    for template_file in result.files:
        segments = template_file.path.split("/")[:-1]
        assert not EXCLUDED_SEGMENTS.intersection(segments)
    assert "Skipped dist/app.js (vendor/build asset)." in result.notes
    assert "Skipped package-lock.json (generated or lock file)." in result.notes
    _check_metadata_invariant(result)


def test_oversize_sources_are_dropped_in_every_mode() -> None:
    big = SourceFile(path="src/big.ts", content="x" * 2000, size_bytes=2000)
    small = SourceFile.from_text("src/small.ts", "export const a = 1;\n")
    builder = TemplateBuilder(PlaceholderScrubber(IDENTITY))

    for mode in Mode:
        result = ModeCoordinator(builder).run([big, small], _options(mode=mode, max_file_size_kb=1))
        assert [file.path for file in result.files] == ["src/small.ts"]
        assert "Skipped src/big.ts (2KB) because it exceeds the 1KB limit." in result.notes
        assert "src/big.ts" in result.metadata.dropped_files


def test_binary_sources_are_dropped() -> None:
    result = _run({"assets/logo.ts": "\x89PNG\x00\x00", "src/a.py": "A = 1\n"}, mode=Mode.COPIER)

    assert [file.path for file in result.files] == ["src/a.py"]
    assert "Skipped assets/logo.ts because it appears to be a binary file." in result.notes


def test_test_only_repository_lifts_to_copier() -> None:
    files = {
        "tests/test_api.py": "def test_ok():\n    assert True\n",
        "tests/test_db.py": "def test_db():\n    assert True\n",
    }

    result = _run(files)

    assert result.metadata.mode_used is Mode.COPIER
    assert result.metadata.fallback_reason == NO_FILES_REASON
    assert f"Fallback to copier mode: {NO_FILES_REASON}" in result.notes
    assert result.metadata.issues[0].kind is ErrorKind.DEGENERATE_SKELETON
    assert [file.path for file in result.files] == ["tests/test_api.py", "tests/test_db.py"]
    assert "assert True" in result.files[0].content
    _check_metadata_invariant(result)


def test_nothing_redacted_with_drops_is_unsafe() -> None:
    files = {
        "README.md": "# Acme\n",
        "config/app.yml": "debug: true\n",
        "src/services/billing.ts": "export function charge() {\n  return 1;\n}\n",
    }

    result = _run(files)

    assert result.metadata.mode_used is Mode.COPIER
    assert result.metadata.fallback_reason == UNSAFE_REASON
    assert len(result.files) == 3


def test_too_few_skeleton_files_triggers_fallback() -> None:
    files = {
        "src/a.py": "def a():\n    return 1\n",
        "src/b.test.ts": "it('works', () => {});\n",
        "src/c.test.ts": "it('works', () => {});\n",
    }

    result = _run(files)

    assert result.metadata.mode_used is Mode.COPIER
    assert result.metadata.fallback_reason == "Skeleton extraction only produced 1 file(s); expected at least 3."


def test_skip_fallback_keeps_skeleton_and_warns() -> None:
    result = _run({"tests/test_api.py": "def test_ok():\n    pass\n"}, fallback_mode=FallbackMode.SKIP)

    assert result.metadata.mode_used is Mode.SKELETON
    assert result.files == []
    assert result.metadata.fallback_reason is None
    assert NO_FILES_REASON in result.metadata.warnings
    assert result.metadata.issues[-1].kind is ErrorKind.DEGENERATE_SKELETON


def test_copier_requests_never_fall_back() -> None:
    result = _run({"tests/test_api.py": "def test_ok():\n    pass\n"}, mode=Mode.COPIER)

    assert result.metadata.mode_used is Mode.COPIER
    assert result.metadata.fallback_reason is None
    assert len(result.files) == 1


def test_fallback_invariant_over_mixed_inputs() -> None:
    scenarios = [
        {"tests/a_test.go": "package a\n"},
        {"src/users.ts": USERS_TS},
        {"docs/intro.md": "# Intro\n", "src/services/x.py": "def x():\n    pass\n"},
        {},
    ]
    for files in scenarios:
        result = _run(files)
        if result.metadata.mode_used is Mode.COPIER:
            assert result.metadata.fallback_reason
        _check_metadata_invariant(result)


def test_manifest_name_is_scrubbed() -> None:
    result = _run({"package.json": '{\n  "name": "acme-widgets",\n  "private": true\n}\n'}, mode=Mode.COPIER)

    manifest = result.files[0]
    assert '"name": "{{PROJECT_NAME}}"' in manifest.content
    assert manifest.placeholders == ["PROJECT_NAME"]
    assert manifest.description == "Package configuration file"


def test_transform_failure_keeps_original_content() -> None:
    broken = "int main(void) {\n  return 0;\n"
    files = {
        "src/main.c": broken,
        "src/ok.py": "def ok():\n    return 1\n",
    }

    result = _run(files, min_skeleton_files=1)

    by_path = {file.path: file for file in result.files}
    assert by_path["src/main.c"].content == broken
    assert any(issue.kind is ErrorKind.TRANSFORM_FAILURE and issue.path == "src/main.c" for issue in result.metadata.issues)
    assert any("Could not redact src/main.c" in warning for warning in result.metadata.warnings)
    assert result.metadata.redacted_functions == 1


def test_preserved_files_skip_screening_and_redaction() -> None:
    files = {
        "src/services/keep.py": "def keep():\n    return 'acme-widgets'\n",
        "src/app.py": "def app():\n    return 1\n",
    }

    result = _run(files, preserve=("src/services/keep.py",), min_skeleton_files=1)

    keep = next(file for file in result.files if file.path == "src/services/keep.py")
    assert "return '{{PROJECT_NAME}}'" in keep.content
    assert keep.placeholders == ["PROJECT_NAME"]
    assert result.metadata.redacted_functions == 1


def test_remove_business_logic_can_be_disabled() -> None:
    files = {"src/services/billing.py": "def charge():\n    return 1\n"}

    result = _run(files, remove_business_logic=False)

    assert result.metadata.mode_used is Mode.SKELETON
    assert result.files[0].path == "src/services/billing.py"


def test_flattened_paths_avoid_collisions() -> None:
    files = {
        "src/a/index.py": "A = 1\n",
        "src/b/index.py": "B = 2\n",
        "src/c/main.py": "C = 3\n",
    }

    result = _run(files, mode=Mode.COPIER, preserve_structure=False)

    assert [file.path for file in result.files] == ["index.py", "src__b__index.py", "main.py"]


def test_duplicate_sources_are_skipped_not_dropped() -> None:
    source = SourceFile.from_text("src/a.py", "A = 1\n")
    builder = TemplateBuilder(PlaceholderScrubber(IDENTITY))

    result = builder.build([source, source], _options(mode=Mode.COPIER))

    assert len(result.files) == 1
    assert result.metadata.dropped_files == []
    assert result.metadata.total_files_considered == 2


def test_evaluate_fallback_reasons() -> None:
    empty = BuildResult(metadata=TemplateMetadata(Mode.SKELETON, total_files_considered=4))
    assert evaluate_fallback(empty, 3) == NO_FILES_REASON

    healthy = _run({"src/users.ts": USERS_TS})
    assert evaluate_fallback(healthy, 3) is None
