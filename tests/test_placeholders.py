"""Tests for templify.placeholders."""

from __future__ import annotations

import json

from templify.models import RepositoryIdentity
from templify.placeholders import (
    DEFAULT_DESCRIPTIONS,
    PlaceholderCatalog,
    PlaceholderScrubber,
    ReplacementSet,
    identity_pattern,
    substitute,
)

IDENTITY = RepositoryIdentity(
    owner="acme",
    name="acme-widgets",
    url="https://github.com/acme/acme-widgets",
    default_branch="develop",
    description="Widgets (v2) + gadgets? [beta]",
)


def test_identity_pattern_treats_separators_alike() -> None:
    pattern = identity_pattern("acme-widgets")
    assert pattern is not None

    for variant in ("acme-widgets", "ACME_WIDGETS", "acme widgets", "Acme__Widgets"):
        assert pattern.search(variant), variant
    assert not pattern.search("acme-widgetsplus")
    assert not pattern.search("megaacme-widgets")
    assert identity_pattern("") is None
    assert identity_pattern("  ") is None


def test_descriptions_with_regex_metacharacters_are_escaped() -> None:
    scrubber = PlaceholderScrubber(IDENTITY)

    result = scrubber.scrub("notes.txt", "About: Widgets (v2) + gadgets? [beta].\nWidgets v2 gadgets\n")

    assert "About: {{PROJECT_DESCRIPTION}}." in result.content
    assert "Widgets v2 gadgets" in result.content
    assert result.placeholders == ["PROJECT_DESCRIPTION"]


def test_replacement_order_keeps_composites_whole() -> None:
    replacements = ReplacementSet.from_identity(IDENTITY)
    text = "Clone https://github.com/acme/acme-widgets then cd acme-widgets as acme."

    scrubbed, fired = replacements.apply(text)

    assert scrubbed == "Clone {{REPO_URL}} then cd {{PROJECT_NAME}} as {{OWNER_NAME}}."
    assert fired == ["REPO_URL", "PROJECT_NAME", "OWNER_NAME"]


def test_branch_only_replaced_in_branch_contexts() -> None:
    scrubber = PlaceholderScrubber(IDENTITY)
    text = (
        "on:\n  push:\n    branches: [develop]\n"
        "# develop locally before pushing\n"
        "git checkout develop\n"
        "see https://example.com/tree/develop/docs\n"
    )

    result = scrubber.scrub(".github/workflows/ci.yml", text)

    assert "branches: [{{DEFAULT_BRANCH}}]" in result.content
    assert "# develop locally" in result.content
    assert "git checkout {{DEFAULT_BRANCH}}" in result.content
    assert "/tree/{{DEFAULT_BRANCH}}/docs" in result.content
    assert "DEFAULT_BRANCH" in result.placeholders


def test_substitute_skips_existing_placeholders() -> None:
    pattern = identity_pattern("value")
    assert pattern is not None

    text, count = substitute(pattern, "X", "value {{value}} value")

    assert text == "{{X}} {{value}} {{X}}"
    assert count == 2


def test_json_manifest_fields_become_placeholders() -> None:
    manifest = json.dumps(
        {
            "name": "acme-widgets",
            "version": "1.2.3",
            "description": "Internal widget toolkit",
            "repository": {"type": "git", "url": "https://github.com/acme/acme-widgets"},
            "dependencies": {"react": "^18.0.0"},
        },
        indent=2,
    )

    result = PlaceholderScrubber(IDENTITY).scrub("package.json", manifest + "\n")
    parsed = json.loads(result.content)

    assert '"name": "{{PROJECT_NAME}}"' in result.content
    assert parsed["version"] == "{{PROJECT_VERSION}}"
    assert parsed["description"] == "{{PROJECT_DESCRIPTION}}"
    assert parsed["repository"] == "{{PROJECT_REPOSITORY}}"
    assert parsed["dependencies"] == {"react": "^18.0.0"}
    assert result.content.endswith("\n")
    assert result.placeholders[:4] == [
        "PROJECT_NAME",
        "PROJECT_DESCRIPTION",
        "PROJECT_VERSION",
        "PROJECT_REPOSITORY",
    ]


def test_invalid_json_manifest_uses_text_rules() -> None:
    broken = '{\n  "name": "acme-widgets",\n  "version": "0.1.0",\n}\n'

    result = PlaceholderScrubber().scrub("package.json", broken)

    assert '"name": "{{PROJECT_NAME}}"' in result.content
    assert '"version": "{{PROJECT_VERSION}}"' in result.content


def test_toml_manifest_is_rewritten_in_place() -> None:
    pyproject = (
        "[project]\n"
        'name = "acme-widgets"\n'
        'version = "0.3.0"\n'
        'description = "Widget toolkit"\n'
        "\n"
        "[project.urls]\n"
        'Homepage = "https://acme.dev"\n'
        "\n"
        "[tool.black]\n"
        'name = "untouched"\n'
    )

    result = PlaceholderScrubber().scrub("pyproject.toml", pyproject)

    assert 'name = "{{PROJECT_NAME}}"' in result.content
    assert 'version = "{{PROJECT_VERSION}}"' in result.content
    assert 'description = "{{PROJECT_DESCRIPTION}}"' in result.content
    assert 'Homepage = "{{PROJECT_HOMEPAGE}}"' in result.content
    assert 'name = "untouched"' in result.content


def test_cargo_manifest_uses_package_table() -> None:
    cargo = '[package]\nname = "widgets"\nversion = "0.1.0"\n'

    result = PlaceholderScrubber().scrub("Cargo.toml", cargo)

    assert result.content == '[package]\nname = "{{PROJECT_NAME}}"\nversion = "{{PROJECT_VERSION}}"\n'


def test_first_markdown_heading_becomes_title() -> None:
    readme = "Intro line\n# Acme Widgets\n\n## Usage\n# Second\n"

    result = PlaceholderScrubber().scrub("README.md", readme)

    assert result.content == "Intro line\n# {{PROJECT_TITLE}}\n\n## Usage\n# Second\n"
    assert result.placeholders == ["PROJECT_TITLE"]


def test_script_component_and_variable_names() -> None:
    source = (
        "export default function Dashboard() {\n"
        "  const data = useFetch();\n"
        "  const metadata = data.items.map((row) => row.value);\n"
        "  return data;\n"
        "}\n"
    )

    result = PlaceholderScrubber().scrub("src/Dashboard.tsx", source)

    assert "export default function {{COMPONENT_NAME}}()" in result.content
    assert "const {{VARIABLE_NAME}} = useFetch();" in result.content
    assert "const metadata = {{VARIABLE_NAME}}.items" in result.content
    assert "row.value" in result.content
    assert "return {{VARIABLE_NAME}};" in result.content
    assert result.placeholders == ["COMPONENT_NAME", "VARIABLE_NAME"]


def test_config_secrets_are_replaced() -> None:
    env = "API_KEY=sk-live-123\nDEBUG=true\nDB_PASSWORD='hunter2'\n"
    yaml_text = "service:\n  token: abc123\n  retries: 3\n"

    env_result = PlaceholderScrubber().scrub(".env", env)
    yaml_result = PlaceholderScrubber().scrub("config/app.yml", yaml_text)

    assert env_result.content == "API_KEY={{value}}\nDEBUG=true\nDB_PASSWORD={{value}}\n"
    assert yaml_result.content == 'service:\n  token: "{{value}}"\n  retries: 3\n'
    assert env_result.placeholders == ["value"]


def test_config_secret_rule_stays_on_its_own_line() -> None:
    env = "API_TOKEN=\nDATABASE_URL=postgres://localhost/app\nPORT=3000\n"
    yaml_text = "secrets:\n  region: us-east-1\nport: 8080\n"

    env_result = PlaceholderScrubber().scrub(".env.example", env)
    yaml_result = PlaceholderScrubber().scrub("config/app.yml", yaml_text)

    assert env_result.content == env
    assert env_result.placeholders == []
    assert yaml_result.content == yaml_text


def test_config_secrets_keep_line_endings() -> None:
    env = "SECRET_KEY=abc\r\nPORT=3000\r\nAPI_KEY=xyz"

    result = PlaceholderScrubber().scrub(".env", env)

    assert result.content == "SECRET_KEY={{value}}\r\nPORT=3000\r\nAPI_KEY={{value}}"


def test_secret_literals_in_code_need_strict_mode() -> None:
    code = 'const apiKey = "sk-live-123";\n'

    relaxed = PlaceholderScrubber().scrub("src/client.ts", code)
    strict = PlaceholderScrubber(strict=True).scrub("src/client.ts", code)

    assert relaxed.content == code
    assert strict.content == 'const apiKey = "{{value}}";\n'
    assert "value" in strict.placeholders


def test_scrubber_without_identity_leaves_plain_text() -> None:
    result = PlaceholderScrubber().scrub("notes.txt", "acme-widgets by acme\n")

    assert result.content == "acme-widgets by acme\n"
    assert result.placeholders == []


def test_catalog_first_writer_wins_and_uses_overrides() -> None:
    catalog = PlaceholderCatalog(overrides={"PROJECT_NAME": "Name of your fork"})

    catalog.record(["PROJECT_NAME", "OWNER_NAME"])
    catalog.record(["OWNER_NAME", "CUSTOM_KEY"])
    catalog.declare("PROJECT_NAME", "ignored")
    catalog.declare("API_URL", "Base URL of the API")

    assert catalog.keys() == ["PROJECT_NAME", "OWNER_NAME", "CUSTOM_KEY", "API_URL"]
    assert catalog.to_dict() == {
        "PROJECT_NAME": "Name of your fork",
        "OWNER_NAME": DEFAULT_DESCRIPTIONS["OWNER_NAME"],
        "CUSTOM_KEY": "Value for CUSTOM_KEY",
        "API_URL": "Base URL of the API",
    }
    assert "CUSTOM_KEY" in catalog
    assert len(catalog) == 4
