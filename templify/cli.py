"""CLI entrypoints for templify commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path, PurePosixPath
from typing import Any

from .config import ConfigError, ExtractionOptions
from .engine import TemplateEngine, analyze_source
from .errors import InvalidRepositoryReference
from .logging import configure_logging
from .models import ExtractedTemplate, FallbackMode, Mode, RepositoryIdentity
from .sources import LocalRepositorySource


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )


def _add_identity_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--repo-url",
        help="GitHub URL of the repository; owner, name and branch are derived from it.",
    )
    parser.add_argument("--name", help="Repository name (defaults to the directory name).")
    parser.add_argument("--owner", default="", help="Repository owner to scrub from files.")
    parser.add_argument("--branch", help="Default branch to scrub from branch references.")
    parser.add_argument("--description", help="Repository description to scrub from files.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="templify",
        description="Turn a repository into a scrubbed, optionally skeletonized learning template.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only log warnings and errors.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        metavar="PATH",
        help="Also write debug logs to PATH.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Score a repository and print the structure analysis as JSON.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    analyze_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )
    _add_identity_options(analyze_parser)

    extract_parser = subparsers.add_parser(
        "extract",
        help="Extract a template from a repository.",
    )
    _add_verbose_option(extract_parser, suppress_default=True)
    extract_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )
    extract_parser.add_argument(
        "--mode",
        choices=[mode.value for mode in Mode],
        help="Extraction mode (default: skeleton).",
    )
    extract_parser.add_argument(
        "--fallback-mode",
        choices=[mode.value for mode in FallbackMode],
        help="What to do when skeleton output is degenerate (default: copier).",
    )
    extract_parser.add_argument("--max-files", type=int, help="Maximum number of files to emit.")
    extract_parser.add_argument(
        "--max-file-size-kb",
        type=int,
        help="Skip files larger than this many kilobytes.",
    )
    extract_parser.add_argument(
        "--include",
        action="append",
        metavar="GLOB",
        help="Include glob; repeat for several. Defaults to the recommended patterns.",
    )
    extract_parser.add_argument(
        "--exclude",
        action="append",
        metavar="GLOB",
        help="Exclude glob; repeat for several.",
    )
    extract_parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Scrub secret-like literals from every file, not only config files.",
    )
    _add_identity_options(extract_parser)
    extract_parser.add_argument(
        "--output",
        metavar="DIR",
        help="Write template files under DIR instead of printing JSON.",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for templify commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), quiet=args.quiet, log_file=args.log_file)

    if args.command == "serve":
        from .service.app import run_service

        run_service(host=args.host, port=args.port)
        return

    try:
        source = LocalRepositorySource(args.path)
        identity = _identity_from_args(args, source.root)
    except (FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"{exc}\n")
    except InvalidRepositoryReference as exc:
        parser.exit(2, f"templify: {exc}\n")

    if args.command == "analyze":
        analysis = analyze_source(source, identity)
        _print_json(analysis.to_dict())
    elif args.command == "extract":
        try:
            options = _options_from_args(args)
            template = asyncio.run(TemplateEngine().extract_from(source, identity, options))
        except ConfigError as exc:
            parser.exit(2, f"templify: {exc}\n")
        except Exception as exc:  # pragma: no cover
            parser.exit(1, f"templify extract failed: {exc}\nRun with --verbose for more details.\n")
        if args.output:
            written = write_template(template, Path(args.output))
            print(f"Wrote {written} file(s) to {_relativize(Path(args.output))}")
        else:
            _print_json(template.to_dict())
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _identity_from_args(args: argparse.Namespace, root: Path) -> RepositoryIdentity:
    if args.repo_url:
        return RepositoryIdentity.from_url(
            args.repo_url,
            default_branch=args.branch,
            description=args.description,
        )
    return RepositoryIdentity(
        owner=args.owner or "",
        name=args.name or root.name,
        default_branch=args.branch or "main",
        description=args.description,
    )


def _options_from_args(args: argparse.Namespace) -> ExtractionOptions:
    return ExtractionOptions(
        mode=Mode(args.mode) if args.mode else None,
        fallback_mode=FallbackMode(args.fallback_mode) if args.fallback_mode else None,
        max_files=args.max_files,
        max_file_size_kb=args.max_file_size_kb,
        include_patterns=args.include,
        exclude_patterns=args.exclude,
        strict_redaction=args.strict,
    )


def write_template(template: ExtractedTemplate, output_dir: Path) -> int:
    """Write template files plus a ``template.json`` summary under ``output_dir``."""
    root = output_dir.expanduser().resolve()
    root.mkdir(parents=True, exist_ok=True)
    for template_file in template.files:
        relative = PurePosixPath(template_file.path)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Refusing to write outside the output directory: {template_file.path}")
        target = root.joinpath(*relative.parts)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(template_file.content, encoding="utf-8")

    summary = template.to_dict()
    summary["files"] = [
        {key: value for key, value in entry.items() if key != "content"}
        for entry in summary["files"]
    ]
    (root / "template.json").write_text(json.dumps(summary, indent=2) + "\n", encoding="utf-8")
    return len(template.files)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
