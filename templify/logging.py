"""Logging setup for templify and per-repository log context."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, MutableMapping, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from .models import RepositoryIdentity

ROOT_LOGGER = "templify"
_CONSOLE_FORMAT = "[templify] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``templify.<name>``, or the package logger when ``name`` is empty."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


class RepositoryLogAdapter(logging.LoggerAdapter):
    """Prefixes messages with the ``owner/name`` slug of the repository being processed."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        slug = self.extra.get("repository") if self.extra else None
        return (f"[{slug}] {msg}" if slug else msg), kwargs


def repository_logger(name: str, identity: "RepositoryIdentity | None") -> logging.LoggerAdapter:
    slug = ""
    if identity is not None:
        slug = f"{identity.owner}/{identity.name}" if identity.owner else identity.name
        if identity.subpath:
            slug = f"{slug}:{identity.subpath}"
    return RepositoryLogAdapter(get_logger(name), {"repository": slug})


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Send templify records to stderr, and to ``log_file`` when given.

    ``verbose`` wins over ``quiet``. Existing handlers are replaced, so calling this
    again (tests, repeated CLI runs in one process) does not duplicate output.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(logging.DEBUG)
        sink.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(sink)
        logger.setLevel(logging.DEBUG)

    return logger


__all__ = [
    "ROOT_LOGGER",
    "RepositoryLogAdapter",
    "configure_logging",
    "get_logger",
    "repository_logger",
]
