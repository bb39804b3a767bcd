"""Tests for templify.logging."""

from __future__ import annotations

import logging
from pathlib import Path

from templify.logging import ROOT_LOGGER, configure_logging, get_logger, repository_logger
from templify.models import RepositoryIdentity


def test_get_logger_nests_under_package() -> None:
    assert get_logger("engine").name == "templify.engine"
    assert get_logger().name == ROOT_LOGGER


def test_repository_logger_prefixes_slug() -> None:
    identity = RepositoryIdentity.from_url("https://github.com/acme/widgets/tree/main/web")

    adapter = repository_logger("engine", identity)
    message, _ = adapter.process("Extracted 3 file(s)", {})

    assert message == "[acme/widgets:web] Extracted 3 file(s)"
    assert adapter.logger.name == "templify.engine"


def test_repository_logger_without_identity_leaves_message() -> None:
    message, _ = repository_logger("engine", None).process("hello", {})

    assert message == "hello"


def test_configure_logging_levels_and_handler_reset(tmp_path: Path) -> None:
    logger = configure_logging(quiet=True)
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1

    logger = configure_logging(verbose=True, quiet=True)
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1

    log_file = tmp_path / "logs" / "templify.log"
    logger = configure_logging(log_file=log_file)
    get_logger("engine").debug("written to the file sink")
    for handler in logger.handlers:
        handler.flush()

    assert len(logger.handlers) == 2
    assert "written to the file sink" in log_file.read_text(encoding="utf-8")
    configure_logging()
