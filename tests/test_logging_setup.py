from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator

import pytest

from mocktest_trainer.logging_setup import LOG_FORMAT_ENV, LOG_LEVEL_ENV, _JsonFormatter, configure_logging


@pytest.fixture
def pristine_root() -> Iterator[logging.Logger]:
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    saved_flag = getattr(root, "_mocktest_logging_configured", None)
    if saved_flag is not None:
        del root._mocktest_logging_configured  # type: ignore[attr-defined]
    try:
        yield root
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        if hasattr(root, "_mocktest_logging_configured"):
            del root._mocktest_logging_configured  # type: ignore[attr-defined]
        if saved_flag is not None:
            root._mocktest_logging_configured = saved_flag  # type: ignore[attr-defined]


def test_json_formatter_carries_extra_fields() -> None:
    record = logging.LogRecord(
        name="mocktest_trainer.session",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="started %s test",
        args=("aptitude",),
        exc_info=None,
    )
    record.seed = 1832702901

    payload = json.loads(_JsonFormatter().format(record))
    assert payload["level"] == "INFO"
    assert payload["logger"] == "mocktest_trainer.session"
    assert payload["message"] == "started aptitude test"
    assert payload["seed"] == 1832702901
    assert "ts" in payload


def test_json_formatter_includes_exception() -> None:
    try:
        raise ConnectionError("storage offline")
    except ConnectionError:
        exc_info = sys.exc_info()

    record = logging.LogRecord(
        name="x", level=logging.WARNING, pathname=__file__, lineno=1, msg="boom", args=(), exc_info=exc_info
    )
    payload = json.loads(_JsonFormatter().format(record))
    assert "ConnectionError: storage offline" in payload["exception"]


def test_configure_logging_reads_level_and_format(pristine_root: logging.Logger) -> None:
    configure_logging({LOG_LEVEL_ENV: "debug", LOG_FORMAT_ENV: "json"})
    assert pristine_root.level == logging.DEBUG
    assert len(pristine_root.handlers) == 1
    assert isinstance(pristine_root.handlers[0].formatter, _JsonFormatter)


def test_configure_logging_is_idempotent(pristine_root: logging.Logger) -> None:
    configure_logging({LOG_LEVEL_ENV: "warning"})
    handler = pristine_root.handlers[0]
    assert not isinstance(handler.formatter, _JsonFormatter)

    configure_logging({LOG_LEVEL_ENV: "debug", LOG_FORMAT_ENV: "json"})
    assert pristine_root.handlers == [handler]
    assert pristine_root.level == logging.WARNING


def test_unknown_level_falls_back_to_info(pristine_root: logging.Logger) -> None:
    configure_logging({LOG_LEVEL_ENV: "chatty"})
    assert pristine_root.level == logging.INFO
