"""Tests for logging helpers."""

import logging

from userdeck_client.core.config import Config
from userdeck_client.core.logging import (
    TRACE_LEVEL,
    get_logger,
    mask_secret,
    resolve_level,
    setup_logging,
)


def test_trace_level_registered():
    assert logging.getLevelName(TRACE_LEVEL) == "TRACE"
    assert hasattr(get_logger("test"), "trace")


def test_logger_namespace():
    assert get_logger("auth").name == "userdeck_client.auth"


def test_resolve_level(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    assert resolve_level() == logging.INFO
    assert resolve_level("debug") == logging.DEBUG
    assert resolve_level("TRACE") == TRACE_LEVEL
    assert resolve_level("nonsense") == logging.INFO
    assert resolve_level("error", debug=True) == TRACE_LEVEL


def test_resolve_level_from_env(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    assert resolve_level() == logging.WARNING


def test_setup_logging_sets_package_level():
    package_logger = logging.getLogger("userdeck_client")
    try:
        setup_logging("DEBUG")

        assert package_logger.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        package_logger.setLevel(logging.NOTSET)


def test_trace_messages_emitted(caplog):
    logger = get_logger("test")
    with caplog.at_level(TRACE_LEVEL, logger="userdeck_client"):
        logger.trace("hello %s", "world")

    assert "hello world" in caplog.text


def test_mask_secret():
    assert mask_secret(None) == "<none>"
    assert mask_secret("abcdef") == "<6 chars>"


def test_setup_logging_uses_config_level():
    package_logger = logging.getLogger("userdeck_client")
    try:
        setup_logging(config=Config(log_level="WARNING"))
        assert package_logger.level == logging.WARNING

        setup_logging("ERROR", config=Config(log_level="WARNING"))
        assert package_logger.level == logging.ERROR
    finally:
        package_logger.setLevel(logging.NOTSET)
