"""Tests for structured logging setup."""

import json
import logging
from logging.handlers import RotatingFileHandler

import pytest
import structlog

from agentforce_bot.config import Settings
from agentforce_bot.log import REDACTED, configure_logging
from agentforce_bot.session import store as store_module
from agentforce_bot.session.store import SessionStore, SessionSweeper


@pytest.fixture(autouse=True)
def restore_logging():
    handlers = list(logging.root.handlers)
    level = logging.root.level
    yield
    for handler in logging.root.handlers:
        if handler not in handlers:
            handler.close()
    logging.root.handlers[:] = handlers
    logging.root.setLevel(level)
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def file_settings(mock_env_vars, monkeypatch, tmp_path) -> Settings:
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "logs" / "bot.log"))
    monkeypatch.setenv("LOG_FILE_MAX_BYTES", "2048")
    monkeypatch.setenv("LOG_FILE_BACKUP_COUNT", "2")
    return Settings(_env_file=None)


def _events(settings: Settings) -> list[dict]:
    for handler in logging.root.handlers:
        handler.flush()
    with open(settings.log_file, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def test_console_only_without_log_file(settings):
    configure_logging(settings)

    assert len(logging.root.handlers) == 1
    assert not isinstance(logging.root.handlers[0], RotatingFileHandler)
    assert logging.root.level == logging.DEBUG


def test_log_file_adds_rotating_handler(file_settings, tmp_path):
    configure_logging(file_settings)

    rotating = [h for h in logging.root.handlers if isinstance(h, RotatingFileHandler)]
    assert len(rotating) == 1
    assert rotating[0].maxBytes == 2048
    assert rotating[0].backupCount == 2
    assert (tmp_path / "logs").is_dir()


def test_http_client_loggers_are_quieted(settings):
    configure_logging(settings)

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING


def test_sweep_event_written_as_json(file_settings, clock, monkeypatch):
    configure_logging(file_settings)
    # Module loggers cache their configuration on first use.
    monkeypatch.setattr(store_module, "logger", structlog.get_logger())

    store = SessionStore(timeout=60, clock=clock)
    store.put("conv-1", "session-1")
    clock.advance(61)
    SessionSweeper(store, interval=900).sweep_once()

    swept = [e for e in _events(file_settings) if e["event"] == "sessions_swept"]
    assert len(swept) == 1
    assert swept[0]["removed"] == 1
    assert swept[0]["remaining"] == 0
    assert swept[0]["level"] == "info"
    assert "timestamp" in swept[0]


def test_bound_conversation_id_and_redaction(file_settings):
    configure_logging(file_settings)
    log = structlog.get_logger("agentforce_bot.tests")

    with structlog.contextvars.bound_contextvars(conversation_id="19:abc"):
        log.info("token_fetched", access_token="00Dxx!secret", expires_in=3600)
    log.info("after_turn")

    events = {e["event"]: e for e in _events(file_settings)}
    assert events["token_fetched"]["conversation_id"] == "19:abc"
    assert events["token_fetched"]["access_token"] == REDACTED
    assert events["token_fetched"]["expires_in"] == 3600
    assert "conversation_id" not in events["after_turn"]


def test_level_filters_debug_events(file_settings, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    settings = Settings(_env_file=None)
    configure_logging(settings)
    log = structlog.get_logger("agentforce_bot.tests")

    log.info("routine")
    log.warning("unusual")

    assert [e["event"] for e in _events(settings)] == ["unusual"]
