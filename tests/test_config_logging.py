"""Tests for environment configuration and JSON logging."""
from __future__ import annotations

import json
import logging
import sys

from docchat.config import Settings, get_settings, reset_settings_cache
from docchat.logging_config import AUDIT_LOGGER_NAME, JSONLogFormatter, build_logging_config
from docchat.telemetry import log_event


def test_settings_defaults() -> None:
    settings = Settings()

    assert settings.embedding_provider == "mock"
    assert settings.embedding_dimensions == 1536
    assert settings.chunk_max_tokens == 800
    assert settings.chunk_overlap_tokens == 100
    assert settings.retrieval_top_k == 5
    assert settings.context_max_chars == 4000
    assert settings.default_system_prompt == "You are a helpful assistant."


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("EMBEDDING_PROVIDER", "OpenAI")
    monkeypatch.setenv("EMBEDDING_DIMENSIONS", "384")
    monkeypatch.setenv("RETRIEVAL_TOP_K", "not-a-number")
    monkeypatch.setenv("DATABASE_ECHO", "yes")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    reset_settings_cache()

    try:
        settings = get_settings()
        assert settings.embedding_provider == "openai"
        assert settings.embedding_dimensions == 384
        assert settings.retrieval_top_k == 5
        assert settings.database_echo is True
        assert settings.log_level == "DEBUG"
        assert get_settings() is settings
    finally:
        reset_settings_cache()


def test_json_formatter_merges_dict_messages() -> None:
    record = logging.LogRecord(
        name="docchat.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg={"step": "ingest.file.start", "details": {"file": "a.txt"}},
        args=None,
        exc_info=None,
    )

    payload = json.loads(JSONLogFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "docchat.test"
    assert payload["step"] == "ingest.file.start"
    assert payload["details"] == {"file": "a.txt"}
    assert payload["ts"].endswith("Z")


def test_log_event_emits_structured_payload(caplog) -> None:
    logger = logging.getLogger("docchat.test.events")

    with caplog.at_level(logging.INFO, logger="docchat.test.events"):
        log_event(logger, "vectorstore.add", session_id="s1", duration_ms=1.23456, details={"count": 2})

    event = caplog.records[-1].msg
    assert event["step"] == "vectorstore.add"
    assert event["session_id"] == "s1"
    assert event["duration_ms"] == 1.235
    assert event["details"] == {"count": 2}


def test_json_formatter_keeps_extra_fields_and_exceptions() -> None:
    try:
        raise RuntimeError("broken")
    except RuntimeError:
        record = logging.getLogger("docchat.test").makeRecord(
            "docchat.test",
            logging.ERROR,
            __file__,
            1,
            "failed %s",
            ("ingest",),
            sys.exc_info(),
            extra={"document_id": "d1"},
        )

    payload = json.loads(JSONLogFormatter().format(record))

    assert payload["message"] == "failed ingest"
    assert payload["document_id"] == "d1"
    assert "RuntimeError: broken" in payload["exc_info"]
    assert "lineno" not in payload


def test_logging_config_routes_audit_records_to_a_file(tmp_path) -> None:
    config = build_logging_config(tmp_path, "debug")

    assert config["root"] == {"level": "DEBUG", "handlers": ["console"]}
    assert config["handlers"]["audit_file"]["filename"] == str(tmp_path / "ingest_audit.log")
    assert config["loggers"][AUDIT_LOGGER_NAME]["propagate"] is False
    assert config["loggers"]["sqlalchemy.engine"] == {"level": "WARNING"}
