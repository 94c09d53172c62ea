"""Tests for error types, structured logging, metrics and settings validation."""

import json
import logging
import sys

import pytest
from pydantic import ValidationError as SettingsValidationError

from stylechat.api.logging_config import JSONFormatter
from stylechat.config import Settings
from stylechat.exceptions import (
    DimensionMismatchError,
    PersistenceError,
    QuotaExhaustedError,
    RateLimitedError,
    StyleChatException,
    UpstreamProviderError,
    ValidationError,
)
from stylechat.metrics import MetricsService, metrics_service


@pytest.mark.parametrize(
    "exc,status_code",
    [
        (ValidationError("bad input"), 400),
        (UpstreamProviderError("gemini", RuntimeError("down")), 502),
        (RateLimitedError("gemini", RuntimeError("429")), 429),
        (QuotaExhaustedError("gemini", RuntimeError("quota")), 429),
        (PersistenceError("save chat message", RuntimeError("timeout")), 500),
        (DimensionMismatchError("7", expected=384, actual=768), 500),
    ],
)
def test_exception_status_codes(exc, status_code):
    assert isinstance(exc, StyleChatException)
    assert exc.status_code == status_code


def test_upstream_error_details():
    cause = ConnectionError("connection reset")
    exc = UpstreamProviderError("huggingface", cause)

    assert exc.provider == "huggingface"
    assert exc.error is cause
    assert exc.message == "huggingface request failed: connection reset"
    assert exc.details == {
        "provider": "huggingface",
        "error": "connection reset",
        "error_type": "ConnectionError",
    }


def test_rate_limited_is_an_upstream_error():
    with pytest.raises(UpstreamProviderError):
        raise RateLimitedError("huggingface", RuntimeError("429"))


# ===== logging =====


def _record(msg, **extra):
    record = logging.LogRecord("stylechat.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    line = JSONFormatter().format(_record("Similarity search completed", k=3, top_score=0.91))
    data = json.loads(line)

    assert data["level"] == "INFO"
    assert data["logger"] == "stylechat.test"
    assert data["message"] == "Similarity search completed"
    assert data["k"] == 3
    assert data["top_score"] == 0.91


def test_json_formatter_serializes_unknown_types():
    line = JSONFormatter().format(_record("odd", value=object()))

    assert json.loads(line)["value"].startswith("<object object")


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord(
            "stylechat.test", logging.ERROR, __file__, 10, "failed", None, None
        )
        record.exc_info = sys.exc_info()

    data = json.loads(JSONFormatter().format(record))

    assert "RuntimeError: boom" in data["exception"]


# ===== metrics =====


def test_metrics_service_is_singleton():
    assert MetricsService() is metrics_service


def test_metrics_latency_and_counters():
    metrics_service.record_llm_call(100.0)
    metrics_service.record_llm_call(300.0)
    metrics_service.record_throttle_wait(1500.0)
    metrics_service.record_search_failure()
    metrics_service.record_fallback("rate_limited")
    metrics_service.record_fallback("rate_limited")

    data = metrics_service.get_metrics()

    assert data["llm_call_count"] == 2
    assert data["average_latency_ms"] == 200.0
    assert data["min_latency_ms"] == 100.0
    assert data["max_latency_ms"] == 300.0
    assert data["throttle_wait_count"] == 1
    assert data["total_throttle_wait_ms"] == 1500.0
    assert data["search_failures"] == 1
    assert data["fallbacks"] == {"rate_limited": 2}


def test_metrics_empty():
    data = metrics_service.get_metrics()

    assert data["llm_call_count"] == 0
    assert data["average_latency_ms"] == 0.0
    assert data["min_latency_ms"] == 0.0


# ===== settings =====


def test_settings_defaults():
    config = Settings(STORE_BACKEND="memory")

    assert config.MIN_REQUEST_INTERVAL_MS == 4500
    assert config.CHAT_CONTEXT_PRODUCTS == 3
    assert config.LLM_MODEL == "gemini-2.5-flash-lite"


def test_settings_strip_frontend_trailing_slash():
    assert Settings(FRONTEND_URL="https://shop.example.com/").FRONTEND_URL == (
        "https://shop.example.com"
    )


def test_settings_hide_secrets():
    config = Settings(GEMINI_API_KEY="super-secret")

    assert "super-secret" not in repr(config)
    assert config.GEMINI_API_KEY.get_secret_value() == "super-secret"


@pytest.mark.parametrize(
    "field,value",
    [("MIN_REQUEST_INTERVAL_MS", -1), ("CHAT_CONTEXT_PRODUCTS", 0)],
)
def test_settings_reject_invalid_values(field, value):
    with pytest.raises(SettingsValidationError):
        Settings(**{field: value})
