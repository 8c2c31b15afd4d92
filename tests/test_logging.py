"""Tests for structured logging configuration."""

from decimal import Decimal

import orjson
import pytest
import structlog

from src.core.config import settings
from src.core.logging import (
    _add_context_vars,
    _json_default,
    _orjson_serializer,
    configure_logging,
    request_id_ctx,
    tax_year_ctx,
)
from src.tax.national_insurance import PayFrequency


def _reset_structlog() -> None:
    """Reset structlog defaults to avoid test cross-talk."""
    structlog.reset_defaults()


def test_configure_logging_uses_json_when_log_format_json() -> None:
    """Use JSON logging when log_format=json, even in development."""
    original_env = settings.environment
    original_format = getattr(settings, "log_format", None)

    try:
        settings.environment = "development"
        settings.log_format = "json"
        configure_logging()

        processors = structlog.get_config()["processors"]
        assert any(
            isinstance(processor, structlog.processors.JSONRenderer)
            for processor in processors
        )
        assert any(
            isinstance(processor, structlog.processors.EventRenamer)
            for processor in processors
        )
    finally:
        settings.environment = original_env
        settings.log_format = original_format
        _reset_structlog()


def test_configure_logging_uses_console_when_log_format_console() -> None:
    """Use console logging when log_format=console in development."""
    original_env = settings.environment
    original_format = getattr(settings, "log_format", None)

    try:
        settings.environment = "development"
        settings.log_format = "console"
        configure_logging()

        processors = structlog.get_config()["processors"]
        assert any(
            isinstance(processor, structlog.dev.ConsoleRenderer)
            for processor in processors
        )
        assert not any(
            isinstance(processor, structlog.processors.JSONRenderer)
            for processor in processors
        )
    finally:
        settings.environment = original_env
        settings.log_format = original_format
        _reset_structlog()


def test_context_vars_added_to_events() -> None:
    """Request id and tax year from context are added to each event."""
    request_token = request_id_ctx.set("req-1")
    year_token = tax_year_ctx.set("2024-25")
    try:
        event = _add_context_vars(None, "info", {"event": "x"})
    finally:
        tax_year_ctx.reset(year_token)
        request_id_ctx.reset(request_token)

    assert event["request_id"] == "req-1"
    assert event["tax_year"] == "2024-25"


def test_context_vars_keep_explicit_tax_year() -> None:
    """An explicit tax_year on the event wins over the context."""
    token = tax_year_ctx.set("2024-25")
    try:
        event = _add_context_vars(None, "info", {"event": "x", "tax_year": "2025-26"})
    finally:
        tax_year_ctx.reset(token)

    assert event["tax_year"] == "2025-26"
    assert "request_id" not in event


def test_json_serializer_handles_decimal_and_enum() -> None:
    """Decimal percentages and enums render as plain JSON values."""
    payload = _orjson_serializer(
        {"percentage": Decimal("90.00"), "frequency": PayFrequency.MONTHLY}
    )
    assert orjson.loads(payload) == {"percentage": "90.00", "frequency": "monthly"}


def test_json_default_rejects_unknown_types() -> None:
    with pytest.raises(TypeError):
        _json_default(object())
