"""
Tests for settings and logging setup.
"""

import pytest
from pydantic import ValidationError

from fieldwork.core.config import Settings
from fieldwork.core.observability import (
    get_correlation_id,
    get_logger,
    log_error_with_context,
    set_correlation_id,
    setup_structured_logging,
)
from fieldwork.domain.shared.exceptions import NotFoundError


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("FIELDWORK_STRICT_GEOMETRY", raising=False)
        monkeypatch.delenv("FIELDWORK_TRANSACTION_MAX_ATTEMPTS", raising=False)

        settings = Settings(_env_file=None)

        assert settings.TRANSACTION_MAX_ATTEMPTS == 5
        assert settings.STRICT_GEOMETRY is False
        assert settings.DATABASE_URL.startswith("sqlite")

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("FIELDWORK_STRICT_GEOMETRY", "true")
        monkeypatch.setenv("FIELDWORK_TRANSACTION_MAX_ATTEMPTS", "9")

        settings = Settings(_env_file=None)

        assert settings.STRICT_GEOMETRY is True
        assert settings.TRANSACTION_MAX_ATTEMPTS == 9

    def test_attempts_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, TRANSACTION_MAX_ATTEMPTS=0)

    def test_delay_bounds_must_be_ordered(self):
        with pytest.raises(ValidationError):
            Settings(
                _env_file=None,
                TRANSACTION_BASE_DELAY_SECONDS=1.0,
                TRANSACTION_MAX_DELAY_SECONDS=0.1,
            )


class TestObservability:
    """Test logging helpers."""

    def test_correlation_id(self):
        assert set_correlation_id("abc") == "abc"
        assert get_correlation_id() == "abc"
        assert set_correlation_id() != "abc"

    @pytest.mark.parametrize("log_format", ["json", "console"])
    def test_setup_and_log(self, log_format, capsys):
        setup_structured_logging(Settings(_env_file=None, LOG_FORMAT=log_format))

        get_logger("test").info("hello", polygon_id=3)
        log_error_with_context(NotFoundError("Parcel", "x"), "view_parcel", severity="warning")

        output = capsys.readouterr().out
        assert "hello" in output
        assert "view_parcel" in output

    def test_bootstrap_module_logger(self, capsys):
        import fieldwork.bootstrap as bootstrap

        setup_structured_logging(Settings(_env_file=None, LOG_FORMAT="json"))
        get_logger(bootstrap.__name__).info("bootstrap loaded", worksheet_id=7)

        output = capsys.readouterr().out
        assert "bootstrap loaded" in output
        assert '"worksheet_id": 7' in output
