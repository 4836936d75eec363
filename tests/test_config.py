from __future__ import annotations

import logging

import pytest

from school_data.core.logging import LoggingContextFilter, correlation_id_var
from school_data.core.settings import AppSettings
from school_data.db.config import Settings


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgresql://u:p@db:5432/school", "postgresql+asyncpg://u:p@db:5432/school"),
        ("postgres://u:p@db/school", "postgresql+asyncpg://u:p@db/school"),
        ("postgresql+psycopg2://u:p@db/school", "postgresql+asyncpg://u:p@db/school"),
        ("postgresql+asyncpg://u:p@db/school", "postgresql+asyncpg://u:p@db/school"),
        ("sqlite:///./school.db", "sqlite+aiosqlite:///./school.db"),
        ("sqlite+aiosqlite:///:memory:", "sqlite+aiosqlite:///:memory:"),
    ],
)
def test_async_database_url(url, expected):
    assert Settings(DATABASE_URL=url).async_database_url == expected


def test_database_url_from_postgres_parts():
    settings = Settings(
        DATABASE_URL=None,
        POSTGRES_USER="school",
        POSTGRES_PASSWORD="secret",
        POSTGRES_DB="records",
        POSTGRES_HOST="db",
        POSTGRES_PORT=5433,
    )

    assert settings.database_url == "postgresql://school:secret@db:5433/records"


def test_database_url_missing_configuration(monkeypatch):
    for name in ("DATABASE_URL", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB"):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(ValueError, match="Database configuration missing"):
        _ = Settings(_env_file=None).database_url


def test_strict_transactions_default_is_lenient(monkeypatch):
    monkeypatch.delenv("UOW_STRICT_TRANSACTIONS", raising=False)

    assert Settings(_env_file=None).UOW_STRICT_TRANSACTIONS is False


def test_app_settings_normalizes_log_level():
    assert AppSettings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"
    assert AppSettings(LOG_LEVEL="verbose").LOG_LEVEL == "INFO"


def test_logging_filter_injects_correlation_id():
    record = logging.LogRecord("school_data", logging.INFO, __file__, 1, "msg", None, None)
    token = correlation_id_var.set("abc-123")
    try:
        assert LoggingContextFilter().filter(record) is True
    finally:
        correlation_id_var.reset(token)
    assert record.correlation_id == "abc-123"

    other = logging.LogRecord("school_data", logging.INFO, __file__, 1, "msg", None, None)
    LoggingContextFilter().filter(other)
    assert other.correlation_id == "-"
