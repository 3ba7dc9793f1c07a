"""
conftest.py

Общие фикстуры тестов: фейковые курсор и подключение DB-API, конфигурация выгрузки,
файл секрета OAuth-клиента.
"""

import json
from pathlib import Path
from unittest.mock import Mock

import pytest

from sheets_loader.settings import (
    AppConfig,
    AuthConfig,
    DatabaseConfig,
    LoaderConfig,
    TimeoutConfig,
)


class FakeCursor:
    """
    Курсор DB-API: description с именами колонок и однократная итерация по строкам.

    Если в rows встречается исключение, оно выбрасывается в момент чтения этой строки.
    """

    def __init__(self, columns, rows, execute_error=None):
        self.description = [(name, None, None, None, None, None, None) for name in columns] if columns is not None else None
        self._rows = list(rows)
        self._execute_error = execute_error
        self.executed = []
        self.closed = False

    def execute(self, query):
        self.executed.append(query)
        if self._execute_error is not None:
            raise self._execute_error

    def __iter__(self):
        for row in self._rows:
            if isinstance(row, Exception):
                raise row
            yield row

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.closed = False

    def cursor(self):
        return self._cursor

    def close(self):
        self.closed = True


@pytest.fixture
def fake_cursor_factory():
    return FakeCursor


@pytest.fixture
def fake_connection_factory():
    return FakeConnection


@pytest.fixture
def mock_logger():
    """Mock-логгер с методом trace, как у логгеров из configure_logger."""
    return Mock()


@pytest.fixture
def client_secret_file(tmp_path) -> Path:
    """Файл секрета OAuth-клиента типа installed."""
    path = tmp_path / "client_secret.json"
    path.write_text(json.dumps({
        "installed": {
            "client_id": "test-client.apps.googleusercontent.com",
            "client_secret": "test-secret",
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost"],
        }
    }), encoding="utf-8")
    return path


@pytest.fixture
def app_config(tmp_path, client_secret_file) -> AppConfig:
    """Конфигурация с двумя загрузчиками: alpha и beta."""
    return AppConfig(
        database=DatabaseConfig(host="db.local", port=5432, user="reporter",
                                password="secret", dbname="shop"),
        loaders={
            "alpha": LoaderConfig(name="alpha", query="SELECT 1 AS a",
                                  spreadsheet_id="sheet-alpha", target_range="Alpha!A1"),
            "beta": LoaderConfig(name="beta", query="SELECT broken",
                                 spreadsheet_id="sheet-beta", target_range="Beta!A1"),
        },
        auth=AuthConfig(client_secret_path=client_secret_file,
                        token_cache_path=tmp_path / "cache.json"),
        timeouts=TimeoutConfig(query_seconds=30, write_seconds=15),
    )
