"""
Модуль тестов для sheets_loader/settings.py

Проверяем разбор YAML-конфигурации:
- обязательные секции database и loaders
- ключи загрузчика sheet/range -> spreadsheet_id/target_range
- значения по умолчанию для auth и timeouts
- разрешение относительных путей auth от директории файла конфигурации
- ConfigError для отсутствующего файла, некорректного YAML и пропущенных ключей
"""
from pathlib import Path

import pytest

from config.base_config import DEFAULT_CONNECT_TIMEOUT, DEFAULT_QUERY_TIMEOUT, DEFAULT_WRITE_TIMEOUT
from sheets_loader.errors import ConfigError
from sheets_loader.settings import SPREADSHEETS_SCOPE, load_config, parse_config

VALID_CONFIG = """
database:
  host: db.local
  port: 6432
  user: reporter
  password: secret
  dbname: shop
loaders:
  sales:
    query: "SELECT day, revenue FROM daily_sales"
    sheet: "sheet-sales"
    range: "Sales!A1"
  stock:
    query: "SELECT sku, qty FROM stock"
    sheet: "sheet-stock"
    range: "Stock!B2"
"""


def _write(tmp_path, text, name="config.yml"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_load_valid_config(tmp_path):
    config = load_config(_write(tmp_path, VALID_CONFIG))

    assert config.database.host == "db.local"
    assert config.database.port == 6432
    assert config.database.connect_timeout == DEFAULT_CONNECT_TIMEOUT
    assert list(config.loaders) == ["sales", "stock"]

    stock = config.loaders["stock"]
    assert stock.name == "stock"
    assert stock.spreadsheet_id == "sheet-stock"
    assert stock.target_range == "Stock!B2"


def test_defaults_for_auth_and_timeouts(tmp_path):
    """
    Без секций auth и timeouts: client_secret.json и cache.json рядом с конфигурацией,
    таймауты по умолчанию.
    """
    config = load_config(_write(tmp_path, VALID_CONFIG))

    assert config.auth.client_secret_path == tmp_path.resolve() / "client_secret.json"
    assert config.auth.token_cache_path == tmp_path.resolve() / "cache.json"
    assert config.auth.scopes == [SPREADSHEETS_SCOPE]
    assert config.timeouts.query_seconds == DEFAULT_QUERY_TIMEOUT
    assert config.timeouts.write_seconds == DEFAULT_WRITE_TIMEOUT


def test_auth_paths_and_timeouts(tmp_path):
    text = VALID_CONFIG + """
auth:
  client_secret: secrets/app.json
  token_cache: /var/lib/sheets_loader/cache.json
timeouts:
  query: 60
  write: 30
"""
    config = load_config(_write(tmp_path, text))

    assert config.auth.client_secret_path == tmp_path.resolve() / "secrets" / "app.json"
    assert config.auth.token_cache_path == Path("/var/lib/sheets_loader/cache.json")
    assert config.timeouts.query_seconds == 60
    assert config.timeouts.write_seconds == 30


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yml")


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, "database: [unclosed"))


@pytest.mark.parametrize("raw", [
    None,
    [],
    {"loaders": {}},
    {"database": {"host": "h", "user": "u", "dbname": "d"}},
    {"database": {"host": "h", "user": "u", "dbname": "d"}, "loaders": {"x": "SELECT 1"}},
    {"database": {"host": "h", "user": "u", "dbname": "d"},
     "loaders": {"x": {"query": "SELECT 1", "sheet": "s"}}},
    {"database": {"host": "h", "user": "u", "dbname": "d", "port": "five"}, "loaders": {}},
])
def test_invalid_structure(raw, tmp_path):
    """
    Отсутствующие секции, неполные загрузчики и нечисловой порт дают ConfigError.
    """
    with pytest.raises(ConfigError):
        parse_config(raw, base_dir=tmp_path)


def test_example_config_is_valid(tmp_path):
    """Пример конфигурации из поставки разбирается без ошибок."""
    example = Path(__file__).parent.parent / "config" / "config.example.yml"
    config = load_config(example)
    assert config.loaders
