"""
settings.py

Загрузка YAML-конфигурации выгрузки в неизменяемые структуры.

Конфигурация читается один раз при старте (load_config) и передается явно
в авторизацию и загрузчики; глобального объекта настроек нет.

Формат файла:
    database:
      host: localhost
      port: 5432
      user: reporter
      password: secret
      dbname: shop
      connect_timeout: 10          # опционально
    loaders:
      sales:
        query: "SELECT * FROM daily_sales"
        sheet: "1D9msGQtGV67ExJBDYlcMhyWVKrV690iSThd2iW361P8"
        range: "Sales!A1"
    auth:                          # опционально
      client_secret: client_secret.json
      token_cache: cache.json
    timeouts:                      # опционально, секунды
      query: 300
      write: 120

Относительные пути в секции auth разрешаются от директории файла конфигурации.

Author: anikinjura
"""
__version__ = '0.1.0'

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping

import yaml

from config.base_config import (
    DEFAULT_CLIENT_SECRET_NAME,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_QUERY_TIMEOUT,
    DEFAULT_TOKEN_CACHE_NAME,
    DEFAULT_WRITE_TIMEOUT,
)
from sheets_loader.errors import ConfigError

SPREADSHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"


@dataclass(frozen=True)
class DatabaseConfig:
    """Параметры подключения к PostgreSQL."""
    host: str
    port: int
    user: str
    password: str
    dbname: str
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT


@dataclass(frozen=True)
class LoaderConfig:
    """
    Описание одного загрузчика.

    Атрибуты:
        name (str): имя загрузчика (ключ в секции loaders)
        query (str): SQL-запрос
        spreadsheet_id (str): ID Google-таблицы (ключ sheet)
        target_range (str): диапазон для записи в A1-нотации, например "Лист1!A1" (ключ range)
    """
    name: str
    query: str
    spreadsheet_id: str
    target_range: str


@dataclass(frozen=True)
class AuthConfig:
    client_secret_path: Path
    token_cache_path: Path
    scopes: List[str] = field(default_factory=lambda: [SPREADSHEETS_SCOPE])


@dataclass(frozen=True)
class TimeoutConfig:
    query_seconds: int = DEFAULT_QUERY_TIMEOUT
    write_seconds: int = DEFAULT_WRITE_TIMEOUT


@dataclass(frozen=True)
class AppConfig:
    database: DatabaseConfig
    loaders: Dict[str, LoaderConfig]
    auth: AuthConfig
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)


def load_config(path) -> AppConfig:
    """
    Читает и валидирует YAML-конфигурацию.

    Args:
        path: путь к файлу конфигурации

    Returns:
        AppConfig: разобранная конфигурация

    Raises:
        ConfigError: если файл не найден, не является корректным YAML
            или в нем отсутствуют обязательные ключи
    """
    config_path = Path(path)
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Не удалось прочитать файл конфигурации {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Не удалось разобрать файл конфигурации {config_path}: {e}") from e

    return parse_config(raw, base_dir=config_path.resolve().parent)


def parse_config(raw: Any, base_dir: Path) -> AppConfig:
    """Строит AppConfig из уже разобранного YAML-документа."""
    if not isinstance(raw, Mapping):
        raise ConfigError("Корень конфигурации должен быть словарем")

    return AppConfig(
        database=_parse_database(_require_mapping(raw, "database")),
        loaders=_parse_loaders(_require_mapping(raw, "loaders")),
        auth=_parse_auth(raw.get("auth") or {}, base_dir),
        timeouts=_parse_timeouts(raw.get("timeouts") or {}),
    )


def _require_mapping(section: Mapping, key: str) -> Mapping:
    value = section.get(key)
    if not isinstance(value, Mapping):
        raise ConfigError(f"Отсутствует или некорректна секция '{key}'")
    return value


def _require_str(section: Mapping, key: str, where: str) -> str:
    value = section.get(key)
    if value is None or str(value).strip() == "":
        raise ConfigError(f"Отсутствует обязательный параметр '{where}.{key}'")
    return str(value)


def _to_int(value: Any, where: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Параметр '{where}' должен быть целым числом, получено: {value!r}") from e


def _parse_database(section: Mapping) -> DatabaseConfig:
    return DatabaseConfig(
        host=_require_str(section, "host", "database"),
        port=_to_int(section.get("port", 5432), "database.port"),
        user=_require_str(section, "user", "database"),
        password=str(section.get("password") or ""),
        dbname=_require_str(section, "dbname", "database"),
        connect_timeout=_to_int(section.get("connect_timeout", DEFAULT_CONNECT_TIMEOUT),
                                "database.connect_timeout"),
    )


def _parse_loaders(section: Mapping) -> Dict[str, LoaderConfig]:
    loaders = {}
    for name, body in section.items():
        where = f"loaders.{name}"
        if not isinstance(body, Mapping):
            raise ConfigError(f"Секция '{where}' должна быть словарем")
        loaders[str(name)] = LoaderConfig(
            name=str(name),
            query=_require_str(body, "query", where),
            spreadsheet_id=_require_str(body, "sheet", where),
            target_range=_require_str(body, "range", where),
        )
    return loaders


def _parse_auth(section: Mapping, base_dir: Path) -> AuthConfig:
    if not isinstance(section, Mapping):
        raise ConfigError("Секция 'auth' должна быть словарем")

    def _resolve(value: str) -> Path:
        candidate = Path(value).expanduser()
        return candidate if candidate.is_absolute() else base_dir / candidate

    return AuthConfig(
        client_secret_path=_resolve(section.get("client_secret", DEFAULT_CLIENT_SECRET_NAME)),
        token_cache_path=_resolve(section.get("token_cache", DEFAULT_TOKEN_CACHE_NAME)),
    )


def _parse_timeouts(section: Mapping) -> TimeoutConfig:
    if not isinstance(section, Mapping):
        raise ConfigError("Секция 'timeouts' должна быть словарем")
    return TimeoutConfig(
        query_seconds=_to_int(section.get("query", DEFAULT_QUERY_TIMEOUT), "timeouts.query"),
        write_seconds=_to_int(section.get("write", DEFAULT_WRITE_TIMEOUT), "timeouts.write"),
    )
