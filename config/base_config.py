"""
base_config.py

Базовый конфигурационный файл проекта.

Содержит:
    - Определение основных директорий проекта (BASE_DIR, LOGS_DIR, PACKAGE_DIR)
    - Пути по умолчанию к YAML-конфигурации, секрету OAuth-клиента и кешу токена
    - Переопределение пути к конфигурации через переменную окружения SHEETS_LOADER_CONFIG
    - Глобальный словарь PATH_CONFIG с основными путями

Модуль не читает файлы при импорте: настройки выгрузки разбираются
sheets_loader.settings.load_config() один раз при старте и передаются явно.

Пример использования:
    from config.base_config import PATH_CONFIG, default_config_path

    print(PATH_CONFIG['LOGS_ROOT'])
    config = load_config(default_config_path())

Структура PATH_CONFIG:
    {
        'BASE_DIR': Path,           # Корень проекта
        'PACKAGE_ROOT': Path,       # Директория sheets_loader
        'LOGS_ROOT': Path,          # Директория логов
    }

Author: anikinjura
"""
__version__ = '0.1.0'

import os
from pathlib import Path

# 1. Базовые директории проекта
BASE_DIR = Path(__file__).parent.parent     # Путь к корневой директории проекта
LOGS_DIR = BASE_DIR / 'logs'
PACKAGE_DIR = BASE_DIR / 'sheets_loader'

# 2. Имена файлов по умолчанию (относительно директории YAML-конфигурации)
DEFAULT_CONFIG_NAME = 'config.yml'
DEFAULT_CLIENT_SECRET_NAME = 'client_secret.json'
DEFAULT_TOKEN_CACHE_NAME = 'cache.json'

# Путь к конфигурации можно переопределить через переменную окружения
CONFIG_PATH_ENV = 'SHEETS_LOADER_CONFIG'

# 3. Таймауты по умолчанию, секунды
DEFAULT_CONNECT_TIMEOUT = 10
DEFAULT_QUERY_TIMEOUT = 300
DEFAULT_WRITE_TIMEOUT = 120

# 4. Общие переменные для всего проекта
PATH_CONFIG = {
    'BASE_DIR': BASE_DIR,
    'PACKAGE_ROOT': PACKAGE_DIR,
    'LOGS_ROOT': LOGS_DIR,
}


def default_config_path() -> Path:
    """Возвращает путь к YAML-конфигурации: из SHEETS_LOADER_CONFIG или ./config.yml."""
    return Path(os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_NAME))
