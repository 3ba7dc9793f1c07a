"""
errors.py

Иерархия исключений выгрузки.

Фатальные ошибки запуска (процесс завершается с кодом 3):
    - ConfigError: конфигурация или файл секрета приложения не читаются/не разбираются
    - AuthError: обмен кода авторизации или обновление токена отклонены
    - DatabaseConnectionError: база данных недоступна

Ошибки отдельного загрузчика (прерывают только текущий загрузчик):
    - QueryError: запрос отклонен драйвером БД
    - ScanError: строка результата не может быть преобразована в ячейки таблицы
    - WriteError: запись диапазона отклонена Google Sheets API
    Все три передаются наружу обернутыми в LoaderError(loader_name, cause).

Author: anikinjura
"""
__version__ = '0.1.0'


class SheetsLoaderError(Exception):
    """Базовое исключение выгрузки."""


class ConfigError(SheetsLoaderError):
    """Ошибка чтения или разбора конфигурации."""


class AuthError(SheetsLoaderError):
    """Ошибка авторизации в Google."""


class CredentialNotFound(SheetsLoaderError):
    """В кеше нет пригодных учетных данных."""


class DatabaseConnectionError(SheetsLoaderError):
    """Не удалось подключиться к базе данных."""


class QueryError(SheetsLoaderError):
    """Запрос загрузчика завершился ошибкой."""


class ScanError(SheetsLoaderError):
    """Ошибка преобразования строки результата запроса."""


class WriteError(SheetsLoaderError):
    """Ошибка записи диапазона в таблицу."""


class LoaderError(SheetsLoaderError):
    """
    Ошибка выполнения конкретного загрузчика.

    Атрибуты:
        loader_name (str): имя загрузчика из конфигурации
        cause (SheetsLoaderError): исходная ошибка (QueryError, ScanError или WriteError)
    """

    def __init__(self, loader_name: str, cause: Exception):
        self.loader_name = loader_name
        self.cause = cause
        super().__init__(f"Загрузчик '{loader_name}': {type(cause).__name__}: {cause}")
