"""
Основной модуль выгрузки SQL -> Google Sheets.

Этот модуль является точкой входа. Плановые запуски выполняются внешним
планировщиком (cron, Windows Task Scheduler) командой run; первичная
интерактивная авторизация выполняется один раз вручную командой bootstrap.

Пример запуска:
    sheets-loader bootstrap --config /etc/sheets_loader/config.yml
    sheets-loader run --config /etc/sheets_loader/config.yml
    sheets-loader run --loader sales --detailed

Модуль выполняет следующие функции:
    - Парсинг аргументов командной строки
    - Загрузка YAML-конфигурации
    - Авторизация в Google (из кеша или интерактивно для bootstrap)
    - Последовательный запуск загрузчиков с отдельным логгером для каждого
    - Изоляция ошибок загрузчиков: ошибка одного не прерывает остальные
    - Подсчет итогов и установка кода завершения

Exit Codes:
    0: все загрузчики выполнены успешно (или bootstrap завершен)
    1: один или несколько загрузчиков завершились с ошибкой
    2: выполнение прервано пользователем или загрузчик не найден
    3: критическая ошибка (конфигурация, авторизация, подключение к БД)

Author: anikinjura
"""
__version__ = '0.1.0'

import argparse
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from google.auth.exceptions import GoogleAuthError

from config.base_config import PATH_CONFIG, default_config_path
from sheets_loader.auth.delegated_auth import DelegatedAuthClient
from sheets_loader.errors import LoaderError, SheetsLoaderError
from sheets_loader.loaders.loader import LoaderResult, SqlToSheetsLoader
from sheets_loader.settings import AppConfig, LoaderConfig, load_config
from sheets_loader.utils.logging import configure_logger

EXIT_OK = 0
EXIT_LOADER_FAILED = 1
EXIT_INTERRUPTED = 2
EXIT_FATAL = 3


@dataclass
class BatchReport:
    """Итоги запуска загрузчиков."""
    succeeded: Dict[str, LoaderResult] = field(default_factory=dict)
    failed: Dict[str, LoaderError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Парсит аргументы командной строки.

    Команды:
    - bootstrap: интерактивная авторизация и сохранение токена в кеш
    - run: выполнение загрузчиков (только с токеном из кеша)

    Общие параметры:
    - --config: путь к YAML-конфигурации (по умолчанию $SHEETS_LOADER_CONFIG или ./config.yml)
    - --detailed: детальное логирование на уровне DEBUG
    - --logs-dir: директория логов

    Returns:
        argparse.Namespace: объект с распарсенными аргументами

    Raises:
        SystemExit: если переданы некорректные аргументы
    """
    parser = argparse.ArgumentParser(
        prog="sheets-loader",
        description="Выгрузка результатов SQL-запросов в диапазоны Google-таблиц",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры использования:
  %(prog)s bootstrap                     # Первичная авторизация (один раз, интерактивно)
  %(prog)s run                           # Запуск всех загрузчиков
  %(prog)s run --loader sales            # Запуск только загрузчика sales
  %(prog)s run --detailed                # Запуск с детальным логированием (DEBUG)
        """
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        '--config',
        default=None,
        help='Путь к YAML-конфигурации (по умолчанию $SHEETS_LOADER_CONFIG или ./config.yml)'
    )
    common.add_argument(
        '--detailed',
        action='store_true',
        help='Включить детальное логирование на уровне DEBUG'
    )
    common.add_argument(
        '--logs-dir',
        default=str(PATH_CONFIG['LOGS_ROOT']),
        help='Директория для лог-файлов'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)
    subparsers.add_parser(
        'bootstrap',
        parents=[common],
        help='Интерактивная авторизация в Google и сохранение токена'
    )
    run_parser = subparsers.add_parser(
        'run',
        parents=[common],
        help='Выполнить загрузчики из конфигурации'
    )
    run_parser.add_argument(
        '--loader',
        help='Имя конкретного загрузчика (без учета регистра)'
    )

    return parser.parse_args(argv)


def filter_loaders(loaders: Dict[str, LoaderConfig], loader_name: Optional[str] = None) -> List[LoaderConfig]:
    """
    Возвращает загрузчики для запуска в порядке конфигурации.

    Args:
        loaders: загрузчики из конфигурации
        loader_name: опциональное имя загрузчика (сравнивается без учета регистра)

    Example:
        >>> [l.name for l in filter_loaders(config.loaders, 'SALES')]
        ['sales']
    """
    selected = list(loaders.values())
    if loader_name:
        name_lower = loader_name.lower()
        selected = [loader for loader in selected if loader.name.lower() == name_lower]
    return selected


def run_loaders(config: AppConfig, client, loaders: List[LoaderConfig],
                detailed: bool = False, logs_dir: Optional[str] = None) -> BatchReport:
    """
    Последовательно выполняет загрузчики.

    Ошибка загрузчика (LoaderError) логируется и записывается в отчет,
    после чего выполняется следующий загрузчик. DatabaseConnectionError
    не перехватывается и прерывает запуск.

    Args:
        config: конфигурация выгрузки
        client: авторизованный gspread.Client
        loaders: загрузчики для запуска
        detailed: детальное логирование
        logs_dir: директория логов

    Returns:
        BatchReport: успешные и неуспешные загрузчики
    """
    report = BatchReport()
    logs_dir = logs_dir or str(PATH_CONFIG['LOGS_ROOT'])

    for loader_config in loaders:
        logger = configure_logger(
            task_name='run',
            loader_name=loader_config.name,
            detailed=detailed,
            logs_dir=logs_dir
        )
        loader = SqlToSheetsLoader(loader_config, config.database, config.timeouts, logger)
        try:
            report.succeeded[loader_config.name] = loader.run(client)
            logger.info(f"Загрузчик '{loader_config.name}' успешно завершен")
        except LoaderError as e:
            logger.error(str(e))
            report.failed[loader_config.name] = e

    return report


def bootstrap(config: AppConfig, logger) -> None:
    """Интерактивная авторизация: сохраняет токен в кеш для плановых запусков."""
    auth = DelegatedAuthClient(config.auth, logger=logger)
    auth.authorize(interactive=True)
    print(f"Авторизация завершена, токен сохранен: {auth.store.path}")


def run(config: AppConfig, logger, loader_name: Optional[str] = None,
        detailed: bool = False, logs_dir: Optional[str] = None) -> int:
    """
    Выполняет загрузчики и возвращает код завершения.

    Raises:
        SheetsLoaderError: при фатальной ошибке авторизации или подключения к БД
    """
    loaders = filter_loaders(config.loaders, loader_name)
    if not loaders:
        if loader_name:
            print(f"Загрузчик '{loader_name}' не найден в конфигурации")
        else:
            print("В конфигурации нет загрузчиков")
        return EXIT_INTERRUPTED
    print(f"Найдено {len(loaders)} загрузчик(ов) для выполнения")

    auth = DelegatedAuthClient(config.auth, logger=logger)
    auth.authorize(interactive=False)
    client = auth.get_client(timeout=config.timeouts.write_seconds)

    report = run_loaders(config, client, loaders, detailed=detailed, logs_dir=logs_dir)

    summary = f"Выполнение завершено: {len(report.succeeded)} успешно, {len(report.failed)} с ошибками"
    print(summary)
    logger.info(summary)
    for name, error in report.failed.items():
        logger.error(
            f"Загрузчик не выполнен: loader={name} error={type(error.cause).__name__} message=\"{error.cause}\""
        )

    return EXIT_OK if report.ok else EXIT_LOADER_FAILED


def main(argv: Optional[List[str]] = None) -> None:
    """
    Точка входа: разбирает аргументы, загружает конфигурацию и выполняет команду.

    Фатальные ошибки (ConfigError, AuthError, DatabaseConnectionError, ошибка записи
    кеша токена) логируются одной строкой вида
    `Критическая ошибка: command=run error=AuthError message="..."` и завершают процесс с кодом 3.
    """
    args = parse_arguments(argv)
    logger = configure_logger(
        task_name=args.command,
        detailed=args.detailed,
        logs_dir=args.logs_dir
    )

    try:
        config = load_config(args.config or default_config_path())

        if args.command == 'bootstrap':
            bootstrap(config, logger)
            sys.exit(EXIT_OK)

        sys.exit(run(
            config,
            logger,
            loader_name=args.loader,
            detailed=args.detailed,
            logs_dir=args.logs_dir
        ))

    except KeyboardInterrupt:
        print("Выполнение прервано пользователем")
        sys.exit(EXIT_INTERRUPTED)

    except (SheetsLoaderError, GoogleAuthError, OSError) as e:
        logger.error(
            f"Критическая ошибка: command={args.command} error={type(e).__name__} message=\"{e}\""
        )
        sys.exit(EXIT_FATAL)


if __name__ == '__main__':
    main()
