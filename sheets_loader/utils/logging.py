"""
logging.py

Модуль для настройки логирования запусков выгрузки и отдельных загрузчиков.

Возможности:
    - Создание структуры логов logs/{task_name}/{loader_name}/YYYY-MM-DD.log
    - Ротация лог-файлов по размеру и количеству backup-файлов
    - Поддержка отдельного detailed-лога (DEBUG) при detailed=True
    - Дублирование сообщений в stdout (запуски из планировщика пишут журнал в консоль)
    - Дополнительный уровень TRACE (ниже DEBUG) и метод logger.trace() (класс TraceLogger,
      назначается только логгерам sheets_loader.*; logging.Logger не изменяется)
    - Автоматическая очистка старых логов (старше backup_count дней)
    - Кеширование логгеров для предотвращения дублирования хендлеров

Основные функции:
    - configure_logger(task_name, loader_name=None, detailed=False, ...): возвращает сконфигурированный Logger
    - _cleanup_old_logs(log_path, days_to_keep): удаляет устаревшие логи

Пример использования:
    from sheets_loader.utils.logging import configure_logger
    logger = configure_logger(task_name="run", loader_name="sales", detailed=True)
    logger.info("Загрузчик успешно выполнен")

Author: anikinjura
"""
__version__ = '0.1.0'

import logging
import sys
from datetime import datetime, timedelta
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")


class TraceLogger(logging.Logger):
    """Logger с методом trace() для уровня TRACE. Используется только для логгеров sheets_loader.*"""

    def trace(self, message, *args, **kwargs):
        if self.isEnabledFor(TRACE_LEVEL):
            self._log(TRACE_LEVEL, message, args, **kwargs)


def _get_trace_logger(name: str) -> TraceLogger:
    # TraceLogger назначается только создаваемому логгеру
    manager = logging.Logger.manager
    previous = manager.loggerClass
    manager.setLoggerClass(TraceLogger)
    try:
        return logging.getLogger(name)
    finally:
        manager.loggerClass = previous


# Глобальный кеш логгеров для предотвращения дублирования хендлеров
_LOGGERS: Dict[str, TraceLogger] = {}


def configure_logger(
    task_name: str,
    loader_name: Optional[str] = None,
    detailed: bool = False,
    logs_dir: str = "logs",
    console: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5
) -> TraceLogger:
    """
    Конфигурирует и возвращает логгер для заданной команды и загрузчика.

    Создает структуру папок logs/{task_name}/{loader_name}/ и настраивает ротацию файлов.
    Основной лог-файл содержит сообщения уровня INFO и выше.
    При включенном detailed режиме создается дополнительный файл с DEBUG сообщениями,
    а консольный вывод опускается до уровня DEBUG.

    :param task_name: имя команды (run, bootstrap) или служебного компонента
    :param loader_name: опциональное имя загрузчика
    :param detailed: если True, добавляется отдельный DEBUG-лог файл
    :param logs_dir: базовая директория для лог-файлов
    :param console: если True, сообщения дублируются в stdout
    :param max_bytes: размер файла для ротации в байтах
    :param backup_count: количество backup-файлов для хранения
    :return: сконфигурированный экземпляр Logger
    """
    # Формируем уникальное имя логгера
    logger_name = f"sheets_loader.{task_name}"
    if loader_name:
        logger_name = f"{logger_name}.{loader_name}"

    # Возвращаем существующий логгер из кеша
    if logger_name in _LOGGERS:
        return _LOGGERS[logger_name]

    logger = _get_trace_logger(logger_name)
    logger.setLevel(TRACE_LEVEL if detailed else logging.DEBUG)
    # Дочерние логгеры загрузчиков не должны повторно писать в файлы команды
    logger.propagate = False

    # Создаем структуру директорий: logs/task_name/loader_name
    log_path = Path(logs_dir) / task_name
    if loader_name:
        log_path = log_path / loader_name
    log_path.mkdir(parents=True, exist_ok=True)

    # Формат сообщений: время, уровень, [команда.загрузчик], сообщение
    short_name = logger_name.split(".", 1)[1]
    log_format = f"%(asctime)s %(levelname)s [{short_name}] %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(log_format, date_format)

    today = datetime.now().strftime("%Y-%m-%d")

    if not logger.handlers:
        # Основной лог-файл (INFO и выше)
        main_handler = RotatingFileHandler(
            filename=log_path / f"{today}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        main_handler.setLevel(logging.INFO)
        main_handler.setFormatter(formatter)
        logger.addHandler(main_handler)

        # Детальный лог-файл с уровнями DEBUG и TRACE (опционально)
        if detailed:
            debug_handler = RotatingFileHandler(
                filename=log_path / f"{today}_detailed.log",
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8"
            )
            debug_handler.setLevel(TRACE_LEVEL)
            debug_handler.setFormatter(formatter)
            logger.addHandler(debug_handler)

        if console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(logging.DEBUG if detailed else logging.INFO)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

    # Очистка старых лог-файлов (старше backup_count дней)
    _cleanup_old_logs(log_path, backup_count)

    _LOGGERS[logger_name] = logger
    return logger


def _cleanup_old_logs(log_path: Path, days_to_keep: int) -> None:
    """
    Удаляет лог-файлы старше указанного количества дней.

    :param log_path: путь к директории с лог-файлами
    :param days_to_keep: количество дней для хранения файлов
    """
    cutoff_date = datetime.now() - timedelta(days=days_to_keep)

    for log_file in log_path.glob("*.log"):
        # Формат имени: YYYY-MM-DD.log или YYYY-MM-DD_detailed.log
        try:
            date_part = log_file.stem.split('_')[0]
            file_date = datetime.strptime(date_part, "%Y-%m-%d")
        except (ValueError, IndexError):
            # Пропускаем файлы с неожиданным форматом имени
            continue

        if file_date < cutoff_date:
            try:
                log_file.unlink()
            except OSError:
                # Файл может удерживаться другим процессом (Windows); удалим при следующем запуске
                continue
