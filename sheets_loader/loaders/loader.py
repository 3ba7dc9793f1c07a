"""
loader.py

Выполнение одного загрузчика: SQL-запрос -> сетка значений -> запись диапазона Google-таблицы.

Шаги SqlToSheetsLoader.run():
    1. Открывает новое подключение к PostgreSQL (connect_timeout, statement_timeout)
    2. Выполняет запрос загрузчика
    3. Преобразует курсор в сетку (sheets_loader.utils.grid.convert)
    4. Отправляет один запрос spreadsheets.values.batchUpdate с одной парой
       диапазон/значения и valueInputOption=USER_ENTERED
    Курсор и подключение закрываются на любом пути выхода.

Ошибки:
    - DatabaseConnectionError пробрасывается как есть (фатальная ошибка запуска)
    - QueryError, ScanError, WriteError оборачиваются в LoaderError(loader_name, cause)
    - WriteError включает отказ обновления токена и сетевые ошибки google-auth во время записи

Пример использования:
    loader = SqlToSheetsLoader(config.loaders["sales"], config.database, config.timeouts, logger)
    result = loader.run(gc)
    print(result.rows)

Author: anikinjura
"""
__version__ = '0.1.0'

from contextlib import closing
from dataclasses import dataclass
from typing import Any, Callable, Dict

import gspread
import psycopg2
import requests
from google.auth.exceptions import GoogleAuthError

from sheets_loader.errors import (
    DatabaseConnectionError,
    LoaderError,
    QueryError,
    ScanError,
    WriteError,
)
from sheets_loader.settings import DatabaseConfig, LoaderConfig, TimeoutConfig
from sheets_loader.utils.grid import ResultGrid, convert

VALUE_INPUT_OPTION = "USER_ENTERED"


@dataclass(frozen=True)
class LoaderResult:
    """Итог успешного выполнения загрузчика."""
    loader_name: str
    rows: int
    columns: int
    updated_cells: int


def build_batch_update_body(target_range: str, grid: ResultGrid) -> Dict[str, Any]:
    """Формирует тело spreadsheets.values.batchUpdate для полной замены диапазона."""
    return {
        "valueInputOption": VALUE_INPUT_OPTION,
        "data": [
            {
                "range": target_range,
                "values": grid,
            }
        ],
    }


class SqlToSheetsLoader:
    """
    Загрузчик результата SQL-запроса в диапазон Google-таблицы.
    """

    def __init__(self, loader: LoaderConfig, database: DatabaseConfig,
                 timeouts: TimeoutConfig, logger,
                 connect: Callable[..., Any] = psycopg2.connect):
        """
        Args:
            loader: конфигурация загрузчика
            database: параметры подключения к БД
            timeouts: таймауты запроса и записи
            logger: логгер загрузчика
            connect: фабрика подключений DB-API (подменяется в тестах)
        """
        self.loader = loader
        self.database = database
        self.timeouts = timeouts
        self.logger = logger
        self._connect = connect

    def run(self, client: gspread.Client) -> LoaderResult:
        """
        Выполняет загрузчик.

        Args:
            client: авторизованный gspread.Client

        Returns:
            LoaderResult: количество строк данных, колонок и обновленных ячеек

        Raises:
            DatabaseConnectionError: если не удалось подключиться к БД
            LoaderError: при ошибке запроса, преобразования или записи
        """
        self.logger.trace("Попали в метод SqlToSheetsLoader.run")
        self.logger.info(f"Запуск загрузчика '{self.loader.name}'")

        grid = self._fetch_grid()
        rows, columns = len(grid) - 1, len(grid[0])
        self.logger.info(f"Получено строк: {rows}, колонок: {columns}")

        updated_cells = self._write_grid(client, grid)
        self.logger.info(
            f"Диапазон '{self.loader.target_range}' таблицы {self.loader.spreadsheet_id} обновлен, "
            f"ячеек: {updated_cells}"
        )
        print("Done.")
        return LoaderResult(
            loader_name=self.loader.name,
            rows=rows,
            columns=columns,
            updated_cells=updated_cells,
        )

    def _open_connection(self):
        self.logger.trace("Попали в метод SqlToSheetsLoader._open_connection")
        db = self.database
        try:
            connection = self._connect(
                host=db.host,
                port=db.port,
                user=db.user,
                password=db.password,
                dbname=db.dbname,
                connect_timeout=db.connect_timeout,
                options=f"-c statement_timeout={self.timeouts.query_seconds * 1000}",
            )
        except psycopg2.Error as e:
            raise DatabaseConnectionError(
                f"Не удалось подключиться к PostgreSQL {db.host}:{db.port}/{db.dbname}: {e}"
            ) from e
        self.logger.debug("Подключение к PostgreSQL установлено")
        return connection

    def _fetch_grid(self) -> ResultGrid:
        with closing(self._open_connection()) as connection:
            try:
                cursor = connection.cursor()
            except psycopg2.Error as e:
                raise LoaderError(
                    self.loader.name, QueryError(f"Не удалось открыть курсор: {str(e).strip()}")
                ) from e

            with closing(cursor):
                self.logger.debug(f"Выполнение запроса: {self.loader.query}")
                try:
                    cursor.execute(self.loader.query)
                except psycopg2.Error as e:
                    raise LoaderError(self.loader.name, QueryError(str(e).strip())) from e

                try:
                    return convert(cursor)
                except ScanError as e:
                    raise LoaderError(self.loader.name, e) from e

    def _write_grid(self, client: gspread.Client, grid: ResultGrid) -> int:
        self.logger.trace("Попали в метод SqlToSheetsLoader._write_grid")
        body = build_batch_update_body(self.loader.target_range, grid)
        try:
            response = client.http_client.values_batch_update(
                self.loader.spreadsheet_id, body=body
            )
        except (gspread.exceptions.GSpreadException, requests.RequestException, GoogleAuthError) as e:
            raise LoaderError(
                self.loader.name,
                WriteError(f"Не удалось записать диапазон '{self.loader.target_range}': {e}"),
            ) from e

        self.logger.debug(f"Ответ batchUpdate: {response}")
        if isinstance(response, dict):
            return int(response.get("totalUpdatedCells", 0))
        return 0
