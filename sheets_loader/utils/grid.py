"""
grid.py

Преобразование результата SQL-запроса в прямоугольную сетку строк для Google Sheets.

Строка 0 сетки всегда содержит имена колонок, далее по одной строке на каждую
запись курсора. Значения приводятся к тексту:
    - None (NULL)                    -> "" (пустая ячейка, а не текст "None")
    - bytes / bytearray / memoryview -> декодированный UTF-8 текст
    - str                            -> без изменений
    - остальные типы                 -> str(value)

Пустой результат (только заголовок) считается корректным.

Пример использования:
    from sheets_loader.utils.grid import convert
    with connection.cursor() as cursor:
        cursor.execute("SELECT id, name FROM items")
        grid = convert(cursor)
    # [["id", "name"], ["1", "Мыло"], ...]

Author: anikinjura
"""
__version__ = '0.1.0'

from typing import Any, List

import psycopg2

from sheets_loader.errors import ScanError

ResultGrid = List[List[str]]


def to_cell(value: Any) -> str:
    """Приводит значение колонки к тексту ячейки."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    return str(value)


def column_names(cursor) -> List[str]:
    """
    Возвращает имена колонок из cursor.description (DB-API 2.0).

    Raises:
        ScanError: если курсор не содержит результата (например, выполнен не SELECT)
    """
    description = cursor.description
    if description is None:
        raise ScanError("Запрос не вернул набор строк (cursor.description пуст)")
    return [column[0] for column in description]


def convert(cursor) -> ResultGrid:
    """
    Преобразует курсор в сетку: заголовок и строки значений.

    Курсор читается один раз, последовательно. Для каждой записи создается
    новый список, поэтому строки сетки не разделяют общие буферы.

    Args:
        cursor: DB-API курсор после execute()

    Returns:
        ResultGrid: сетка из R+1 строк по C значений

    Raises:
        ScanError: при ошибке чтения строки, несовпадении ширины строки
            с заголовком или невалидном UTF-8 в бинарном значении
    """
    headers = column_names(cursor)
    width = len(headers)
    grid: ResultGrid = [list(headers)]

    row_number = 0
    try:
        for record in cursor:
            row_number += 1
            if len(record) != width:
                raise ScanError(
                    f"Строка {row_number}: {len(record)} значений при {width} колонках"
                )
            row = []
            for column, value in zip(headers, record):
                try:
                    row.append(to_cell(value))
                except UnicodeDecodeError as e:
                    raise ScanError(
                        f"Строка {row_number}, колонка '{column}': невалидный UTF-8: {e}"
                    ) from e
            grid.append(row)
    except psycopg2.Error as e:
        raise ScanError(f"Ошибка чтения строки {row_number + 1}: {e}") from e

    return grid
