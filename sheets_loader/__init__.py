"""
sheets_loader

Выгрузка результатов SQL-запросов PostgreSQL в диапазоны Google-таблиц
с OAuth-авторизацией пользователя и кешем токена.
"""
__version__ = '0.1.0'
