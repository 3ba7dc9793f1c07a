"""
credential_store.py

Локальный кеш OAuth-токена пользователя.

Файл хранит JSON-объект с полями access_token, refresh_token, expiry, token_type
и позволяет не повторять интерактивное согласие при каждом запуске.
expiry записывается в RFC 3339 (UTC, суффикс Z); при чтении допускаются любые
смещения и дробная часть до наносекунд, как пишут другие OAuth-библиотеки.

Блокировок нет: два одновременных запуска с одним путем кеша могут перезаписать
токен друг друга.

Author: anikinjura
"""
__version__ = '0.1.0'

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sheets_loader.errors import CredentialNotFound

_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


@dataclass(frozen=True)
class Credential:
    """
    Пара токенов пользователя.

    Атрибуты:
        access_token (str): текущий токен доступа (может быть пустым)
        refresh_token (str): токен обновления; без него после истечения нужна повторная авторизация
        expiry (Optional[datetime]): момент истечения access_token, naive UTC
        token_type (str): тип токена, обычно "Bearer"
    """
    access_token: str
    refresh_token: str
    expiry: Optional[datetime] = None
    token_type: str = "Bearer"

    def __post_init__(self):
        if self.expiry is not None:
            object.__setattr__(self, "expiry", to_naive_utc(self.expiry))

    def to_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "refresh_token": self.refresh_token,
            "expiry": format_expiry(self.expiry),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Credential':
        return cls(
            access_token=data.get("access_token") or "",
            refresh_token=data.get("refresh_token") or "",
            expiry=parse_expiry(data.get("expiry")),
            token_type=data.get("token_type") or "Bearer",
        )


def to_naive_utc(moment: datetime) -> datetime:
    """Приводит datetime с часовым поясом к naive UTC; naive значения считаются UTC."""
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def format_expiry(expiry: Optional[datetime]) -> Optional[str]:
    if expiry is None:
        return None
    return to_naive_utc(expiry).isoformat() + "Z"


def parse_expiry(value: Optional[str]) -> Optional[datetime]:
    """
    Разбирает RFC 3339 в naive UTC datetime.

    Raises:
        ValueError: если строка не является датой
    """
    if not value:
        return None
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(r"\1", text)
    parsed = datetime.fromisoformat(text)
    parsed = to_naive_utc(parsed)
    # Нулевая дата означает "срок не задан"
    if parsed.year <= 1:
        return None
    return parsed


class CredentialStore:
    """Чтение и запись Credential в JSON-файл по фиксированному пути."""

    def __init__(self, path, logger=None):
        self.path = Path(path)
        self.logger = logger

    def load(self) -> Credential:
        """
        Читает учетные данные из кеша.

        Returns:
            Credential: сохраненные токены

        Raises:
            CredentialNotFound: если файла нет, он не читается, не является JSON-объектом,
                содержит некорректный expiry или не содержит ни одного токена
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise CredentialNotFound(f"Файл кеша токена не найден: {self.path}") from e
        except (OSError, ValueError) as e:
            raise CredentialNotFound(f"Файл кеша токена поврежден: {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise CredentialNotFound(f"Файл кеша токена не содержит JSON-объект: {self.path}")

        try:
            credential = Credential.from_dict(data)
        except (TypeError, ValueError) as e:
            raise CredentialNotFound(f"Некорректные данные в кеше токена {self.path}: {e}") from e

        if not credential.access_token and not credential.refresh_token:
            raise CredentialNotFound(f"Кеш токена не содержит токенов: {self.path}")

        if self.logger:
            self.logger.debug(f"Учетные данные загружены из кеша: {self.path}")
        return credential

    def save(self, credential: Credential) -> None:
        """
        Записывает учетные данные в кеш, перезаписывая файл.

        Raises:
            OSError: при ошибке записи (например, нет прав)
        """
        print(f"Saving credential file to: {self.path}")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(credential.to_dict(), f, ensure_ascii=False)
            f.write("\n")

        if self.logger:
            self.logger.info(f"Учетные данные сохранены в кеш: {self.path}")
