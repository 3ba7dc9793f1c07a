"""
delegated_auth.py

Авторизация в Google Sheets API от имени пользователя (OAuth 2.0, installed app).

Состояния клиента:
    NO_CREDENTIAL -> AWAITING_USER_CODE -> AUTHORIZED

Логика authorize():
    1. Пытается загрузить токен из CredentialStore. Если access_token истек
       (или отсутствует), а refresh_token есть, токен молча обновляется
       и сохраняется обратно в кеш.
    2. Если пригодного кеша нет:
       - interactive=False (плановый запуск): AuthError с подсказкой запустить bootstrap;
       - interactive=True (команда bootstrap): печатает ссылку согласия, ждет одну
         строку ввода (код или полный URL перенаправления с параметром code),
         обменивает код на токены и сохраняет их в кеш.
    Отказ при обмене кода не повторяется и дает AuthError. Отказ при обновлении
    токена дает AuthError в плановом запуске, а в bootstrap ведет к повторному согласию.

После авторизации get_client() возвращает gspread.Client, HTTP-сессия которого
сама подставляет access_token и обновляет его по refresh_token.

Пример использования:
    auth = DelegatedAuthClient(config.auth, logger=logger)
    auth.authorize(interactive=False)
    gc = auth.get_client(timeout=120)

Author: anikinjura
"""
__version__ = '0.1.0'

import json
from enum import Enum, auto
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, urlparse

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials as UserCredentials
from google_auth_oauthlib.flow import InstalledAppFlow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from sheets_loader.auth.credential_store import Credential, CredentialStore
from sheets_loader.errors import AuthError, ConfigError, CredentialNotFound
from sheets_loader.settings import AuthConfig

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_REDIRECT_URI = "http://localhost"
AUTH_STATE_TOKEN = "state-token"


class AuthState(Enum):
    """Состояния авторизации."""
    NO_CREDENTIAL = auto()
    AWAITING_USER_CODE = auto()
    AUTHORIZED = auto()


def load_client_secrets(path) -> Dict[str, Any]:
    """
    Читает JSON секрета OAuth-клиента, выданный Google Cloud Console.

    Returns:
        Dict: полный документ ({"installed": {...}} или {"web": {...}})

    Raises:
        ConfigError: если файл не найден, не JSON или не содержит секцию installed/web
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except OSError as e:
        raise ConfigError(f"Не удалось прочитать файл секрета клиента {path}: {e}") from e
    except ValueError as e:
        raise ConfigError(f"Не удалось разобрать файл секрета клиента {path}: {e}") from e

    if not isinstance(document, dict):
        raise ConfigError(f"Файл секрета клиента {path} должен содержать JSON-объект")

    section = document.get("installed") or document.get("web")
    if not isinstance(section, dict) or not section.get("client_id"):
        raise ConfigError(f"Файл секрета клиента {path} не содержит секцию installed/web с client_id")
    return document


def extract_code(user_input: str) -> str:
    """Возвращает код авторизации из введенной строки: самого кода или URL перенаправления."""
    text = user_input.strip()
    if "code=" in text:
        params = parse_qs(urlparse(text).query)
        if "code" in params:
            return params["code"][0]
    return text


class DelegatedAuthClient:
    """
    Клиент авторизации с кешем токена и интерактивным первичным согласием.
    """

    def __init__(self, auth_config: AuthConfig, logger=None,
                 store: Optional[CredentialStore] = None,
                 input_func: Callable[[str], str] = input):
        """
        Args:
            auth_config: пути к секрету клиента, кешу токена и запрашиваемые scope
            logger: логгер
            store: кеш токена (по умолчанию CredentialStore по auth_config.token_cache_path)
            input_func: функция чтения кода авторизации (подменяется в тестах)
        """
        self.auth_config = auth_config
        self.logger = logger
        self.store = store or CredentialStore(auth_config.token_cache_path, logger=logger)
        self.input_func = input_func
        self.state = AuthState.NO_CREDENTIAL
        self.credentials: Optional[UserCredentials] = None
        self._client_secrets = load_client_secrets(auth_config.client_secret_path)

    @property
    def _client_info(self) -> Dict[str, Any]:
        return self._client_secrets.get("installed") or self._client_secrets["web"]

    def authorize(self, interactive: bool = False) -> UserCredentials:
        """
        Переводит клиент в состояние AUTHORIZED.

        Args:
            interactive: разрешить интерактивное согласие при отсутствии кеша

        Returns:
            UserCredentials: действующие учетные данные пользователя

        Raises:
            AuthError: кеш непригоден и interactive=False, либо Google отклонил код/обновление
        """
        credentials = self._from_cache(interactive)
        if credentials is None:
            if not interactive:
                raise AuthError(
                    f"Нет сохраненного токена в {self.store.path}. "
                    f"Выполните первичную авторизацию: sheets-loader bootstrap"
                )
            credentials = self._authorize_interactively()

        self.credentials = credentials
        self.state = AuthState.AUTHORIZED
        if self.logger:
            self.logger.info("Авторизация в Google выполнена")
        return credentials

    def get_client(self, timeout: Optional[float] = None) -> gspread.Client:
        """
        Возвращает авторизованный gspread.Client.

        Args:
            timeout: таймаут HTTP-запросов в секундах

        Raises:
            AuthError: если authorize() еще не выполнен
        """
        if self.state is not AuthState.AUTHORIZED or self.credentials is None:
            raise AuthError("Клиент не авторизован: сначала вызовите authorize()")
        client = gspread.authorize(self.credentials)
        if timeout:
            client.http_client.set_timeout(timeout)
        return client

    def _build_user_credentials(self, cached: Credential) -> UserCredentials:
        info = self._client_info
        return UserCredentials(
            token=cached.access_token or None,
            refresh_token=cached.refresh_token or None,
            token_uri=info.get("token_uri", GOOGLE_TOKEN_URI),
            client_id=info["client_id"],
            client_secret=info.get("client_secret"),
            scopes=self.auth_config.scopes,
            expiry=cached.expiry,
        )

    def _from_cache(self, interactive: bool) -> Optional[UserCredentials]:
        try:
            cached = self.store.load()
        except CredentialNotFound as e:
            if self.logger:
                self.logger.warning(f"Кеш токена недоступен: {e}")
            return None

        credentials = self._build_user_credentials(cached)
        if credentials.valid:
            if self.logger:
                self.logger.debug("Токен из кеша действителен")
            return credentials

        if not credentials.refresh_token:
            if self.logger:
                self.logger.warning("Токен в кеше истек и не содержит refresh_token")
            return None

        if self.logger:
            self.logger.info("Токен истек, обновляем по refresh_token...")
        try:
            credentials.refresh(Request())
        except (GoogleAuthError, requests.RequestException) as e:
            if not interactive:
                raise AuthError(f"Не удалось обновить токен: {e}") from e
            # bootstrap с отозванным refresh_token: запрашиваем согласие заново
            if self.logger:
                self.logger.warning(f"Не удалось обновить токен, требуется повторное согласие: {e}")
            return None

        self._persist(credentials, previous_refresh_token=cached.refresh_token)
        return credentials

    def _authorize_interactively(self) -> UserCredentials:
        flow = InstalledAppFlow.from_client_config(self._client_secrets, scopes=self.auth_config.scopes)
        redirect_uris = self._client_info.get("redirect_uris") or [DEFAULT_REDIRECT_URI]
        flow.redirect_uri = redirect_uris[0]

        auth_url, _ = flow.authorization_url(
            access_type="offline",
            prompt="consent",
            state=AUTH_STATE_TOKEN,
        )
        self.state = AuthState.AWAITING_USER_CODE

        print("Откройте ссылку в браузере, разрешите доступ и введите код авторизации")
        print("(или полный URL из адресной строки после перенаправления):")
        print(auth_url)

        try:
            code = extract_code(self.input_func("Код авторизации: "))
        except EOFError as e:
            raise AuthError("Не удалось прочитать код авторизации") from e
        if not code:
            raise AuthError("Код авторизации не введен")

        if self.logger:
            self.logger.info("Код получен, обмениваем на токены...")
        try:
            flow.fetch_token(code=code)
        except (OAuth2Error, requests.RequestException, ValueError) as e:
            raise AuthError(f"Не удалось получить токен по коду авторизации: {e}") from e

        credentials = flow.credentials
        previous = None
        try:
            previous = self.store.load().refresh_token
        except CredentialNotFound:
            pass
        self._persist(credentials, previous_refresh_token=previous)
        return credentials

    def _persist(self, credentials: UserCredentials, previous_refresh_token: Optional[str] = None) -> None:
        refresh_token = credentials.refresh_token or previous_refresh_token or ""
        if not refresh_token and self.logger:
            self.logger.warning(
                "Google не вернул refresh_token: после истечения токена потребуется повторный bootstrap"
            )
        self.store.save(Credential(
            access_token=credentials.token or "",
            refresh_token=refresh_token,
            expiry=credentials.expiry,
            token_type="Bearer",
        ))
