"""
Тесты для DelegatedAuthClient

Проверяется:
- действительный токен из кеша используется без обновления и без ввода кода
- истекший или отсутствующий access_token при наличии refresh_token обновляется молча
- поврежденный кеш приводит к интерактивному bootstrap (interactive=True)
- без кеша и без интерактива: AuthError с подсказкой запустить bootstrap
- отказ Google при обмене кода или обновлении токена: AuthError
"""
import json
import tempfile
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials as UserCredentials
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from sheets_loader.auth.credential_store import Credential, CredentialStore
from sheets_loader.auth.delegated_auth import AuthState, DelegatedAuthClient, extract_code
from sheets_loader.errors import AuthError, ConfigError
from sheets_loader.settings import AuthConfig


def _fake_refresh(self, request):
    self.token = "refreshed-access"
    self.expiry = datetime.utcnow() + timedelta(hours=1)


@pytest.fixture
def auth_config(tmp_path, client_secret_file):
    return AuthConfig(client_secret_path=client_secret_file,
                      token_cache_path=tmp_path / "cache.json")


def test_valid_cached_token_needs_no_interaction(auth_config, mock_logger):
    """
    Кеш с действующим токеном: состояние AUTHORIZED, refresh и input не вызываются.
    """
    CredentialStore(auth_config.token_cache_path).save(Credential(
        access_token="live", refresh_token="r",
        expiry=datetime.utcnow() + timedelta(hours=1),
    ))
    input_func = Mock()
    client = DelegatedAuthClient(auth_config, logger=mock_logger, input_func=input_func)

    with patch.object(UserCredentials, "refresh", autospec=True) as refresh:
        credentials = client.authorize(interactive=False)

    assert credentials.token == "live"
    assert client.state is AuthState.AUTHORIZED
    refresh.assert_not_called()
    input_func.assert_not_called()


@pytest.mark.parametrize("access_token, expiry", [
    ("stale", datetime(2020, 1, 1)),
    ("", None),
])
def test_expired_token_is_refreshed_silently(auth_config, mock_logger, access_token, expiry):
    """
    Истекший или отсутствующий access_token с refresh_token обновляется
    без участия оператора, новый токен сохраняется в кеш с прежним refresh_token.
    """
    store = CredentialStore(auth_config.token_cache_path)
    store.save(Credential(access_token=access_token, refresh_token="keep-me", expiry=expiry))
    input_func = Mock()
    client = DelegatedAuthClient(auth_config, logger=mock_logger, input_func=input_func)

    with patch.object(UserCredentials, "refresh", autospec=True, side_effect=_fake_refresh) as refresh:
        client.authorize(interactive=False)

    refresh.assert_called_once()
    input_func.assert_not_called()
    saved = store.load()
    assert saved.access_token == "refreshed-access"
    assert saved.refresh_token == "keep-me"
    assert client.state is AuthState.AUTHORIZED


def test_refresh_rejected_raises_auth_error(auth_config, mock_logger):
    CredentialStore(auth_config.token_cache_path).save(
        Credential(access_token="stale", refresh_token="revoked", expiry=datetime(2020, 1, 1))
    )
    client = DelegatedAuthClient(auth_config, logger=mock_logger)

    with patch.object(UserCredentials, "refresh", autospec=True,
                      side_effect=RefreshError("invalid_grant")):
        with pytest.raises(AuthError):
            client.authorize(interactive=False)


def test_no_cache_non_interactive_fails_fast(auth_config, mock_logger):
    """
    Плановый запуск без кеша не ждет ввода, а сразу сообщает о необходимости bootstrap.
    """
    input_func = Mock()
    client = DelegatedAuthClient(auth_config, logger=mock_logger, input_func=input_func)

    with pytest.raises(AuthError) as e:
        client.authorize(interactive=False)

    assert "bootstrap" in str(e.value)
    input_func.assert_not_called()
    assert client.state is AuthState.NO_CREDENTIAL


def test_missing_client_secret_is_config_error(tmp_path):
    config = AuthConfig(client_secret_path=tmp_path / "absent.json",
                        token_cache_path=tmp_path / "cache.json")
    with pytest.raises(ConfigError):
        DelegatedAuthClient(config)


def test_extract_code():
    assert extract_code("  4/abc  ") == "4/abc"
    assert extract_code("http://localhost/?state=state-token&code=4/xyz&scope=s") == "4/xyz"


class TestInteractiveBootstrap(unittest.TestCase):
    """Тесты интерактивной авторизации с подмененным InstalledAppFlow."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        tmp_path = Path(self._tmp.name)
        secret = tmp_path / "client_secret.json"
        secret.write_text(json.dumps({
            "installed": {
                "client_id": "cid",
                "client_secret": "csecret",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": ["http://localhost"],
            }
        }), encoding="utf-8")
        self.config = AuthConfig(client_secret_path=secret, token_cache_path=tmp_path / "cache.json")
        self.logger = Mock()

        self.flow = Mock()
        self.flow.authorization_url.return_value = ("https://accounts.google.com/o/oauth2/auth?x=1", "state-token")
        self.flow.credentials = Mock(token="new-access", refresh_token="new-refresh",
                                     expiry=datetime(2026, 10, 19, 13, 0, 0))
        patcher = patch("sheets_loader.auth.delegated_auth.InstalledAppFlow")
        self.flow_class = patcher.start()
        self.flow_class.from_client_config.return_value = self.flow
        self.addCleanup(patcher.stop)
        self.addCleanup(self._tmp.cleanup)

    def test_bootstrap_exchanges_code_and_persists(self):
        """Код из URL перенаправления обменивается на токены, которые попадают в кеш."""
        client = DelegatedAuthClient(
            self.config, logger=self.logger,
            input_func=lambda prompt: "http://localhost/?state=state-token&code=4/abc",
        )

        client.authorize(interactive=True)

        self.flow.authorization_url.assert_called_once_with(
            access_type="offline", prompt="consent", state="state-token"
        )
        self.flow.fetch_token.assert_called_once_with(code="4/abc")
        saved = CredentialStore(self.config.token_cache_path).load()
        self.assertEqual(saved.access_token, "new-access")
        self.assertEqual(saved.refresh_token, "new-refresh")
        self.assertEqual(saved.expiry, datetime(2026, 10, 19, 13, 0, 0))
        self.assertIs(client.state, AuthState.AUTHORIZED)

    def test_corrupt_cache_triggers_bootstrap(self):
        """Поврежденный кеш обрабатывается как отсутствующий: запускается интерактивный сценарий."""
        self.config.token_cache_path.write_text("{oops", encoding="utf-8")
        input_func = Mock(return_value="4/abc")
        client = DelegatedAuthClient(self.config, logger=self.logger, input_func=input_func)

        client.authorize(interactive=True)

        input_func.assert_called_once()
        self.flow.fetch_token.assert_called_once_with(code="4/abc")

    def test_rejected_code_raises_auth_error(self):
        self.flow.fetch_token.side_effect = OAuth2Error(description="invalid_grant")
        client = DelegatedAuthClient(self.config, logger=self.logger, input_func=lambda prompt: "bad")

        with self.assertRaises(AuthError):
            client.authorize(interactive=True)

        self.assertIs(client.state, AuthState.AWAITING_USER_CODE)
        self.assertFalse(self.config.token_cache_path.exists())

    def test_empty_code_raises_auth_error(self):
        client = DelegatedAuthClient(self.config, logger=self.logger, input_func=lambda prompt: "   ")
        with self.assertRaises(AuthError):
            client.authorize(interactive=True)
        self.flow.fetch_token.assert_not_called()

    def test_revoked_refresh_token_leads_to_consent(self):
        """
        bootstrap с отозванным refresh_token запрашивает согласие заново.
        Если Google не вернул новый refresh_token, в кеше остается прежний.
        """
        CredentialStore(self.config.token_cache_path).save(
            Credential(access_token="", refresh_token="old-refresh")
        )
        self.flow.credentials = Mock(token="new-access", refresh_token=None, expiry=None)
        input_func = Mock(return_value="4/abc")
        client = DelegatedAuthClient(self.config, logger=self.logger, input_func=input_func)

        with patch.object(UserCredentials, "refresh", autospec=True,
                          side_effect=RefreshError("invalid_grant")):
            client.authorize(interactive=True)

        input_func.assert_called_once()
        saved = CredentialStore(self.config.token_cache_path).load()
        self.assertEqual(saved.refresh_token, "old-refresh")
        self.assertEqual(saved.access_token, "new-access")

    @patch("sheets_loader.auth.delegated_auth.gspread.authorize")
    def test_get_client_sets_timeout(self, mock_authorize):
        gc = Mock()
        mock_authorize.return_value = gc
        client = DelegatedAuthClient(self.config, logger=self.logger, input_func=lambda prompt: "4/abc")

        with self.assertRaises(AuthError):
            client.get_client(timeout=15)

        client.authorize(interactive=True)
        self.assertIs(client.get_client(timeout=15), gc)
        gc.http_client.set_timeout.assert_called_once_with(15)
