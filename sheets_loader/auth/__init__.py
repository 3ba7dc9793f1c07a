from .credential_store import Credential, CredentialStore
from .delegated_auth import AuthState, DelegatedAuthClient

__all__ = [
    'Credential',
    'CredentialStore',
    'AuthState',
    'DelegatedAuthClient',
]
