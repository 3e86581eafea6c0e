from models.db_storage import DBStorage
from services.access_tokens import AccessTokenIssuer
from services.credential_store import CredentialStore
from services.refresh_token_store import RefreshTokenStore
from services.refresh_tokens import RefreshTokenManager
from services.sessions import SessionOrchestrator, SessionTokens
from services.settings import AuthSettings


def build_sessions(storage: DBStorage, settings: AuthSettings) -> SessionOrchestrator:
    """Wire the stores, issuer and manager around one storage handle."""
    return SessionOrchestrator(
        storage=storage,
        credentials=CredentialStore(storage),
        access_tokens=AccessTokenIssuer(settings),
        refresh_tokens=RefreshTokenManager(storage, RefreshTokenStore(storage), settings),
    )


__all__ = [
    "AccessTokenIssuer",
    "AuthSettings",
    "CredentialStore",
    "RefreshTokenManager",
    "RefreshTokenStore",
    "SessionOrchestrator",
    "SessionTokens",
    "build_sessions",
]
