import uuid

import pytest
from sqlalchemy import select

from api import create_app, get_storage
from models.base_model import utcnow
from models.db_storage import DBStorage
from models.refresh_token import RefreshToken
from services.access_tokens import AccessTokenIssuer
from services.credential_store import CredentialStore
from services.refresh_token_store import RefreshTokenStore
from services.refresh_tokens import RefreshTokenManager
from services.sessions import SessionOrchestrator
from services.settings import AuthSettings

SECRET = "test-signing-secret-0123456789abcdef-0123456789abcdef"
PASSWORD = "StrongPass1"


def random_email():
    return f"user_{uuid.uuid4().hex[:8]}@example.com"


def active_records(storage, user_id):
    stmt = (
        select(RefreshToken)
        .where(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at > utcnow(),
        )
        .order_by(RefreshToken.created_at)
    )
    with storage.transaction() as session:
        return list(session.execute(stmt).scalars())


@pytest.fixture
def settings():
    return AuthSettings(access_secret=SECRET)


@pytest.fixture
def storage(tmp_path):
    storage = DBStorage(f"sqlite:///{tmp_path / 'services.db'}")
    storage.reload()
    yield storage
    storage.dispose()


@pytest.fixture
def refresh_store(storage):
    return RefreshTokenStore(storage)


@pytest.fixture
def issuer(settings):
    return AccessTokenIssuer(settings)


@pytest.fixture
def manager(storage, refresh_store, settings):
    return RefreshTokenManager(storage, refresh_store, settings)


@pytest.fixture
def sessions(storage, issuer, manager):
    return SessionOrchestrator(storage, CredentialStore(storage), issuer, manager)


@pytest.fixture
def user(sessions):
    return sessions.register("Ada Lovelace", random_email(), PASSWORD)


@pytest.fixture
def app(tmp_path):
    app = create_app(
        "testing",
        {
            "DATABASE_URL": f"sqlite:///{tmp_path / 'api.db'}",
            "JWT_ACCESS_SECRET": SECRET,
        },
    )
    yield app
    with app.app_context():
        get_storage().dispose()


@pytest.fixture
def client(app):
    return app.test_client()
