from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from models.db_storage import DBStorage
from models.user import User
from utils.errors import EmailTaken

logger = logging.getLogger(__name__)


class CredentialStore:
    """Persisted user records. Callers own the transaction."""

    def __init__(self, storage: DBStorage):
        self._storage = storage

    def get(self, user_id: str) -> User | None:
        if not user_id:
            return None
        session = self._storage.get_session()
        # Always hit the database: a user deleted since the token was issued must not resolve.
        stmt = select(User).where(User.id == user_id).execution_options(populate_existing=True)
        return session.execute(stmt).scalar_one_or_none()

    def get_by_email(self, email: str) -> User | None:
        session = self._storage.get_session()
        return session.execute(select(User).where(User.email == email)).scalar_one_or_none()

    def create(self, name: str, email: str, password_hash: str) -> User:
        if self.get_by_email(email) is not None:
            raise EmailTaken()

        user = User(name=name, email=email, password_hash=password_hash)
        session = self._storage.get_session()
        # The unique index still decides when two registrations race.
        try:
            with session.begin_nested():
                session.add(user)
                session.flush()
        except IntegrityError:
            raise EmailTaken()
        logger.info("User created", extra={"user_id": user.id})
        return user

    def set_password_hash(self, user: User, password_hash: str) -> None:
        user.password_hash = password_hash
        self._storage.new(user)
