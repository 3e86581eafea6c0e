"""
Session orchestration: register, login, refresh, logout, me, change_password.

Each operation is one unit of work on the injected storage. Failures are
raised as the typed errors in utils.errors and never reveal which check
failed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from models.base_model import as_utc, utcnow
from models.db_storage import DBStorage
from models.user import User
from services.access_tokens import AccessTokenIssuer
from services.credential_store import CredentialStore
from services.refresh_tokens import RefreshTokenManager
from utils.errors import InvalidAccessToken, InvalidCredentials, StoreError, Unauthorized
from utils.security import burn_password_check, hash_password, verify_password

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionTokens:
    user_id: str
    access_token: str
    expires_in: int
    refresh_token: str
    refresh_expires_at: datetime
    refresh_max_age: int


class SessionOrchestrator:
    def __init__(
        self,
        storage: DBStorage,
        credentials: CredentialStore,
        access_tokens: AccessTokenIssuer,
        refresh_tokens: RefreshTokenManager,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._storage = storage
        self._credentials = credentials
        self._access_tokens = access_tokens
        self._refresh_tokens = refresh_tokens
        self._clock = clock

    def _tokens(self, user_id: str, refresh_plain: str, expires_at: datetime) -> SessionTokens:
        expires_at = as_utc(expires_at)
        now = self._clock()
        return SessionTokens(
            user_id=user_id,
            access_token=self._access_tokens.issue(user_id),
            expires_in=self._access_tokens.expires_in,
            refresh_token=refresh_plain,
            refresh_expires_at=expires_at,
            refresh_max_age=max(round((expires_at - now).total_seconds()), 0),
        )

    def register(self, name: str, email: str, password: str) -> User:
        with self._storage.transaction():
            return self._credentials.create(name, email, hash_password(password))

    def login(self, email: str, password: str, remember_me: bool = False) -> SessionTokens:
        with self._storage.transaction():
            user = self._credentials.get_by_email(email)
            if user is None:
                burn_password_check(password)
                logger.warning("Failed login", extra={"email": email})
                raise InvalidCredentials()
            if not verify_password(password, user.password_hash):
                logger.warning("Failed login", extra={"email": email})
                raise InvalidCredentials()

            plaintext, record = self._refresh_tokens.issue(user.id, self._refresh_tokens.ttl_for(remember_me))
            tokens = self._tokens(user.id, plaintext, record.expires_at)

        logger.info("Login success", extra={"user_id": user.id, "remember_me": remember_me})
        return tokens

    def refresh(self, presented: str | None) -> SessionTokens:
        plaintext, record = self._refresh_tokens.rotate(presented)
        # Subject comes from the stored record, never from the request.
        return self._tokens(record.user_id, plaintext, record.expires_at)

    def logout(self, presented: str | None) -> None:
        """Best-effort revoke. Never fails from the caller's point of view."""
        try:
            self._refresh_tokens.revoke(presented)
        except StoreError:
            logger.warning("Logout could not reach the refresh token store")

    def me(self, access_token: str) -> User:
        try:
            claims = self._access_tokens.verify(access_token)
        except InvalidAccessToken as exc:
            raise Unauthorized() from exc

        with self._storage.transaction():
            user = self._credentials.get(claims.get("sub"))
        if user is None:
            logger.warning("Token subject no longer exists", extra={"user_id": claims.get("sub")})
            raise Unauthorized()
        return user

    def change_password(self, user_id: str, current_password: str, new_password: str) -> int:
        """Replace the password digest and revoke every refresh token of the user.

        Returns the number of refresh tokens revoked.
        """
        with self._storage.transaction():
            user = self._credentials.get(user_id)
            if user is None or not verify_password(current_password, user.password_hash):
                raise InvalidCredentials()
            self._credentials.set_password_hash(user, hash_password(new_password))
            revoked = self._refresh_tokens.revoke_all(user.id)

        logger.info("Password changed", extra={"user_id": user_id, "revoked": revoked})
        return revoked
