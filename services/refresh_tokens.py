"""
Refresh token manager: opaque, single-use, rotating refresh tokens.

Rotation keeps the remaining lifetime of the token it replaces, so a chain
of refreshes never outlives the original grant. The default TTL is the
fallback when no lifetime remains.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Tuple

from models.base_model import utcnow
from models.db_storage import DBStorage
from models.refresh_token import RefreshToken
from services.refresh_token_store import RefreshTokenStore
from services.settings import AuthSettings
from utils.errors import InvalidRefreshToken
from utils.security import digest_token, generate_opaque_token

logger = logging.getLogger(__name__)


class RefreshTokenManager:
    def __init__(
        self,
        storage: DBStorage,
        store: RefreshTokenStore,
        settings: AuthSettings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._storage = storage
        self._store = store
        self._settings = settings
        self._clock = clock

    @staticmethod
    def mint() -> Tuple[str, str]:
        return generate_opaque_token()

    @staticmethod
    def _digest(presented: str | None) -> str | None:
        """Digest of a presented secret, or None when nothing usable was sent."""
        if not presented:
            return None
        try:
            return digest_token(presented)
        except UnicodeEncodeError:
            # lone surrogates from a JSON body cannot match any minted token
            return None

    def ttl_for(self, remember_me: bool) -> timedelta:
        return self._settings.refresh_ttl if remember_me else self._settings.short_refresh_ttl

    def issue(self, user_id: str, ttl: timedelta) -> Tuple[str, RefreshToken]:
        plaintext, token_hash = self.mint()
        with self._storage.transaction():
            record = self._store.add(user_id, token_hash, self._clock() + ttl)
        logger.info("Refresh token issued", extra={"user_id": user_id, "record_id": record.id})
        return plaintext, record

    def rotate(self, presented: str | None) -> Tuple[str, RefreshToken]:
        token_hash = self._digest(presented)
        if token_hash is None:
            raise InvalidRefreshToken()

        with self._storage.transaction():
            now = self._clock()
            current = self._store.find_active(token_hash, now, lock=True)
            if current is None:
                logger.warning("Refresh rejected: no active record")
                raise InvalidRefreshToken()
            if not self._store.revoke_if_active(current, now):
                logger.warning("Refresh rejected: lost rotation race", extra={"record_id": current.id})
                raise InvalidRefreshToken()

            ttl = current.remaining(now)
            if ttl <= timedelta(0):
                ttl = self._settings.refresh_ttl

            plaintext, new_hash = self.mint()
            successor = self._store.add(current.user_id, new_hash, now + ttl)

        logger.info(
            "Refresh token rotated",
            extra={"user_id": successor.user_id, "record_id": successor.id, "previous_id": current.id},
        )
        return plaintext, successor

    def revoke(self, presented: str | None) -> bool:
        token_hash = self._digest(presented)
        if token_hash is None:
            return False
        with self._storage.transaction():
            now = self._clock()
            record = self._store.find_active(token_hash, now, lock=True)
            revoked = record is not None and self._store.revoke_if_active(record, now)
        if revoked:
            logger.info("Refresh token revoked", extra={"user_id": record.user_id, "record_id": record.id})
        return revoked

    def revoke_all(self, user_id: str) -> int:
        with self._storage.transaction():
            count = self._store.revoke_all_for_user(user_id, self._clock())
        logger.info("Refresh tokens revoked for user", extra={"user_id": user_id, "count": count})
        return count
