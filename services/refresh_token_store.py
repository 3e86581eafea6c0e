from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm.attributes import set_committed_value

from models.db_storage import DBStorage
from models.refresh_token import RefreshToken


class RefreshTokenStore:
    """Persisted refresh token records, looked up by digest only.

    Every method runs on the current thread's session; callers wrap them in
    DBStorage.transaction().
    """

    def __init__(self, storage: DBStorage):
        self._storage = storage

    def _session(self):
        return self._storage.get_session()

    def add(self, user_id: str, token_hash: str, expires_at: datetime) -> RefreshToken:
        record = RefreshToken(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
        self._storage.new(record)
        self._session().flush()
        return record

    def find_active(self, token_hash: str, now: datetime, lock: bool = False) -> RefreshToken | None:
        stmt = select(RefreshToken).where(
            RefreshToken.token_hash == token_hash,
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at > now,
        )
        if lock:
            stmt = stmt.with_for_update()
        return self._session().execute(stmt).scalar_one_or_none()

    def revoke_if_active(self, record: RefreshToken, now: datetime) -> bool:
        """Compare-and-set revoke. False means someone else revoked it first."""
        result = self._session().execute(
            update(RefreshToken)
            .where(RefreshToken.id == record.id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        set_committed_value(record, "revoked_at", now)
        return True

    def revoke_all_for_user(self, user_id: str, now: datetime) -> int:
        result = self._session().execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
