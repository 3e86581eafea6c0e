#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixin for the Session Auth API.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps, timezone-aware UTC
- to_dict() that formats timestamps and removes SA internals

Notes:
- Timestamps get a Python-side default as well as the server default, so a
  freshly inserted row can be read after its session is gone.
- SQLite hands back naive datetimes; as_utc() puts the tzinfo back.
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

TIME_FMT = "%Y-%m-%dT%H:%M:%S.%f"

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from the database."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at.
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        If you pass created_at/updated_at explicitly (e.g., in tests), they will be set.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        # Ensure an id exists if caller passed none
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def to_dict(self) -> dict:
        """
        Return a dictionary of fields:
        - Adds __class__
        - Formats created_at / updated_at to TIME_FMT if they are datetime objects
        - Removes SQLAlchemy internal state and any field listed in __private__
        """
        private = getattr(self, "__private__", ())
        d = {
            k: v for k, v in self.__dict__.items()
            if k != "_sa_instance_state" and k not in private
        }
        if isinstance(d.get("created_at"), datetime):
            d["created_at"] = d["created_at"].strftime(TIME_FMT)
        if isinstance(d.get("updated_at"), datetime):
            d["updated_at"] = d["updated_at"].strftime(TIME_FMT)
        d["__class__"] = self.__class__.__name__
        return d
