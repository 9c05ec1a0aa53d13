"""Database model for user accounts."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ..core.time import utcnow


class Account(SQLModel, table=True):
    """Local account, reachable by email or by an external identity."""

    __tablename__ = "account"
    __table_args__ = (
        UniqueConstraint("provider", "uid", name="uq_account_provider_uid"),
    )

    id: Optional[uuid.UUID] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    provider: Optional[str] = Field(default=None, index=True)
    uid: Optional[str] = None
    password_hash: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def display_name(self) -> str:
        return self.name or (self.email or "").split("@")[0]


__all__ = ["Account"]
