"""SQLAlchemy ORM models for the mapping store.

Two tables back the service: ``infos`` is authoritative and keyed by the
short key, ``urls`` is a secondary index from long URL to short key.

Data Model Layout
=================
::
    infos table                          urls table
    ├─ short_url (VARCHAR PK)  ◀──────── ├─ long_url_hash (VARCHAR PK)
    ├─ long_url (TEXT NOT NULL)          ├─ long_url (TEXT NOT NULL)
    │                                    └─ short_url (VARCHAR NOT NULL)
    ├─ count (INTEGER DEFAULT 0)
    ├─ is_active (BOOLEAN DEFAULT TRUE)
    ├─ created_at (TIMESTAMPTZ, DEFAULT NOW())
    └─ updated_at (TIMESTAMPTZ, DEFAULT NOW(), ON UPDATE)

Key Behaviours
===============
- Both keys are stored without a scheme (``host[:port]/path...``).
- The primary key on ``infos.short_url`` is what makes short keys unique;
  an insert of a taken key fails with IntegrityError.
- ``urls`` is keyed by the SHA-256 of the long URL, so one entry per long
  URL holds for URLs of any length.
- Rows are never deleted except by a full clear.

Classes:
    MappingInfo:  A short key with its long URL, use count and active flag.
    LongUrlIndex:  Long URL to short key index entry.
"""

import datetime
import hashlib

from sqlalchemy import Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from shortener.database import Base

__all__ = ["MappingInfo", "LongUrlIndex", "long_url_digest"]


def long_url_digest(long_url: str) -> str:
    """Hex SHA-256 of a scheme-less long URL, the primary key of ``urls``."""
    return hashlib.sha256(long_url.encode()).hexdigest()


class MappingInfo(Base):
    __tablename__ = "infos"

    short_url: Mapped[str] = mapped_column(String(300), primary_key=True)
    long_url: Mapped[str] = mapped_column(Text, nullable=False)
    count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<MappingInfo(short_url='{self.short_url}', count={self.count}, is_active={self.is_active})>"


class LongUrlIndex(Base):
    __tablename__ = "urls"

    long_url_hash: Mapped[str] = mapped_column(String(64), primary_key=True)
    long_url: Mapped[str] = mapped_column(Text, nullable=False)
    short_url: Mapped[str] = mapped_column(String(300), nullable=False)

    def __repr__(self) -> str:
        return f"<LongUrlIndex(long_url='{self.long_url}', short_url='{self.short_url}')>"
