"""Local key-value cache table.

One row per key. Values are opaque JSON strings owned by the stores
that write them.
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from onboard.models.base import Base, TimestampMixin


class CacheEntry(TimestampMixin, Base):
    __tablename__ = "cache_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
