"""Database models for the bot."""
from sqlalchemy import Column, Integer, String, Text, UniqueConstraint

from wordsbot.models.base import Base, TimestampMixin


class StoreEntry(Base, TimestampMixin):
    """One persisted key/value slot, scoped to a chat namespace."""

    __tablename__ = "store_entries"
    __table_args__ = (UniqueConstraint("namespace", "key", name="uq_store_entries_namespace_key"),)

    id = Column(Integer, primary_key=True)
    namespace = Column(String, nullable=False, index=True)  # e.g. telegram chat id
    key = Column(String, nullable=False)
    value = Column(Text, nullable=False)  # JSON encoded
