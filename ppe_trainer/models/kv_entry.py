"""
Key-value entry model backing the persisted JSON collections.
"""
from sqlalchemy import Column, String, Text

from ppe_trainer.db.database import Base
from ppe_trainer.models.base import TimestampMixin


class KeyValueEntry(Base, TimestampMixin):
    """
    One persisted key (e.g. ``training_folders``) holding a JSON document.
    """
    __tablename__ = "kv_entries"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)

    def __repr__(self):
        return f"<KeyValueEntry(key={self.key}, size={len(self.value or '')})>"
