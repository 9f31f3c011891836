"""
Record lifecycle convention

Soft-deletable tables carry a single nullable ``deleted_at`` timestamp.
A row is active while it is NULL; listings filter through ``active()``.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime


class SoftDeleteMixin:
    deleted_at = Column(DateTime, nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, when: Optional[datetime] = None) -> None:
        self.deleted_at = when or datetime.utcnow()
        if hasattr(self, "updated_at"):
            self.updated_at = self.deleted_at

    @classmethod
    def active(cls):
        """Filter expression selecting non-deleted rows"""
        return cls.deleted_at.is_(None)
