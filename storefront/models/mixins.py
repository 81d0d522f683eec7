"""Shared column mixins."""
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime
from sqlalchemy.sql import func


class TimestampMixin:
    """created_at / updated_at maintained by the database."""

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class SoftDeleteMixin:
    """
    Soft deletion through a nullable deleted_at timestamp.

    Every query over a soft-deletable model filters with ``Model.not_deleted()``
    so the "is live" rule lives in one place.
    """

    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    @classmethod
    def not_deleted(cls):
        return cls.deleted_at.is_(None)

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    def soft_delete(self):
        self.deleted_at = datetime.now(timezone.utc)
