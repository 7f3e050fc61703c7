import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Uuid

from contactbook.core.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel(Base):
    """Общие поля: идентификатор и аудит"""
    __abstract__ = True

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_by = Column(Uuid, nullable=True)
    updated_by = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class SoftDeleteMixin:
    """Мягкое удаление: запись помечается временем удаления"""
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)
