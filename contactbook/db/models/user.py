from sqlalchemy import Column, String, Boolean

from contactbook.db.base import BaseModel, SoftDeleteMixin


class User(SoftDeleteMixin, BaseModel):
    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True)
