from sqlalchemy import Column, String, DateTime

from contactbook.db.base import BaseModel


class RevokedToken(BaseModel):
    __tablename__ = "revoked_tokens"

    jti = Column(String(64), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
