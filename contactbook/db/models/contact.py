from sqlalchemy import Column, String, Text, ForeignKey, Uuid, UniqueConstraint, Index

from contactbook.db.base import BaseModel, SoftDeleteMixin


class Contact(SoftDeleteMixin, BaseModel):
    __tablename__ = "contacts"

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone_number = Column(String(32), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    note = Column(Text, nullable=True)
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False)

    __table_args__ = (
        Index("ix_contacts_owner_name", "owner_id", "first_name", "last_name"),
    )


class ContactShare(BaseModel):
    __tablename__ = "contact_shares"

    contact_id = Column(Uuid, ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, nullable=False, index=True)
    shared_by = Column(Uuid, nullable=True)

    __table_args__ = (
        UniqueConstraint("contact_id", "user_id", name="uq_contact_shares_contact_user"),
    )
