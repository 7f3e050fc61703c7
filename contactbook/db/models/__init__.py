from contactbook.db.models.user import User
from contactbook.db.models.contact import Contact, ContactShare
from contactbook.db.models.token import RevokedToken

__all__ = [
    "User",
    "Contact",
    "ContactShare",
    "RevokedToken"
]
