from contactbook.domains.contacts.schemas import ContactBase, ContactCreate, ContactUpdate, ContactResponse
from contactbook.domains.contacts.policy import ContactAccessPolicy
from contactbook.domains.contacts.services import ContactsService, ShareDiff

__all__ = [
    "ContactBase", "ContactCreate", "ContactUpdate", "ContactResponse",
    "ContactAccessPolicy",
    "ContactsService", "ShareDiff"
]
