from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.api.http.crud import create_crud_router
from contactbook.core.db import get_db
from contactbook.domains.contacts.schemas import ContactResponse
from contactbook.domains.contacts.services import ContactsService


def get_contacts_service(db: AsyncSession = Depends(get_db)) -> ContactsService:
    return ContactsService(db)


router = create_crud_router(
    get_contacts_service,
    prefix="/contacts",
    tags=["contacts"],
    response_model=ContactResponse,
)
