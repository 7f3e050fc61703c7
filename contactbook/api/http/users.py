from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.api.http.crud import create_crud_router
from contactbook.core.auth import get_current_actor
from contactbook.core.db import get_db
from contactbook.domains.crud.services import RequestContext
from contactbook.domains.identity.entities import Actor
from contactbook.domains.identity.schemas import UserResponse
from contactbook.domains.identity.services import UsersService

router = APIRouter(prefix="/users", tags=["users"])


def get_users_service(db: AsyncSession = Depends(get_db)) -> UsersService:
    return UsersService(db)


# объявлен до /{record_id}, иначе "me" разбирается как UUID
@router.get("/me", response_model=UserResponse)
async def get_me(
    actor: Actor = Depends(get_current_actor),
    service: UsersService = Depends(get_users_service)
):
    """Учетная запись текущего пользователя"""
    user = await service.find_by_id(actor.id, RequestContext(actor=actor))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


create_crud_router(
    get_users_service,
    prefix="/users",
    tags=["users"],
    response_model=UserResponse,
    router=router,
)
