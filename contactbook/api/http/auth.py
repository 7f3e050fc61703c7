from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.core.auth import get_current_actor, get_request_context, security
from contactbook.core.db import get_db
from contactbook.core.errors import Unauthorized
from contactbook.domains.crud.services import RequestContext
from contactbook.domains.identity.entities import Actor
from contactbook.domains.identity.schemas import AuthResponse, UserCreate, UserLogin, UserResponse
from contactbook.domains.identity.services import IdentityService

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Регистрация нового пользователя"""
    return await IdentityService(db).register(user_data.model_dump(), ctx)


@router.post("/login", response_model=AuthResponse)
async def login(
    login_data: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Вход пользователя"""
    return await IdentityService(db).login(login_data.email, login_data.password)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Получение информации о текущем пользователе"""
    identity_service = IdentityService(db)
    user = await identity_service.users.find_by_id(actor.id, RequestContext(actor=actor))
    if user is None:
        raise Unauthorized("User not found")
    return user


@router.post("/logout")
async def logout(
    actor: Actor = Depends(get_current_actor),
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
):
    """Выход пользователя: токен отзывается до истечения срока"""
    await IdentityService(db).logout(credentials.credentials)
    return {"message": "Successfully logged out"}
