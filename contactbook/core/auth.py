from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.core.db import get_db
from contactbook.core.errors import Unauthorized
from contactbook.domains.crud.services import RequestContext
from contactbook.domains.identity.entities import Actor
from contactbook.domains.identity.services import IdentityService

security = HTTPBearer(auto_error=False)


async def get_optional_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[Actor]:
    """Текущий пользователь, если запрос аутентифицирован"""
    if credentials is None:
        # заголовок есть, но схема не Bearer
        if request.headers.get("authorization"):
            raise Unauthorized("Could not validate credentials")
        return None

    actor = await IdentityService(db).get_actor_from_token(credentials.credentials)
    if actor is None:
        raise Unauthorized("Could not validate credentials")
    return actor


async def get_current_actor(actor: Optional[Actor] = Depends(get_optional_actor)) -> Actor:
    """Зависимость для получения текущего пользователя"""
    if actor is None:
        raise Unauthorized("Not authenticated")
    return actor


async def get_request_context(actor: Optional[Actor] = Depends(get_optional_actor)) -> RequestContext:
    return RequestContext(actor=actor)
