import logging
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.core.errors import Conflict, Unauthorized
from contactbook.core.security import (
    create_access_token, get_password_hash, token_expiry, verify_password, verify_token
)
from contactbook.db.base import utcnow
from contactbook.db.models import RevokedToken, User
from contactbook.db.repositories.store import SqlAlchemyStore, coerce_uuid
from contactbook.domains.crud.services import CrudService, RequestContext
from contactbook.domains.crud.validators import PydanticValidator
from contactbook.domains.identity.entities import Actor, Role
from contactbook.domains.identity.policy import UserAccessPolicy
from contactbook.domains.identity.schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)

USER_PUBLIC_FIELDS = [
    "id",
    "email",
    "username",
    "role",
    "is_active",
    "created_at",
    "updated_at",
    "created_by",
    "updated_by",
]


class UsersService(CrudService):
    """Сервис учетных записей пользователей"""

    def __init__(self, session: AsyncSession):
        self.session = session
        super().__init__(
            SqlAlchemyStore(User, session),
            public_fields=USER_PUBLIC_FIELDS,
            create_validator=PydanticValidator(UserCreate),
            update_validator=PydanticValidator(UserUpdate, partial=True),
            policy=UserAccessPolicy(),
            filterable_fields=["email", "username", "role"],
        )

    async def prepare(self, data: Dict[str, Any], ctx: RequestContext, creating: bool) -> Dict[str, Any]:
        # Роль может назначать только администратор
        is_admin = ctx.actor is not None and ctx.actor.is_admin
        role = data.pop("role", None)
        if creating:
            data["role"] = Role(role).value if is_admin and role else Role.USER.value
        else:
            if not is_admin:
                data.pop("is_active", None)
            elif role is not None:
                data["role"] = Role(role).value

        password = data.pop("password", None)
        if password:
            data["password_hash"] = get_password_hash(password)

        if creating:
            await self._ensure_unique(data)
        return data

    async def _ensure_unique(self, data: Dict[str, Any]) -> None:
        """Проверка уникальности email и username"""
        # при обновлении дубликаты отсекает уникальный индекс (Conflict из хранилища)
        if await self.store.find_one({"email": data["email"]}) is not None:
            raise Conflict("Email already registered")
        if await self.store.find_one({"username": data["username"]}) is not None:
            raise Conflict("Username already taken")

    async def find_by_email(self, email: str) -> Optional[User]:
        """Получение пользователя по email"""
        return await self.store.find_one({"email": email})

    async def get_record(self, user_id: Any) -> Optional[User]:
        return await self.store.find_by_id(user_id)


class IdentityService:
    """Сервис для работы с идентификацией и аутентификацией пользователей"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UsersService(session)
        self.revoked = SqlAlchemyStore(RevokedToken, session)

    @staticmethod
    def _issue_token(user: Dict[str, Any]) -> str:
        role = user["role"]
        return create_access_token({"sub": str(user["id"]), "role": getattr(role, "value", role)})

    async def register(self, payload: Dict[str, Any], ctx: RequestContext = RequestContext()) -> Dict[str, Any]:
        """Регистрация нового пользователя"""
        user = await self.users.create(payload, ctx)
        logger.info("User %s registered", user["id"])
        return {"user": user, "tokens": {"access_token": self._issue_token(user), "token_type": "bearer"}}

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Вход пользователя и создание JWT токена"""
        record = await self.users.find_by_email(email)

        if record is None or not record.is_active or not verify_password(password, record.password_hash):
            logger.info("Failed login for %s", email)
            raise Unauthorized("Invalid credentials")

        user = self.users.sanitize(record)
        logger.info("User %s logged in", user["id"])
        return {"user": user, "tokens": {"access_token": self._issue_token(user), "token_type": "bearer"}}

    async def logout(self, token: str) -> None:
        """Отзыв токена до момента его истечения"""
        payload = verify_token(token)
        if payload is None:
            raise Unauthorized("Invalid token")

        await self.revoked.delete_many({"expires_at": {"$lt": utcnow()}})
        if not await self.is_revoked(payload["jti"]):
            await self.revoked.create({"jti": payload["jti"], "expires_at": token_expiry(payload)})
        logger.info("Token %s revoked for user %s", payload["jti"], payload.get("sub"))

    async def is_revoked(self, jti: str) -> bool:
        return await self.revoked.find_one({"jti": jti}) is not None

    async def get_actor_from_token(self, token: str) -> Optional[Actor]:
        """Получение текущего пользователя из JWT токена"""
        payload = verify_token(token)
        if payload is None:
            return None

        user_id = coerce_uuid(payload.get("sub"))
        if user_id is None or await self.is_revoked(payload["jti"]):
            return None

        user = await self.users.get_record(user_id)
        if user is None or not user.is_active:
            return None

        return Actor(id=user.id, role=Role(user.role))
