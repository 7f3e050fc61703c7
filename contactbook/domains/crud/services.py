import enum
import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence

from contactbook.core.errors import Forbidden, Unauthorized, ValidationFailed
from contactbook.db.repositories.store import SqlAlchemyStore, Filter
from contactbook.domains.crud.validators import Validator

if TYPE_CHECKING:
    from contactbook.domains.identity.entities import Actor

logger = logging.getLogger(__name__)

# Поля, которые выставляет только сервер
PROTECTED_FIELDS = ("id", "created_at", "created_by", "updated_at", "deleted_at")


class Action(str, enum.Enum):
    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class RequestContext:
    """Контекст вызова сервиса"""
    actor: Optional["Actor"] = None


class AccessPolicy:
    """Политика доступа к ресурсу одного типа.

    ``resource`` равен ``None`` для действий над классом ресурса
    (list/create) и для отсутствующей записи. Метод ``allows`` может быть
    как обычной функцией, так и корутиной.
    """

    requires_actor = False

    def allows(self, action: Action, actor: Optional["Actor"], resource: Optional[Any]) -> Any:
        return True


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


class CrudService:
    """Обобщенный CRUD-сервис: авторизация, валидация, сохранение, санитизация"""

    def __init__(
        self,
        store: SqlAlchemyStore,
        public_fields: Optional[Sequence[str]] = None,
        create_validator: Optional[Validator] = None,
        update_validator: Optional[Validator] = None,
        policy: Optional[AccessPolicy] = None,
        filterable_fields: Iterable[str] = (),
    ):
        self.store = store
        self.public_fields = list(public_fields) if public_fields is not None else None
        self.create_validator = create_validator
        self.update_validator = update_validator
        self.policy = policy
        self.filterable_fields = frozenset(filterable_fields)

    # --- вспомогательные методы ---

    async def _authorize(self, action: Action, ctx: RequestContext, resource: Optional[Any]) -> None:
        if self.policy is None:
            return
        if self.policy.requires_actor and ctx.actor is None:
            raise Unauthorized()
        allowed = await _maybe_await(self.policy.allows(action, ctx.actor, resource))
        if not allowed:
            logger.info("Denied %s on %s for %r", action.value, self.store.model.__name__, ctx.actor)
            raise Forbidden()

    async def _validate(self, validator: Optional[Validator], payload: Dict[str, Any]) -> Dict[str, Any]:
        # серверные поля из запроса молча отбрасываются
        payload = {key: value for key, value in (payload or {}).items() if key not in PROTECTED_FIELDS}
        if validator is None:
            return dict(payload)
        result = await _maybe_await(validator.validate(payload))
        if not result.success:
            raise ValidationFailed(result.errors)
        return dict(result.data or {})

    def _stamp(self, data: Dict[str, Any], ctx: RequestContext, creating: bool) -> Dict[str, Any]:
        for name in PROTECTED_FIELDS:
            data.pop(name, None)
        if ctx.actor is not None:
            if creating and self.store.has_field("created_by"):
                data["created_by"] = ctx.actor.id
            if self.store.has_field("updated_by"):
                data["updated_by"] = ctx.actor.id
        return data

    def sanitize(self, record: Optional[Any]) -> Optional[Dict[str, Any]]:
        """Проекция записи на публичные поля"""
        if record is None:
            return None
        obj = self.store.to_dict(record)
        if self.public_fields is None:
            return obj
        return {name: obj[name] for name in self.public_fields if name in obj}

    async def prepare(self, data: Dict[str, Any], ctx: RequestContext, creating: bool) -> Dict[str, Any]:
        """Преобразование проверенных данных перед сохранением"""
        return data

    def build_filter(self, params: Dict[str, Any]) -> Filter:
        """Фильтр по равенству из параметров запроса (только разрешенные поля)"""
        return {key: value for key, value in params.items() if key in self.filterable_fields}

    # --- операции ---

    async def create(self, payload: Dict[str, Any], ctx: RequestContext = RequestContext()) -> Dict[str, Any]:
        await self._authorize(Action.CREATE, ctx, None)
        data = await self._validate(self.create_validator, payload)
        data = await self.prepare(data, ctx, creating=True)
        data = self._stamp(data, ctx, creating=True)
        record = await self.store.create(data)
        return self.sanitize(record)

    async def find_all(self, filter: Optional[Filter] = None, ctx: RequestContext = RequestContext()) -> List[Dict[str, Any]]:
        await self._authorize(Action.LIST, ctx, None)
        records = await self.store.find(filter or {})
        return [self.sanitize(record) for record in records]

    async def find_by_id(self, record_id: Any, ctx: RequestContext = RequestContext()) -> Optional[Dict[str, Any]]:
        record = await self.store.find_by_id(record_id)
        await self._authorize(Action.READ, ctx, record)
        return self.sanitize(record)

    async def update(self, record_id: Any, payload: Dict[str, Any], ctx: RequestContext = RequestContext()) -> Optional[Dict[str, Any]]:
        existing = await self.store.find_by_id(record_id)
        await self._authorize(Action.UPDATE, ctx, existing)
        if existing is None:
            return None

        data = await self._validate(self.update_validator, payload)
        data = await self.prepare(data, ctx, creating=False)
        data = self._stamp(data, ctx, creating=False)
        updated = await self.store.find_one_and_update({"id": existing.id}, data)
        return self.sanitize(updated)

    async def remove(self, record_id: Any, ctx: RequestContext = RequestContext()) -> Optional[Dict[str, Any]]:
        existing = await self.store.find_by_id(record_id)
        await self._authorize(Action.DELETE, ctx, existing)
        if existing is None:
            return None

        snapshot = self.sanitize(existing)
        if self.store.supports_soft_delete:
            actor_id = ctx.actor.id if ctx.actor is not None else None
            await self.store.soft_delete({"id": existing.id}, actor_id=actor_id)
        else:
            await self.store.delete_one({"id": existing.id})
        return snapshot
