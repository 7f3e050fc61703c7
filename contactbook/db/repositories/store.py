from typing import Any, Dict, Iterable, List, Optional, Type
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, and_, or_, true, inspect as sa_inspect
from sqlalchemy.exc import IntegrityError
import uuid

from contactbook.core.errors import Conflict
from contactbook.db.base import utcnow

Filter = Dict[str, Any]

_OPERATORS = {
    "$in": lambda col, v: col.in_(list(v)),
    "$nin": lambda col, v: col.not_in(list(v)),
    "$ne": lambda col, v: col.is_not(None) if v is None else col != v,
    "$lt": lambda col, v: col < v,
    "$lte": lambda col, v: col <= v,
    "$gt": lambda col, v: col > v,
    "$gte": lambda col, v: col >= v,
}


class SqlAlchemyStore:
    """Хранилище документов одной коллекции поверх асинхронной сессии SQLAlchemy.

    Фильтры задаются словарями в стиле MongoDB:
    ``{"owner_id": uid}``, ``{"id": {"$in": [...]}}``,
    ``{"$or": [{...}, {...}]}``, ``{"$and": [...]}``.
    Записи с заполненным ``deleted_at`` не видны ни одной операции чтения.
    """

    def __init__(self, model: Type[Any], session: AsyncSession):
        self.model = model
        self.session = session
        self._columns = {attr.key: attr for attr in sa_inspect(model).column_attrs}

    @property
    def fields(self) -> List[str]:
        return list(self._columns)

    def has_field(self, name: str) -> bool:
        return name in self._columns

    @property
    def supports_soft_delete(self) -> bool:
        return self.has_field("deleted_at")

    def to_dict(self, record: Any) -> Dict[str, Any]:
        """Плоская проекция записи (без изменения самой записи)"""
        if isinstance(record, dict):
            return dict(record)
        return {key: getattr(record, key) for key in self._columns}

    # --- фильтры ---

    def _column(self, name: str):
        if name not in self._columns:
            raise ValueError(f"Unknown field for {self.model.__name__}: {name}")
        return getattr(self.model, name)

    def _compile(self, filter: Optional[Filter]):
        conditions = []
        for key, value in (filter or {}).items():
            if key == "$or":
                conditions.append(or_(*[self._compile(sub) for sub in value]))
            elif key == "$and":
                conditions.append(and_(*[self._compile(sub) for sub in value]))
            elif isinstance(value, dict):
                col = self._column(key)
                for op, operand in value.items():
                    if op not in _OPERATORS:
                        raise ValueError(f"Unsupported filter operator: {op}")
                    conditions.append(_OPERATORS[op](col, operand))
            elif value is None:
                conditions.append(self._column(key).is_(None))
            else:
                conditions.append(self._column(key) == value)
        return and_(true(), *conditions)

    def _where(self, filter: Optional[Filter]):
        clause = self._compile(filter)
        if self.supports_soft_delete:
            clause = and_(clause, self.model.deleted_at.is_(None))
        return clause

    # --- операции ---

    async def create(self, data: Dict[str, Any]) -> Any:
        """Создание новой записи"""
        record = self.model(**data)
        self.session.add(record)
        await self._commit()
        await self.session.refresh(record)
        return record

    async def insert_many(self, items: Iterable[Dict[str, Any]]) -> List[Any]:
        """Пакетная вставка записей одной транзакцией"""
        records = [self.model(**item) for item in items]
        if not records:
            return []
        self.session.add_all(records)
        await self._commit()
        return records

    async def find_by_id(self, record_id: Any) -> Optional[Any]:
        record_id = coerce_uuid(record_id)
        if record_id is None:
            return None
        return await self.find_one({"id": record_id})

    async def find_one(self, filter: Optional[Filter] = None) -> Optional[Any]:
        result = await self.session.execute(select(self.model).where(self._where(filter)).limit(1))
        return result.scalar_one_or_none()

    async def find(self, filter: Optional[Filter] = None, order_by: Optional[str] = None) -> List[Any]:
        stmt = select(self.model).where(self._where(filter))
        if order_by:
            stmt = stmt.order_by(self._column(order_by))
        elif self.has_field("created_at"):
            stmt = stmt.order_by(self.model.created_at)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_one_and_update(self, filter: Filter, patch: Dict[str, Any]) -> Optional[Any]:
        """Обновление первой подходящей записи; возвращает новое состояние"""
        record = await self.find_one(filter)
        if record is None:
            return None
        for key, value in patch.items():
            self._column(key)
            setattr(record, key, value)
        await self._commit()
        await self.session.refresh(record)
        return record

    async def delete_one(self, filter: Filter) -> bool:
        record = await self.find_one(filter)
        if record is None:
            return False
        await self.session.delete(record)
        await self._commit()
        return True

    async def delete_many(self, filter: Filter) -> int:
        result = await self.session.execute(
            delete(self.model).where(self._compile(filter)).execution_options(synchronize_session="fetch")
        )
        await self._commit()
        return result.rowcount or 0

    async def distinct(self, field: str, filter: Optional[Filter] = None) -> List[Any]:
        col = self._column(field)
        result = await self.session.execute(select(col).where(self._where(filter)).distinct())
        return list(result.scalars().all())

    async def soft_delete(self, filter: Filter, actor_id: Any = None) -> Optional[Any]:
        patch = {"deleted_at": utcnow()}
        if actor_id is not None and self.has_field("updated_by"):
            patch["updated_by"] = actor_id
        return await self.find_one_and_update(filter, patch)

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if _is_unique_violation(e):
                raise Conflict(f"{self.model.__name__} violates a uniqueness constraint") from e
            raise


def _is_unique_violation(error: IntegrityError) -> bool:
    # 23505: unique_violation в PostgreSQL; SQLite сообщает "UNIQUE constraint failed"
    orig = error.orig
    if getattr(orig, "sqlstate", None) == "23505" or getattr(orig, "pgcode", None) == "23505":
        return True
    return "unique" in str(orig).lower()


def coerce_uuid(value: Any) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None
