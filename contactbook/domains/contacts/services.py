import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from contactbook.core.errors import FieldError, Unauthorized, ValidationFailed
from contactbook.db.models import Contact, ContactShare
from contactbook.db.repositories.store import SqlAlchemyStore, Filter, coerce_uuid
from contactbook.domains.contacts.policy import ContactAccessPolicy
from contactbook.domains.contacts.schemas import ContactCreate, ContactUpdate
from contactbook.domains.crud.services import Action, CrudService, RequestContext
from contactbook.domains.crud.validators import PydanticValidator
from contactbook.domains.identity.entities import Actor

logger = logging.getLogger(__name__)

CONTACT_PUBLIC_FIELDS = [
    "id",
    "first_name",
    "last_name",
    "phone_number",
    "email",
    "address",
    "note",
    "owner_id",
    "created_at",
    "updated_at",
    "created_by",
    "updated_by",
]

CONTACT_FILTERABLE_FIELDS = ["first_name", "last_name", "email", "phone_number"]


@dataclass
class ShareDiff:
    """Результат синхронизации списка доступа"""
    added: List[uuid.UUID] = field(default_factory=list)
    removed: List[uuid.UUID] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


class ContactsService(CrudService):
    """Сервис контактов с совместным доступом"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.shares = SqlAlchemyStore(ContactShare, session)
        super().__init__(
            SqlAlchemyStore(Contact, session),
            public_fields=CONTACT_PUBLIC_FIELDS,
            create_validator=PydanticValidator(ContactCreate),
            update_validator=PydanticValidator(ContactUpdate, partial=True),
            policy=ContactAccessPolicy(self.shares),
            filterable_fields=CONTACT_FILTERABLE_FIELDS,
        )

    def _ensure_actor(self, ctx: RequestContext) -> Actor:
        if ctx.actor is None:
            raise Unauthorized()
        return ctx.actor

    @staticmethod
    def _split_shared_with(payload: Dict[str, Any]):
        """Отделяет shared_with от полей контакта (без проверки типа)"""
        data = dict(payload or {})
        present = "shared_with" in data
        shared_with = data.pop("shared_with", None)
        return data, present, [] if shared_with is None else shared_with

    async def _validate(self, validator, payload: Dict[str, Any]) -> Dict[str, Any]:
        # вызывается базовым сервисом после авторизации
        data, _, shared_with = self._split_shared_with(payload)
        errors = []
        if not isinstance(shared_with, (list, tuple)):
            errors.append(FieldError(path="shared_with", message="Input should be a valid list"))
        try:
            validated = await super()._validate(validator, data)
        except ValidationFailed as e:
            raise ValidationFailed(e.errors + errors) from e
        if errors:
            raise ValidationFailed(errors)
        return validated

    async def map_shares(self, contact_ids: List[Any]) -> Dict[uuid.UUID, List[uuid.UUID]]:
        """Пользователи с доступом, сгруппированные по контакту (один запрос)"""
        if not contact_ids:
            return {}
        shares = await self.shares.find({"contact_id": {"$in": list(contact_ids)}})
        grouped: Dict[uuid.UUID, List[uuid.UUID]] = defaultdict(list)
        for share in shares:
            grouped[share.contact_id].append(share.user_id)
        return dict(grouped)

    @staticmethod
    def _attach(contact: Optional[Dict[str, Any]], shares: Dict[uuid.UUID, List[uuid.UUID]]):
        if contact is None:
            return None
        contact["shared_with"] = list(shares.get(contact["id"], []))
        return contact

    async def _with_shares(self, contact: Optional[Dict[str, Any]]):
        if contact is None:
            return None
        return self._attach(contact, await self.map_shares([contact["id"]]))

    # --- операции ---

    async def find_all(self, filter: Optional[Filter] = None, ctx: RequestContext = RequestContext()) -> List[Dict[str, Any]]:
        actor = self._ensure_actor(ctx)
        await self._authorize(Action.LIST, ctx, None)

        shared_ids = await self.shares.distinct("contact_id", {"user_id": actor.id})

        visible: List[Filter] = [{"owner_id": actor.id}]
        if shared_ids:
            visible.append({"id": {"$in": shared_ids}})

        query: Filter = {"$or": visible}
        if filter:
            query = {"$and": [dict(filter), query]}

        records = await self.store.find(query)
        contacts = [self.sanitize(record) for record in records]
        shares = await self.map_shares([c["id"] for c in contacts])
        return [self._attach(c, shares) for c in contacts]

    async def find_by_id(self, record_id: Any, ctx: RequestContext = RequestContext()) -> Optional[Dict[str, Any]]:
        self._ensure_actor(ctx)
        contact = await super().find_by_id(record_id, ctx)
        return await self._with_shares(contact)

    async def create(self, payload: Dict[str, Any], ctx: RequestContext = RequestContext()) -> Dict[str, Any]:
        actor = self._ensure_actor(ctx)
        data = dict(payload or {})
        if data.get("owner_id") is None:
            data["owner_id"] = actor.id

        created = await super().create(data, ctx)
        _, _, shared_with = self._split_shared_with(payload)

        if shared_with:
            await self.reconcile_shares(created["id"], shared_with, created["owner_id"], actor.id)

        return await self._with_shares(created)

    async def update(self, record_id: Any, payload: Dict[str, Any], ctx: RequestContext = RequestContext()) -> Optional[Dict[str, Any]]:
        actor = self._ensure_actor(ctx)
        updated = await super().update(record_id, payload, ctx)
        if updated is None:
            return None

        data, has_shared_with, shared_with = self._split_shared_with(payload)

        if has_shared_with:
            await self.reconcile_shares(updated["id"], shared_with, updated["owner_id"], actor.id)
        elif "owner_id" in data:
            # новый владелец не может одновременно быть получателем доступа
            await self.shares.delete_many({"contact_id": updated["id"], "user_id": updated["owner_id"]})

        return await self._with_shares(updated)

    async def remove(self, record_id: Any, ctx: RequestContext = RequestContext()) -> Optional[Dict[str, Any]]:
        self._ensure_actor(ctx)
        deleted = await super().remove(record_id, ctx)
        if deleted is None:
            return None

        removed = await self.shares.delete_many({"contact_id": deleted["id"]})
        logger.info("Contact %s removed, %d share(s) dropped", deleted["id"], removed)
        return self._attach(deleted, {})

    async def reconcile_shares(
        self,
        contact_id: Any,
        target_user_ids: List[Any],
        owner_id: Optional[Any],
        shared_by: Optional[Any] = None,
    ) -> ShareDiff:
        """Приводит записи доступа контакта к целевому списку пользователей.

        Добавляются только недостающие записи и удаляются только лишние;
        совпадающие записи не трогаются (сохраняются shared_by и даты).
        Владелец и некорректные идентификаторы отбрасываются.
        """
        contact_id = coerce_uuid(contact_id)
        owner = coerce_uuid(owner_id) if owner_id is not None else None

        normalized: List[uuid.UUID] = []
        seen = set()
        for raw in target_user_ids:
            user_id = coerce_uuid(raw)
            if user_id is None or user_id == owner or user_id in seen:
                continue
            seen.add(user_id)
            normalized.append(user_id)

        existing = await self.shares.find({"contact_id": contact_id})
        existing_users = {share.user_id for share in existing}

        diff = ShareDiff(
            added=[user_id for user_id in normalized if user_id not in existing_users],
            removed=[share.user_id for share in existing if share.user_id not in seen],
        )

        if diff.added:
            await self.shares.insert_many(
                {"contact_id": contact_id, "user_id": user_id, "shared_by": shared_by}
                for user_id in diff.added
            )

        if diff.removed:
            await self.shares.delete_many({"contact_id": contact_id, "user_id": {"$in": diff.removed}})

        if diff.changed:
            logger.info(
                "Shares for contact %s reconciled: +%d -%d",
                contact_id, len(diff.added), len(diff.removed),
            )
        return diff
