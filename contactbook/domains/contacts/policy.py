from typing import Any, Optional

from contactbook.db.repositories.store import SqlAlchemyStore
from contactbook.domains.crud.services import AccessPolicy, Action
from contactbook.domains.identity.entities import Actor


class ContactAccessPolicy(AccessPolicy):
    """Доступ к контактам.

    - create/list: любой аутентифицированный пользователь
      (список фильтруется по видимости, а не запрещается);
    - read: владелец или пользователь, с которым контакт расшарен;
    - update/delete: только владелец;
    - отсутствующая запись не защищается: сервис вернет None (404).
    """

    requires_actor = True

    def __init__(self, shares: SqlAlchemyStore):
        self.shares = shares

    async def allows(self, action: Action, actor: Optional[Actor], resource: Optional[Any]) -> bool:
        if actor is None:
            return False

        if action in (Action.CREATE, Action.LIST):
            return True

        if resource is None:
            return True

        if resource.owner_id == actor.id:
            return True

        if action == Action.READ:
            return await self.is_shared_with(resource.id, actor.id)

        return False

    async def is_shared_with(self, contact_id, user_id) -> bool:
        share = await self.shares.find_one({"contact_id": contact_id, "user_id": user_id})
        return share is not None
