from typing import Any, Optional

from contactbook.domains.crud.services import AccessPolicy, Action
from contactbook.domains.identity.entities import Actor


class UserAccessPolicy(AccessPolicy):
    """Доступ к учетным записям.

    Анонимный пользователь может только зарегистрироваться, администратор
    может все, остальные не видят список и работают только со своей записью.
    """

    def allows(self, action: Action, actor: Optional[Actor], resource: Optional[Any]) -> bool:
        if actor is None:
            return action == Action.CREATE
        if actor.is_admin:
            return True
        if action == Action.LIST:
            return False
        if action == Action.CREATE:
            return True
        if resource is None:
            return True
        return resource.id == actor.id
