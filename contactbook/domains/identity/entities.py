import enum
import uuid
from dataclasses import dataclass


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """Аутентифицированный пользователь, выполняющий запрос"""
    id: uuid.UUID
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def __repr__(self) -> str:
        return f"Actor(id={self.id}, role={self.role.value})"
