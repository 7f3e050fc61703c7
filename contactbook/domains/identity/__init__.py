from contactbook.domains.identity.entities import Actor, Role
from contactbook.domains.identity.schemas import (
    UserBase, UserCreate, UserUpdate, UserLogin, UserResponse, Token, AuthResponse
)
from contactbook.domains.identity.policy import UserAccessPolicy
from contactbook.domains.identity.services import IdentityService, UsersService

__all__ = [
    "Actor", "Role",
    "UserBase", "UserCreate", "UserUpdate", "UserLogin", "UserResponse", "Token", "AuthResponse",
    "UserAccessPolicy",
    "IdentityService", "UsersService"
]
