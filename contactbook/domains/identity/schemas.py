from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
from typing import Optional
from datetime import datetime
import uuid

from contactbook.domains.identity.entities import Role


def _check_username(v):
    if v is not None and not v.replace('_', '').replace('-', '').isalnum():
        raise ValueError('Username must contain only alphanumeric characters, underscores, and hyphens')
    return v


def _check_password(v):
    if v is None:
        return v
    if len(v) < 8:
        raise ValueError('Password must be at least 8 characters long')
    if not any(c.isupper() for c in v):
        raise ValueError('Password must contain at least one uppercase letter')
    if not any(c.islower() for c in v):
        raise ValueError('Password must contain at least one lowercase letter')
    if not any(c.isdigit() for c in v):
        raise ValueError('Password must contain at least one digit')
    return v


class UserBase(BaseModel):
    """Базовая схема пользователя"""
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=100)

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        return _check_username(v)


class UserCreate(UserBase):
    """Схема для создания пользователя"""
    password: str = Field(..., min_length=8, max_length=128)
    role: Role = Role.USER

    model_config = ConfigDict(extra="forbid")

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _check_password(v)


class UserUpdate(BaseModel):
    """Схема для обновления пользователя"""
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    role: Optional[Role] = None
    is_active: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator('username', 'email', 'role', 'is_active', mode='before')
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError('Field cannot be null')
        return v

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        return _check_username(v)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _check_password(v)


class UserLogin(BaseModel):
    """Схема для входа пользователя"""
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """Схема для ответа с данными пользователя"""
    id: uuid.UUID
    email: str
    username: str
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime
    created_by: Optional[uuid.UUID] = None
    updated_by: Optional[uuid.UUID] = None

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    """Схема для JWT токена"""
    access_token: str
    token_type: str = "bearer"


class AuthResponse(BaseModel):
    """Ответ регистрации и входа"""
    user: UserResponse
    tokens: Token
