from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
from typing import Optional, List
import uuid
from datetime import datetime


def _strip_required(v):
    if v is None or not v.strip():
        raise ValueError('Field cannot be empty')
    return v.strip()


class ContactBase(BaseModel):
    """Базовая схема контакта"""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=32)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=500)
    note: Optional[str] = Field(None, max_length=10000)

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v):
        return _strip_required(v)


class ContactCreate(ContactBase):
    """Схема для создания контакта"""
    owner_id: Optional[uuid.UUID] = None

    model_config = ConfigDict(extra="forbid")


class ContactUpdate(BaseModel):
    """Схема для частичного обновления контакта"""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=32)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=500)
    note: Optional[str] = Field(None, max_length=10000)
    owner_id: Optional[uuid.UUID] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v):
        return _strip_required(v)

    @field_validator('owner_id')
    @classmethod
    def validate_owner(cls, v):
        if v is None:
            raise ValueError('Owner cannot be removed')
        return v


class ContactResponse(ContactBase):
    """Схема для ответа с данными контакта"""
    id: uuid.UUID
    email: Optional[str] = None
    owner_id: uuid.UUID
    shared_with: List[uuid.UUID] = []
    created_at: datetime
    updated_at: datetime
    created_by: Optional[uuid.UUID] = None
    updated_by: Optional[uuid.UUID] = None

    model_config = ConfigDict(from_attributes=True)
