from dataclasses import dataclass, asdict
from typing import Any, List, Optional


@dataclass(frozen=True)
class FieldError:
    """Ошибка валидации конкретного поля"""
    path: str
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


class ServiceError(Exception):
    """Базовая ошибка сервисного слоя"""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class Unauthorized(ServiceError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ServiceError, PermissionError):
    status_code = 403
    default_message = "Forbidden"


class ValidationFailed(ServiceError, ValueError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: List[FieldError], message: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(message, details=[e.to_dict() for e in self.errors])


class Conflict(ServiceError, ValueError):
    status_code = 409
    default_message = "Conflict"
