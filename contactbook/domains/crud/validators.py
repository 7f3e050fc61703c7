from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Type, Union, Awaitable
from pydantic import BaseModel, ValidationError

from contactbook.core.errors import FieldError


@dataclass
class ValidationResult:
    success: bool
    data: Optional[Dict[str, Any]] = None
    errors: List[FieldError] = field(default_factory=list)


class Validator(Protocol):
    def validate(self, payload: Any) -> Union[ValidationResult, Awaitable[ValidationResult]]:
        ...


def _path(loc) -> str:
    return ".".join(str(part) for part in loc) or "__root__"


class PydanticValidator:
    """Валидатор входных данных на основе pydantic-схемы.

    ``partial=True`` оставляет в результате только явно переданные поля,
    поэтому не указанные в запросе поля записи не затрагиваются.
    """

    def __init__(self, schema: Type[BaseModel], partial: bool = False):
        self.schema = schema
        self.partial = partial

    def validate(self, payload: Any) -> ValidationResult:
        try:
            parsed = self.schema.model_validate(payload)
        except ValidationError as e:
            errors = [FieldError(path=_path(err["loc"]), message=err["msg"]) for err in e.errors()]
            return ValidationResult(success=False, errors=errors)

        data = parsed.model_dump(exclude_unset=self.partial)
        return ValidationResult(success=True, data=data)
