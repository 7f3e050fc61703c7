from contactbook.domains.crud.services import Action, AccessPolicy, CrudService, RequestContext
from contactbook.domains.crud.validators import PydanticValidator, ValidationResult, Validator

__all__ = [
    "Action", "AccessPolicy", "CrudService", "RequestContext",
    "PydanticValidator", "ValidationResult", "Validator"
]
