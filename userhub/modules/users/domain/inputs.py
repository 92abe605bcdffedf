"""
User Input Records

Request payloads accepted by the user service, with validation functions
that turn pydantic errors into a flat, per-field error list.
"""
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic import ValidationError as PydanticValidationError

from userhub.modules.users.domain.user import UserStatus

NAME_MIN_LENGTH = 2
PASSWORD_MIN_LENGTH = 8


class CreateUserInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    name: str = Field(min_length=NAME_MIN_LENGTH)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    status: UserStatus = UserStatus.PENDING


class UpdateUserInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: Optional[EmailStr] = None
    name: Optional[str] = Field(default=None, min_length=NAME_MIN_LENGTH)
    password: Optional[str] = Field(default=None, min_length=PASSWORD_MIN_LENGTH)
    status: Optional[UserStatus] = None

    def supplied_fields(self) -> Dict[str, Any]:
        """Fields the caller actually set. An explicit null counts as not supplied."""
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}


class UpdateUserStatusInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: UserStatus


_FIELD_MESSAGES = {
    "email": "Please provide a valid email address",
    "name": f"Name must be at least {NAME_MIN_LENGTH} characters long",
    "password": f"Password must be at least {PASSWORD_MIN_LENGTH} characters long",
    "status": "Status must be one of: " + ", ".join(s.value for s in UserStatus),
}

ModelT = TypeVar("ModelT", bound=BaseModel)


def format_errors(exc, prefix: Tuple = ()) -> List[Dict[str, Any]]:
    """Flatten a pydantic or FastAPI request ValidationError into [{field, message, location}]."""
    errors = []
    for err in exc.errors():
        loc = tuple(prefix) + tuple(err.get("loc", ()))
        field_parts = [str(p) for p in loc if not isinstance(p, int)]
        field = field_parts[-1] if field_parts else "body"
        if err.get("type") == "missing":
            message = "Field required"
        elif err.get("type") == "extra_forbidden":
            message = "Unknown field"
        else:
            message = _FIELD_MESSAGES.get(field, err.get("msg", "Invalid value"))
        errors.append({"field": field, "message": message, "location": list(loc)})
    return errors


def _validate(model: Type[ModelT], payload: Union[ModelT, Mapping[str, Any]]) -> Tuple[Optional[ModelT], List[Dict[str, Any]]]:
    if isinstance(payload, model):
        return payload, []
    try:
        return model.model_validate(payload), []
    except PydanticValidationError as e:
        return None, format_errors(e)


def validate_create_input(payload) -> Tuple[Optional[CreateUserInput], List[Dict[str, Any]]]:
    """Validate a create payload. Returns (record, []) or (None, errors)."""
    return _validate(CreateUserInput, payload)


def validate_update_input(payload) -> Tuple[Optional[UpdateUserInput], List[Dict[str, Any]]]:
    """Validate a partial update payload. Returns (record, []) or (None, errors)."""
    return _validate(UpdateUserInput, payload)


def validate_status_input(payload) -> Tuple[Optional[UpdateUserStatusInput], List[Dict[str, Any]]]:
    return _validate(UpdateUserStatusInput, payload)
