"""Request schemas for account operations."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

RequestT = TypeVar("RequestT", bound=BaseModel)


def _require_text(value: str, field: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{field} must not be empty")
    return stripped


class CreateAccountRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _accept_password_credential(cls, data: Any) -> Any:
        if isinstance(data, dict) and "passwordCredential" in data and "password" not in data:
            data = dict(data)
            data["password"] = data.pop("passwordCredential")
        return data

    @field_validator("username")
    @classmethod
    def _normalize_username(cls, value: str) -> str:
        return _require_text(value, "username")

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class EditAccountRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str = Field(..., min_length=1, max_length=64)

    @field_validator("username")
    @classmethod
    def _normalize_username(cls, value: str) -> str:
        return _require_text(value, "username")


def _field_errors(exc: PydanticValidationError) -> List[Dict[str, str]]:
    errors: List[Dict[str, str]] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        errors.append({"field": location or "__root__", "message": str(error.get("msg", "invalid value"))})
    return errors


def parse_request(model: Type[RequestT], payload: object) -> RequestT:
    """Return ``payload`` as an instance of ``model`` or raise :class:`ValidationError`."""

    if isinstance(payload, model):
        return payload
    if not isinstance(payload, Mapping):
        raise ValidationError(
            "Validation failed",
            errors=[{"field": "__root__", "message": "request body must be an object"}],
        )
    try:
        return model.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise ValidationError("Validation failed", errors=_field_errors(exc)) from exc


__all__ = ["CreateAccountRequest", "EditAccountRequest", "parse_request"]
