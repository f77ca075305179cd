"""FastAPI application exposing the account service over JSON."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import Body, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .errors import AccountError, ValidationError
from .models import UserAccount
from .service import UserAccountService

logger = logging.getLogger("accounts.api")

USER_CREATED_MESSAGE = "User created successfully"
USER_UPDATED_MESSAGE = "User updated successfully"
USER_REMOVED_MESSAGE = "User removed successfully"


class UserResponse(BaseModel):
    id: int
    email: str
    username: str
    created_at: datetime


class UserListResponse(BaseModel):
    users: List[UserResponse]


class MessageResponse(BaseModel):
    message: str


class UserMessageResponse(MessageResponse):
    user: UserResponse


def _to_response(account: UserAccount) -> UserResponse:
    return UserResponse(
        id=account.id,
        email=account.email,
        username=account.username,
        created_at=account.created_at,
    )


def _coerce_identifier(raw: str) -> Union[int, str]:
    """Treat purely numeric path segments as ids and anything else as a username."""

    stripped = raw.strip()
    if stripped.isascii() and stripped.isdigit():
        return int(stripped)
    return raw


def _request_validation_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    errors: List[Dict[str, str]] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        errors.append({"field": location or "__root__", "message": str(error.get("msg", "invalid value"))})
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    """Translate account errors into JSON responses with their HTTP status."""

    @app.exception_handler(AccountError)
    async def handle_account_error(request: Request, exc: AccountError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError("Validation failed", errors=_request_validation_errors(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_api_routes(app: FastAPI, service: UserAccountService) -> None:
    """Expose the account endpoints on the provided FastAPI application."""

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post(
        "/v1/users",
        status_code=status.HTTP_201_CREATED,
        response_model=UserMessageResponse,
    )
    async def create_user(payload: Any = Body(...)) -> UserMessageResponse:
        account = await service.create_account(payload)
        return UserMessageResponse(message=USER_CREATED_MESSAGE, user=_to_response(account))

    @app.get("/v1/users", response_model=UserListResponse)
    async def list_users() -> UserListResponse:
        accounts = await service.list_accounts()
        return UserListResponse(users=[_to_response(account) for account in accounts])

    @app.get("/v1/users/{identifier}", response_model=UserResponse)
    async def get_user(identifier: str) -> UserResponse:
        account = await service.find_account(_coerce_identifier(identifier))
        return _to_response(account)

    @app.patch("/v1/users/{user_id}", response_model=UserMessageResponse)
    async def edit_user(user_id: int, payload: Any = Body(...)) -> UserMessageResponse:
        account = await service.edit_account(user_id, payload)
        return UserMessageResponse(message=USER_UPDATED_MESSAGE, user=_to_response(account))

    @app.delete("/v1/users/{user_id}", response_model=MessageResponse)
    async def delete_user(user_id: int) -> MessageResponse:
        await service.delete_account(user_id)
        return MessageResponse(message=USER_REMOVED_MESSAGE)


def create_app(
    *,
    service: UserAccountService,
    title: Optional[str] = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the account service."""

    app = FastAPI(
        title=title or "User Accounts API",
        version="0.1.0",
        description="Create, list, look up, edit and delete user accounts.",
    )
    app.state.service = service

    register_exception_handlers(app)
    register_api_routes(app, service)

    return app


__all__ = [
    "MessageResponse",
    "UserListResponse",
    "UserMessageResponse",
    "UserResponse",
    "create_app",
]
