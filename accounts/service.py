"""Account workflow: validate, enforce uniqueness, persist and notify."""

from __future__ import annotations

import logging
from typing import List, Mapping, Union

from .database import DUPLICATE_EMAIL_MESSAGE, UserStore
from .errors import (
    ConflictError,
    NotFoundError,
    NotificationError,
    UnknownError,
    ValidationError,
)
from .models import UserAccount
from .notifications import NotificationSender
from .schemas import CreateAccountRequest, EditAccountRequest, parse_request

logger = logging.getLogger("accounts.service")

Identifier = Union[int, str]


def _missing_id_message(account_id: int) -> str:
    return f"Id {account_id} is incorrect or does not exist"


class UserAccountService:
    """Create, list, look up, edit and delete user accounts."""

    def __init__(
        self,
        store: UserStore,
        notifier: NotificationSender,
        *,
        strict_notifications: bool = False,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._strict_notifications = strict_notifications

    async def create_account(
        self,
        request: Union[CreateAccountRequest, Mapping[str, object]],
    ) -> UserAccount:
        """Persist a new account and request its verification email.

        Validation and uniqueness failures propagate as :class:`ValidationError`
        and :class:`ConflictError`. A failed notification is logged and ignored
        unless the service is strict, in which case it raises
        :class:`NotificationError`; the account is kept either way. Anything
        else is reported as :class:`UnknownError`.
        """

        try:
            data = parse_request(CreateAccountRequest, request)

            if self._store.find_one(email=data.email) is not None:
                raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

            account = self._store.create(
                email=data.email,
                username=data.username,
                password=data.password,
            )
            logger.info("Created user %s <%s>", account.id, account.email)

            await self._notify(account)
            return account
        except (ValidationError, ConflictError, NotificationError):
            raise
        except Exception as exc:
            logger.exception("Unexpected failure while creating user account")
            raise UnknownError() from exc

    async def list_accounts(self) -> List[UserAccount]:
        return self._store.list_accounts()

    async def find_account(self, identifier: Identifier) -> UserAccount:
        """Look up an account by numeric id or by username."""

        if isinstance(identifier, bool) or not isinstance(identifier, (int, str)):
            raise TypeError("identifier must be an integer id or a username string")

        if isinstance(identifier, int):
            account = self._store.find_one(id=identifier)
        else:
            account = self._store.find_one(username=identifier)

        if account is None:
            raise NotFoundError(f"User with identifier {identifier} is incorrect or does not exist")
        return account

    async def edit_account(
        self,
        account_id: int,
        request: Union[EditAccountRequest, Mapping[str, object]],
    ) -> UserAccount:
        """Change the username of an existing account."""

        data = parse_request(EditAccountRequest, request)

        if self._store.find_one(id=account_id) is None:
            raise NotFoundError(_missing_id_message(account_id))

        self._store.update(account_id, username=data.username)

        refreshed = self._store.find_one(id=account_id)
        if refreshed is None:
            raise NotFoundError(_missing_id_message(account_id))

        logger.info("Updated username for user %s", account_id)
        return refreshed

    async def delete_account(self, account_id: int) -> None:
        affected = self._store.delete(account_id)
        if affected == 0:
            raise NotFoundError(_missing_id_message(account_id))
        logger.info("Deleted user %s", account_id)

    async def _notify(self, account: UserAccount) -> None:
        try:
            await self._notifier.send_verification(account)
        except Exception as exc:
            if self._strict_notifications:
                logger.warning("Verification for user %s could not be sent: %s", account.id, exc)
                raise NotificationError(
                    f"User {account.id} was created but the verification message could not be sent"
                ) from exc
            logger.exception("Verification for user %s could not be sent; continuing", account.id)


__all__ = ["Identifier", "UserAccountService"]
