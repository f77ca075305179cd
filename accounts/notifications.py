"""Verification notifications sent when an account is created."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Optional, Protocol

import httpx

from .models import UserAccount

if TYPE_CHECKING:  # pragma: no cover
    from .config import Settings

logger = logging.getLogger("accounts.notifications")

VERIFICATION_EVENT = "account.verification_requested"


class NotificationDeliveryError(RuntimeError):
    """Raised when a verification notification could not be delivered."""


class NotificationSender(Protocol):
    async def send_verification(self, account: UserAccount) -> None: ...


def _verification_payload(account: UserAccount) -> Dict[str, object]:
    return {
        "event": VERIFICATION_EVENT,
        "account": {
            "id": account.id,
            "email": account.email,
            "username": account.username,
        },
    }


class LoggingNotificationSender:
    """Record verification requests in the service log only."""

    async def send_verification(self, account: UserAccount) -> None:
        logger.info(
            "Verification requested for user %s <%s>; no webhook configured",
            account.id,
            account.email,
        )


class WebhookNotificationSender:
    """Deliver verification requests to an HTTP endpoint that sends the email."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        cleaned = url.strip()
        if not cleaned:
            raise ValueError("Webhook URL must not be empty")
        self._url = cleaned
        self._timeout = timeout
        self._client = client

    @property
    def url(self) -> str:
        return self._url

    async def send_verification(self, account: UserAccount) -> None:
        payload = _verification_payload(account)
        if self._client is not None:
            response = await self._post(self._client, payload)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await self._post(client, payload)

        if response.status_code >= 400:
            raise NotificationDeliveryError(
                f"Verification webhook responded with {response.status_code}: {response.text.strip()}"
            )

        logger.info("Verification requested for user %s via %s", account.id, self._url)

    async def _post(self, client: httpx.AsyncClient, payload: Dict[str, object]) -> httpx.Response:
        try:
            return await client.post(self._url, json=payload, timeout=self._timeout)
        except httpx.HTTPError as exc:
            raise NotificationDeliveryError(f"Failed to contact verification webhook: {exc}") from exc


def build_notification_sender(settings: "Settings") -> NotificationSender:
    """Return the sender implied by ``settings``."""

    if settings.verification_webhook_url:
        return WebhookNotificationSender(
            settings.verification_webhook_url,
            timeout=settings.notification_timeout,
        )
    return LoggingNotificationSender()


__all__ = [
    "LoggingNotificationSender",
    "NotificationDeliveryError",
    "NotificationSender",
    "VERIFICATION_EVENT",
    "WebhookNotificationSender",
    "build_notification_sender",
]
