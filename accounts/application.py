"""Application factory wiring settings, storage and notifications together."""
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from .api import create_app
from .config import Settings, load_settings
from .database import Database
from .notifications import NotificationSender, build_notification_sender
from .service import UserAccountService


def build_service(
    settings: Settings,
    *,
    notifier: Optional[NotificationSender] = None,
) -> UserAccountService:
    """Return a service backed by an initialised SQLite database."""

    database = Database(settings.database_path)
    database.initialize()

    return UserAccountService(
        database,
        notifier or build_notification_sender(settings),
        strict_notifications=settings.strict_notifications,
    )


def create_application(
    settings: Optional[Settings] = None,
    *,
    notifier: Optional[NotificationSender] = None,
) -> FastAPI:
    """Create the ASGI application for the accounts service."""

    resolved = settings or load_settings()
    service = build_service(resolved, notifier=notifier)

    app = create_app(service=service)
    app.state.settings = resolved
    return app


__all__ = ["build_service", "create_application"]
