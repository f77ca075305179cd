"""User account management service."""

from __future__ import annotations

from typing import Any

from .database import Database, resolve_database_path


def create_application(*args: Any, **kwargs: Any):
    """Factory function that returns the accounts HTTP application."""

    from .application import create_application as _create_application

    return _create_application(*args, **kwargs)


__all__ = [
    "Database",
    "resolve_database_path",
    "create_application",
]
