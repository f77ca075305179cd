"""Domain models for the account service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UserAccount:
    """Represents a user account stored in the accounts database."""

    id: int
    email: str
    username: str
    created_at: datetime


__all__ = ["UserAccount"]
