"""Configuration management for the accounts service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import resolve_database_path

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

DEFAULT_NOTIFICATION_TIMEOUT = 10.0


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the accounts service."""

    database_path: Path
    verification_webhook_url: Optional[str] = None
    notification_timeout: float = DEFAULT_NOTIFICATION_TIMEOUT
    strict_notifications: bool = False


def _parse_flag(value: object, name: str) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value {value!r} for {name}")


def _parse_timeout(value: object, name: str) -> float:
    try:
        timeout = float(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid number {value!r} for {name}") from exc
    if timeout <= 0:
        raise ValueError(f"{name} must be greater than zero")
    return timeout


def load_config_file(config_path: Path) -> Dict[str, object]:
    """Load the ``accounts`` section of a YAML configuration file."""

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")

    section = raw.get("accounts", {}) or {}
    if not isinstance(section, dict):
        raise ValueError("The 'accounts' section of the configuration file must be a mapping")

    config_dir = config_path.parent
    database_path = section.get("database_path")
    if database_path:
        candidate = Path(str(database_path)).expanduser()
        if not candidate.is_absolute():
            candidate = config_dir / candidate
        section["database_path"] = str(candidate.resolve(strict=False))
    return section


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from an optional YAML file and the environment."""

    environ = os.environ if env is None else env
    values: Dict[str, object] = {}

    config_file = environ.get("ACCOUNTS_CONFIG")
    if config_file:
        values.update(load_config_file(Path(config_file).expanduser().resolve(strict=False)))

    if environ.get("ACCOUNTS_DB_PATH"):
        values["database_path"] = environ["ACCOUNTS_DB_PATH"]
    if environ.get("ACCOUNTS_VERIFICATION_WEBHOOK") is not None:
        values["verification_webhook_url"] = environ["ACCOUNTS_VERIFICATION_WEBHOOK"]
    if environ.get("ACCOUNTS_NOTIFICATION_TIMEOUT"):
        values["notification_timeout"] = environ["ACCOUNTS_NOTIFICATION_TIMEOUT"]
    if environ.get("ACCOUNTS_STRICT_NOTIFICATIONS"):
        values["strict_notifications"] = environ["ACCOUNTS_STRICT_NOTIFICATIONS"]

    database_path = values.get("database_path")
    webhook = values.get("verification_webhook_url")
    webhook_url = str(webhook).strip() if webhook else ""

    return Settings(
        database_path=resolve_database_path(str(database_path) if database_path else None),
        verification_webhook_url=webhook_url or None,
        notification_timeout=_parse_timeout(
            values.get("notification_timeout", DEFAULT_NOTIFICATION_TIMEOUT),
            "notification_timeout",
        ),
        strict_notifications=_parse_flag(
            values.get("strict_notifications", False),
            "strict_notifications",
        ),
    )


__all__ = ["Settings", "load_config_file", "load_settings"]
