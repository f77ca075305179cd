"""Command-line interface for the user accounts service."""

from __future__ import annotations
import argparse
import logging
import sys
from dataclasses import replace
from getpass import getpass
from pathlib import Path
from typing import Sequence

import anyio

from accounts.config import Settings, load_settings
from accounts.errors import AccountError
from accounts.service import UserAccountService

logger = logging.getLogger("accounts.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to ACCOUNTS_DB_PATH or data/accounts.sqlite3)",
    )

    parser = argparse.ArgumentParser(description="User accounts service utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", parents=[common], help="Initialise the accounts database")
    subparsers.add_parser("list-users", parents=[common], help="Print every registered user")

    create_parser = subparsers.add_parser(
        "create-user", parents=[common], help="Register a new user account"
    )
    create_parser.add_argument("email", help="Unique email address for the account")
    create_parser.add_argument("username", help="Display name for the account")

    serve_parser = subparsers.add_parser(
        "serve", parents=[common], help="Start the HTTP accounts service"
    )
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the HTTP API (default: 8000)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "list-users", "create-user"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _resolve_settings(db_path: str | None) -> Settings:
    settings = load_settings()
    if db_path:
        settings = replace(settings, database_path=Path(db_path).expanduser().resolve(strict=False))
    return settings


def _build_service(settings: Settings) -> UserAccountService:
    from accounts.application import build_service

    service = build_service(settings)
    logger.info("Database initialised at %s", settings.database_path)
    return service


def _serve(settings: Settings, *, host: str, port: int) -> None:
    from accounts.application import create_application
    import uvicorn

    logger.info("Starting accounts API on http://%s:%s", host, port)
    uvicorn.run(create_application(settings), host=host, port=port, log_level="info")


def _list_users(service: UserAccountService) -> None:
    accounts = anyio.run(service.list_accounts)
    if not accounts:
        print("No users are currently registered.")
        return

    print(f"{len(accounts)} user(s) found:")
    print(f"{'ID':>4}  {'Username':<24}  {'Email':<32}  Created")
    print("-" * 80)
    for account in accounts:
        created = account.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        print(f"{account.id:>4}  {account.username:<24}  {account.email:<32}  {created}")


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass("Password: ")
        if not password:
            print("Password must not be empty. Please try again.", file=sys.stderr)
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.", file=sys.stderr)
            continue
        return password
    return None


def _create_user(service: UserAccountService, email: str, username: str) -> int:
    password = _prompt_for_password()
    if password is None:
        print("Failed to set password after three attempts.", file=sys.stderr)
        return 1

    request = {"email": email, "username": username, "password": password}
    try:
        account = anyio.run(service.create_account, request)
    except AccountError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        for error in getattr(exc, "errors", []):
            print(f"  {error['field']}: {error['message']}", file=sys.stderr)
        return 1

    print(f"Created user #{account.id}: {account.username} <{account.email}>")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = _resolve_settings(args.db_path)

    if args.command == "serve":
        _serve(settings, host=args.host, port=args.port)
        return 0

    service = _build_service(settings)

    if args.command == "init-db":
        print("Database initialisation complete.")
    elif args.command == "list-users":
        _list_users(service)
    elif args.command == "create-user":
        return _create_user(service, args.email, args.username)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
