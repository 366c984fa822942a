#!/usr/bin/env python3
"""
userauth -- Account signup and session-based password login.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py create-user alice
  python main.py create-user alice --email alice@example.com --age 30

Environment variables (see core/config.py):
  SECRET_KEY     Required unless DEBUG=true. Signs the session cookie.
  DATABASE_URL   SQLAlchemy URL. Defaults to a SQLite file beside auth/.
"""

import argparse
import getpass
import sys
from typing import Optional

from auth.errors import ConflictError, ValidationError
from auth.signup import register_user, validate_signup
from auth.store import UserStore
from core.config import get_settings


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _create_user(args: argparse.Namespace, password: Optional[str] = None) -> int:
    """Create an account from the command line. The password is prompted for."""
    if password is None:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Confirm password: "):
            print("  [!] Passwords do not match.")
            return 1

    data = {"name": args.name, "password": password, "email": args.email, "age": args.age}
    try:
        form = validate_signup(data)
    except ValidationError as exc:
        for err in exc.errors:
            print(f"  [!] {err.message}")
        return 1

    store = UserStore(get_settings().database_url)
    try:
        user_id = register_user(store, form)
    except ConflictError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        store.close()

    print(f"  Created user '{form.name}' (id={user_id}).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="userauth",
        description="Account signup and session-based password login.",
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the web server with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")

    create = sub.add_parser("create-user", help="Create a local account")
    create.add_argument("name", help="Login name for the new account")
    create.add_argument("--email", default=None, help="Optional email address")
    create.add_argument("--age", default=None, help="Optional age (whole number)")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "serve":
        return _serve(args)
    if args.command == "create-user":
        return _create_user(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
