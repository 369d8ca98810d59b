#!/usr/bin/env python3
"""
SecretShare -- share a secret anonymously behind a login.

Usage:
  python main.py
  python main.py --port 8000
  python main.py --host 0.0.0.0 --port 3000
  DEBUG=true python main.py --reload

Environment variables (or a .env file):
  SECRET_KEY            Required unless DEBUG=true. At least 32 characters.
  DATABASE_URL          SQLAlchemy URL. Defaults to a SQLite file under auth/.
  GOOGLE_CLIENT_ID      Google OAuth client; both id and secret enable the button.
  GOOGLE_CLIENT_SECRET
  FACEBOOK_APP_ID       Facebook OAuth app; both id and secret enable the button.
  FACEBOOK_APP_SECRET
"""

import argparse

import uvicorn

from core.config import get_settings


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="secretshare",
        description="Run the SecretShare web server.",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Interface to bind (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=3000,
        help="Port to listen on (default: 3000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change (development only)",
    )
    args = parser.parse_args()

    # Fail fast on a bad SECRET_KEY before uvicorn starts importing the app.
    get_settings()

    print(f"SecretShare listening on http://{args.host}:{args.port}")
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
