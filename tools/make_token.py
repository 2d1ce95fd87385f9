#!/usr/bin/env python3
"""Write a synthetic, structurally valid token for local trials.

Creates `.env` (DISCORD_TOKEN=...), `input.txt` and `stub_users.json` in the
target directory so the CLI can be pointed at the stub provider:

    python tools/make_token.py local
    STUB_USERS_FILE=local/stub_users.json uvicorn stub_api.main:app --port 8000
    token-checker --api-base-url http://127.0.0.1:8000 verify-env --path local/.env
"""
from __future__ import annotations

import argparse
import base64
import json
import secrets
import time
from pathlib import Path


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode()).decode("ascii").rstrip("=")


def make_token(user_id: str = "123456789012345678", created_s: int | None = None) -> str:
    """Return `<b64 user id>.<b64 epoch seconds>.<random signature>`; not a real credential."""
    created_s = int(time.time()) if created_s is None else created_s
    signature = secrets.token_urlsafe(27)
    return f"{_b64(user_id)}.{_b64(str(created_s))}.{signature}"


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("out_dir", nargs="?", default=".")
    parser.add_argument("--user-id", default="123456789012345678")
    args = parser.parse_args(argv)

    out = Path(args.out_dir)
    out.mkdir(parents=True, exist_ok=True)
    token = make_token(args.user_id)
    (out / ".env").write_text(f"DISCORD_TOKEN={token}\n", encoding="utf-8")
    (out / "input.txt").write_text(token + "\n", encoding="utf-8")
    users = {"users": {token: {"id": args.user_id, "username": "stub-user", "discriminator": "0"}}}
    (out / "stub_users.json").write_text(json.dumps(users, indent=2), encoding="utf-8")

    print("Created:")
    for name in (".env", "input.txt", "stub_users.json"):
        print(" -", out / name)


if __name__ == "__main__":
    main()
