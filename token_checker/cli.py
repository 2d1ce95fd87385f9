from __future__ import annotations

import argparse
import os

from .sources import DEFAULT_ENV_PATH, DEFAULT_TOKEN_FILE, DEFAULT_TOKEN_VAR
from .types import DEFAULT_API_BASE_URL, DEFAULT_TIMEOUT_S, DEFAULT_USER_AGENT


def _positive_float(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not a number: {raw!r}") from e
    if value <= 0:
        raise argparse.ArgumentTypeError("must be greater than zero")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="token-checker", description="Discord token validation and verification tool"
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument(
        "--api-base-url", default=os.getenv("DISCORD_API_BASE_URL", DEFAULT_API_BASE_URL)
    )
    parser.add_argument(
        "--user-agent", default=os.getenv("TOKEN_CHECKER_USER_AGENT", DEFAULT_USER_AGENT)
    )
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "WARNING"))

    sub = parser.add_subparsers(dest="command", required=True)

    env = sub.add_parser("verify-env", help="Verify the token stored in a .env file")
    env.add_argument("-p", "--path", default=DEFAULT_ENV_PATH, help="Path to .env file")
    env.add_argument("-v", "--var", default=DEFAULT_TOKEN_VAR, help="Environment variable name")
    env.add_argument("--no-api", dest="api", action="store_false", help="Skip API validation")
    env.add_argument("--timeout", type=_positive_float, default=DEFAULT_TIMEOUT_S, help="Seconds")

    api = sub.add_parser("check-api", help="Check a token read from a file against the API")
    api.add_argument("-f", "--file", default=DEFAULT_TOKEN_FILE, help="Token file path")
    api.add_argument("--cleanup", action="store_true", help="Delete token file after checking")
    api.add_argument("--timeout", type=_positive_float, default=DEFAULT_TIMEOUT_S, help="Seconds")
    api.add_argument(
        "--no-user-info", dest="user_info", action="store_false", help="Skip user information"
    )

    direct = sub.add_parser("test-direct", help="Test a token given on the command line")
    direct.add_argument("token")
    only = direct.add_mutually_exclusive_group()
    only.add_argument("--format-only", action="store_true", help="Only validate format")
    only.add_argument("--api-only", action="store_true", help="Only validate with the API")
    direct.add_argument("--timeout", type=_positive_float, default=5.0, help="Seconds")

    quick = sub.add_parser("quick", help="Quick token format check")
    quick.add_argument("token")

    extract = sub.add_parser("extract", help="Extract user id and creation time from a token")
    extract.add_argument("token")

    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments for the token checker."""
    return build_parser().parse_args(argv)
