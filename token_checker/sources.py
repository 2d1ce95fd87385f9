from __future__ import annotations

import os
from pathlib import Path

from dotenv import dotenv_values

from .logging_conf import get_logger
from .types import TokenFileNotFoundError, TokenNotFoundError

__all__ = [
    "DEFAULT_ENV_PATH",
    "DEFAULT_TOKEN_VAR",
    "DEFAULT_TOKEN_FILE",
    "load_env_token",
    "read_token_file",
    "cleanup_token_file",
]

DEFAULT_ENV_PATH = ".env"
DEFAULT_TOKEN_VAR = "DISCORD_TOKEN"
DEFAULT_TOKEN_FILE = "input.txt"

logger = get_logger("token_checker.sources")


def load_env_token(
    env_path: str | Path = DEFAULT_ENV_PATH, token_var: str = DEFAULT_TOKEN_VAR
) -> str:
    """Return `token_var` from a .env file, else from the process environment.

    Raises:
        TokenFileNotFoundError: if the .env file does not exist.
        TokenNotFoundError: if the variable is missing or empty.
    """
    path = Path(env_path)
    if not path.is_file():
        raise TokenFileNotFoundError(f".env file not found at {path}")

    values = dotenv_values(path)
    # The process environment only fills in a variable the file does not define.
    token = values[token_var] if token_var in values else os.getenv(token_var)
    if not token or not token.strip():
        raise TokenNotFoundError(f"{token_var} not found in environment variables")

    logger.debug(
        "source.env", extra={"event": "source_env", "path": str(path), "var": token_var}
    )
    return token


def read_token_file(file_path: str | Path = DEFAULT_TOKEN_FILE) -> str:
    """Read a token from a text file, stripped of surrounding whitespace.

    Raises:
        TokenFileNotFoundError: if the file is missing or unreadable.
        TokenNotFoundError: if the file is empty.
    """
    path = Path(file_path)
    if not path.exists():
        raise TokenFileNotFoundError(f"Token file not found at {path}")
    try:
        token = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        raise TokenFileNotFoundError(
            f"Failed to read token file: {e}", details={"original_error": repr(e)}
        ) from e
    if not token:
        raise TokenNotFoundError("Token file is empty")

    logger.debug("source.file", extra={"event": "source_file", "path": str(path)})
    return token


def cleanup_token_file(file_path: str | Path) -> str | None:
    """Delete the token file; return a warning message if that fails."""
    try:
        Path(file_path).unlink()
    except OSError as e:
        logger.warning(
            "source.cleanup_failed",
            extra={"event": "cleanup_failed", "path": str(file_path), "error": str(e)},
        )
        return f"Failed to clean up file: {e}"
    return None
