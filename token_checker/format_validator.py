"""Offline structural checks for Discord user tokens.

Pure functions only: nothing here performs I/O, so everything can be
unit-tested and reused by the CLI and the checker alike.
"""
from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Iterable
from datetime import UTC, datetime

from .types import (
    FormatChecks,
    TokenCheckError,
    TokenMetadata,
    TokenNotFoundError,
    TokenSource,
    ValidationResult,
)

__all__ = [
    "PLACEHOLDER_TOKENS",
    "MIN_TOKEN_LENGTH",
    "NOMINAL_TOKEN_LENGTH",
    "EXPECTED_PARTS",
    "MIN_PART_LENGTHS",
    "BOT_PREFIX",
    "require_token",
    "validate_format",
    "quick_format_check",
    "extract_user_id",
    "extract_timestamp",
    "describe_token",
    "humanize_age",
]

# Template values people forget to replace.
PLACEHOLDER_TOKENS: frozenset[str] = frozenset(
    {
        "your_discord_token_here",
        "your_discord_user_token_here",
        "your_token_here",
        "TOKEN_HERE",
        "DISCORD_TOKEN",
    }
)

# Below MIN_TOKEN_LENGTH is an error; below NOMINAL_TOKEN_LENGTH only a warning.
MIN_TOKEN_LENGTH = 30
NOMINAL_TOKEN_LENGTH = 50
EXPECTED_PARTS = 3
MIN_PART_LENGTHS = (10, 6, 20)
BOT_PREFIX = "Bot "

_BASE64_PART_RE = re.compile(r"^[A-Za-z0-9+/=_-]+$")
_DIGITS_RE = re.compile(r"^\d+$")
_INT_RE = re.compile(r"^[+-]?\d+$")
_ORDINALS = ("First", "Second", "Third")
_PART_NAMES = ("user ID", "timestamp", "signature")


def _check_parts(parts: list[str], warnings: list[str]) -> None:
    """Soft per-segment sanity checks; only ever adds warnings."""
    if len(parts) != EXPECTED_PARTS:
        return

    for ordinal, name, part, min_len in zip(_ORDINALS, _PART_NAMES, parts, MIN_PART_LENGTHS):
        if len(part) < min_len:
            warnings.append(f"{ordinal} part ({name}) seems too short")

    for ordinal, part in zip(_ORDINALS, parts):
        if not _BASE64_PART_RE.match(part):
            warnings.append(f"{ordinal} part contains invalid characters for base64")


def require_token(token: str | None) -> str:
    """Return the stripped token or raise `TokenNotFoundError` if there is none."""
    if token is None:
        raise TokenNotFoundError("Token is null or undefined")
    trimmed = token.strip()
    if not trimmed:
        raise TokenNotFoundError("Token is empty")
    return trimmed


def validate_format(
    token: str | None,
    *,
    placeholders: Iterable[str] = PLACEHOLDER_TOKENS,
    min_length: int = MIN_TOKEN_LENGTH,
    nominal_length: int = NOMINAL_TOKEN_LENGTH,
) -> ValidationResult:
    """Inspect a token's structure without contacting the API.

    Hard errors make the result invalid; warnings never do. The boolean
    `has_correct_length` is False below `nominal_length` but only blocks
    validity below `min_length`.

    Raises:
        TokenNotFoundError: if the token is None, empty or whitespace only.
    """
    trimmed = require_token(token)

    errors: list[str] = []
    warnings: list[str] = []

    if trimmed in frozenset(placeholders):
        errors.append("Token is still using placeholder value")

    parts = trimmed.split(".")
    has_correct_parts = len(parts) == EXPECTED_PARTS
    if not has_correct_parts:
        errors.append(
            f"Token should have {EXPECTED_PARTS} parts separated by dots, found {len(parts)}"
        )

    length = len(trimmed)
    has_correct_length = length >= nominal_length
    if not has_correct_length:
        detail = f"({length} characters). Discord tokens are typically 70+ characters"
        if length < min_length:
            errors.append(f"Token is too short {detail}")
        else:
            warnings.append(f"Token might be too short {detail}")

    has_no_spaces = " " not in trimmed
    if not has_no_spaces:
        errors.append("Token contains spaces - remove all spaces")

    has_no_quotes = not (trimmed[0] in "\"'" or trimmed[-1] in "\"'")
    if not has_no_quotes:
        errors.append("Token has quotes - remove all quotes")

    is_not_bot_token = not trimmed.startswith(BOT_PREFIX)
    if not is_not_bot_token:
        errors.append("This appears to be a BOT token. User tokens are required")

    _check_parts(parts, warnings)

    return ValidationResult(
        is_valid=not errors,
        format=FormatChecks(
            has_correct_parts=has_correct_parts,
            has_correct_length=has_correct_length,
            has_no_spaces=has_no_spaces,
            has_no_quotes=has_no_quotes,
            is_not_bot_token=is_not_bot_token,
        ),
        errors=errors,
        warnings=warnings,
        metadata=TokenMetadata(length=length, parts=len(parts), source=TokenSource.direct),
    )


def quick_format_check(token: str | None) -> bool:
    """Return True if the token passes format validation; never raises."""
    try:
        return validate_format(token).is_valid
    except TokenCheckError:
        return False


# ------------------------
# Best-effort decoding
# ------------------------

def _b64decode_text(segment: str) -> str | None:
    """Decode a base64 (standard or URL-safe, padding optional) segment to text."""
    if not segment:
        return None
    s = segment.replace("-", "+").replace("_", "/")
    s += "=" * (-len(s) % 4)
    try:
        raw = base64.b64decode(s, validate=True)
        return raw.decode("utf-8")
    except (binascii.Error, ValueError):
        return None


def _split(token: str | None) -> list[str] | None:
    if not isinstance(token, str):
        return None
    parts = token.strip().split(".")
    return parts if len(parts) == EXPECTED_PARTS else None


def extract_user_id(token: str | None) -> str | None:
    """Return the numeric user id encoded in the first segment, or None."""
    parts = _split(token)
    if parts is None:
        return None
    decoded = _b64decode_text(parts[0])
    if decoded is None or not _DIGITS_RE.match(decoded):
        return None
    return decoded


def extract_timestamp(token: str | None) -> datetime | None:
    """Return the creation time encoded in the second segment, or None.

    The segment is read as base64 text holding integer epoch seconds.
    """
    parts = _split(token)
    if parts is None:
        return None
    decoded = _b64decode_text(parts[1])
    if decoded is None or not _INT_RE.match(decoded.strip()):
        return None
    try:
        return datetime.fromtimestamp(int(decoded.strip()), tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def humanize_age(created: datetime, now: datetime | None = None) -> str:
    """Coarse age string: hours below a day, then days, months, years."""
    now = now or datetime.now(UTC)
    diff_s = (now - created).total_seconds()
    days = int(diff_s // 86400)
    if days < 1:
        return f"{int(diff_s // 3600)} hours"
    if days < 30:
        return f"{days} days"
    if days < 365:
        return f"{days // 30} months"
    return f"{days // 365} years"


def describe_token(token: str, now: datetime | None = None) -> dict:
    """Summarize what can be read from a token without validating it."""
    created = extract_timestamp(token)
    return {
        "length": len(token),
        "parts": len(token.split(".")),
        "user_id": extract_user_id(token),
        "created_at": created.isoformat() if created else None,
        "age": humanize_age(created, now) if created else None,
    }
