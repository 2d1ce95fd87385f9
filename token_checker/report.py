from __future__ import annotations

from .types import ApiStatus, ErrorKind, FormatChecks, TokenCheckError, ValidationResult

_CHECK_LABELS = (
    ("has_correct_parts", "Correct parts (3)"),
    ("has_correct_length", "Correct length"),
    ("has_no_spaces", "No spaces"),
    ("has_no_quotes", "No quotes"),
    ("is_not_bot_token", "Not bot token"),
)

_SUGGESTIONS: dict[ErrorKind, tuple[str, ...]] = {
    ErrorKind.FILE_NOT_FOUND: (
        "Check the file path",
        "Ensure the file exists",
        "Check file permissions",
    ),
    ErrorKind.TOKEN_NOT_FOUND: (
        "Add your Discord token to the file",
        "Check the environment variable name",
        "Ensure the token is not empty",
    ),
}


def _mark(ok: bool) -> str:
    return "[ok]" if ok else "[x]"


def render_format(checks: FormatChecks) -> list[str]:
    return [f"   {_mark(getattr(checks, field))} {label}" for field, label in _CHECK_LABELS]


def render_api(api: ApiStatus) -> list[str]:
    if not api.is_active:
        lines = ["   [x] Token is not active"]
        if api.error:
            lines.append(f"   Error: {api.error}")
        if api.retry_after is not None:
            lines.append(f"   Retry after: {api.retry_after:g}s")
        return lines

    lines = ["   [ok] Token is active"]
    user = api.user
    if user is None:
        return lines
    lines += ["", "User Information:", f"   Username: {user.tag}", f"   User ID: {user.id}"]
    if user.email:
        lines.append(f"   Email: {user.email}")
    if user.verified is not None:
        lines.append(f"   Verified: {'yes' if user.verified else 'no'}")
    if user.mfa_enabled is not None:
        lines.append(f"   MFA: {'enabled' if user.mfa_enabled else 'disabled'}")
    if user.premium:
        lines.append("   Premium: yes")
    return lines


def render_result(result: ValidationResult) -> list[str]:
    """Human-readable report for one validation result."""
    lines = ["Validation Results:", ""]
    lines.append("Token is VALID" if result.is_valid else "Token is INVALID")

    meta = result.metadata
    lines += [
        "",
        "Token Metadata:",
        f"   Length: {meta.length} characters",
        f"   Parts: {meta.parts}",
        f"   Source: {meta.source.value}",
        "",
        "Format Validation:",
        *render_format(result.format),
    ]

    if result.api is not None:
        lines += ["", "API Validation:", *render_api(result.api)]
    if result.errors:
        lines += ["", "Errors:", *(f"   - {e}" for e in result.errors)]
    if result.warnings:
        lines += ["", "Warnings:", *(f"   - {w}" for w in result.warnings)]
    return lines


def render_error(exc: TokenCheckError) -> list[str]:
    """Message plus corrective suggestions for pre-flight failures."""
    lines = [f"Error: {exc.message}"]
    tips = _SUGGESTIONS.get(exc.kind)
    if tips:
        lines += ["", "Suggestions:", *(f"   - {t}" for t in tips)]
    return lines


def render_description(info: dict) -> list[str]:
    lines = [
        "Token Analysis:",
        f"   Length: {info['length']} characters",
        f"   Parts: {info['parts']}",
        f"   User ID: {info['user_id'] or 'could not extract'}",
    ]
    if info["created_at"]:
        lines += [f"   Created: {info['created_at']}", f"   Age: {info['age']}"]
    else:
        lines.append("   Timestamp: could not extract")
    return lines
