from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import httpx
from pydantic import ValidationError

from .logging_conf import get_logger, mask_token
from .types import (
    ApiCallError,
    CheckerSettings,
    ErrorKind,
    LivenessOutcome,
    QuickApiResult,
    TokenCheckError,
    UserProfile,
)

__all__ = [
    "CURRENT_USER_PATH",
    "QUICK_TIMEOUT_S",
    "DEFAULT_RETRY_DELAY_S",
    "validate_with_api",
    "quick_test",
    "is_rate_limited",
    "get_retry_delay",
]

CURRENT_USER_PATH = "/api/v10/users/@me"
QUICK_TIMEOUT_S = 5.0
DEFAULT_RETRY_DELAY_S = 60.0

logger = get_logger("token_checker.api")


def _build_headers(token: str, settings: CheckerSettings) -> dict[str, str]:
    return {
        "Authorization": token,
        "User-Agent": settings.user_agent,
        "Content-Type": "application/json",
    }


def _parse_json(response: httpx.Response) -> Any | None:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def _parse_retry_after(response: httpx.Response, body: Any) -> float | None:
    """Read the retry hint (seconds) from the header, else from the JSON body."""
    raw = response.headers.get("retry-after")
    if raw is None and isinstance(body, dict):
        raw = body.get("retry_after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _classify(response: httpx.Response) -> UserProfile:
    """Map a response to a profile, or raise the matching `ApiCallError`."""
    status = response.status_code
    body = _parse_json(response)

    if status == 200:
        if not isinstance(body, dict):
            raise ApiCallError(
                "Failed to parse API response",
                ErrorKind.API_ERROR,
                status_code=status,
                details={"raw": response.text},
            )
        try:
            return UserProfile.from_payload(body)
        except (KeyError, TypeError, ValidationError) as e:
            raise ApiCallError(
                "Failed to parse API response",
                ErrorKind.API_ERROR,
                status_code=status,
                details={"raw": response.text, "parse_error": str(e)},
            ) from e

    details: dict[str, Any] = {"response": body if body is not None else response.text}
    if status == 401:
        raise ApiCallError(
            "Token is invalid or expired",
            ErrorKind.UNAUTHORIZED,
            status_code=status,
            details=details,
        )
    if status == 403:
        raise ApiCallError(
            "Access forbidden. Token may be valid but lacks permissions",
            ErrorKind.API_ERROR,
            status_code=status,
            details=details,
        )
    if status == 429:
        retry_after = _parse_retry_after(response, body)
        shown = "unknown" if retry_after is None else f"{retry_after:g}"
        raise ApiCallError(
            f"Rate limited. Retry after {shown} seconds",
            ErrorKind.RATE_LIMITED,
            status_code=status,
            retry_after=retry_after,
            details={**details, "retry_after": retry_after},
        )
    raise ApiCallError(
        f"API request failed with status {status}",
        ErrorKind.API_ERROR,
        status_code=status,
        details=details,
    )


async def _request(
    client: httpx.AsyncClient, token: str, settings: CheckerSettings
) -> httpx.Response:
    url = f"{settings.api_base_url}{CURRENT_USER_PATH}"
    try:
        # The outer deadline also covers transports that ignore httpx timeouts.
        return await asyncio.wait_for(
            client.get(url, headers=_build_headers(token, settings), timeout=settings.timeout),
            timeout=settings.timeout,
        )
    except (httpx.TimeoutException, asyncio.TimeoutError) as e:
        raise ApiCallError(
            f"Request timeout after {settings.timeout:g}s",
            ErrorKind.NETWORK_ERROR,
            details={"timeout": settings.timeout},
        ) from e
    except (UnicodeEncodeError, httpx.InvalidURL) as e:
        # Raised while the request is built, before anything is sent.
        raise ApiCallError(
            f"Failed to build API request: {e}",
            ErrorKind.API_ERROR,
            details={"original_error": repr(e)},
        ) from e
    except httpx.TransportError as e:
        raise ApiCallError(
            f"Network error: {e}",
            ErrorKind.NETWORK_ERROR,
            details={"original_error": repr(e)},
        ) from e


async def validate_with_api(
    token: str,
    settings: CheckerSettings | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> LivenessOutcome:
    """Confirm a token with exactly one GET to the current-user endpoint.

    - Never retries; a 429 exposes `retry_after` so the caller can decide
    - Classified failures are returned, not raised
    - `client` lets callers inject a transport; otherwise one is opened and
      closed for this call only
    """
    settings = settings or CheckerSettings()
    started = time.perf_counter()
    try:
        if client is not None:
            response = await _request(client, token, settings)
        else:
            async with httpx.AsyncClient(timeout=settings.timeout) as own_client:
                response = await _request(own_client, token, settings)
        user = _classify(response)
        outcome = LivenessOutcome(
            success=True,
            user=user if settings.include_user_info else None,
            status_code=response.status_code,
        )
    except ApiCallError as e:
        outcome = LivenessOutcome.from_error(e)

    logger.info(
        "api.validate",
        extra={
            "event": "api_validate",
            "token": mask_token(token),
            "success": outcome.success,
            "status_code": outcome.status_code,
            "error_kind": outcome.error_kind.value if outcome.error_kind else None,
            "elapsed_ms": round((time.perf_counter() - started) * 1000.0, 2),
        },
    )
    return outcome


async def quick_test(
    token: str,
    timeout: float = QUICK_TIMEOUT_S,
    *,
    settings: CheckerSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> QuickApiResult:
    """Cheap liveness check: same request, no profile, boolean verdict."""
    base = settings or CheckerSettings()
    quick_settings = base.with_overrides(timeout=timeout, include_user_info=False)
    try:
        outcome = await validate_with_api(token, quick_settings, client=client)
    except Exception as e:
        logger.exception(
            "api.quick_crash", extra={"event": "quick_crash", "token": mask_token(token)}
        )
        return QuickApiResult(valid=False, error=str(e) or "Unknown API error")
    return QuickApiResult(valid=outcome.success, error=outcome.error)


def is_rate_limited(value: LivenessOutcome | TokenCheckError) -> bool:
    """True if an outcome or error represents provider throttling."""
    if isinstance(value, LivenessOutcome):
        return value.rate_limited
    return isinstance(value, TokenCheckError) and value.kind is ErrorKind.RATE_LIMITED


def get_retry_delay(value: LivenessOutcome | TokenCheckError) -> float:
    """Seconds to wait before retrying; DEFAULT_RETRY_DELAY_S when no hint exists."""
    if not is_rate_limited(value):
        return DEFAULT_RETRY_DELAY_S
    hint = getattr(value, "retry_after", None)
    return hint if hint is not None else DEFAULT_RETRY_DELAY_S
