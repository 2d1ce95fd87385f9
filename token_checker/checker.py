"""Validation orchestrator: format inspection, liveness probe, merged verdict.

Flow per call (no retries, no shared state between calls):
- format / both: inspect the structure; format-only returns once it is invalid
- api: skip inspection and assume a valid shape
- api / both: probe the current-user endpoint once and merge its outcome
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

import httpx

from . import api_validator, format_validator
from .logging_conf import get_logger, mask_token
from .sources import (
    DEFAULT_ENV_PATH,
    DEFAULT_TOKEN_FILE,
    DEFAULT_TOKEN_VAR,
    cleanup_token_file,
    load_env_token,
    read_token_file,
)
from .types import (
    ASSUMED_VALID_FORMAT,
    ApiStatus,
    CheckerSettings,
    ErrorKind,
    QuickApiResult,
    TokenMetadata,
    TokenSource,
    ValidationMethod,
    ValidationResult,
)

__all__ = [
    "TokenChecker",
    "create_checker",
    "quick_format_check",
    "quick_api_check",
    "extract_user_id",
    "extract_timestamp",
]

logger = get_logger("token_checker.checker")


def _assumed_valid_result(token: str, source: TokenSource) -> ValidationResult:
    return ValidationResult(
        is_valid=True,
        format=ASSUMED_VALID_FORMAT.model_copy(),
        metadata=TokenMetadata(length=len(token), parts=len(token.split(".")), source=source),
    )


class TokenChecker:
    """Validate Discord user tokens from a string, a .env file or a token file."""

    def __init__(
        self,
        settings: CheckerSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ):
        self._settings = settings or CheckerSettings()
        self._client = client

    @property
    def settings(self) -> CheckerSettings:
        return self._settings

    def with_settings(self, **changes: Any) -> TokenChecker:
        """Return a new checker with updated settings, sharing the injected client."""
        return TokenChecker(self._settings.with_overrides(**changes), client=self._client)

    async def validate(
        self,
        token: str | None,
        source: TokenSource = TokenSource.direct,
        method: ValidationMethod = ValidationMethod.both,
    ) -> ValidationResult:
        """Run the requested checks and merge them into one result.

        Raises `TokenNotFoundError` for a missing/empty token whatever the
        method; once the API phase starts every condition lands in the result.
        """
        method = ValidationMethod(method)
        source = TokenSource(source)
        format_validator.require_token(token)
        run_format = method is ValidationMethod.format or (
            method is ValidationMethod.both and self._settings.validate_format
        )

        if run_format:
            result = format_validator.validate_format(token)
            result.metadata.source = source
            if not result.is_valid and method is ValidationMethod.format:
                self._log_result(token, method, result)
                return result
        else:
            result = _assumed_valid_result(token, source)

        if method is not ValidationMethod.format and self._settings.check_api:
            await self._merge_api(token, result)

        self._log_result(token, method, result)
        return result

    async def _merge_api(self, token: str, result: ValidationResult) -> None:
        try:
            outcome = await api_validator.validate_with_api(
                token, self._settings, client=self._client
            )
        except Exception as e:
            logger.exception(
                "checker.api_crash",
                extra={"event": "api_crash", "token": mask_token(token)},
            )
            message = str(e) or "Unknown API error"
            result.api = ApiStatus(is_active=False, error=message, error_kind=ErrorKind.API_ERROR)
            result.is_valid = False
            result.errors.append(f"API validation error: {message}")
            return

        result.api = ApiStatus.from_outcome(outcome)
        if not outcome.success:
            result.is_valid = False
            if outcome.error:
                result.errors.append(f"API validation failed: {outcome.error}")

    def _log_result(self, token: str, method: ValidationMethod, result: ValidationResult) -> None:
        logger.info(
            "checker.validate",
            extra={
                "event": "checker_validate",
                "token": mask_token(token),
                "method": method.value,
                "source": result.metadata.source.value,
                "is_valid": result.is_valid,
                "errors": len(result.errors),
                "warnings": len(result.warnings),
                "api_ran": result.api is not None,
            },
        )

    async def validate_direct(
        self, token: str, method: ValidationMethod = ValidationMethod.both
    ) -> ValidationResult:
        return await self.validate(token, TokenSource.direct, method)

    async def validate_from_env(
        self,
        env_path: str | Path = DEFAULT_ENV_PATH,
        token_var: str = DEFAULT_TOKEN_VAR,
        method: ValidationMethod = ValidationMethod.both,
    ) -> ValidationResult:
        """Validate the token stored in `token_var` of a .env file."""
        token = load_env_token(env_path, token_var)
        return await self.validate(token, TokenSource.env, method)

    async def validate_from_file(
        self,
        file_path: str | Path = DEFAULT_TOKEN_FILE,
        *,
        cleanup: bool = False,
        method: ValidationMethod = ValidationMethod.both,
    ) -> ValidationResult:
        """Validate a token read from a file, optionally deleting the file afterwards."""
        token = read_token_file(file_path)
        result = await self.validate(token, TokenSource.file, method)
        if cleanup:
            warning = cleanup_token_file(file_path)
            if warning:
                result.warnings.append(warning)
        return result


# ------------------------
# Module-level conveniences
# ------------------------

def create_checker(
    *, client: httpx.AsyncClient | None = None, **settings: Any
) -> TokenChecker:
    """Build a checker from keyword settings (see `CheckerSettings`)."""
    return TokenChecker(CheckerSettings.build(**settings), client=client)


def quick_format_check(token: str | None) -> bool:
    return format_validator.quick_format_check(token)


async def quick_api_check(
    token: str,
    timeout: float = api_validator.QUICK_TIMEOUT_S,
    *,
    settings: CheckerSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> QuickApiResult:
    return await api_validator.quick_test(token, timeout, settings=settings, client=client)


def extract_user_id(token: str | None) -> str | None:
    return format_validator.extract_user_id(token)


def extract_timestamp(token: str | None) -> datetime | None:
    return format_validator.extract_timestamp(token)
