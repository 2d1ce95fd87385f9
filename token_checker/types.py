from __future__ import annotations

import os
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

__all__ = [
    "DEFAULT_API_BASE_URL",
    "DEFAULT_TIMEOUT_S",
    "DEFAULT_USER_AGENT",
    "TokenSource",
    "ValidationMethod",
    "ErrorKind",
    "FormatChecks",
    "ASSUMED_VALID_FORMAT",
    "UserProfile",
    "LivenessOutcome",
    "ApiStatus",
    "TokenMetadata",
    "ValidationResult",
    "QuickApiResult",
    "CheckerSettings",
    "TokenCheckError",
    "TokenNotFoundError",
    "TokenFileNotFoundError",
    "InvalidConfigError",
    "ApiCallError",
]

DEFAULT_API_BASE_URL = "https://discord.com"
DEFAULT_TIMEOUT_S = 10.0
DEFAULT_USER_AGENT = "DiscordTokenChecker/1.0.0"


class TokenSource(str, Enum):
    env = "env"
    file = "file"
    direct = "direct"


class ValidationMethod(str, Enum):
    format = "format"
    api = "api"
    both = "both"


class ErrorKind(str, Enum):
    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
    INVALID_FORMAT = "INVALID_FORMAT"
    UNAUTHORIZED = "UNAUTHORIZED"
    RATE_LIMITED = "RATE_LIMITED"
    API_ERROR = "API_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    INVALID_CONFIG = "INVALID_CONFIG"


# ------------------------
# Errors
# ------------------------
class TokenCheckError(Exception):
    """Base class for classified failures.

    `kind` is the stable machine code; `details` holds structured extras
    such as a status code or a retry-after hint.
    """

    kind: ErrorKind = ErrorKind.INVALID_FORMAT

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details or {}


class TokenNotFoundError(TokenCheckError):
    """Raised when the token is missing or empty."""

    kind = ErrorKind.TOKEN_NOT_FOUND


class TokenFileNotFoundError(TokenCheckError):
    """Raised when the file a token should come from does not exist or cannot be read."""

    kind = ErrorKind.FILE_NOT_FOUND


class InvalidConfigError(TokenCheckError):
    """Raised when checker settings fail validation."""

    kind = ErrorKind.INVALID_CONFIG


class ApiCallError(TokenCheckError):
    """A classified failure of the liveness call.

    Never escapes the prober: it is folded into a `LivenessOutcome`.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        *,
        status_code: int | None = None,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details=details)
        self.kind = kind
        self.status_code = status_code
        self.retry_after = retry_after


# ------------------------
# Records
# ------------------------
class FormatChecks(BaseModel):
    """The five independent structural checks."""

    has_correct_parts: bool
    has_correct_length: bool
    has_no_spaces: bool
    has_no_quotes: bool
    is_not_bot_token: bool

    @classmethod
    def assume_valid(cls) -> FormatChecks:
        return cls(
            has_correct_parts=True,
            has_correct_length=True,
            has_no_spaces=True,
            has_no_quotes=True,
            is_not_bot_token=True,
        )


# Shape used when format checks are skipped (API-only validation).
ASSUMED_VALID_FORMAT = FormatChecks.assume_valid()


class UserProfile(BaseModel):
    """Identity returned by the current-user endpoint.

    Secondary attributes stay None unless the provider sent them.
    """

    id: str
    username: str
    discriminator: str = "0"
    email: Optional[str] = None
    verified: Optional[bool] = None
    mfa_enabled: Optional[bool] = None
    premium: bool = False
    premium_type: Optional[int] = None
    avatar: Optional[str] = None
    banner: Optional[str] = None
    accent_color: Optional[int] = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> UserProfile:
        """Map a raw `/users/@me` payload; unknown keys are ignored."""
        premium_type = data.get("premium_type")
        return cls(
            id=str(data["id"]),
            username=data["username"],
            discriminator=data.get("discriminator") or "0",
            email=data.get("email"),
            verified=data.get("verified"),
            mfa_enabled=data.get("mfa_enabled"),
            premium=bool(premium_type and premium_type > 0),
            premium_type=premium_type,
            avatar=data.get("avatar"),
            banner=data.get("banner"),
            accent_color=data.get("accent_color"),
        )

    @property
    def tag(self) -> str:
        return f"{self.username}#{self.discriminator}"


class LivenessOutcome(BaseModel):
    """Result of one call to the current-user endpoint."""

    success: bool
    user: Optional[UserProfile] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    status_code: Optional[int] = None
    rate_limited: bool = False
    retry_after: Optional[float] = None
    detail: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_consistency(self) -> LivenessOutcome:
        if self.success and self.error is not None:
            raise ValueError("a successful outcome cannot carry an error")
        if not self.success and self.user is not None:
            raise ValueError("a failed outcome cannot carry a user profile")
        return self

    @classmethod
    def from_error(cls, err: ApiCallError) -> LivenessOutcome:
        return cls(
            success=False,
            error=err.message,
            error_kind=err.kind,
            status_code=err.status_code,
            rate_limited=err.kind is ErrorKind.RATE_LIMITED,
            retry_after=err.retry_after,
            detail=err.details,
        )


class ApiStatus(BaseModel):
    """The liveness step as it appears in a merged `ValidationResult`."""

    is_active: bool
    user: Optional[UserProfile] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    status_code: Optional[int] = None
    retry_after: Optional[float] = None

    @classmethod
    def from_outcome(cls, outcome: LivenessOutcome) -> ApiStatus:
        return cls(
            is_active=outcome.success,
            user=outcome.user,
            error=outcome.error,
            error_kind=outcome.error_kind,
            status_code=outcome.status_code,
            retry_after=outcome.retry_after,
        )


class TokenMetadata(BaseModel):
    length: int
    parts: int
    source: TokenSource = TokenSource.direct


class ValidationResult(BaseModel):
    """Caller-facing verdict for one validation call."""

    is_valid: bool
    format: FormatChecks
    api: Optional[ApiStatus] = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    metadata: TokenMetadata

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class QuickApiResult(BaseModel):
    valid: bool
    error: Optional[str] = None


# ------------------------
# Settings
# ------------------------
class CheckerSettings(BaseModel):
    """Immutable per-checker configuration threaded into both validators."""

    model_config = ConfigDict(frozen=True)

    check_api: bool = True
    timeout: float = Field(DEFAULT_TIMEOUT_S, gt=0)  # seconds
    include_user_info: bool = True
    validate_format: bool = True
    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1)
    api_base_url: str = DEFAULT_API_BASE_URL

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_base_url must be an http(s) URL")
        return v

    @classmethod
    def build(cls, **values: Any) -> CheckerSettings:
        """Construct settings, raising `InvalidConfigError` instead of a pydantic error."""
        try:
            return cls(**values)
        except ValidationError as e:
            raise InvalidConfigError(f"Invalid checker settings: {e}") from e

    @classmethod
    def from_env(cls, **overrides: Any) -> CheckerSettings:
        """Read defaults from the environment; explicit overrides win.

        - DISCORD_API_BASE_URL
        - TOKEN_CHECKER_TIMEOUT (seconds)
        - TOKEN_CHECKER_USER_AGENT
        """
        values: dict[str, Any] = {}
        base_url = os.getenv("DISCORD_API_BASE_URL")
        if base_url:
            values["api_base_url"] = base_url
        raw_timeout = os.getenv("TOKEN_CHECKER_TIMEOUT")
        if raw_timeout:
            try:
                values["timeout"] = float(raw_timeout)
            except ValueError as e:
                raise InvalidConfigError("TOKEN_CHECKER_TIMEOUT must be a number") from e
        user_agent = os.getenv("TOKEN_CHECKER_USER_AGENT")
        if user_agent:
            values["user_agent"] = user_agent
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.build(**values)

    def with_overrides(self, **changes: Any) -> CheckerSettings:
        """Return a validated copy with `changes` applied."""
        return self.build(**{**self.model_dump(), **changes})
