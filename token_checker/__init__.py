"""Discord user-token checker: offline format inspection plus a single liveness call.

The public surface is re-exported here; see `token_checker.checker` for the
orchestrator and `token_checker.types` for the result records.
"""
from importlib.metadata import PackageNotFoundError, version

from .api_validator import get_retry_delay, is_rate_limited, quick_test, validate_with_api
from .checker import (
    TokenChecker,
    create_checker,
    extract_timestamp,
    extract_user_id,
    quick_api_check,
    quick_format_check,
)
from .format_validator import validate_format
from .types import (
    ApiStatus,
    CheckerSettings,
    ErrorKind,
    FormatChecks,
    InvalidConfigError,
    LivenessOutcome,
    QuickApiResult,
    TokenCheckError,
    TokenFileNotFoundError,
    TokenMetadata,
    TokenNotFoundError,
    TokenSource,
    UserProfile,
    ValidationMethod,
    ValidationResult,
)

try:
    __version__ = version("discord-token-checker")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "ApiStatus",
    "CheckerSettings",
    "ErrorKind",
    "FormatChecks",
    "InvalidConfigError",
    "LivenessOutcome",
    "QuickApiResult",
    "TokenCheckError",
    "TokenChecker",
    "TokenFileNotFoundError",
    "TokenMetadata",
    "TokenNotFoundError",
    "TokenSource",
    "UserProfile",
    "ValidationMethod",
    "ValidationResult",
    "create_checker",
    "extract_timestamp",
    "extract_user_id",
    "get_retry_delay",
    "is_rate_limited",
    "quick_api_check",
    "quick_format_check",
    "quick_test",
    "validate_format",
    "validate_with_api",
]
