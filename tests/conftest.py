"""Shared helpers: synthetic tokens and in-process HTTP transports."""
from __future__ import annotations

import base64
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from token_checker.types import CheckerSettings

USER_ID = "123456789012345678"
CREATED_S = 1_700_000_000
SIGNATURE = "abcdefghijklmnopqrstuvwxyzABCDEFGH_-12"
STUB_BASE_URL = "http://testserver"


def b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode("ascii")


def make_token(
    user_id: str = USER_ID, created_s: int = CREATED_S, signature: str = SIGNATURE
) -> str:
    """Structurally valid token (three base64-ish segments, 70+ characters)."""
    return f"{b64(user_id)}.{b64(str(created_s))}.{signature}"


@pytest.fixture
def token() -> str:
    return make_token()


@pytest.fixture
def settings() -> CheckerSettings:
    return CheckerSettings(api_base_url=STUB_BASE_URL, timeout=2.0)


Handler = Callable[[httpx.Request], Any]


@pytest.fixture
def mock_client() -> Callable[[Handler], httpx.AsyncClient]:
    """Factory for an AsyncClient whose requests are answered by `handler`."""

    def _factory(handler: Handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _factory


def user_payload(**extra: Any) -> dict[str, Any]:
    return {"id": USER_ID, "username": "someone", "discriminator": "1234", **extra}
