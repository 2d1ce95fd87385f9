from __future__ import annotations

import asyncio

import httpx
import pytest

from tests.conftest import USER_ID, user_payload
from token_checker import api_validator
from token_checker.api_validator import (
    CURRENT_USER_PATH,
    DEFAULT_RETRY_DELAY_S,
    get_retry_delay,
    is_rate_limited,
    quick_test,
    validate_with_api,
)
from token_checker.types import (
    ApiCallError,
    CheckerSettings,
    ErrorKind,
    LivenessOutcome,
    UserProfile,
)


def _probe(mock_client, handler, settings, token="tok.en.value"):
    async def run() -> LivenessOutcome:
        async with mock_client(handler) as client:
            return await validate_with_api(token, settings, client=client)

    return asyncio.run(run())


def test_success_maps_profile(mock_client, settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "42", "username": "u", "discriminator": "0001"})

    outcome = _probe(mock_client, handler, settings)
    assert outcome.success is True
    assert outcome.error is None
    assert outcome.status_code == 200
    user = outcome.user
    assert user is not None
    assert (user.id, user.username, user.discriminator, user.premium) == ("42", "u", "0001", False)
    assert user.email is None
    assert user.verified is None
    assert user.mfa_enabled is None
    assert user.avatar is None
    assert user.banner is None
    assert user.accent_color is None


def test_request_shape(mock_client, settings) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=user_payload())

    custom = settings.with_overrides(user_agent="probe/9")
    _probe(mock_client, handler, custom, token="abc.def.ghi")

    assert len(seen) == 1
    req = seen[0]
    assert req.method == "GET"
    assert req.url.host == "testserver"
    assert req.url.path == CURRENT_USER_PATH
    assert req.headers["Authorization"] == "abc.def.ghi"
    assert req.headers["User-Agent"] == "probe/9"
    assert req.headers["Content-Type"] == "application/json"


def test_optional_fields_and_premium(mock_client, settings) -> None:
    payload = user_payload(
        email="a@b.c",
        verified=True,
        mfa_enabled=False,
        premium_type=2,
        avatar="abc",
        banner="def",
        accent_color=255,
    )
    del payload["discriminator"]

    outcome = _probe(mock_client, lambda r: httpx.Response(200, json=payload), settings)
    user = outcome.user
    assert user.discriminator == "0"
    assert user.email == "a@b.c"
    assert user.verified is True
    assert user.mfa_enabled is False
    assert user.premium is True
    assert user.premium_type == 2
    assert (user.avatar, user.banner, user.accent_color) == ("abc", "def", 255)


def test_zero_premium_type_is_not_premium(mock_client, settings) -> None:
    outcome = _probe(
        mock_client, lambda r: httpx.Response(200, json=user_payload(premium_type=0)), settings
    )
    assert outcome.user.premium is False
    assert outcome.user.premium_type == 0


def test_profile_suppressed_when_not_requested(mock_client, settings) -> None:
    no_info = settings.with_overrides(include_user_info=False)
    outcome = _probe(mock_client, lambda r: httpx.Response(200, json=user_payload()), no_info)
    assert outcome.success is True
    assert outcome.user is None


@pytest.mark.parametrize(
    "status, kind, message",
    [
        (401, ErrorKind.UNAUTHORIZED, "Token is invalid or expired"),
        (403, ErrorKind.API_ERROR, "Access forbidden. Token may be valid but lacks permissions"),
        (500, ErrorKind.API_ERROR, "API request failed with status 500"),
        (404, ErrorKind.API_ERROR, "API request failed with status 404"),
        (201, ErrorKind.API_ERROR, "API request failed with status 201"),
    ],
)
def test_error_statuses(mock_client, settings, status, kind, message) -> None:
    outcome = _probe(
        mock_client, lambda r: httpx.Response(status, json={"message": "nope"}), settings
    )
    assert outcome.success is False
    assert outcome.user is None
    assert outcome.error == message
    assert outcome.error_kind is kind
    assert outcome.status_code == status
    assert outcome.rate_limited is False


def test_error_status_with_non_json_body_is_still_classified(mock_client, settings) -> None:
    outcome = _probe(mock_client, lambda r: httpx.Response(401, text="<html/>"), settings)
    assert outcome.error_kind is ErrorKind.UNAUTHORIZED
    assert outcome.detail["response"] == "<html/>"


def test_rate_limited_exposes_retry_after(mock_client, settings) -> None:
    outcome = _probe(
        mock_client, lambda r: httpx.Response(429, headers={"retry-after": "5"}), settings
    )
    assert outcome.success is False
    assert outcome.error_kind is ErrorKind.RATE_LIMITED
    assert outcome.rate_limited is True
    assert outcome.retry_after == 5
    assert outcome.status_code == 429
    assert outcome.error == "Rate limited. Retry after 5 seconds"
    assert is_rate_limited(outcome) is True
    assert get_retry_delay(outcome) == 5


def test_rate_limit_hint_falls_back_to_body(mock_client, settings) -> None:
    outcome = _probe(
        mock_client, lambda r: httpx.Response(429, json={"retry_after": 1.5}), settings
    )
    assert outcome.retry_after == 1.5


def test_rate_limit_without_hint(mock_client, settings) -> None:
    outcome = _probe(mock_client, lambda r: httpx.Response(429), settings)
    assert outcome.rate_limited is True
    assert outcome.retry_after is None
    assert get_retry_delay(outcome) == DEFAULT_RETRY_DELAY_S


def test_unparsable_success_body(mock_client, settings) -> None:
    outcome = _probe(mock_client, lambda r: httpx.Response(200, text="not json"), settings)
    assert outcome.success is False
    assert outcome.error_kind is ErrorKind.API_ERROR
    assert outcome.error == "Failed to parse API response"
    assert outcome.detail["raw"] == "not json"


def test_success_body_missing_required_fields(mock_client, settings) -> None:
    outcome = _probe(mock_client, lambda r: httpx.Response(200, json={"id": "1"}), settings)
    assert outcome.success is False
    assert outcome.error_kind is ErrorKind.API_ERROR


def test_connection_error_is_network_error(mock_client, settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    outcome = _probe(mock_client, handler, settings)
    assert outcome.success is False
    assert outcome.error_kind is ErrorKind.NETWORK_ERROR
    assert outcome.error.startswith("Network error:")


def test_httpx_timeout_is_network_error(mock_client, settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    outcome = _probe(mock_client, handler, settings)
    assert outcome.error_kind is ErrorKind.NETWORK_ERROR
    assert outcome.error == "Request timeout after 2s"


def test_slow_response_is_aborted(mock_client, settings) -> None:
    state = {"cancelled": False, "finished": False}

    async def handler(request: httpx.Request) -> httpx.Response:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            state["cancelled"] = True
            raise
        state["finished"] = True
        return httpx.Response(200, json=user_payload())

    fast = settings.with_overrides(timeout=0.05)

    async def run() -> tuple[LivenessOutcome, int]:
        async with mock_client(handler) as client:
            outcome = await validate_with_api("tok", fast, client=client)
        pending = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
        return outcome, len(pending)

    outcome, pending = asyncio.run(run())
    assert outcome.success is False
    assert outcome.error_kind is ErrorKind.NETWORK_ERROR
    assert outcome.error == "Request timeout after 0.05s"
    assert state == {"cancelled": True, "finished": False}
    assert pending == 0


def test_exactly_one_attempt(mock_client, settings) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    _probe(mock_client, handler, settings)
    assert len(calls) == 1


def test_quick_test(mock_client, settings) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.headers["Authorization"] == "good":
            return httpx.Response(200, json=user_payload())
        return httpx.Response(401)

    async def run():
        async with mock_client(handler) as client:
            good = await quick_test("good", settings=settings, client=client)
            bad = await quick_test("bad", 1.0, settings=settings, client=client)
            return good, bad

    good, bad = asyncio.run(run())
    assert good.valid is True and good.error is None
    assert bad.valid is False and bad.error == "Token is invalid or expired"
    assert len(seen) == 2


def test_non_ascii_token_is_classified_not_raised(mock_client, settings) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(401)

    token = "tökén" * 20
    outcome = _probe(mock_client, handler, settings, token=token)
    assert outcome.success is False
    assert outcome.error_kind is ErrorKind.API_ERROR
    assert outcome.error.startswith("Failed to build API request:")

    async def run():
        async with mock_client(handler) as client:
            return await quick_test(token, settings=settings, client=client)

    quick = asyncio.run(run())
    assert quick.valid is False
    assert quick.error.startswith("Failed to build API request:")
    assert calls == []


def test_quick_test_never_raises(monkeypatch, settings) -> None:
    async def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(api_validator, "validate_with_api", explode)
    result = asyncio.run(quick_test("tok", settings=settings))
    assert result.valid is False
    assert result.error == "boom"


def test_retry_helpers_on_errors() -> None:
    limited = ApiCallError("slow down", ErrorKind.RATE_LIMITED, status_code=429, retry_after=7)
    other = ApiCallError("nope", ErrorKind.UNAUTHORIZED, status_code=401)
    assert is_rate_limited(limited) is True
    assert get_retry_delay(limited) == 7
    assert is_rate_limited(other) is False
    assert get_retry_delay(other) == DEFAULT_RETRY_DELAY_S


def test_outcome_invariants() -> None:
    with pytest.raises(ValueError):
        LivenessOutcome(success=True, error="x")
    with pytest.raises(ValueError):
        LivenessOutcome(success=False, user=UserProfile(id=USER_ID, username="x"))


def test_default_settings_target_discord() -> None:
    assert CheckerSettings().api_base_url == "https://discord.com"
