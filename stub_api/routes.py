from __future__ import annotations

import asyncio

from fastapi import APIRouter, Header, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from token_checker.logging_conf import get_logger, mask_token

from .registry import StubRegistry

router = APIRouter()
logger = get_logger("stub_api.routes")


def _registry(request: Request) -> StubRegistry:
    return request.app.state.registry


@router.get("/api/v10/users/@me", summary="Current user (stub)")
async def current_user(
    request: Request, authorization: str | None = Header(default=None)
) -> Response:
    """Answer like Discord's current-user endpoint for the registered tokens."""
    registry = _registry(request)
    if registry.delay_s:
        await asyncio.sleep(registry.delay_s)

    token = authorization or ""
    logger.info("stub.users_me", extra={"event": "stub_users_me", "token": mask_token(token)})

    if token in registry.rate_limited:
        retry_after = registry.rate_limited[token]
        return JSONResponse(
            status_code=429,
            content={
                "message": "You are being rate limited.",
                "retry_after": retry_after,
                "global": False,
            },
            headers={"Retry-After": f"{retry_after:g}"},
        )
    if token in registry.forbidden:
        return JSONResponse(status_code=403, content={"message": "Missing Access", "code": 50001})
    if token in registry.broken:
        return PlainTextResponse("<html>upstream hiccup</html>", status_code=200)
    if token in registry.users:
        return JSONResponse(content=registry.users[token])
    return JSONResponse(status_code=401, content={"message": "401: Unauthorized", "code": 0})
