"""FastAPI app factory for the stub identity provider."""
from __future__ import annotations

import logging
import os
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from token_checker.logging_conf import get_logger, setup_logging

from .registry import StubRegistry, load_registry_from_env
from .routes import router

setup_logging()
logger = get_logger("stub_api")


def _route_uvicorn_logs() -> None:
    """Send uvicorn's own loggers through the root JSON handler."""
    level = logging.getLogger().level
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.propagate = True
        for h in list(lg.handlers):
            lg.removeHandler(h)


def create_app(registry: StubRegistry | None = None) -> FastAPI:
    """Build the stub app; without a registry, STUB_USERS_FILE is consulted."""

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        _route_uvicorn_logs()
        logger.info("startup", extra={"event": "startup"})
        yield
        logger.info("shutdown", extra={"event": "shutdown"})

    app = FastAPI(
        title="Discord API (stub)",
        version=os.getenv("APP_VERSION", "0.1.0"),
        lifespan=lifespan,
    )
    app.state.registry = registry if registry is not None else load_registry_from_env()

    @app.middleware("http")
    async def request_logger(request: Request, call_next: Callable[[Request], Response]):
        """Start/end JSON events with a correlation id echoed as X-Request-ID."""
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        start = time.perf_counter()
        logger.info(
            "request.start",
            extra={
                "event": "request_start",
                "method": request.method,
                "path": request.url.path,
                "request_id": request_id,
            },
        )
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.error",
                extra={"event": "request_error", "path": request.url.path, "request_id": request_id},
            )
            raise
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request.end",
            extra={
                "event": "request_end",
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
                "request_id": request_id,
            },
        )
        return response

    @app.get("/health", summary="Liveness/readiness check")
    async def health() -> JSONResponse:
        return JSONResponse(content={"ok": True})

    app.include_router(router)
    return app


# ASGI entrypoint: `uvicorn stub_api.main:app --port 8000`
app = create_app()
