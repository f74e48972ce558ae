"""Middleware configuration for FastAPI application.

Provides:
- CORS middleware setup
- Trusted host middleware (production)
- Process time header, with a warning for slow requests
"""

import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from starlette.datastructures import MutableHeaders

from docstore.core.config import settings
from docstore.core.logging import get_logger

logger = get_logger(__name__)

PROCESS_TIME_HEADER = "X-Process-Time"


class ProcessTimeMiddleware:
    """Report handler time in ``X-Process-Time`` and log requests over ``slow_after`` seconds."""

    def __init__(self, app, slow_after: float):
        self.app = app
        self.slow_after = slow_after

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                elapsed = time.perf_counter() - start_time
                MutableHeaders(scope=message)[PROCESS_TIME_HEADER] = str(round(elapsed, 4))
                if elapsed > self.slow_after:
                    logger.warning(
                        "Slow request",
                        method=scope["method"],
                        path=scope["path"],
                        status_code=message["status"],
                        duration=round(elapsed, 4),
                        threshold=self.slow_after,
                    )
            await send(message)

        await self.app(scope, receive, send_wrapper)


def setup_cors_middleware(app: FastAPI) -> None:
    """Configure CORS from settings; only POST (and preflight) is ever allowed."""
    logger.info(
        "CORS configuration",
        environment=settings.ENVIRONMENT,
        origins=settings.CORS_ORIGINS,
        methods=settings.CORS_METHODS,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_CREDENTIALS,
        allow_methods=settings.CORS_METHODS,
        allow_headers=settings.CORS_HEADERS,
        expose_headers=[PROCESS_TIME_HEADER],
    )


def setup_trusted_host_middleware(app: FastAPI) -> None:
    """Restrict Host headers to ALLOWED_HOSTS in production."""
    if not settings.is_production:
        return

    app.add_middleware(TrustedHostMiddleware, allowed_hosts=list(settings.ALLOWED_HOSTS))


def setup_all_middleware(app: FastAPI) -> None:
    """Setup all middleware.

    Starlette runs the last added middleware first, so timing wraps the
    host check and CORS handling.

    Args:
        app: FastAPI application instance
    """
    setup_cors_middleware(app)
    setup_trusted_host_middleware(app)
    app.add_middleware(ProcessTimeMiddleware, slow_after=settings.SLOW_REQUEST_SECONDS)
