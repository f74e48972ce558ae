import asyncio
import logging
import logging.config
from typing import Any, Dict, Optional

import structlog

from docstore.core.config import settings

HEALTH_CHECK_PATHS = ("/health", "/ready", "/live")


def build_logging_config(log_level: str, log_format: str) -> Dict[str, Any]:
    """Standard-library logging config; ``log_format`` is ``json`` or ``text``."""
    if log_format == "json":
        formatter = {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "fmt": "%(asctime)s %(name)s %(levelname)s %(message)s",
            "rename_fields": {"levelname": "level", "asctime": "timestamp"},
        }
    else:
        formatter = {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"}

    def stdout(*filters: str) -> Dict[str, Any]:
        handler = {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        }
        if filters:
            handler["filters"] = list(filters)
        return handler

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "health_check_filter": {"()": HealthCheckFilter},
        },
        "formatters": {"default": formatter},
        "handlers": {
            "default": stdout(),
            "access": stdout("health_check_filter"),
        },
        "loggers": {
            "": {"level": log_level, "handlers": ["default"], "propagate": False},
            "uvicorn.error": {"level": "INFO", "handlers": ["default"], "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": ["access"], "propagate": False},
            # Driver chatter stays quiet unless SQL echo is on
            "sqlalchemy.engine": {
                "level": "INFO" if settings.DB_ECHO else "WARNING",
                "handlers": ["default"],
                "propagate": False,
            },
            "asyncpg": {"level": "WARNING", "handlers": ["default"], "propagate": False},
            "aiosqlite": {"level": "WARNING", "handlers": ["default"], "propagate": False},
        },
    }


def configure_logging() -> None:
    """Configure structlog and the standard library from settings."""
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.LOG_FORMAT == "json"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(build_logging_config(settings.LOG_LEVEL, settings.LOG_FORMAT))

    if not settings.DEBUG:
        logging.getLogger("asyncio").setLevel(logging.WARNING)


class RequestLoggingMiddleware:
    """
    Log one line per request: the document operation it hit, its status,
    request/response sizes and duration.

    Health probes pass through unlogged. The operation is the path below
    ``prefix`` (``/api/getDocument`` -> ``getDocument``); other paths log
    without one.
    """

    def __init__(self, app, prefix: str = ""):
        self.app = app
        self.prefix = prefix.rstrip("/")
        self.logger = structlog.get_logger("request")

    def operation_for(self, path: str) -> Optional[str]:
        base = f"{self.prefix}/"
        if path.startswith(base) and len(path) > len(base):
            return path[len(base):]
        return None

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope["path"] in HEALTH_CHECK_PATHS:
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        outcome = {"status_code": None, "response_bytes": 0}
        start_time = asyncio.get_running_loop().time()

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                outcome["status_code"] = message["status"]
            elif message["type"] == "http.response.body":
                outcome["response_bytes"] += len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            self.logger.info(
                "Request completed",
                method=scope["method"],
                path=scope["path"],
                operation=self.operation_for(scope["path"]),
                request_bytes=int(headers.get(b"content-length", b"0") or 0),
                duration=round(asyncio.get_running_loop().time() - start_time, 4),
                **outcome,
            )


class HealthCheckFilter(logging.Filter):
    """Drop uvicorn access log records for the health probe paths."""

    def filter(self, record: logging.LogRecord) -> bool:
        # uvicorn passes (client, method, path, http_version, status)
        if isinstance(record.args, tuple) and len(record.args) >= 3:
            path = str(record.args[2]).split("?", 1)[0]
            return path not in HEALTH_CHECK_PATHS
        message = record.getMessage()
        return not any(f" {path} HTTP/" in message for path in HEALTH_CHECK_PATHS)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def setup_request_logging(app):
    """Install per-request logging (debug mode only)."""
    if settings.DEBUG:
        app.add_middleware(RequestLoggingMiddleware, prefix=settings.API_PREFIX)


def get_api_logger() -> structlog.stdlib.BoundLogger:
    return get_logger("api")


def get_db_logger() -> structlog.stdlib.BoundLogger:
    return get_logger("database")


def get_service_logger(service_name: str) -> structlog.stdlib.BoundLogger:
    """Logger for one service, named ``service.<name>``."""
    return get_logger(f"service.{service_name}")
