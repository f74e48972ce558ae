"""FastAPI Application Entry Point.

Document store service built with FastAPI, featuring:
- POST-only JSON endpoints to get, list, insert and update documents
- Pages and annotations attached to documents
- SQLAlchemy-backed store (PostgreSQL in production)
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from docstore.core.config import settings
from docstore.core.db_client import DatabaseManager
from docstore.core.logging import configure_logging, setup_request_logging, get_logger
from docstore.core.exceptions import setup_exception_handlers
from docstore.core.middleware import setup_all_middleware
from docstore.services.store import DocumentStore

# Configure logging first
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    store: DocumentStore = app.state.store

    logger.info(
        "Starting application",
        project_name=settings.PROJECT_NAME,
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
    )

    startup_tasks = []

    if settings.is_development or settings.CREATE_TABLES_ON_STARTUP:
        try:
            await store.create_tables()
            startup_tasks.append("Database tables created/verified")
        except Exception as e:
            logger.error("Failed to create database tables", error=str(e))
            if settings.is_production:
                raise

    if await store.test_connection():
        startup_tasks.append("Database connected")
    else:
        logger.warning("Database connection test failed")

    logger.info("Application startup completed", tasks=startup_tasks)

    yield

    logger.info("Shutting down application")
    try:
        await store.close()
    except Exception as e:
        logger.error("Error closing database", error=str(e))
    logger.info("Application shutdown completed")


API_DESCRIPTION = """# Document Store API

## Overview
JSON-over-HTTP access to documents, their pages and annotations.

## Conventions
- Every document endpoint accepts **POST only**; other methods answer `405`.
- Errors are plain text: an HTTP status and a short message.
- Listings are unfiltered and unpaginated.

## Endpoints
- `POST /api/getDocument` - one document, optionally with an annotation
- `POST /api/getDocuments` - all documents as `{"documents": [...]}`
- `POST /api/getDocumentList` - all documents as a bare array
- `POST /api/insertDocument` - insert a document and its first page
- `POST /api/updateDocument` - insert or replace a document
"""


def create_app(store: Optional[DocumentStore] = None) -> FastAPI:
    """Build the application around ``store`` (default: configured database)."""
    from docstore.api.health import router as health_router
    from docstore.api.v1 import router as documents_router

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=API_DESCRIPTION,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    app.state.store = store or DocumentStore(DatabaseManager())

    setup_all_middleware(app)
    setup_exception_handlers(app)
    setup_request_logging(app)

    app.include_router(health_router, tags=["Health"])
    app.include_router(documents_router, prefix=settings.API_PREFIX, tags=["Documents"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docstore.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
    )
