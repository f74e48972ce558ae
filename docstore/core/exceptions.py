import uuid
from typing import Any, Dict, Optional
from fastapi import Request, status
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from docstore.core.logging import get_logger

logger = get_logger(__name__)


class DocumentStoreError(Exception):
    """Base exception for the Document Store application."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.details = details or {}
        super().__init__(self.message)


class StoreError(DocumentStoreError):
    """Persistence layer failure (database unavailable, constraint violation...)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "STORE_ERROR", details)


class EntityNotFoundError(StoreError):
    """No entity matched the filter passed to ``find_one``."""

    def __init__(self, entity: str, filters: Dict[str, Any]):
        super().__init__(
            f"{entity} not found", {"entity": entity, "filters": dict(filters)}
        )
        self.error_code = "NOT_FOUND"


class DocumentValidationError(DocumentStoreError):
    """Request parameters failed validation."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class DocumentNotFoundError(DocumentStoreError):
    """Requested document does not exist or could not be read."""

    def __init__(self, doc_id: str):
        super().__init__("DocID not found", "DOCUMENT_NOT_FOUND", {"doc_id": doc_id})


class AnnotationNotFoundError(DocumentStoreError):
    """Requested annotation does not exist for the given document."""

    def __init__(self, annotation_id: str, doc_id: str):
        super().__init__(
            "AnnotationID not found",
            "ANNOTATION_NOT_FOUND",
            {"annotation_id": annotation_id, "doc_id": doc_id},
        )


class DocumentInsertError(DocumentStoreError):
    """Document could not be inserted."""

    def __init__(self, doc_id: str):
        super().__init__(
            "error inserting document", "DOCUMENT_INSERT_ERROR", {"doc_id": doc_id}
        )


class PageInsertError(DocumentStoreError):
    """Default page could not be inserted; the document itself stays persisted."""

    def __init__(self, doc_id: str):
        super().__init__(
            "error inserting page", "PAGE_INSERT_ERROR", {"doc_id": doc_id}
        )


class DocumentUpdateError(DocumentStoreError):
    """Document could not be upserted."""

    def __init__(self, doc_id: str):
        super().__init__(
            "error inserting/updating document",
            "DOCUMENT_UPDATE_ERROR",
            {"doc_id": doc_id},
        )


def create_error_response(
    status_code: int,
    message: str,
    headers: Optional[Dict[str, str]] = None,
) -> PlainTextResponse:
    """Create an error response: status code plus a short plain-text message."""
    return PlainTextResponse(message, status_code=status_code, headers=headers)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> PlainTextResponse:
    """Handle HTTP exceptions raised by routes and by the router (404/405)."""
    error_id = str(uuid.uuid4())[:8]

    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method,
        error_id=error_id,
    )

    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        message = "error"
    else:
        message = str(exc.detail)

    return create_error_response(
        status_code=exc.status_code,
        message=message,
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(
    request: Request, exc: Exception
) -> PlainTextResponse:
    """Handle all other unhandled exceptions."""
    error_id = str(uuid.uuid4())[:8]

    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        error_id=error_id,
        exc_info=True,
    )

    # Internal details are never echoed to the caller
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred",
    )


def setup_exception_handlers(app):
    """Setup all exception handlers for the FastAPI app."""

    # HTTP exceptions (fastapi.HTTPException subclasses Starlette's)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # General exception handler (catch-all)
    app.add_exception_handler(Exception, general_exception_handler)
