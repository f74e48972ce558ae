"""
Shared utilities and dependencies for document API endpoints.

Request bodies are read raw and decoded here rather than through FastAPI's
body parameters: every decode failure is a 400 with a fixed message, never a
422 validation payload.
"""

from typing import Any, Callable, Type, TypeVar

from fastapi import Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticSerializationError

from docstore.core.logging import get_api_logger
from docstore.services.document_service import DocumentService
from docstore.services.store import DocumentStore

# Shared logger instance
logger = get_api_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)

JSON_UNMARSHAL_ERROR = "JSON unmarshal error"
MARSHALING_ERROR = "Marshaling error"


def get_store(request: Request) -> DocumentStore:
    """Return the store injected into the application at startup."""
    return request.app.state.store


def get_document_service(
    store: DocumentStore = Depends(get_store),
) -> DocumentService:
    """Build the document service over the injected store."""
    return DocumentService(store)


def request_body_schema(model: Type[BaseModel]) -> dict:
    """OpenAPI request body for routes that decode the raw body themselves."""
    return {
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {"schema": model.model_json_schema(by_alias=True)}
            },
        }
    }


async def decode_body(request: Request, model: Type[ModelT], operation: str) -> ModelT:
    """Read the request body and decode it into ``model``; 400 on failure.

    A JSON ``null`` body decodes like ``{}``.
    """
    body = await request.body()
    if body.strip() == b"null":
        # null decodes to nothing: the zero-valued parameters or document
        body = b"{}"
    logger.debug(
        "Request body received",
        operation=operation,
        body=body.decode(errors="replace"),
    )
    try:
        return model.model_validate_json(body)
    except ValidationError as e:
        logger.warning(
            "JSON unmarshal error",
            operation=operation,
            errors=e.errors(include_url=False, include_input=False),
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=JSON_UNMARSHAL_ERROR
        )


def encode_json(serialize: Callable[[], Any], operation: str) -> Response:
    """Run ``serialize`` and wrap its output in a 200 JSON response; 500 on failure."""
    try:
        content = serialize()
    except (PydanticSerializationError, TypeError, ValueError) as e:
        logger.error("Error marshalling results", operation=operation, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=MARSHALING_ERROR
        )
    return Response(
        content=content, status_code=status.HTTP_200_OK, media_type="application/json"
    )


def handle_error(
    e: Exception, status_code: int, message: str, operation: str, **context
) -> HTTPException:
    """Log ``e`` with context and build the HTTP error returned to the caller."""
    log = logger.error if status_code >= 500 else logger.warning
    log(f"{operation} failed", error=str(e), status_code=status_code, **context)
    return HTTPException(status_code=status_code, detail=message)


def log_operation_start(operation: str, **context) -> None:
    """Log the start of an operation consistently."""
    logger.info(f"{operation} started", **context)


def log_operation_success(operation: str, **context) -> None:
    """Log successful operation completion consistently."""
    logger.info(f"{operation} completed successfully", **context)
