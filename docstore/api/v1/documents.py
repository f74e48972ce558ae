"""
Document endpoints.

Every route accepts POST only (JSON parameters travel in the body); any other
method is answered with 405 by the router.

- POST /getDocument: one document, optionally with one of its annotations
- POST /getDocuments: every document, wrapped as ``{"documents": [...]}``
- POST /getDocumentList: every document, as a bare JSON array
- POST /insertDocument: insert a document plus its default first page
- POST /updateDocument: insert or replace a document by ID
"""

from typing import List

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import TypeAdapter

from docstore.core.exceptions import (
    AnnotationNotFoundError,
    DocumentInsertError,
    DocumentNotFoundError,
    DocumentUpdateError,
    DocumentValidationError,
    PageInsertError,
    StoreError,
)
from docstore.models.schemas import Document, DocumentListResult, DocumentParams
from docstore.services.document_service import DocumentService
from .common import (
    decode_body,
    encode_json,
    get_document_service,
    handle_error,
    log_operation_start,
    log_operation_success,
    request_body_schema,
)

router = APIRouter()

_document_list_adapter = TypeAdapter(List[Document])


@router.post(
    "/getDocument",
    summary="Get Document",
    operation_id="getDocument",
    openapi_extra=request_body_schema(DocumentParams),
    description="""Fetch one document by `DocID`.

When `AnnotationID` is given, the annotation is looked up among the annotations
of that same document and returned under `annotations`; otherwise the key is
omitted.

**Request Body:**
```json
{"DocID": "5f0c7d0e9b1e4b6f8a2d3c4b5a697887", "AnnotationID": "0d9e6a4c2b7f4e1a9c3b5d7f8e6a4c2b"}
```""",
    responses={
        200: {
            "description": "Document retrieved",
            "content": {
                "application/json": {
                    "example": {
                        "document": {
                            "ID": "5f0c7d0e9b1e4b6f8a2d3c4b5a697887",
                            "Title": "Letter",
                        },
                        "annotations": [
                            {
                                "ID": "0d9e6a4c2b7f4e1a9c3b5d7f8e6a4c2b",
                                "DocID": "5f0c7d0e9b1e4b6f8a2d3c4b5a697887",
                            }
                        ],
                    }
                }
            },
        },
        400: {"description": "Bad JSON or empty DocID"},
        404: {"description": "DocID or AnnotationID not found"},
        500: {"description": "Marshaling error"},
    },
)
async def get_document(
    request: Request,
    document_service: DocumentService = Depends(get_document_service),
):
    """Fetch one document and, if requested, one of its annotations."""
    params = await decode_body(request, DocumentParams, "getDocument")
    context = {"doc_id": params.doc_id, "annotation_id": params.annotation_id}

    try:
        result = await document_service.get_document(params)
    except DocumentValidationError as e:
        raise handle_error(
            e, status.HTTP_400_BAD_REQUEST, e.message, "getDocument", **context
        )
    except (DocumentNotFoundError, AnnotationNotFoundError) as e:
        raise handle_error(
            e, status.HTTP_404_NOT_FOUND, e.message, "getDocument", **context
        )

    return encode_json(result.to_json, "getDocument")


@router.post(
    "/getDocuments",
    summary="List Documents",
    operation_id="getDocuments",
    openapi_extra=request_body_schema(DocumentParams),
    description="""Return every stored document as `{"documents": [...]}`.

The parameters are decoded but not used: there is no filtering and no
pagination. Ordering is not guaranteed.""",
    responses={
        200: {"description": "Documents listed"},
        400: {"description": "Bad JSON"},
        404: {"description": "Store error"},
        500: {"description": "Marshaling error"},
    },
)
async def get_documents(
    request: Request,
    document_service: DocumentService = Depends(get_document_service),
):
    """List every document, wrapped in an object."""
    await decode_body(request, DocumentParams, "getDocuments")

    try:
        documents = await document_service.list_documents()
    except StoreError as e:
        raise handle_error(
            e, status.HTTP_404_NOT_FOUND, "GetDocuments error", "getDocuments"
        )

    result = DocumentListResult(documents=documents)
    return encode_json(result.to_json, "getDocuments")


@router.post(
    "/getDocumentList",
    summary="List Documents (bare array)",
    operation_id="getDocumentList",
    openapi_extra=request_body_schema(DocumentParams),
    description="""Return every stored document as a bare JSON array.

Same data as `/getDocuments`, but a store failure is reported as 500 instead
of 404.""",
    responses={
        200: {"description": "Documents listed"},
        400: {"description": "Bad JSON"},
        500: {"description": "Store or marshaling error"},
    },
)
async def get_document_list(
    request: Request,
    document_service: DocumentService = Depends(get_document_service),
):
    """List every document as a bare array."""
    await decode_body(request, DocumentParams, "getDocumentList")

    try:
        documents = await document_service.list_documents()
    except StoreError as e:
        raise handle_error(
            e,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "getDocuments error",
            "getDocumentList",
        )

    return encode_json(
        lambda: _document_list_adapter.dump_json(documents, by_alias=True),
        "getDocumentList",
    )


@router.post(
    "/insertDocument",
    summary="Insert Document",
    operation_id="insertDocument",
    response_class=PlainTextResponse,
    openapi_extra=request_body_schema(Document),
    description="""Insert a document. A new `ID` is generated when none is given.

A first page (`PageNr` 1) referencing the document is inserted right after.
The two writes are not atomic: if the page insert fails, the document stays
stored and the request answers 500.""",
    responses={
        200: {"description": "Inserted", "content": {"text/plain": {"example": "OK, inserted"}}},
        400: {"description": "Bad JSON"},
        500: {"description": "Document or page insert failed"},
    },
)
async def insert_document(
    request: Request,
    document_service: DocumentService = Depends(get_document_service),
):
    """Insert a document and its default page."""
    document = await decode_body(request, Document, "insertDocument")
    log_operation_start("Document insert", doc_id=document.id)

    try:
        await document_service.insert_document(document)
    except (DocumentInsertError, PageInsertError) as e:
        raise handle_error(
            e,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            e.message,
            "insertDocument",
            doc_id=document.id,
        )

    log_operation_success("Document insert", doc_id=document.id)
    return PlainTextResponse("OK, inserted", status_code=status.HTTP_200_OK)


@router.post(
    "/updateDocument",
    summary="Update Document",
    operation_id="updateDocument",
    response_class=PlainTextResponse,
    openapi_extra=request_body_schema(Document),
    description="""Insert or replace a document by `ID` (upsert). No page is created.""",
    responses={
        200: {"description": "Updated", "content": {"text/plain": {"example": "OK, updated"}}},
        400: {"description": "Bad JSON"},
        500: {"description": "Upsert failed"},
    },
)
async def update_document(
    request: Request,
    document_service: DocumentService = Depends(get_document_service),
):
    """Upsert a document."""
    document = await decode_body(request, Document, "updateDocument")
    log_operation_start("Document update", doc_id=document.id)

    try:
        await document_service.update_document(document)
    except DocumentUpdateError as e:
        raise handle_error(
            e,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            e.message,
            "updateDocument",
            doc_id=document.id,
        )

    log_operation_success("Document update", doc_id=document.id)
    return PlainTextResponse("OK, updated", status_code=status.HTTP_200_OK)
