"""
Document Service - the request pipelines behind the document endpoints.

Each operation validates its input, performs its store calls in order and
fails fast with a typed error; there are no retries. The store is injected so
callers (the API layer, tests) decide which backend is used.
"""

from typing import List

from docstore.core.exceptions import (
    AnnotationNotFoundError,
    DocumentInsertError,
    DocumentNotFoundError,
    DocumentUpdateError,
    DocumentValidationError,
    PageInsertError,
    StoreError,
)
from docstore.core.logging import get_service_logger
from docstore.models.document import Document, Page
from docstore.models.schemas import DocumentParams, DocumentResult
from docstore.services.store import DocumentStore


class DocumentService:
    """Service for reading and writing documents through a ``DocumentStore``."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.logger = get_service_logger("document")

    async def get_document(self, params: DocumentParams) -> DocumentResult:
        """
        Fetch one document and, if requested, one of its annotations.

        Args:
            params: DocID (required) and AnnotationID (optional)

        Returns:
            Document result; ``annotations`` is None unless an AnnotationID was given

        Raises:
            DocumentValidationError: If DocID is empty
            DocumentNotFoundError: If the document is missing or the lookup failed
            AnnotationNotFoundError: If the annotation is missing, belongs to
                another document, or the lookup failed
        """
        if not params.doc_id:
            self.logger.warning("DocID is empty")
            raise DocumentValidationError("DocID is empty")

        try:
            document = await self.store.documents.find_one({"ID": params.doc_id})
        except StoreError as e:
            self.logger.warning("DocID not found", doc_id=params.doc_id, error=str(e))
            raise DocumentNotFoundError(params.doc_id) from e

        result = DocumentResult(document=document)

        if params.annotation_id:
            # Restrict the lookup to the requested document
            try:
                annotations = await self.store.annotations.find_many(
                    {"ID": params.annotation_id, "DocID": params.doc_id}
                )
            except StoreError as e:
                self.logger.warning(
                    "AnnotationID lookup failed",
                    doc_id=params.doc_id,
                    annotation_id=params.annotation_id,
                    error=str(e),
                )
                raise AnnotationNotFoundError(params.annotation_id, params.doc_id) from e

            if not annotations:
                self.logger.warning(
                    "AnnotationID not found",
                    doc_id=params.doc_id,
                    annotation_id=params.annotation_id,
                )
                raise AnnotationNotFoundError(params.annotation_id, params.doc_id)
            result.annotations = annotations

        self.logger.debug(
            "Document retrieved",
            doc_id=params.doc_id,
            annotation_count=len(result.annotations or []),
        )
        return result

    async def list_documents(self) -> List[Document]:
        """
        Fetch every stored document, unfiltered and unpaginated.

        Ordering is whatever the store yields and is not stable.

        Raises:
            StoreError: If the listing fails
        """
        documents = await self.store.documents.find_many()
        self.logger.debug("Documents listed", count=len(documents))
        return documents

    async def insert_document(self, document: Document) -> Document:
        """
        Insert a document and its default first page.

        The two writes are independent: when the page insert fails the
        document remains stored.

        Raises:
            DocumentInsertError: If the document insert fails
            PageInsertError: If the page insert fails
        """
        if document.ensure_id():
            self.logger.info("Generated document ID", doc_id=document.id)

        try:
            await self.store.documents.insert(document)
        except StoreError as e:
            self.logger.error(
                "Error inserting document", doc_id=document.id, error=str(e)
            )
            raise DocumentInsertError(document.id) from e

        page = Page.default_for(document.id)
        try:
            await self.store.pages.insert(page)
        except StoreError as e:
            self.logger.error(
                "Error inserting page",
                doc_id=document.id,
                page_id=page.id,
                error=str(e),
            )
            raise PageInsertError(document.id) from e

        self.logger.info("Document inserted", doc_id=document.id, page_id=page.id)
        return document

    async def update_document(self, document: Document) -> Document:
        """
        Insert or replace a document by ID. No page is created.

        Raises:
            DocumentUpdateError: If the upsert fails
        """
        if document.ensure_id():
            self.logger.info("Generated document ID for upsert", doc_id=document.id)

        try:
            await self.store.documents.upsert(document)
        except StoreError as e:
            self.logger.error(
                "Error inserting/updating document", doc_id=document.id, error=str(e)
            )
            raise DocumentUpdateError(document.id) from e

        self.logger.info("Document updated", doc_id=document.id)
        return document
