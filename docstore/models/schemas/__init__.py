"""Pydantic schemas for API requests and responses.

Import from this module: `from docstore.models.schemas import DocumentParams`
"""

from docstore.models.document import Annotation, Document, Page
from docstore.models.schemas.document import (
    DocumentListResult,
    DocumentParams,
    DocumentResult,
)

__all__ = [
    "Annotation",
    "Document",
    "Page",
    "DocumentParams",
    "DocumentResult",
    "DocumentListResult",
]
