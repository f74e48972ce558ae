"""
Document services package.

Services:
- store: filter-based persistence adapter (documents, pages, annotations)
- document_service: get/list/insert/update pipelines over the store
"""

from .document_service import DocumentService
from .store import DocumentStore, EntityStore

__all__ = [
    "DocumentService",
    "DocumentStore",
    "EntityStore",
]
