"""
Document API routes.

Modules:
- documents: the POST-only document endpoints
- common: shared dependencies, body decoding and error helpers
"""

from .documents import router

__all__ = ["router"]
