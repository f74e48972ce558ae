"""Document Store API: JSON-over-HTTP access to documents, pages and annotations."""

__version__ = "1.0.0"
