"""SQLAlchemy table definitions backing the document store."""

from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import JSON, DateTime, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class DocumentModel(TimestampMixin, Base):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    content: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    def __repr__(self) -> str:
        return f"<DocumentModel(id={self.id})>"


class PageModel(TimestampMixin, Base):
    __tablename__ = "pages"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    # Not a foreign key; the referenced document is never checked
    document_id: Mapped[str] = mapped_column(Text, index=True, nullable=False)
    page_nr: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    lines: Mapped[List[Any]] = mapped_column(JSON, default=list, nullable=False)

    def __repr__(self) -> str:
        return f"<PageModel(id={self.id}, document_id={self.document_id}, page_nr={self.page_nr})>"


class AnnotationModel(TimestampMixin, Base):
    __tablename__ = "annotations"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    doc_id: Mapped[str] = mapped_column(Text, index=True, nullable=False)
    content: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    def __repr__(self) -> str:
        return f"<AnnotationModel(id={self.id}, doc_id={self.doc_id})>"
