import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Text stored on the page created alongside every new document
DEFAULT_PAGE_TEXT = "Hallo"


def new_object_id() -> str:
    """Generate a new globally unique, hex-encoded identifier."""
    return uuid.uuid4().hex


class Document(BaseModel):
    """Document model.

    Only the identifier is known to the service; every other field sent by
    the client is kept as-is and returned on read.
    """

    id: Optional[str] = Field(None, alias="ID", description="Unique document identifier")

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
    )

    @property
    def content(self) -> Dict[str, Any]:
        """Client-supplied fields other than the identifier."""
        return dict(self.model_extra or {})

    def ensure_id(self) -> bool:
        """Assign a new identifier if missing. Returns True when one was generated."""
        if self.id:
            return False
        self.id = new_object_id()
        return True

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, fields={sorted(self.content)})>"


class Page(BaseModel):
    """A single page of a document."""

    id: str = Field(default_factory=new_object_id, alias="ID")
    document_id: str = Field(..., alias="DocumentID", description="Owning document ID")
    page_nr: int = Field(..., ge=1, alias="PageNr", description="1-based page number")
    text: str = Field("", alias="Text")
    # Rows of per-character objects; not populated yet
    lines: List[List[Dict[str, Any]]] = Field(default_factory=list, alias="Lines")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def default_for(cls, document_id: str) -> "Page":
        """First page created automatically for a newly inserted document."""
        return cls(document_id=document_id, page_nr=1, text=DEFAULT_PAGE_TEXT)


class Annotation(BaseModel):
    """Annotation attached to a document."""

    id: str = Field(default_factory=new_object_id, alias="ID")
    doc_id: str = Field(..., alias="DocID", description="Owning document ID")

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
    )

    @property
    def content(self) -> Dict[str, Any]:
        """Annotation fields other than the identifiers."""
        return dict(self.model_extra or {})
