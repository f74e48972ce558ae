"""Document schemas for API requests and responses."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from docstore.models.document import Annotation, Document


class DocumentParams(BaseModel):
    """Parameters posted to the document read endpoints."""

    doc_id: Optional[str] = Field(
        None,
        alias="DocID",
        description="Document to fetch",
        examples=["5f0c7d0e9b1e4b6f8a2d3c4b5a697887"],
    )
    annotation_id: Optional[str] = Field(
        None,
        alias="AnnotationID",
        description="Annotation of that document to include (optional)",
        examples=["0d9e6a4c2b7f4e1a9c3b5d7f8e6a4c2b"],
    )

    model_config = ConfigDict(populate_by_name=True)


class DocumentResult(BaseModel):
    """Response body of the single-document endpoint."""

    document: Document
    annotations: Optional[List[Annotation]] = Field(
        None, description="Present only when an AnnotationID was requested"
    )

    def to_json(self) -> str:
        """Serialize with wire aliases; ``annotations`` is dropped when unset."""
        exclude = {"annotations"} if self.annotations is None else None
        return self.model_dump_json(by_alias=True, exclude=exclude)


class DocumentListResult(BaseModel):
    """Response body of the wrapped document listing endpoint."""

    documents: List[Document] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
