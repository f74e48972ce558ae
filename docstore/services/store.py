"""
Document store adapter.

Filter-based persistence over SQLAlchemy for the three entity kinds:

- ``find_one(filters)``: first entity matching every filter field, or
  ``EntityNotFoundError``
- ``find_many(filters)``: every matching entity, in the database's natural order
- ``insert(entity)``: add a new entity; fails if the identifier already exists
- ``upsert(entity)``: insert, or replace the entity with the same identifier,
  as one ``INSERT ... ON CONFLICT DO UPDATE`` statement

Filters are equality maps keyed by the wire field names (``ID``, ``DocID``...).
Database failures surface as ``StoreError``.
"""

from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from docstore.core.db_client import DatabaseManager
from docstore.core.exceptions import EntityNotFoundError, StoreError
from docstore.core.logging import get_db_logger
from docstore.models.db import (
    AnnotationModel,
    Base,
    DocumentModel,
    PageModel,
    utcnow,
)
from docstore.models.document import Annotation, Document, Page

EntityT = TypeVar("EntityT", bound=BaseModel)
RowT = TypeVar("RowT", bound=Base)

Filters = Mapping[str, Any]

# INSERT ... ON CONFLICT DO UPDATE constructs, by dialect name
UPSERT_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


class EntityStore(Generic[EntityT, RowT]):
    """Persistence for one entity kind."""

    entity_name: str
    row_class: Type[RowT]
    # Wire field name -> column attribute name
    filter_fields: Dict[str, str]

    def __init__(self, db: DatabaseManager):
        self.db = db
        self.logger = get_db_logger().bind(entity=self.entity_name)

    def to_row(self, entity: EntityT) -> RowT:
        raise NotImplementedError

    def from_row(self, row: RowT) -> EntityT:
        raise NotImplementedError

    def _build_query(self, filters: Optional[Filters]):
        query = select(self.row_class)
        for field, value in (filters or {}).items():
            column = self.filter_fields.get(field)
            if column is None:
                raise StoreError(
                    f"Unsupported filter field for {self.entity_name}: {field}",
                    {"entity": self.entity_name, "field": field},
                )
            query = query.where(getattr(self.row_class, column) == value)
        return query

    async def find_one(self, filters: Filters) -> EntityT:
        query = self._build_query(filters).limit(1)
        try:
            async with self.db.session() as session:
                row = (await session.execute(query)).scalars().first()
                entity = self.from_row(row) if row is not None else None
        except SQLAlchemyError as e:
            self.logger.error("find_one failed", filters=dict(filters), error=str(e))
            raise StoreError(f"Failed to query {self.entity_name}") from e

        if entity is None:
            raise EntityNotFoundError(self.entity_name, filters)
        return entity

    async def find_many(self, filters: Optional[Filters] = None) -> List[EntityT]:
        query = self._build_query(filters)
        try:
            async with self.db.session() as session:
                rows = (await session.execute(query)).scalars().all()
                return [self.from_row(row) for row in rows]
        except SQLAlchemyError as e:
            self.logger.error(
                "find_many failed", filters=dict(filters or {}), error=str(e)
            )
            raise StoreError(f"Failed to query {self.entity_name}") from e

    async def insert(self, entity: EntityT) -> None:
        try:
            async with self.db.session() as session:
                session.add(self.to_row(entity))
        except SQLAlchemyError as e:
            self.logger.error("insert failed", id=entity.id, error=str(e))
            raise StoreError(f"Failed to insert {self.entity_name}") from e

    def _upsert_statement(self, entity: EntityT):
        dialect = self.db.engine.dialect.name
        insert = UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise StoreError(
                f"Upsert is not supported on {dialect}", {"entity": self.entity_name}
            )

        row = self.to_row(entity)
        table = self.row_class.__table__
        values = {
            column.key: getattr(row, column.key)
            for column in table.columns
            if getattr(row, column.key) is not None
        }
        statement = insert(table).values(**values)

        # Every supplied column is replaced; onupdate hooks do not fire here
        replaced = {key: statement.excluded[key] for key in values if key != "id"}
        if "updated_at" in table.columns:
            replaced["updated_at"] = utcnow()
        return statement.on_conflict_do_update(index_elements=["id"], set_=replaced)

    async def upsert(self, entity: EntityT) -> None:
        statement = self._upsert_statement(entity)
        try:
            async with self.db.session() as session:
                await session.execute(statement)
        except SQLAlchemyError as e:
            self.logger.error("upsert failed", id=entity.id, error=str(e))
            raise StoreError(f"Failed to upsert {self.entity_name}") from e


class DocumentEntityStore(EntityStore[Document, DocumentModel]):
    entity_name = "Document"
    row_class = DocumentModel
    filter_fields = {"ID": "id", "_id": "id"}

    def to_row(self, entity: Document) -> DocumentModel:
        if not entity.id:
            raise StoreError("Document has no identifier")
        return DocumentModel(id=entity.id, content=entity.content)

    def from_row(self, row: DocumentModel) -> Document:
        return Document.model_validate({**(row.content or {}), "ID": row.id})


class PageEntityStore(EntityStore[Page, PageModel]):
    entity_name = "Page"
    row_class = PageModel
    filter_fields = {
        "ID": "id",
        "_id": "id",
        "DocumentID": "document_id",
        "PageNr": "page_nr",
    }

    def to_row(self, entity: Page) -> PageModel:
        return PageModel(
            id=entity.id,
            document_id=entity.document_id,
            page_nr=entity.page_nr,
            text=entity.text,
            lines=entity.lines,
        )

    def from_row(self, row: PageModel) -> Page:
        return Page(
            id=row.id,
            document_id=row.document_id,
            page_nr=row.page_nr,
            text=row.text,
            lines=row.lines or [],
        )


class AnnotationEntityStore(EntityStore[Annotation, AnnotationModel]):
    entity_name = "Annotation"
    row_class = AnnotationModel
    filter_fields = {"ID": "id", "_id": "id", "DocID": "doc_id"}

    def to_row(self, entity: Annotation) -> AnnotationModel:
        return AnnotationModel(id=entity.id, doc_id=entity.doc_id, content=entity.content)

    def from_row(self, row: AnnotationModel) -> Annotation:
        return Annotation.model_validate(
            {**(row.content or {}), "ID": row.id, "DocID": row.doc_id}
        )


class DocumentStore:
    """Entry point to the store: one ``EntityStore`` per entity kind."""

    def __init__(self, db: DatabaseManager):
        self.db = db
        self.documents = DocumentEntityStore(db)
        self.pages = PageEntityStore(db)
        self.annotations = AnnotationEntityStore(db)

    async def test_connection(self, timeout: float = 5.0) -> bool:
        return await self.db.test_connection(timeout=timeout)

    async def create_tables(self) -> None:
        await self.db.create_tables()

    async def close(self) -> None:
        await self.db.close()
