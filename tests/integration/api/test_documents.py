"""
Integration tests for the document endpoints.

Runs the full application against the in-memory database, and against the
mock store where a store failure has to be forced.
"""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest
from pydantic_core import PydanticSerializationError

from docstore.core.exceptions import StoreError
from docstore.models.document import Document

DOCUMENT_ROUTES = [
    "/api/getDocument",
    "/api/getDocuments",
    "/api/getDocumentList",
    "/api/insertDocument",
    "/api/updateDocument",
]


async def _list_documents(client):
    response = await client.post("/api/getDocumentList", json={})
    assert response.status_code == 200
    return response.json()


class TestMethodAndBodyHandling:
    """Tests shared by every document endpoint."""

    @pytest.mark.api
    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", DOCUMENT_ROUTES)
    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH"])
    async def test_non_post_methods_rejected(self, async_client, path, method):
        """Test every non-POST method answers 405 with body 'error'."""
        response = await async_client.request(method, path)

        assert response.status_code == 405
        assert response.text == "error"

    @pytest.mark.api
    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", DOCUMENT_ROUTES)
    async def test_malformed_json(self, async_client, path):
        """Test an undecodable body answers 400 and writes nothing."""
        response = await async_client.post(
            path, content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.text == "JSON unmarshal error"
        assert await _list_documents(async_client) == []

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_wrong_type_is_unmarshal_error(self, async_client):
        """Test a well-formed body of the wrong shape is a 400, not a 422."""
        response = await async_client.post("/api/getDocument", json={"DocID": 42})

        assert response.status_code == 400
        assert response.text == "JSON unmarshal error"


class TestGetDocument:
    """Tests for POST /api/getDocument."""

    @pytest.mark.api
    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"DocID": ""}, {"AnnotationID": "a1"}])
    async def test_empty_doc_id(self, async_client, body):
        """Test a missing or empty DocID answers 400."""
        response = await async_client.post("/api/getDocument", json=body)

        assert response.status_code == 400
        assert response.text == "DocID is empty"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_unknown_doc_id(self, async_client, new_id):
        """Test an unknown DocID answers 404 without a document."""
        response = await async_client.post("/api/getDocument", json={"DocID": new_id()})

        assert response.status_code == 404
        assert response.text == "DocID not found"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_insert_then_get(self, async_client, document_payload):
        """Test a document inserted without ID can be read back by its new ID."""
        response = await async_client.post("/api/insertDocument", json=document_payload)
        assert response.status_code == 200
        assert response.text == "OK, inserted"

        [listed] = await _list_documents(async_client)
        response = await async_client.post("/api/getDocument", json={"DocID": listed["ID"]})

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        data = response.json()
        assert data == {"document": {"ID": listed["ID"], **document_payload}}
        assert "annotations" not in data

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_with_annotation(self, async_client, add_annotation, annotation_payload):
        """Test the requested annotation is returned alongside the document."""
        await async_client.post("/api/insertDocument", json={"ID": "d1", "Title": "x"})
        annotation_id = await add_annotation("d1", **annotation_payload)

        response = await async_client.post(
            "/api/getDocument", json={"DocID": "d1", "AnnotationID": annotation_id}
        )

        assert response.status_code == 200
        assert response.json()["annotations"] == [
            {"ID": annotation_id, "DocID": "d1", **annotation_payload}
        ]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_unknown_annotation(self, async_client):
        """Test an unknown AnnotationID answers 404."""
        await async_client.post("/api/insertDocument", json={"ID": "d1"})

        response = await async_client.post(
            "/api/getDocument", json={"DocID": "d1", "AnnotationID": "missing"}
        )

        assert response.status_code == 404
        assert response.text == "AnnotationID not found"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_annotation_of_other_document(self, async_client, add_annotation):
        """Test an annotation is never returned under a different document."""
        await async_client.post("/api/insertDocument", json={"ID": "d1"})
        await async_client.post("/api/insertDocument", json={"ID": "d2"})
        annotation_id = await add_annotation("d2", Text="on d2")

        response = await async_client.post(
            "/api/getDocument", json={"DocID": "d1", "AnnotationID": annotation_id}
        )

        assert response.status_code == 404
        assert response.text == "AnnotationID not found"


class TestListDocuments:
    """Tests for POST /api/getDocuments and POST /api/getDocumentList."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_empty_store(self, async_client):
        """Test both listings of an empty store."""
        wrapped = await async_client.post("/api/getDocuments", json={})
        bare = await async_client.post("/api/getDocumentList", json={})

        assert wrapped.json() == {"documents": []}
        assert bare.json() == []

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_list_shapes_and_counts(self, async_client):
        """Test both listings return every document in their own shape."""
        for i in range(3):
            await async_client.post("/api/insertDocument", json={"ID": f"d{i}", "N": i})

        wrapped = await async_client.post("/api/getDocuments", json={"DocID": "ignored"})
        bare = await async_client.post("/api/getDocumentList", json={})

        assert wrapped.status_code == 200
        assert bare.status_code == 200
        assert sorted(d["ID"] for d in wrapped.json()["documents"]) == ["d0", "d1", "d2"]
        assert sorted(bare.json(), key=lambda d: d["ID"]) == [
            {"ID": f"d{i}", "N": i} for i in range(3)
        ]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_get_documents_store_error(self, mock_client, mock_store):
        """Test a listing failure answers 404 on the wrapped listing."""
        mock_store.documents.find_many.side_effect = StoreError("down")

        response = await mock_client.post("/api/getDocuments", json={})

        assert response.status_code == 404
        assert response.text == "GetDocuments error"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_get_document_list_store_error(self, mock_client, mock_store):
        """Test a listing failure answers 500 on the bare listing."""
        mock_store.documents.find_many.side_effect = StoreError("down")

        response = await mock_client.post("/api/getDocumentList", json={})

        assert response.status_code == 500
        assert response.text == "getDocuments error"


class TestInsertDocument:
    """Tests for POST /api/insertDocument."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_insert_creates_default_page(self, async_client, store):
        """Test exactly one page with PageNr 1 is stored for a new document."""
        response = await async_client.post("/api/insertDocument", json={"ID": "d1"})

        assert response.status_code == 200
        pages = await store.pages.find_many({"DocumentID": "d1"})
        assert len(pages) == 1
        assert pages[0].page_nr == 1
        assert pages[0].text == "Hallo"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_empty_id_is_generated(self, async_client):
        """Test an empty ID is replaced by a generated one."""
        await async_client.post("/api/insertDocument", json={"ID": "", "Title": "x"})

        [listed] = await _list_documents(async_client)
        assert len(listed["ID"]) == 32

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_duplicate_id(self, async_client):
        """Test inserting an existing ID answers 500 and keeps the original."""
        await async_client.post("/api/insertDocument", json={"ID": "d1", "V": 1})

        response = await async_client.post("/api/insertDocument", json={"ID": "d1", "V": 2})

        assert response.status_code == 500
        assert response.text == "error inserting document"
        assert await _list_documents(async_client) == [{"ID": "d1", "V": 1}]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_page_failure_keeps_document(self, async_client, store):
        """Test a failed page insert answers 500 but the document stays stored."""
        with patch.object(store.pages, "insert", AsyncMock(side_effect=StoreError("x"))):
            response = await async_client.post("/api/insertDocument", json={"ID": "d1"})

        assert response.status_code == 500
        assert response.text == "error inserting page"
        assert await _list_documents(async_client) == [{"ID": "d1"}]
        assert await store.pages.find_many({"DocumentID": "d1"}) == []


class TestUpdateDocument:
    """Tests for POST /api/updateDocument."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_update_replaces_document(self, async_client, store):
        """Test update replaces the stored fields and adds no page."""
        await async_client.post("/api/insertDocument", json={"ID": "d1", "A": 1, "B": 2})

        response = await async_client.post("/api/updateDocument", json={"ID": "d1", "A": 3})

        assert response.status_code == 200
        assert response.text == "OK, updated"
        got = await async_client.post("/api/getDocument", json={"DocID": "d1"})
        assert got.json()["document"] == {"ID": "d1", "A": 3}
        assert len(await store.pages.find_many({"DocumentID": "d1"})) == 1

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_update_creates_missing(self, async_client, store):
        """Test update of an unknown ID creates the document without a page."""
        response = await async_client.post("/api/updateDocument", json={"ID": "new", "A": 1})

        assert response.status_code == 200
        assert await _list_documents(async_client) == [{"ID": "new", "A": 1}]
        assert await store.pages.find_many({"DocumentID": "new"}) == []

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_update_failure(self, mock_client, mock_store):
        """Test an upsert failure answers 500."""
        mock_store.documents.upsert.side_effect = StoreError("down")

        response = await mock_client.post("/api/updateDocument", json={"ID": "d1"})

        assert response.status_code == 500
        assert response.text == "error inserting/updating document"


class TestNullBody:
    """Tests for a literal JSON null body, which decodes like an empty object."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_get_document(self, async_client):
        """Test null parameters reach the DocID check."""
        response = await async_client.post(
            "/api/getDocument", content=b"null", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.text == "DocID is empty"

    @pytest.mark.api
    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/api/getDocuments", "/api/getDocumentList"])
    async def test_listings(self, async_client, path):
        """Test both listings accept null parameters."""
        response = await async_client.post(
            path, content=b"null", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 200

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_insert_stores_empty_document(self, async_client):
        """Test a null document is inserted as an empty one with a new ID."""
        response = await async_client.post(
            "/api/insertDocument", content=b" null ", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 200
        [stored] = await _list_documents(async_client)
        assert list(stored) == ["ID"]
        assert len(stored["ID"]) == 32


class TestMarshalingErrors:
    """Tests for responses that cannot be serialized."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_get_document(self, mock_client, mock_store):
        """Test a serialization failure answers 500 on getDocument."""
        from docstore.models.schemas import DocumentResult

        mock_store.documents.find_one.return_value = Document(id="d1")
        error = PydanticSerializationError("unserializable value")
        with patch.object(DocumentResult, "to_json", side_effect=error):
            response = await mock_client.post("/api/getDocument", json={"DocID": "d1"})

        assert response.status_code == 500
        assert response.text == "Marshaling error"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_get_documents(self, mock_client, mock_store):
        """Test a serialization failure answers 500 on getDocuments."""
        from docstore.models.schemas import DocumentListResult

        mock_store.documents.find_many.return_value = [Document(id="d1")]
        error = PydanticSerializationError("unserializable value")
        with patch.object(DocumentListResult, "to_json", side_effect=error):
            response = await mock_client.post("/api/getDocuments", json={})

        assert response.status_code == 500
        assert response.text == "Marshaling error"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_get_document_list(self, mock_client, mock_store):
        """Test a serialization failure answers 500 on getDocumentList."""
        mock_store.documents.find_many.return_value = [Document(id="d1")]
        adapter = Mock()
        adapter.dump_json.side_effect = PydanticSerializationError("unserializable value")
        with patch("docstore.api.v1.documents._document_list_adapter", adapter):
            response = await mock_client.post("/api/getDocumentList", json={})

        assert response.status_code == 500
        assert response.text == "Marshaling error"


class TestConcurrentWrites:
    """Tests for many writes in flight at once."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_concurrent_updates_of_new_id(self, async_client):
        """Test simultaneous upserts of one new ID all succeed and leave one document."""
        responses = await asyncio.gather(
            *(
                async_client.post("/api/updateDocument", json={"ID": "u", "V": i})
                for i in range(20)
            )
        )

        assert [r.status_code for r in responses] == [200] * 20
        [stored] = await _list_documents(async_client)
        assert stored["ID"] == "u"
        assert stored["V"] in range(20)

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_failed_inserts_do_not_drop_others(self, async_client, store):
        """Test duplicate inserts failing alongside new ones lose no acknowledged write."""
        await async_client.post("/api/insertDocument", json={"ID": "dup"})
        bodies = [{"ID": "dup"} if i % 2 == 0 else {"ID": f"n{i}"} for i in range(40)]

        responses = await asyncio.gather(
            *(async_client.post("/api/insertDocument", json=body) for body in bodies)
        )

        acknowledged = {
            body["ID"] for body, r in zip(bodies, responses) if r.status_code == 200
        }
        assert acknowledged == {f"n{i}" for i in range(1, 40, 2)}
        assert all(
            r.status_code == 500 and r.text == "error inserting document"
            for body, r in zip(bodies, responses)
            if body["ID"] == "dup"
        )
        stored = {d["ID"] for d in await _list_documents(async_client)}
        assert stored == acknowledged | {"dup"}
        for doc_id in acknowledged:
            assert len(await store.pages.find_many({"DocumentID": doc_id})) == 1
