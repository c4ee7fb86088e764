# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Tests for the Firestore adapter against an in-process fake client."""

from __future__ import annotations

from typing import Any

import pytest

pytest.importorskip("firebase_admin")

from dc_configurator.errors import StoreError  # noqa: E402
from dc_configurator.store.base import Filter  # noqa: E402
from dc_configurator.store.firestore import FirestoreDocumentStore  # noqa: E402


# ---------------------------------------------------------------------------
# Fake client
# ---------------------------------------------------------------------------

class FakeSnapshot:
    def __init__(self, doc_id: str, data: dict[str, Any] | None) -> None:
        self.id = doc_id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data or {})


class FakeDocument:
    def __init__(self, docs: dict[str, dict[str, Any]], doc_id: str) -> None:
        self._docs = docs
        self._id = doc_id

    def get(self) -> FakeSnapshot:
        return FakeSnapshot(self._id, self._docs.get(self._id))

    def set(self, data: dict[str, Any], merge: bool = False) -> None:
        if merge and self._id in self._docs:
            self._docs[self._id] = {**self._docs[self._id], **data}
        else:
            self._docs[self._id] = dict(data)

    def delete(self) -> None:
        self._docs.pop(self._id, None)


class FakeQuery:
    """Records ``where`` calls and returns every document from ``stream``."""

    def __init__(self, docs: dict[str, dict[str, Any]], calls: list[tuple]) -> None:
        self._docs = docs
        self.calls = calls

    def where(self, filter: Any) -> FakeQuery:  # noqa: A002
        self.calls.append(("where", filter))
        return self

    def order_by(self, field: str, direction: Any = None) -> FakeQuery:
        self.calls.append(("order_by", field, direction))
        return self

    def limit(self, count: int) -> FakeQuery:
        self.calls.append(("limit", count))
        return self

    def stream(self) -> list[FakeSnapshot]:
        return [FakeSnapshot(doc_id, data) for doc_id, data in self._docs.items()]


class FakeCollection(FakeQuery):
    def document(self, doc_id: str) -> FakeDocument:
        return FakeDocument(self._docs, doc_id)


class FakeClient:
    def __init__(self) -> None:
        self.data: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple] = []

    def collection(self, path: str) -> FakeCollection:
        return FakeCollection(self.data.setdefault(path, {}), self.calls)


@pytest.fixture()
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture()
def fs_store(client: FakeClient) -> FirestoreDocumentStore:
    return FirestoreDocumentStore(client=client)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestFirestoreDocumentStore:
    """Adapter behaviour over the client API."""

    def test_get_missing(self, fs_store):
        assert fs_store.get("projects", "nope") is None

    def test_set_strips_id_and_get_adds_it(self, fs_store, client):
        fs_store.set("projects", "p1", {"id": "p1", "name": "Hall A"})
        assert client.data["projects"]["p1"] == {"name": "Hall A"}
        assert fs_store.get("projects", "p1") == {"name": "Hall A", "id": "p1"}

    def test_merge(self, fs_store):
        fs_store.set("projects", "p1", {"name": "Hall A", "status": "planning"})
        fs_store.set("projects", "p1", {"status": "active"}, merge=True)
        assert fs_store.get("projects", "p1")["name"] == "Hall A"
        assert fs_store.get("projects", "p1")["status"] == "active"

    def test_update_missing_raises(self, fs_store):
        with pytest.raises(StoreError) as exc_info:
            fs_store.update("projects", "nope", {"name": "X"})
        assert exc_info.value.code == "NOT_FOUND"

    def test_add_and_delete(self, fs_store):
        doc_id = fs_store.add("modules", {"name": "Chiller"})
        assert fs_store.exists("modules", doc_id)
        fs_store.delete("modules", doc_id)
        assert not fs_store.exists("modules", doc_id)

    def test_query_builds_client_calls(self, fs_store, client):
        fs_store.set("projects", "p1", {"user_id": "alice"})
        docs = fs_store.query(
            "projects",
            filters=[Filter("user_id", "==", "alice")],
            order_by="created_at",
            descending=True,
            limit=5,
        )
        assert docs == [{"user_id": "alice", "id": "p1"}]
        kinds = [call[0] for call in client.calls]
        assert kinds == ["where", "order_by", "limit"]
        assert client.calls[2] == ("limit", 5)
