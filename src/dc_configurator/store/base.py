# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Document store interface shared by all persistence backends.

Documents are plain JSON-compatible dicts addressed by a collection path
and a document id. Collection paths may be nested, e.g.
``matrix_calculator/user_configurations/configs``.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Iterable, NamedTuple

from dc_configurator.errors import StoreError

SUPPORTED_OPERATORS = ("==", "!=", "array-contains", "in", "<", "<=", ">", ">=")


class Filter(NamedTuple):
    """A single ``field op value`` query clause."""

    field: str
    op: str
    value: Any


def new_id() -> str:
    return uuid.uuid4().hex[:20]


def deep_merge(target: dict[str, Any], updates: dict[str, Any]) -> None:
    """Merge *updates* into *target* in place, recursing into nested maps.

    Lists and scalars replace the stored value, as Firestore does.
    """
    for key, value in updates.items():
        current = target.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            deep_merge(current, value)
        else:
            target[key] = value


def _field(doc: dict[str, Any], path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def matches(doc: dict[str, Any], flt: Filter) -> bool:
    """Evaluate one filter clause against *doc*."""
    actual = _field(doc, flt.field)
    if flt.op == "==":
        return actual == flt.value
    if flt.op == "!=":
        return actual != flt.value
    if flt.op == "array-contains":
        return isinstance(actual, list) and flt.value in actual
    if flt.op == "in":
        return actual in flt.value
    if actual is None:
        return False
    if flt.op == "<":
        return actual < flt.value
    if flt.op == "<=":
        return actual <= flt.value
    if flt.op == ">":
        return actual > flt.value
    if flt.op == ">=":
        return actual >= flt.value
    raise StoreError(f"Unsupported query operator: {flt.op}", code="INVALID_QUERY")


def _sort_key(value: Any) -> tuple[int, Any]:
    if value is None:
        return (0, "")
    if isinstance(value, datetime):
        return (1, value.isoformat())
    return (1, value)


def apply_query(
    docs: Iterable[dict[str, Any]],
    filters: list[Filter] | None = None,
    order_by: str | None = None,
    descending: bool = False,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Filter, sort and truncate an iterable of documents in memory."""
    filters = filters or []
    for flt in filters:
        if flt.op not in SUPPORTED_OPERATORS:
            raise StoreError(f"Unsupported query operator: {flt.op}", code="INVALID_QUERY")
    result = [doc for doc in docs if all(matches(doc, f) for f in filters)]
    if order_by:
        result.sort(key=lambda d: _sort_key(_field(d, order_by)), reverse=descending)
    if limit is not None:
        result = result[:limit]
    return result


class DocumentStore(ABC):
    """Abstract document database.

    Every returned document includes its id under the ``"id"`` key.
    """

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch one document, or None when it does not exist."""

    @abstractmethod
    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        """Create or overwrite a document; with *merge*, merge nested maps into it."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing document is a no-op."""

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: list[Filter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return documents in *collection* matching every filter."""

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Merge *data* into an existing document.

        Raises
        ------
        StoreError
            If the document does not exist.
        """
        if self.get(collection, doc_id) is None:
            raise StoreError(
                f"Document {collection}/{doc_id} does not exist", code="NOT_FOUND"
            )
        self.set(collection, doc_id, data, merge=True)

    def add(self, collection: str, data: dict[str, Any]) -> str:
        """Insert *data* under a generated id and return the id."""
        doc_id = new_id()
        self.set(collection, doc_id, data)
        return doc_id

    def exists(self, collection: str, doc_id: str) -> bool:
        return self.get(collection, doc_id) is not None
