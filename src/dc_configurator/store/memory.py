# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""In-memory document store for tests and ephemeral sessions."""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any

from dc_configurator.store.base import DocumentStore, Filter, apply_query, deep_merge

logger = logging.getLogger(__name__)


class MemoryDocumentStore(DocumentStore):
    """Dict-of-dicts store. Documents are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            if doc is None:
                return None
            return {**copy.deepcopy(doc), "id": doc_id}

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        payload = {k: copy.deepcopy(v) for k, v in data.items() if k != "id"}
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            if merge and doc_id in docs:
                deep_merge(docs[doc_id], payload)
            else:
                docs[doc_id] = payload
        logger.debug("set %s/%s (merge=%s)", collection, doc_id, merge)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._collections.get(collection, {}).pop(doc_id, None)
        logger.debug("delete %s/%s", collection, doc_id)

    def query(
        self,
        collection: str,
        filters: list[Filter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        with self._lock:
            docs = [
                {**copy.deepcopy(doc), "id": doc_id}
                for doc_id, doc in self._collections.get(collection, {}).items()
            ]
        return apply_query(docs, filters, order_by, descending, limit)
