# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""JSON-file document store.

Each collection is stored as one JSON object file under the base
directory, with ``/`` in the collection path mapped to ``__``::

    ~/.dc-configurator/projects.json
    ~/.dc-configurator/matrix_calculator__user_configurations__configs.json
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any

from dc_configurator.errors import StoreError
from dc_configurator.store.base import DocumentStore, Filter, apply_query, deep_merge

logger = logging.getLogger(__name__)

DEFAULT_BASE_DIR = Path.home() / ".dc-configurator"


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonDocumentStore(DocumentStore):
    """File-backed store: simple, durable and inspectable by hand."""

    def __init__(self, base_dir: str | Path = DEFAULT_BASE_DIR) -> None:
        self.base_dir = Path(base_dir).expanduser()
        self._lock = threading.RLock()

    def _path(self, collection: str) -> Path:
        safe = collection.strip("/").replace("/", "__")
        if not safe or ".." in safe:
            raise StoreError(f"Invalid collection path: {collection!r}", code="INVALID_PATH")
        return self.base_dir / f"{safe}.json"

    def _load(self, collection: str) -> dict[str, dict[str, Any]]:
        path = self._path(collection)
        if not path.exists():
            return {}
        try:
            return json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Could not read {path}: {exc}", code="READ_FAILED") from exc

    def _save(self, collection: str, docs: dict[str, dict[str, Any]]) -> None:
        path = self._path(collection)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        try:
            tmp.write_text(json.dumps(docs, indent=2, default=_json_default))
            tmp.replace(path)
        except OSError as exc:
            raise StoreError(f"Could not write {path}: {exc}", code="WRITE_FAILED") from exc

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._lock:
            doc = self._load(collection).get(doc_id)
        if doc is None:
            return None
        return {**doc, "id": doc_id}

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        # Round-trip through JSON so stored and returned values agree.
        payload = json.loads(
            json.dumps({k: v for k, v in data.items() if k != "id"}, default=_json_default)
        )
        with self._lock:
            docs = self._load(collection)
            if merge and doc_id in docs:
                deep_merge(docs[doc_id], payload)
            else:
                docs[doc_id] = payload
            self._save(collection, docs)
        logger.debug("set %s/%s (merge=%s)", collection, doc_id, merge)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            docs = self._load(collection)
            if docs.pop(doc_id, None) is not None:
                self._save(collection, docs)
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
            docs = [{**doc, "id": doc_id} for doc_id, doc in self._load(collection).items()]
        return apply_query(docs, filters, order_by, descending, limit)
