# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Google Cloud Firestore backend built on the ``firebase-admin`` SDK."""

from __future__ import annotations

import json
import logging
from typing import Any

from dc_configurator import check_dependency

check_dependency("firebase_admin", "pip install -e '.[firestore]'")

import firebase_admin  # noqa: E402
from firebase_admin import credentials, firestore  # noqa: E402

from dc_configurator.store.base import DocumentStore, Filter  # noqa: E402

logger = logging.getLogger(__name__)

APP_NAME = "dc-configurator"


def initialize_firestore(service_account: str | dict[str, Any] | None = None) -> Any:
    """Initialise (once) the named Firebase app and return a Firestore client.

    *service_account* may be a path to a service-account JSON file, the
    JSON text itself, or an already-parsed dict. When omitted, the
    application default credentials are used.
    """
    try:
        app = firebase_admin.get_app(APP_NAME)
    except ValueError:
        if service_account is None:
            cred = credentials.ApplicationDefault()
        else:
            if isinstance(service_account, str) and service_account.lstrip().startswith("{"):
                service_account = json.loads(service_account)
            if isinstance(service_account, dict) and "private_key" in service_account:
                service_account = {
                    **service_account,
                    "private_key": service_account["private_key"].replace("\\n", "\n"),
                }
            cred = credentials.Certificate(service_account)
        app = firebase_admin.initialize_app(cred, name=APP_NAME)
        logger.info("Initialised Firebase app %s", APP_NAME)
    return firestore.client(app)


class FirestoreDocumentStore(DocumentStore):
    """Adapter from :class:`DocumentStore` to a Firestore client."""

    def __init__(self, client: Any = None, service_account: str | dict | None = None) -> None:
        self._db = client if client is not None else initialize_firestore(service_account)

    def _doc(self, collection: str, doc_id: str) -> Any:
        return self._db.collection(collection).document(doc_id)

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        snapshot = self._doc(collection, doc_id).get()
        if not snapshot.exists:
            return None
        return {**snapshot.to_dict(), "id": snapshot.id}

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        payload = {k: v for k, v in data.items() if k != "id"}
        self._doc(collection, doc_id).set(payload, merge=merge)
        logger.debug("set %s/%s (merge=%s)", collection, doc_id, merge)

    def delete(self, collection: str, doc_id: str) -> None:
        self._doc(collection, doc_id).delete()
        logger.debug("delete %s/%s", collection, doc_id)

    def query(
        self,
        collection: str,
        filters: list[Filter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        query = self._db.collection(collection)
        for flt in filters or []:
            query = query.where(filter=firestore.FieldFilter(flt.field, flt.op, flt.value))
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)
        return [{**snap.to_dict(), "id": snap.id} for snap in query.stream()]
