# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Pluggable document-store backends."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from dc_configurator.store.base import DocumentStore, Filter
from dc_configurator.store.json_store import JsonDocumentStore
from dc_configurator.store.memory import MemoryDocumentStore

StoreFactory = Callable[..., DocumentStore]

STORE_REGISTRY: dict[str, StoreFactory] = {}


def register_store(name: str, factory: StoreFactory) -> None:
    """Register a store factory by backend name."""
    STORE_REGISTRY[name] = factory


def _firestore_factory(**options: Any) -> DocumentStore:
    # Imported lazily so firebase-admin stays optional.
    from dc_configurator.store.firestore import FirestoreDocumentStore

    return FirestoreDocumentStore(service_account=options.get("service_account"))


def _json_factory(**options: Any) -> DocumentStore:
    path = options.get("path")
    return JsonDocumentStore(Path(path)) if path else JsonDocumentStore()


register_store("memory", lambda **options: MemoryDocumentStore())
register_store("json", _json_factory)
register_store("firestore", _firestore_factory)


def get_store(name: str, **options: Any) -> DocumentStore:
    """Instantiate a registered backend."""
    if name not in STORE_REGISTRY:
        available = ", ".join(sorted(STORE_REGISTRY))
        raise KeyError(f"Unknown store backend '{name}'. Available: {available}")
    return STORE_REGISTRY[name](**options)


__all__ = [
    "DocumentStore",
    "Filter",
    "JsonDocumentStore",
    "MemoryDocumentStore",
    "STORE_REGISTRY",
    "get_store",
    "register_store",
]
