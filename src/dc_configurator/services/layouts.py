# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Layout persistence: a project's saved scenes."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from dc_configurator.errors import LayoutError
from dc_configurator.scene.models import Connection, Layout, SceneModule
from dc_configurator.store.base import DocumentStore, Filter

logger = logging.getLogger(__name__)

LAYOUTS_COLLECTION = "layouts"


class LayoutService:
    """CRUD for :class:`Layout` documents."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def create_layout(self, project_id: str, name: str, description: str = "") -> Layout:
        if not name or not name.strip():
            raise LayoutError("Layout name is required", code="VALIDATION_FAILED")
        layout = Layout(project_id=project_id, name=name.strip(), description=description)
        data = layout.model_dump(mode="json", exclude={"id"})
        layout.id = self.store.add(LAYOUTS_COLLECTION, data)
        logger.debug("Created layout %s for project %s", layout.id, project_id)
        return layout

    def get_layout(self, layout_id: str) -> Layout | None:
        doc = self.store.get(LAYOUTS_COLLECTION, layout_id)
        if doc is None:
            return None
        try:
            return Layout.model_validate(doc)
        except ValidationError as exc:
            raise LayoutError(
                f"Stored layout {layout_id} is malformed", code="VALIDATION_FAILED",
                details=str(exc),
            ) from exc

    def get_project_layouts(self, project_id: str) -> list[Layout]:
        docs = self.store.query(
            LAYOUTS_COLLECTION,
            filters=[Filter("project_id", "==", project_id)],
            order_by="created_at",
        )
        return [Layout.model_validate(doc) for doc in docs]

    def update_layout(
        self,
        layout_id: str,
        modules: list[SceneModule],
        connections: list[Connection],
        name: str | None = None,
    ) -> Layout:
        """Replace the modules and connections of a stored layout."""
        layout = self.get_layout(layout_id)
        if layout is None:
            raise LayoutError(f"Layout {layout_id} not found", code="NOT_FOUND")

        module_ids = {m.id for m in modules}
        dangling = [
            c.id for c in connections
            if c.source_module_id not in module_ids or c.target_module_id not in module_ids
        ]
        if dangling:
            raise LayoutError(
                "Connections reference missing modules",
                code="VALIDATION_FAILED",
                details=dangling,
            )

        layout.modules = list(modules)
        layout.connections = list(connections)
        if name:
            layout.name = name
        layout.updated_at = datetime.now(timezone.utc)
        try:
            self.store.set(
                LAYOUTS_COLLECTION, layout_id, layout.model_dump(mode="json", exclude={"id"})
            )
        except Exception as exc:
            raise LayoutError(f"Failed to save layout {layout_id}", code="SAVE_FAILED") from exc
        return layout

    def delete_layout(self, layout_id: str) -> None:
        self.store.delete(LAYOUTS_COLLECTION, layout_id)
