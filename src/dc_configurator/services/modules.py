# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Module library: reusable templates and their categories."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ValidationError

from dc_configurator.errors import ConfiguratorError, ModuleError
from dc_configurator.scene.models import Dimensions, SceneModule
from dc_configurator.store.base import DocumentStore

logger = logging.getLogger(__name__)

MODULES_COLLECTION = "modules"
CATEGORIES_COLLECTION = "categories"

DEFAULT_MODULE_ID = "basic-module"
DEFAULT_CATEGORY_ID = "basic"


class ModuleTemplate(SceneModule):
    """A library entry that can be dropped into a layout."""

    description: str = ""
    project_id: str | None = None
    created_by: str = "system"
    created_at: str | None = None
    updated_at: str | None = None


class Category(BaseModel):
    id: str
    name: str
    created_at: str | None = None
    updated_at: str | None = None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _default_module() -> ModuleTemplate:
    now = _now_iso()
    return ModuleTemplate(
        id=DEFAULT_MODULE_ID,
        type="basic",
        category=DEFAULT_CATEGORY_ID,
        name="Basic Module",
        description="A basic module template",
        color="#808080",
        dimensions=Dimensions(length=1, width=1, height=1),
        created_at=now,
        updated_at=now,
    )


def validate_module(data: dict[str, Any]) -> list[str]:
    errors: list[str] = []
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Module name is required")
    if not data.get("category"):
        errors.append("Module category is required")
    dims = data.get("dimensions")
    if not isinstance(dims, dict):
        errors.append("Module dimensions are required")
    elif any(
        not isinstance(dims.get(k), (int, float)) or dims[k] <= 0
        for k in ("length", "width", "height")
    ):
        errors.append("Module dimensions must be positive")
    return errors


class ModuleService:
    """CRUD for module templates and categories."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def _seed_defaults(self) -> None:
        logger.info("Module library empty, seeding default module and category")
        module = _default_module()
        self.store.set(MODULES_COLLECTION, module.id, module.model_dump(mode="json", exclude={"id"}))
        now = _now_iso()
        self.store.set(
            CATEGORIES_COLLECTION,
            DEFAULT_CATEGORY_ID,
            {"name": "Basic", "created_at": now, "updated_at": now},
        )

    def get_all_modules(self) -> list[ModuleTemplate]:
        """Return every template, seeding the library on first use.

        Stored documents missing editor fields (position, rotation, scale,
        visibility) come back with the editor defaults filled in.
        """
        try:
            docs = self.store.query(MODULES_COLLECTION, order_by="name")
            if not docs:
                self._seed_defaults()
                docs = self.store.query(MODULES_COLLECTION, order_by="name")
        except ConfiguratorError:
            raise
        except Exception as exc:
            raise ModuleError("Failed to fetch modules", code="FETCH_FAILED") from exc

        modules = []
        for doc in docs:
            try:
                modules.append(ModuleTemplate.model_validate(doc))
            except ValidationError:
                logger.warning("Skipping malformed module %s", doc.get("id"), exc_info=True)
        return modules

    def get_module(self, module_id: str) -> ModuleTemplate | None:
        doc = self.store.get(MODULES_COLLECTION, module_id)
        return ModuleTemplate.model_validate(doc) if doc else None

    def create_module(self, data: dict[str, Any], user_id: str | None) -> ModuleTemplate:
        if not user_id:
            raise ModuleError("Not authenticated", code="AUTH_REQUIRED")
        errors = validate_module(data)
        if errors:
            raise ModuleError("Module validation failed", code="VALIDATION_FAILED", details=errors)

        now = _now_iso()
        payload = {**data, "created_at": now, "updated_at": now, "created_by": user_id}
        try:
            module = ModuleTemplate.model_validate(
                {"id": data.get("id") or data["name"].strip().lower().replace(" ", "-"), **payload}
            )
        except ValidationError as exc:
            raise ModuleError("Module validation failed", code="VALIDATION_FAILED",
                              details=str(exc)) from exc
        try:
            self.store.set(MODULES_COLLECTION, module.id, module.model_dump(mode="json", exclude={"id"}))
        except Exception as exc:
            raise ModuleError("Failed to create module", code="CREATE_FAILED") from exc
        logger.debug("Created module %s", module.id)
        return module

    def update_module(self, module_id: str, data: dict[str, Any], user_id: str | None) -> ModuleTemplate:
        if not user_id:
            raise ModuleError("Not authenticated", code="AUTH_REQUIRED")
        current = self.get_module(module_id)
        if current is None:
            raise ModuleError(f"Module {module_id} not found", code="NOT_FOUND")
        merged = {**current.model_dump(mode="json"), **data, "id": module_id}
        errors = validate_module(merged)
        if errors:
            raise ModuleError("Module validation failed", code="VALIDATION_FAILED", details=errors)
        merged["updated_at"] = _now_iso()
        module = ModuleTemplate.model_validate(merged)
        try:
            self.store.set(MODULES_COLLECTION, module_id, module.model_dump(mode="json", exclude={"id"}))
        except Exception as exc:
            raise ModuleError(f"Failed to update module {module_id}", code="UPDATE_FAILED") from exc
        return module

    def delete_module(self, module_id: str, user_id: str | None) -> None:
        if not user_id:
            raise ModuleError("Not authenticated", code="AUTH_REQUIRED")
        try:
            self.store.delete(MODULES_COLLECTION, module_id)
        except Exception as exc:
            raise ModuleError(f"Failed to delete module {module_id}", code="DELETE_FAILED") from exc

    def get_categories(self) -> list[Category]:
        try:
            docs = self.store.query(CATEGORIES_COLLECTION, order_by="name")
        except Exception as exc:
            raise ModuleError("Failed to fetch categories", code="FETCH_FAILED") from exc
        return [Category.model_validate(doc) for doc in docs]

    def create_category(self, data: dict[str, Any], user_id: str | None) -> Category:
        if not user_id:
            raise ModuleError("Not authenticated", code="AUTH_REQUIRED")
        category_id = (data.get("id") or "").strip()
        name = (data.get("name") or "").strip()
        if not category_id or not name:
            raise ModuleError(
                "Category id and name are required", code="VALIDATION_FAILED"
            )
        now = _now_iso()
        category = Category(id=category_id, name=name, created_at=now, updated_at=now)
        try:
            self.store.set(CATEGORIES_COLLECTION, category_id, category.model_dump(exclude={"id"}))
        except Exception as exc:
            raise ModuleError("Failed to create category", code="CREATE_FAILED") from exc
        return category
