# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Projects: ownership, sharing and cascading deletes."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from dc_configurator.errors import ConfiguratorError, ProjectError
from dc_configurator.store.base import DocumentStore, Filter

logger = logging.getLogger(__name__)

PROJECTS_COLLECTION = "projects"
MAX_PLOT_DIMENSION = 1000

# Collections whose documents carry a project_id and go with the project.
_CASCADE_COLLECTIONS = ("layouts", "modules")


class ClientInfo(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""


class Project(BaseModel):
    """A customer engagement grouping layouts and saved calculations."""

    id: str = ""
    name: str
    description: str = ""
    user_id: str
    client_info: ClientInfo = Field(default_factory=ClientInfo)
    plot_width: float | None = None
    plot_length: float | None = None
    shared_with: list[str] = Field(default_factory=list)
    status: str = "planning"
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def can_access(self, user_id: str) -> bool:
        return user_id == self.user_id or user_id in self.shared_with


def validate_project(data: dict[str, Any]) -> list[str]:
    """Return the list of problems with a project payload (empty if valid)."""
    errors: list[str] = []
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Project name is required")
    client = data.get("client_info")
    if client is not None and not isinstance(client, dict):
        errors.append("client_info must be a mapping")
        client = None
    email = data.get("client_email") or (client or {}).get("email")
    if email and (not isinstance(email, str) or "@" not in email):
        errors.append("Invalid email format")
    for key in ("plot_width", "plot_length"):
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            errors.append(f"{key} must be a number")
        elif not 0 < value <= MAX_PLOT_DIMENSION:
            errors.append(f"{key} must be in (0, {MAX_PLOT_DIMENSION}]")
    return errors


def _validation_details(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    ]


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProjectService:
    """CRUD and sharing for :class:`Project` documents."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def create_project(self, data: dict[str, Any], user_id: str) -> Project:
        if not user_id:
            raise ProjectError("Not authenticated", code="UNAUTHORIZED")
        errors = validate_project(data)
        if errors:
            raise ProjectError("Project validation failed", code="VALIDATION_FAILED", details=errors)

        client = data.get("client_info") or {}
        doc = {
            "name": data["name"].strip(),
            "description": _strip(data.get("description") or ""),
            "user_id": user_id,
            "client_info": {
                "name": _strip(data.get("company_name") or client.get("name") or ""),
                "email": _strip(data.get("client_email") or client.get("email") or ""),
                "phone": _strip(data.get("client_phone") or client.get("phone") or ""),
                "address": _strip(data.get("client_address") or client.get("address") or ""),
            },
            "plot_width": data.get("plot_width"),
            "plot_length": data.get("plot_length"),
            "shared_with": [],
            "status": data.get("status") or "planning",
            "created_at": _now_iso(),
            "updated_at": _now_iso(),
        }
        try:
            Project.model_validate(doc)
        except ValidationError as exc:
            raise ProjectError(
                "Project validation failed",
                code="VALIDATION_FAILED",
                details=_validation_details(exc),
            ) from exc
        try:
            project_id = self.store.add(PROJECTS_COLLECTION, doc)
        except ConfiguratorError:
            raise
        except Exception as exc:
            raise ProjectError("Failed to create project", code="CREATE_FAILED") from exc
        logger.info("Created project %s for %s", project_id, user_id)
        return Project.model_validate({**doc, "id": project_id})

    def get_project(self, project_id: str) -> Project | None:
        try:
            doc = self.store.get(PROJECTS_COLLECTION, project_id)
        except Exception as exc:
            raise ProjectError(f"Failed to fetch project {project_id}", code="FETCH_FAILED") from exc
        return Project.model_validate(doc) if doc else None

    def _require(self, project_id: str) -> Project:
        project = self.get_project(project_id)
        if project is None:
            raise ProjectError(f"Project {project_id} not found", code="NOT_FOUND")
        return project

    def get_user_projects(self, user_id: str) -> list[Project]:
        """Projects the user owns, followed by projects shared with them."""
        try:
            owned = self.store.query(
                PROJECTS_COLLECTION,
                filters=[Filter("user_id", "==", user_id)],
                order_by="updated_at",
                descending=True,
            )
            shared = self.store.query(
                PROJECTS_COLLECTION,
                filters=[Filter("shared_with", "array-contains", user_id)],
                order_by="updated_at",
                descending=True,
            )
        except Exception as exc:
            raise ProjectError("Failed to fetch projects", code="FETCH_FAILED") from exc
        seen: set[str] = set()
        projects = []
        for doc in owned + shared:
            if doc["id"] not in seen:
                seen.add(doc["id"])
                projects.append(Project.model_validate(doc))
        return projects

    def update_project(self, project_id: str, updates: dict[str, Any], user_id: str) -> Project:
        project = self._require(project_id)
        if not project.can_access(user_id):
            raise ProjectError("Not authorized to update this project", code="UNAUTHORIZED")

        # Ownership and sharing are changed through their own operations.
        protected = {"id", "user_id", "shared_with", "created_at"}
        changes = {k: v for k, v in updates.items() if k not in protected}
        merged = {**project.model_dump(), **changes}
        errors = validate_project(merged)
        if errors:
            raise ProjectError("Project validation failed", code="VALIDATION_FAILED", details=errors)
        try:
            validated = Project.model_validate(merged)
        except ValidationError as exc:
            raise ProjectError(
                "Project validation failed",
                code="VALIDATION_FAILED",
                details=_validation_details(exc),
            ) from exc

        # Write the normalised values, e.g. a full client_info map.
        dumped = validated.model_dump(mode="json")
        changes = {key: dumped[key] for key in changes if key in dumped}
        changes["updated_at"] = _now_iso()
        try:
            self.store.update(PROJECTS_COLLECTION, project_id, changes)
        except Exception as exc:
            raise ProjectError(f"Failed to update project {project_id}", code="UPDATE_FAILED") from exc
        return self._require(project_id)

    def delete_project(self, project_id: str, user_id: str) -> None:
        """Delete a project and every layout and module that belongs to it."""
        project = self._require(project_id)
        if project.user_id != user_id:
            raise ProjectError("Only the owner can delete a project", code="UNAUTHORIZED")
        try:
            for collection in _CASCADE_COLLECTIONS:
                for doc in self.store.query(
                    collection, filters=[Filter("project_id", "==", project_id)]
                ):
                    self.store.delete(collection, doc["id"])
            self.store.delete(PROJECTS_COLLECTION, project_id)
        except Exception as exc:
            raise ProjectError(f"Failed to delete project {project_id}", code="DELETE_FAILED") from exc
        logger.info("Deleted project %s", project_id)

    def share_project(self, project_id: str, target_user_id: str, user_id: str) -> Project:
        project = self._require(project_id)
        if project.user_id != user_id:
            raise ProjectError("Only the owner can share a project", code="UNAUTHORIZED")
        if target_user_id and target_user_id != project.user_id and target_user_id not in project.shared_with:
            try:
                self.store.update(
                    PROJECTS_COLLECTION,
                    project_id,
                    {"shared_with": [*project.shared_with, target_user_id], "updated_at": _now_iso()},
                )
            except Exception as exc:
                raise ProjectError("Failed to share project", code="SHARE_FAILED") from exc
        return self._require(project_id)

    def remove_share(self, project_id: str, target_user_id: str, user_id: str) -> Project:
        project = self._require(project_id)
        if project.user_id != user_id:
            raise ProjectError("Only the owner can change sharing", code="UNAUTHORIZED")
        if target_user_id in project.shared_with:
            remaining = [u for u in project.shared_with if u != target_user_id]
            try:
                self.store.update(
                    PROJECTS_COLLECTION,
                    project_id,
                    {"shared_with": remaining, "updated_at": _now_iso()},
                )
            except Exception as exc:
                raise ProjectError("Failed to update sharing", code="SHARE_FAILED") from exc
        return self._require(project_id)
