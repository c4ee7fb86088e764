# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Per-user layout editor preferences."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, Field

from dc_configurator.store.base import DocumentStore

logger = logging.getLogger(__name__)

PREFERENCES_COLLECTION = "editorPreferences"


class GridPreferences(BaseModel):
    size: int = Field(default=50, gt=0)
    weight: Literal["0.5", "1", "2"] = "1"
    color: str = "#888888"
    visible: bool = True
    show_axes: bool = True
    snap: bool = True
    divisions: int = Field(default=5, gt=0)


class ObjectPreferences(BaseModel):
    transparency: float = Field(default=0.85, ge=0, le=1)


class EditorPreferences(BaseModel):
    user_id: str
    grid: GridPreferences = Field(default_factory=GridPreferences)
    objects: ObjectPreferences = Field(default_factory=ObjectPreferences)
    autosave: bool = True


class EditorPreferencesService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def get_preferences(self, user_id: str) -> EditorPreferences:
        """Stored preferences for *user_id*, or the defaults if none exist."""
        doc = self.store.get(PREFERENCES_COLLECTION, user_id)
        if doc is None:
            return EditorPreferences(user_id=user_id)
        doc.pop("id", None)
        return EditorPreferences.model_validate({**doc, "user_id": user_id})

    def save_preferences(self, preferences: EditorPreferences) -> None:
        self.store.set(
            PREFERENCES_COLLECTION, preferences.user_id, preferences.model_dump(mode="json")
        )
        logger.debug("Saved editor preferences for %s", preferences.user_id)
