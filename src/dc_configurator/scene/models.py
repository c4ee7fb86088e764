# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Scene data model: placed modules, connections and layouts.

Axes follow the editor convention: ``x`` is along a module's length,
``y`` is up (height) and ``z`` is along its width.  Rotations are stored
in degrees.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

Vector3 = tuple[float, float, float]


class ConnectionType(str, Enum):
    """Kinds of physical link that can join two modules."""

    power = "power"
    network = "network"
    cooling = "cooling"
    security = "security"
    cat6a = "cat6a"
    water = "water"
    gas = "gas"


class Dimensions(BaseModel):
    """Unscaled module size in metres."""

    length: float = Field(default=1.0, gt=0)
    width: float = Field(default=1.0, gt=0)
    height: float = Field(default=1.0, gt=0)


class ConnectionPoint(BaseModel):
    position: Vector3 = (0.0, 0.0, 0.0)
    type: ConnectionType


class SceneModule(BaseModel):
    """A module instance placed in a layout."""

    id: str
    type: str = "basic"
    name: str = ""
    category: str = "basic"
    color: str = "#64748b"
    dimensions: Dimensions = Field(default_factory=Dimensions)
    position: Vector3 = (0.0, 0.5, 0.0)
    rotation: Vector3 = (0.0, 0.0, 0.0)
    scale: Vector3 = (1.0, 1.0, 1.0)
    visible_in_editor: bool = True
    connection_points: list[ConnectionPoint] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def scaled_size(self) -> Vector3:
        """(x, y, z) extent after scaling, before rotation."""
        return (
            self.dimensions.length * self.scale[0],
            self.dimensions.height * self.scale[1],
            self.dimensions.width * self.scale[2],
        )


class Connection(BaseModel):
    """A link between two modules, drawn as a polyline."""

    id: str
    source_module_id: str
    target_module_id: str
    type: ConnectionType
    source_point: Vector3 = (0.0, 0.0, 0.0)
    target_point: Vector3 = (0.0, 0.0, 0.0)
    intermediate_points: list[Vector3] = Field(default_factory=list)
    capacity: float | None = None

    def touches(self, module_id: str) -> bool:
        return module_id in (self.source_module_id, self.target_module_id)

    @property
    def length(self) -> float:
        """Polyline length through all intermediate points."""
        points = [self.source_point, *self.intermediate_points, self.target_point]
        total = 0.0
        for a, b in zip(points, points[1:]):
            total += sum((p - q) ** 2 for p, q in zip(a, b)) ** 0.5
        return total


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Layout(BaseModel):
    """A named arrangement of modules and connections within a project."""

    id: str = ""
    project_id: str
    name: str
    description: str = ""
    modules: list[SceneModule] = Field(default_factory=list)
    connections: list[Connection] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def get_module(self, module_id: str) -> SceneModule | None:
        return next((m for m in self.modules if m.id == module_id), None)
