# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Placement rules for modules: grid snapping, floor clamping and stacking."""

from __future__ import annotations

import math
from typing import Iterable, NamedTuple

from dc_configurator.scene.models import SceneModule, Vector3

DEFAULT_GRID_SIZE = 1.0
DEFAULT_SNAP_THRESHOLD = 0.5
CHANGE_TOLERANCE = 0.001
# Faces closer than this are touching, not overlapping.
CONTACT_EPSILON = 1e-6


class BoundingBox(NamedTuple):
    """Axis-aligned box given by its min and max corners."""

    min: Vector3
    max: Vector3

    @property
    def height(self) -> float:
        return self.max[1] - self.min[1]


def snap_to_grid(
    value: float,
    grid_size: float = DEFAULT_GRID_SIZE,
    threshold: float = DEFAULT_SNAP_THRESHOLD,
) -> float:
    """Round *value* to the grid when its remainder is within *threshold*."""
    if grid_size <= 0:
        return value
    if abs(math.fmod(value, grid_size)) < threshold:
        return round(value / grid_size) * grid_size
    return value


def snap_rotation(degrees: float, step: float = 90.0) -> float:
    """Round an angle to the nearest multiple of *step* degrees."""
    return round(degrees / step) * step


def _rotation_matrix(rotation_deg: Vector3) -> list[list[float]]:
    # Intrinsic XYZ Euler order, matching the editor's scene graph.
    rx, ry, rz = (math.radians(a) for a in rotation_deg)
    cx, sx = math.cos(rx), math.sin(rx)
    cy, sy = math.cos(ry), math.sin(ry)
    cz, sz = math.cos(rz), math.sin(rz)
    return [
        [cy * cz, -cy * sz, sy],
        [cx * sz + sx * sy * cz, cx * cz - sx * sy * sz, -sx * cy],
        [sx * sz - cx * sy * cz, sx * cz + cx * sy * sz, cx * cy],
    ]


def bounding_box(module: SceneModule, position: Vector3 | None = None) -> BoundingBox:
    """World-space AABB of a module, accounting for scale and rotation."""
    center = position if position is not None else module.position
    half = [s / 2 for s in module.scaled_size]
    matrix = _rotation_matrix(module.rotation)
    extents = [sum(abs(matrix[i][j]) * half[j] for j in range(3)) for i in range(3)]
    return BoundingBox(
        min=tuple(c - e for c, e in zip(center, extents)),  # type: ignore[arg-type]
        max=tuple(c + e for c, e in zip(center, extents)),  # type: ignore[arg-type]
    )


def boxes_intersect(a: BoundingBox, b: BoundingBox, epsilon: float = CONTACT_EPSILON) -> bool:
    """True when the boxes share volume (touching faces do not count)."""
    return all(
        a.min[i] < b.max[i] - epsilon and a.max[i] > b.min[i] + epsilon for i in range(3)
    )


def footprints_overlap(a: BoundingBox, b: BoundingBox, epsilon: float = CONTACT_EPSILON) -> bool:
    """True when the boxes overlap in plan view (x and z only)."""
    return all(
        a.min[i] < b.max[i] - epsilon and a.max[i] > b.min[i] + epsilon for i in (0, 2)
    )


def resolve_placement(
    module: SceneModule,
    others: Iterable[SceneModule],
    grid_snap: bool = True,
    grid_size: float = DEFAULT_GRID_SIZE,
    snap_threshold: float = DEFAULT_SNAP_THRESHOLD,
) -> SceneModule:
    """Return *module* moved to a legal resting place.

    Steps: snap x/z to the grid and yaw to 90 degrees (if enabled), then
    rest the module on top of the highest module whose footprint it
    overlaps, or on the floor when there is none.
    """
    x, _, z = module.position
    rotation = module.rotation
    if grid_snap:
        x = snap_to_grid(x, grid_size, snap_threshold)
        z = snap_to_grid(z, grid_size, snap_threshold)
        rotation = (rotation[0], snap_rotation(rotation[1]), rotation[2])

    candidate = module.model_copy(update={"rotation": rotation})
    half_height = bounding_box(candidate, (x, 0.0, z)).height / 2
    footprint = bounding_box(candidate, (x, half_height, z))

    resting_y = half_height
    for other in others:
        if other.id == module.id:
            continue
        other_box = bounding_box(other)
        if footprints_overlap(footprint, other_box):
            resting_y = max(resting_y, other_box.max[1] + half_height)

    return candidate.model_copy(
        update={
            "position": (x, resting_y, z),
            "rotation": tuple(round(a, 2) for a in rotation),
        }
    )


def has_changed(
    old: SceneModule,
    new: SceneModule,
    tolerance: float = CHANGE_TOLERANCE,
) -> bool:
    """True if position, rotation or scale moved by more than *tolerance*."""
    for attr in ("position", "rotation", "scale"):
        before = getattr(old, attr)
        after = getattr(new, attr)
        if any(abs(a - b) > tolerance for a, b in zip(before, after)):
            return True
    return False
