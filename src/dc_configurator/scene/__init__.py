# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Layout scene model: module placement, connections and the editing session."""

from dc_configurator.scene.connections import (
    ConnectionValidation,
    check_connection,
    validate_connection,
)
from dc_configurator.scene.models import (
    Connection,
    ConnectionType,
    Dimensions,
    Layout,
    SceneModule,
)
from dc_configurator.scene.state import SceneEditor
from dc_configurator.scene.transform import (
    bounding_box,
    resolve_placement,
    snap_rotation,
    snap_to_grid,
)

__all__ = [
    "Connection",
    "ConnectionType",
    "ConnectionValidation",
    "Dimensions",
    "Layout",
    "SceneEditor",
    "SceneModule",
    "bounding_box",
    "check_connection",
    "resolve_placement",
    "snap_rotation",
    "snap_to_grid",
    "validate_connection",
]
