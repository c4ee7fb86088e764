# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Editing session for one layout, with debounced autosave."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import TYPE_CHECKING, Any, Callable

from dc_configurator.scene.models import Connection, Layout, SceneModule
from dc_configurator.scene.transform import has_changed, resolve_placement

if TYPE_CHECKING:
    from dc_configurator.services.layouts import LayoutService

logger = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_DELAY = 2.0


class SceneEditor:
    """In-memory working copy of a layout.

    Every mutation marks the editor dirty and (when autosave is on)
    restarts a debounce timer; when the timer fires the layout is written
    through *layout_service*.  A failed save leaves the editor dirty so
    the next save retries.
    """

    def __init__(
        self,
        layout: Layout,
        layout_service: LayoutService,
        autosave: bool = True,
        autosave_delay: float = DEFAULT_AUTOSAVE_DELAY,
        grid_snap: bool = True,
        timer_factory: Callable[[float, Callable[[], None]], Any] = threading.Timer,
    ) -> None:
        self.layout_id = layout.id
        self.modules: list[SceneModule] = list(layout.modules)
        self.connections: list[Connection] = list(layout.connections)
        self.selected_module_id: str | None = None
        self.has_changes = False
        self.last_error: Exception | None = None
        self.autosave = autosave
        self.autosave_delay = autosave_delay
        self.grid_snap = grid_snap
        self._service = layout_service
        self._timer_factory = timer_factory
        self._timer: Any = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Modules
    # ------------------------------------------------------------------

    def get_module(self, module_id: str) -> SceneModule | None:
        return next((m for m in self.modules if m.id == module_id), None)

    def add_module(self, module: SceneModule | dict[str, Any]) -> SceneModule:
        """Place a new module, snapping and stacking it as needed."""
        if isinstance(module, dict):
            module = SceneModule.model_validate({"id": uuid.uuid4().hex[:12], **module})
        with self._lock:
            if self.get_module(module.id) is not None:
                raise ValueError(f"Module {module.id} already exists in layout")
            placed = resolve_placement(module, self.modules, grid_snap=self.grid_snap)
            self.modules.append(placed)
            self._mark_dirty()
        return placed

    def update_module(self, module_id: str, **updates: Any) -> SceneModule:
        """Apply field updates, re-resolving placement if the transform moved."""
        with self._lock:
            current = self.get_module(module_id)
            if current is None:
                raise KeyError(f"Module {module_id} not found")
            updated = SceneModule.model_validate({**current.model_dump(), **updates})
            if has_changed(current, updated) or "dimensions" in updates:
                updated = resolve_placement(updated, self.modules, grid_snap=self.grid_snap)
            elif updated == current:
                return current
            index = self.modules.index(current)
            self.modules[index] = updated
            self._mark_dirty()
        return updated

    def delete_module(self, module_id: str) -> None:
        """Remove a module together with every connection touching it."""
        with self._lock:
            current = self.get_module(module_id)
            if current is None:
                raise KeyError(f"Module {module_id} not found")
            self.modules.remove(current)
            self.connections = [c for c in self.connections if not c.touches(module_id)]
            if self.selected_module_id == module_id:
                self.selected_module_id = None
            self._mark_dirty()

    def select(self, module_id: str | None) -> None:
        if module_id is not None and self.get_module(module_id) is None:
            raise KeyError(f"Module {module_id} not found")
        self.selected_module_id = module_id

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def add_connection(self, connection: Connection | dict[str, Any]) -> Connection:
        if isinstance(connection, dict):
            connection = Connection.model_validate({"id": uuid.uuid4().hex[:12], **connection})
        with self._lock:
            for end in (connection.source_module_id, connection.target_module_id):
                if self.get_module(end) is None:
                    raise KeyError(f"Module {end} not found")
            if connection.source_module_id == connection.target_module_id:
                raise ValueError("A connection cannot join a module to itself")
            self.connections.append(connection)
            self._mark_dirty()
        return connection

    def update_connection(self, connection_id: str, **updates: Any) -> Connection:
        with self._lock:
            index = self._connection_index(connection_id)
            updated = Connection.model_validate(
                {**self.connections[index].model_dump(), **updates}
            )
            self.connections[index] = updated
            self._mark_dirty()
        return updated

    def delete_connection(self, connection_id: str) -> None:
        with self._lock:
            del self.connections[self._connection_index(connection_id)]
            self._mark_dirty()

    def _connection_index(self, connection_id: str) -> int:
        for index, connection in enumerate(self.connections):
            if connection.id == connection_id:
                return index
        raise KeyError(f"Connection {connection_id} not found")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _mark_dirty(self) -> None:
        self.has_changes = True
        if self.autosave:
            self._schedule_autosave()

    def _schedule_autosave(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._timer_factory(self.autosave_delay, self._autosave)
        self._timer.daemon = True
        self._timer.start()

    def _autosave(self) -> None:
        self.save_changes()

    def save_changes(self) -> bool:
        """Write the working copy to the store. Returns True on success."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if not self.has_changes:
                return True
            modules = list(self.modules)
            connections = list(self.connections)
            try:
                self._service.update_layout(self.layout_id, modules, connections)
            except Exception as exc:
                self.last_error = exc
                logger.warning("Saving layout %s failed", self.layout_id, exc_info=True)
                return False
            self.last_error = None
            self.has_changes = False
            logger.debug("Saved layout %s", self.layout_id)
            return True

    def close(self) -> None:
        """Cancel any pending autosave and flush outstanding changes."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.has_changes:
            self.save_changes()
