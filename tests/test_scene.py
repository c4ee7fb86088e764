# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Tests for module placement, connection checks and the scene editor."""

from __future__ import annotations

import pytest

from dc_configurator.errors import LayoutError
from dc_configurator.scene.connections import check_connection, validate_connection
from dc_configurator.scene.models import Connection, ConnectionType, Dimensions, SceneModule
from dc_configurator.scene.state import SceneEditor
from dc_configurator.scene.transform import (
    bounding_box,
    boxes_intersect,
    footprints_overlap,
    has_changed,
    resolve_placement,
    snap_rotation,
    snap_to_grid,
)


class FakeTimer:
    """Stands in for threading.Timer; fires only when told to."""

    def __init__(self, delay, function):
        self.delay = delay
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function()


@pytest.fixture()
def timers() -> list[FakeTimer]:
    return []


@pytest.fixture()
def layout(container):
    return container.layouts.create_layout("p1", "Hall")


@pytest.fixture()
def editor(container, layout, timers):
    def factory(delay, function):
        timer = FakeTimer(delay, function)
        timers.append(timer)
        return timer

    return SceneEditor(layout, container.layouts, autosave_delay=2.0, timer_factory=factory)


def _module(module_id: str, position=(0.0, 0.5, 0.0), **kwargs) -> SceneModule:
    return SceneModule(id=module_id, position=position, **kwargs)


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------

class TestSnapping:
    """Grid and rotation snapping."""

    @pytest.mark.parametrize(
        "value, expected",
        [(1.3, 1.0), (1.7, 1.7), (-1.3, -1.0), (2.0, 2.0), (0.49, 0.0)],
    )
    def test_snap_to_grid(self, value, expected):
        assert snap_to_grid(value) == pytest.approx(expected)

    def test_snap_to_coarser_grid(self):
        assert snap_to_grid(5.2, grid_size=5, threshold=0.5) == 5

    def test_non_positive_grid_is_ignored(self):
        assert snap_to_grid(1.3, grid_size=0) == 1.3

    @pytest.mark.parametrize("degrees, expected", [(44, 0), (46, 90), (181, 180), (-100, -90)])
    def test_snap_rotation(self, degrees, expected):
        assert snap_rotation(degrees) == expected


class TestBoundingBoxes:
    """World-space boxes and overlap tests."""

    def test_unit_module(self):
        box = bounding_box(_module("a"))
        assert box.min == pytest.approx((-0.5, 0.0, -0.5))
        assert box.max == pytest.approx((0.5, 1.0, 0.5))
        assert box.height == pytest.approx(1.0)

    def test_scale_is_applied(self):
        box = bounding_box(_module("a", scale=(2.0, 3.0, 1.0)))
        assert box.max[0] - box.min[0] == pytest.approx(2.0)
        assert box.height == pytest.approx(3.0)

    def test_yaw_swaps_footprint(self):
        module = _module("a", dimensions=Dimensions(length=4, width=2, height=1),
                         rotation=(0.0, 90.0, 0.0))
        box = bounding_box(module)
        assert box.max[0] - box.min[0] == pytest.approx(2.0)
        assert box.max[2] - box.min[2] == pytest.approx(4.0)

    def test_touching_faces_do_not_intersect(self):
        a = bounding_box(_module("a"))
        b = bounding_box(_module("b", position=(1.0, 0.5, 0.0)))
        assert not boxes_intersect(a, b)
        assert not footprints_overlap(a, b)

    def test_overlap(self):
        a = bounding_box(_module("a"))
        b = bounding_box(_module("b", position=(0.5, 0.5, 0.5)))
        assert boxes_intersect(a, b)
        stacked = bounding_box(_module("c", position=(0.0, 1.5, 0.0)))
        assert footprints_overlap(a, stacked)
        assert not boxes_intersect(a, stacked)


class TestResolvePlacement:
    """Snapping, floor clamping and stacking."""

    def test_rests_on_floor(self):
        placed = resolve_placement(_module("a", position=(1.3, 7.0, 2.7)), [])
        assert placed.position == pytest.approx((1.0, 0.5, 2.7))

    def test_snaps_yaw(self):
        placed = resolve_placement(_module("a", rotation=(0.0, 80.0, 0.0)), [])
        assert placed.rotation == (0.0, 90.0, 0.0)

    def test_no_snap(self):
        placed = resolve_placement(
            _module("a", position=(1.3, 0.0, 0.0), rotation=(0.0, 80.0, 0.0)), [],
            grid_snap=False,
        )
        assert placed.position[0] == pytest.approx(1.3)
        assert placed.rotation[1] == 80.0

    def test_stacks_on_overlapping_module(self):
        base = _module("base", dimensions=Dimensions(length=2, width=2, height=2),
                       position=(0.0, 1.0, 0.0))
        placed = resolve_placement(_module("top", position=(0.2, 0.0, 0.0)), [base],
                                   grid_snap=False)
        assert placed.position[1] == pytest.approx(2.5)

    def test_stacks_on_highest(self):
        base = _module("base")
        middle = _module("middle", position=(0.0, 1.5, 0.0))
        placed = resolve_placement(_module("top"), [base, middle])
        assert placed.position[1] == pytest.approx(2.5)

    def test_adjacent_module_stays_on_floor(self):
        neighbour = _module("n")
        placed = resolve_placement(_module("a", position=(1.0, 3.0, 0.0)), [neighbour])
        assert placed.position[1] == pytest.approx(0.5)

    def test_ignores_itself(self):
        module = _module("a")
        assert resolve_placement(module, [module]).position[1] == pytest.approx(0.5)

    def test_has_changed(self):
        module = _module("a")
        nudged = module.model_copy(update={"position": (0.0005, 0.5, 0.0)})
        moved = module.model_copy(update={"position": (0.1, 0.5, 0.0)})
        assert not has_changed(module, nudged)
        assert has_changed(module, moved)


# ---------------------------------------------------------------------------
# Connection checks
# ---------------------------------------------------------------------------

class TestConnectionValidation:
    """Engineering rules per connection type."""

    def test_short_power_run(self):
        result = validate_connection("power", (0, 0, 0), (10, 0, 0), load=100)
        assert result.is_valid
        assert result.warnings == []
        assert result.capacity == 48_000
        assert result.efficiency == pytest.approx(1 - (100 * 10 * 1.732 / 480) / 480)

    def test_long_heavy_power_run(self):
        result = validate_connection(ConnectionType.power, (0, 0, 0), (0, 0, 0),
                                     load=1000, length=200)
        assert not result.is_valid
        assert "High voltage drop detected" in result.warnings

    def test_power_subtype(self):
        primary = validate_connection("power", (0, 0, 0), (20, 0, 0), load=50)
        rack = validate_connection("power", (0, 0, 0), (20, 0, 0), load=50,
                                   subtype="pdu_to_rack")
        assert rack.efficiency < primary.efficiency

    def test_cooling_run(self):
        result = validate_connection("cooling", (0, 0, 0), (10, 0, 0), load=0.01)
        assert result.is_valid
        assert result.loss == pytest.approx(1.62, abs=0.01)

    def test_water_uses_cooling_rules(self):
        result = validate_connection("water", (0, 0, 0), (0, 0, 0), load=0.05, length=100)
        assert not result.is_valid
        assert "High pressure drop detected" in result.warnings

    def test_fiber_near_limit(self):
        result = validate_connection("network", (0, 0, 0), (0, 0, 0), length=9000)
        assert result.is_valid
        assert result.capacity == 100
        assert "Connection length approaching maximum limit" in result.warnings

    def test_copper_too_long(self):
        result = validate_connection("cat6a", (0, 0, 0), (150, 0, 0))
        assert not result.is_valid

    @pytest.mark.parametrize("kind", ["security", "gas"])
    def test_types_without_rules(self, kind):
        with pytest.raises(ValueError):
            validate_connection(kind, (0, 0, 0), (1, 0, 0))

    def test_unknown_subtype(self):
        with pytest.raises(ValueError, match="Invalid power connection subtype"):
            validate_connection("power", (0, 0, 0), (1, 0, 0), subtype="DC_BUS")

    def test_check_connection_uses_routed_length(self):
        conn = Connection(
            id="c", source_module_id="a", target_module_id="b", type="network",
            source_point=(0, 0, 0), target_point=(0, 0, 0),
            intermediate_points=[(50, 0, 0)],
        )
        assert conn.length == pytest.approx(100)
        assert check_connection(conn, subtype="COPPER").is_valid
        conn.intermediate_points = [(60, 0, 0)]
        assert not check_connection(conn, subtype="COPPER").is_valid


# ---------------------------------------------------------------------------
# Editor session
# ---------------------------------------------------------------------------

class TestSceneEditor:
    """Mutations, autosave and failure handling."""

    def test_add_module_from_dict(self, editor):
        module = editor.add_module({"name": "Rack row", "position": (2.2, 9.0, 0.0)})
        assert module.id
        assert module.position == pytest.approx((2.0, 0.5, 0.0))
        assert editor.has_changes

    def test_add_stacks(self, editor):
        editor.add_module(_module("base"))
        top = editor.add_module(_module("top"))
        assert top.position[1] == pytest.approx(1.5)

    def test_duplicate_id(self, editor):
        editor.add_module(_module("a"))
        with pytest.raises(ValueError):
            editor.add_module(_module("a"))

    def test_update_moves_and_resolves(self, editor):
        editor.add_module(_module("a"))
        moved = editor.update_module("a", position=(3.2, 9.0, 0.0))
        assert moved.position == pytest.approx((3.0, 0.5, 0.0))
        assert editor.get_module("a") == moved

    def test_update_without_change(self, editor):
        module = editor.add_module(_module("a", name="A"))
        editor.save_changes()
        assert editor.update_module("a", name="A") == module
        assert editor.has_changes is False

    def test_update_missing(self, editor):
        with pytest.raises(KeyError):
            editor.update_module("missing", name="x")

    def test_delete_cascades_connections_and_selection(self, editor):
        editor.add_module(_module("a"))
        editor.add_module(_module("b", position=(3.0, 0.5, 0.0)))
        editor.add_module(_module("c", position=(6.0, 0.5, 0.0)))
        editor.add_connection({"source_module_id": "a", "target_module_id": "b", "type": "power"})
        editor.add_connection({"source_module_id": "b", "target_module_id": "c", "type": "power"})
        editor.select("b")
        editor.delete_module("b")
        assert editor.connections == []
        assert editor.selected_module_id is None
        assert [m.id for m in editor.modules] == ["a", "c"]

    def test_select_unknown(self, editor):
        with pytest.raises(KeyError):
            editor.select("missing")
        editor.select(None)

    def test_connection_validation(self, editor):
        editor.add_module(_module("a"))
        with pytest.raises(KeyError):
            editor.add_connection({"source_module_id": "a", "target_module_id": "x",
                                   "type": "power"})
        with pytest.raises(ValueError):
            editor.add_connection({"source_module_id": "a", "target_module_id": "a",
                                   "type": "power"})

    def test_update_and_delete_connection(self, editor):
        editor.add_module(_module("a"))
        editor.add_module(_module("b", position=(3.0, 0.5, 0.0)))
        conn = editor.add_connection(
            {"source_module_id": "a", "target_module_id": "b", "type": "cooling"}
        )
        updated = editor.update_connection(conn.id, capacity=0.02)
        assert updated.capacity == 0.02
        editor.delete_connection(conn.id)
        assert editor.connections == []
        with pytest.raises(KeyError):
            editor.delete_connection(conn.id)

    def test_autosave_is_debounced(self, editor, timers, container, layout):
        editor.add_module(_module("a"))
        editor.add_module(_module("b", position=(3.0, 0.5, 0.0)))
        assert len(timers) == 2
        assert timers[0].cancelled
        assert timers[1].started and timers[1].daemon
        assert timers[1].delay == 2.0
        timers[1].fire()
        assert editor.has_changes is False
        saved = container.layouts.get_layout(layout.id)
        assert [m.id for m in saved.modules] == ["a", "b"]

    def test_failed_save_stays_dirty(self, editor, container, layout):
        editor.add_module(_module("a"))
        container.layouts.delete_layout(layout.id)
        assert editor.save_changes() is False
        assert editor.has_changes is True
        assert isinstance(editor.last_error, LayoutError)

    def test_save_without_changes(self, editor):
        assert editor.save_changes() is True

    def test_close_flushes(self, container, layout):
        editor = SceneEditor(layout, container.layouts, autosave=False)
        editor.add_module(_module("a"))
        editor.close()
        assert editor.has_changes is False
        assert container.layouts.get_layout(layout.id).get_module("a") is not None

    def test_loads_existing_layout(self, container, layout):
        container.layouts.update_layout(layout.id, [_module("a")], [])
        stored = container.layouts.get_layout(layout.id)
        editor = SceneEditor(stored, container.layouts, autosave=False)
        assert editor.get_module("a") is not None
        assert editor.has_changes is False
