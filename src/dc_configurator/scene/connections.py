# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Engineering checks for power, cooling and network connections."""

from __future__ import annotations

import math

from pydantic import BaseModel, Field

from dc_configurator.scene.models import Connection, ConnectionType, Vector3

IMPEDANCE_FACTOR = 1.732

POWER_SUBTYPES: dict[str, float] = {
    "PRIMARY": 480,
    "UPS_TO_PDU": 208,
    "PDU_TO_RACK": 120,
}
# Allowed pressure drop per run, kPa
COOLING_SUBTYPES: dict[str, float] = {
    "CHILLED_WATER": 30,
}
# (bandwidth Gbps, max length m)
NETWORK_SUBTYPES: dict[str, tuple[int, float]] = {
    "FIBER": (100, 10_000),
    "COPPER": (10, 100),
}

DEFAULT_SUBTYPES = {
    ConnectionType.power: "PRIMARY",
    ConnectionType.cooling: "CHILLED_WATER",
    ConnectionType.water: "CHILLED_WATER",
    ConnectionType.network: "FIBER",
    ConnectionType.cat6a: "COPPER",
}

_MAX_VOLTAGE_DROP = 0.05
_MIN_POWER_EFFICIENCY = 0.9
_MIN_COOLING_EFFICIENCY = 0.85
_NETWORK_WARNING_RATIO = 0.8

_FRICTION_FACTOR = 0.02
_PIPE_DIAMETER_M = 0.1
_WATER_DENSITY = 1000  # kg/m3


class ConnectionValidation(BaseModel):
    """Outcome of a connection check."""

    is_valid: bool
    capacity: float = 0.0
    loss: float = 0.0
    efficiency: float = 1.0
    warnings: list[str] = Field(default_factory=list)


def distance(source: Vector3, target: Vector3) -> float:
    return math.dist(source, target)


def voltage_drop(current: float, length: float, voltage: float) -> float:
    return current * length * IMPEDANCE_FACTOR / voltage


def pressure_drop_kpa(length: float, flow_m3s: float) -> float:
    """Darcy-Weisbach pressure drop through the standard pipe."""
    area = math.pi * (_PIPE_DIAMETER_M / 2) ** 2
    velocity = flow_m3s / area
    pascals = _FRICTION_FACTOR * (length / _PIPE_DIAMETER_M) * _WATER_DENSITY * velocity ** 2 / 2
    return pascals / 1000


def _validate_power(subtype: str, length: float, load: float) -> ConnectionValidation:
    voltage = POWER_SUBTYPES[subtype]
    drop = voltage_drop(load, length, voltage)
    efficiency = 1 - drop / voltage
    warnings = []
    if drop > voltage * _MAX_VOLTAGE_DROP:
        warnings.append("High voltage drop detected")
    return ConnectionValidation(
        is_valid=efficiency > _MIN_POWER_EFFICIENCY,
        capacity=voltage * load,
        loss=drop * load,
        efficiency=efficiency,
        warnings=warnings,
    )


def _validate_cooling(subtype: str, length: float, flow: float) -> ConnectionValidation:
    allowed = COOLING_SUBTYPES[subtype]
    drop = pressure_drop_kpa(length, flow)
    efficiency = 1 - drop / allowed
    warnings = []
    if drop > allowed:
        warnings.append("High pressure drop detected")
    return ConnectionValidation(
        is_valid=efficiency > _MIN_COOLING_EFFICIENCY,
        capacity=flow,
        loss=drop,
        efficiency=efficiency,
        warnings=warnings,
    )


def _validate_network(subtype: str, length: float) -> ConnectionValidation:
    bandwidth, max_length = NETWORK_SUBTYPES[subtype]
    warnings = []
    if length > max_length * _NETWORK_WARNING_RATIO:
        warnings.append("Connection length approaching maximum limit")
    return ConnectionValidation(
        is_valid=length <= max_length,
        capacity=bandwidth,
        loss=length / max_length,
        efficiency=1 - length / max_length,
        warnings=warnings,
    )


def validate_connection(
    connection_type: ConnectionType | str,
    source: Vector3,
    target: Vector3,
    load: float = 0.0,
    subtype: str | None = None,
    length: float | None = None,
) -> ConnectionValidation:
    """Check a run between two points.

    The run length defaults to the straight-line distance; pass *length*
    for routed runs.

    *load* is the current in amps for power runs and the flow in m3/s
    for cooling runs; it is ignored for network runs.

    Raises
    ------
    ValueError
        For connection types without engineering rules, or unknown subtypes.
    """
    kind = ConnectionType(connection_type)
    subtype = (subtype or DEFAULT_SUBTYPES.get(kind, "")).upper()
    if length is None:
        length = distance(source, target)

    if kind is ConnectionType.power:
        if subtype not in POWER_SUBTYPES:
            raise ValueError(f"Invalid power connection subtype: {subtype}")
        return _validate_power(subtype, length, load)
    if kind in (ConnectionType.cooling, ConnectionType.water):
        if subtype not in COOLING_SUBTYPES:
            raise ValueError(f"Invalid cooling connection subtype: {subtype}")
        return _validate_cooling(subtype, length, load)
    if kind in (ConnectionType.network, ConnectionType.cat6a):
        if subtype not in NETWORK_SUBTYPES:
            raise ValueError(f"Invalid network connection subtype: {subtype}")
        return _validate_network(subtype, length)
    raise ValueError(f"No engineering rules for {kind.value} connections")


def check_connection(connection: Connection, subtype: str | None = None) -> ConnectionValidation:
    """Validate a stored connection using its capacity as the load."""
    return validate_connection(
        connection.type,
        connection.source_point,
        connection.target_point,
        load=connection.capacity or 0.0,
        subtype=subtype,
        length=connection.length,
    )
