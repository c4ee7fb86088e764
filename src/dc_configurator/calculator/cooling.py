# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Cooling capacity, liquid flow, pipe sizing and heat-split calculations."""

from __future__ import annotations

import math

from dc_configurator.data.defaults import (
    COOLING_TYPES,
    RACKS_PER_IMMERSION_TANK,
    RDHX_UNIT_CAPACITY_KW,
)
from dc_configurator.data.models import (
    CalculationParams,
    CoolingResult,
    CoolingType,
    PipeSizing,
    ThermalDistribution,
)
from dc_configurator.errors import CalculationError

# Immersion fluid carries more heat per litre than water loops.
_IMMERSION_FLOW_FACTOR = 0.8
_IMMERSION_OVERHEAD = 1.05
_AIR_OVERHEAD = 1.1

# (minimum flow L/min, pipe, velocity m/s, pressure drop kPa/m), largest first
_PIPE_TABLE = [
    (1000, "dn160", 3.0, 2.0),
    (500, "dn125", 2.8, 1.8),
    (0, "dn110", 2.5, 1.5),
]


def select_pipe(flow_rate: float) -> tuple[str, float, float]:
    """Pipe diameter, velocity (m/s) and pressure drop (kPa/m) for a flow in L/min."""
    for min_flow, pipe, velocity, pressure_drop in _PIPE_TABLE:
        if flow_rate > min_flow:
            return pipe, velocity, pressure_drop
    _, pipe, velocity, pressure_drop = _PIPE_TABLE[-1]
    return pipe, velocity, pressure_drop


def cooling_pue(cooling_type: CoolingType, params: CalculationParams) -> float:
    """Facility PUE for a cooling type, scaled by chiller efficiency."""
    impact = COOLING_TYPES[cooling_type].pue_impact
    return round(1 + (impact - 1) * params.cooling.chiller_efficiency_factor, 3)


def select_rdhx_model(kw_per_rack: float) -> str:
    if kw_per_rack <= 15:
        return "basic"
    if kw_per_rack <= 30:
        return "standard"
    return "highDensity"


def calculate_cooling(
    kw_per_rack: float,
    cooling_type: CoolingType | str,
    total_racks: int,
    params: CalculationParams,
    warnings: list[str] | None = None,
) -> CoolingResult:
    """Size the heat-rejection plant for the whole IT load."""
    try:
        cooling_type = CoolingType(cooling_type)
    except ValueError:
        raise CalculationError(f"Unknown cooling type: {cooling_type}", step="cooling") from None
    if kw_per_rack <= 0 or total_racks <= 0:
        raise CalculationError("Load and rack count must be positive", step="cooling")

    c = params.cooling
    load = kw_per_rack * total_racks
    pue = cooling_pue(cooling_type, params)

    if cooling_type is CoolingType.dlc:
        dlc_capacity = load * (1 - c.dlc_residual_heat_fraction)
        flow_rate = round(dlc_capacity * c.flow_rate_factor, 2)
        result = CoolingResult(
            type=cooling_type,
            total_capacity=round(load, 2),
            dlc_capacity=round(dlc_capacity, 2),
            residual_capacity=round(load * c.dlc_residual_heat_fraction, 2),
            flow_rate=flow_rate,
            pipe_size=select_pipe(flow_rate)[0],
            pue=pue,
        )
    elif cooling_type is CoolingType.hybrid:
        dlc_portion = load * c.hybrid_dlc_ratio
        air_portion = load - dlc_portion
        flow_rate = round(dlc_portion * c.flow_rate_factor, 2)
        result = CoolingResult(
            type=cooling_type,
            total_capacity=round(load, 2),
            dlc_capacity=round(dlc_portion, 2),
            air_capacity=round(air_portion, 2),
            flow_rate=flow_rate,
            pipe_size=select_pipe(flow_rate)[0],
            rdhx_units=math.ceil(air_portion / RDHX_UNIT_CAPACITY_KW),
            rdhx_model="average",
            pue=pue,
        )
    elif cooling_type is CoolingType.immersion:
        total = load * _IMMERSION_OVERHEAD
        result = CoolingResult(
            type=cooling_type,
            total_capacity=round(total, 2),
            flow_rate=round(total * c.flow_rate_factor * _IMMERSION_FLOW_FACTOR, 2),
            pipe_size="dn110",
            immersion_tanks=math.ceil(total_racks / RACKS_PER_IMMERSION_TANK),
            pue=pue,
        )
    else:
        total = load * _AIR_OVERHEAD
        result = CoolingResult(
            type=cooling_type,
            total_capacity=round(total, 2),
            air_capacity=round(total, 2),
            rdhx_units=math.ceil(total / RDHX_UNIT_CAPACITY_KW),
            rdhx_model=select_rdhx_model(kw_per_rack),
            pue=pue,
        )

    if warnings is not None:
        max_air = params.cooling_thresholds.air_cooled_max
        if cooling_type is CoolingType.air and kw_per_rack > max_air:
            warnings.append(
                f"Power density of {kw_per_rack:g}kW per rack exceeds the air cooling "
                f"limit of {max_air:g}kW. Consider liquid cooling."
            )
        max_density = COOLING_TYPES[cooling_type].max_density
        if kw_per_rack > max_density:
            warnings.append(
                f"{COOLING_TYPES[cooling_type].name} is rated up to {max_density:g}kW per rack."
            )

    return result


def calculate_pipe_sizing(cooling: CoolingResult) -> PipeSizing:
    """Pick a pipe diameter for the liquid loop from its flow rate."""
    if cooling.type not in (CoolingType.dlc, CoolingType.hybrid):
        return PipeSizing(required=False)
    pipe, velocity, pressure_drop = select_pipe(cooling.flow_rate)
    return PipeSizing(
        required=True,
        pipe_size=pipe,
        velocity_ms=velocity,
        pressure_drop_kpa_per_m=pressure_drop,
        flow_rate_lpm=cooling.flow_rate,
    )


def calculate_thermal_distribution(
    kw_per_rack: float,
    total_racks: int,
    cooling_type: CoolingType,
    params: CalculationParams,
) -> ThermalDistribution:
    """Split the heat load between liquid and air paths."""
    load = kw_per_rack * total_racks
    if cooling_type is CoolingType.dlc:
        liquid_fraction = 1 - params.cooling.dlc_residual_heat_fraction
    elif cooling_type is CoolingType.hybrid:
        liquid_fraction = params.cooling.hybrid_dlc_ratio
    elif cooling_type is CoolingType.immersion:
        liquid_fraction = 1.0
    else:
        liquid_fraction = 0.0

    profile = COOLING_TYPES[cooling_type]
    return ThermalDistribution(
        liquid_percentage=round(liquid_fraction * 100, 1),
        air_percentage=round((1 - liquid_fraction) * 100, 1),
        liquid_load_kw=round(load * liquid_fraction, 2),
        air_load_kw=round(load * (1 - liquid_fraction), 2),
        pue=cooling_pue(cooling_type, params),
        water_usage_l_per_day=round(load * profile.water_usage * 24, 1),
    )
