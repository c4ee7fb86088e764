# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Simplified estimate used when the full pipeline cannot complete.

The figures here are rules of thumb that need no params or pricing
documents, so the caller always has something to display.
"""

from __future__ import annotations

import math

from dc_configurator.calculator.cooling import select_rdhx_model
from dc_configurator.calculator.electrical import select_rpdu, select_tap_off_box
from dc_configurator.calculator.reliability import MINUTES_PER_YEAR, classify_tier
from dc_configurator.data.models import (
    BatteryResult,
    CalculationInputs,
    CalculationResult,
    ComponentAvailability,
    CoolingResult,
    CoolingType,
    CostBreakdown,
    ElectricalResult,
    PowerResult,
    RedundancyMode,
    ReliabilityResult,
    UPSResult,
)

FALLBACK_WARNING = (
    "Detailed calculation failed; showing a simplified estimate based on default values."
)

_COST_PER_FACILITY_KW = 10_000
_FLOW_PER_KW = 0.25  # L/min

_REDUNDANCY_FACTOR = {
    RedundancyMode.n: 1.0,
    RedundancyMode.n_plus_1: 1.2,
    RedundancyMode.two_n: 2.0,
    RedundancyMode.two_n_plus_1: 2.2,
}

_AVAILABILITY_PCT = {
    RedundancyMode.n: 99.9,
    RedundancyMode.n_plus_1: 99.99,
    RedundancyMode.two_n: 99.999,
    RedundancyMode.two_n_plus_1: 99.999,
}


def _fallback_cooling(inputs: CalculationInputs, pue: float) -> CoolingResult:
    load = inputs.total_it_load_kw
    if inputs.cooling_type is CoolingType.dlc:
        return CoolingResult(
            type=inputs.cooling_type,
            total_capacity=round(load * 1.1, 2),
            dlc_capacity=round(load * 0.75, 2),
            residual_capacity=round(load * 0.25, 2),
            flow_rate=round(load * 0.75 * _FLOW_PER_KW, 2),
            pipe_size="dn110",
            pue=pue,
        )
    if inputs.cooling_type is CoolingType.hybrid:
        return CoolingResult(
            type=inputs.cooling_type,
            total_capacity=round(load * 1.1, 2),
            dlc_capacity=round(load * 0.6, 2),
            air_capacity=round(load * 0.4, 2),
            flow_rate=round(load * 0.6 * _FLOW_PER_KW, 2),
            pipe_size="dn110",
            rdhx_units=math.ceil(load * 0.4 / 150),
            rdhx_model="average",
            pue=pue,
        )
    if inputs.cooling_type is CoolingType.immersion:
        return CoolingResult(
            type=inputs.cooling_type,
            total_capacity=round(load * 1.05, 2),
            flow_rate=round(load * 1.05 * _FLOW_PER_KW * 0.8, 2),
            pipe_size="dn110",
            immersion_tanks=math.ceil(inputs.total_racks / 4),
            pue=pue,
        )
    return CoolingResult(
        type=inputs.cooling_type,
        total_capacity=round(load * 1.1, 2),
        air_capacity=round(load * 1.1, 2),
        rdhx_units=math.ceil(load * 1.1 / 150),
        rdhx_model=select_rdhx_model(inputs.kw_per_rack),
        pue=pue,
    )


def fallback_result(inputs: CalculationInputs, reason: str = "") -> CalculationResult:
    """Rule-of-thumb result for *inputs*, marked ``is_fallback``."""
    load = inputs.total_it_load_kw
    efficiency = 0.7 if inputs.cooling_type is CoolingType.air else 0.85
    redundancy = _REDUNDANCY_FACTOR[inputs.redundancy_mode]
    cooling_load = load / efficiency
    facility_load = (load + cooling_load) * redundancy
    pue = round(facility_load / load, 3)

    current_per_rack = round(inputs.kw_per_rack * 1000 / (400 * math.sqrt(3) * 0.9))
    current_per_row = current_per_rack * 14
    modules = max(1, math.ceil(load * redundancy / 250))
    energy = round(load * inputs.battery_runtime / (60 * 0.95), 2)
    cabinets = math.ceil(energy / 40)

    total = round(facility_load * _COST_PER_FACILITY_KW)
    availability_pct = _AVAILABILITY_PCT[inputs.redundancy_mode]
    availability = availability_pct / 100

    warnings = [FALLBACK_WARNING]
    if reason:
        warnings.append(reason)

    return CalculationResult(
        inputs=inputs,
        electrical=ElectricalResult(
            current_per_row=current_per_row,
            current_per_rack=current_per_rack,
            busbar_rating=2000 if current_per_row > 1250 else 1250,
            tap_off_box=select_tap_off_box(current_per_rack),
            rpdu=select_rpdu(current_per_rack),
            multiple_busbars_required=current_per_row > 2000,
        ),
        cooling=_fallback_cooling(inputs, pue),
        power=PowerResult(
            ups=UPSResult(
                total_load_kw=load,
                required_capacity_kw=round(load * redundancy, 2),
                redundancy_mode=inputs.redundancy_mode,
                module_size_kw=250,
                total_modules=modules,
                total_frames=max(1, math.ceil(modules / 6)),
                frame_size="frame6Module",
            ),
            battery=BatteryResult(
                runtime_minutes=inputs.battery_runtime,
                energy_needed_kwh=energy,
                cabinets_needed=cabinets,
                total_weight_kg=cabinets * 1200,
            ),
        ),
        cost=CostBreakdown(
            total_project_cost=total,
            cost_per_rack=round(total / inputs.total_racks),
            cost_per_kw=round(total / load),
        ),
        reliability=ReliabilityResult(
            availability=availability,
            availability_percentage=availability_pct,
            tier=classify_tier(availability),
            annual_downtime_minutes=round((1 - availability) * MINUTES_PER_YEAR),
            components=ComponentAvailability(ups=availability, cooling=availability),
            redundancy_mode=inputs.redundancy_mode,
        ),
        warnings=warnings,
        is_fallback=True,
    )
