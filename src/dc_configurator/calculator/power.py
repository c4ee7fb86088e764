# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""UPS, battery and standby generator sizing."""

from __future__ import annotations

import math

from dc_configurator.data.defaults import (
    BATTERY_CABINET_KWH,
    BATTERY_CABINET_WEIGHT_KG,
    REDUNDANCY_CONFIGURATIONS,
)
from dc_configurator.data.models import (
    BatteryResult,
    CalculationParams,
    GeneratorResult,
    RedundancyMode,
    UPSResult,
)
from dc_configurator.errors import CalculationError


def _redundancy(mode: RedundancyMode | str) -> RedundancyMode:
    try:
        return RedundancyMode(mode)
    except ValueError:
        raise CalculationError(f"Unknown redundancy mode: {mode}", step="power") from None


def select_frame_size(modules_per_frame: int) -> str:
    if modules_per_frame <= 2:
        return "frame2Module"
    if modules_per_frame <= 4:
        return "frame4Module"
    return "frame6Module"


def calculate_ups(
    total_load_kw: float,
    redundancy_mode: RedundancyMode | str,
    params: CalculationParams,
) -> UPSResult:
    """Size the UPS modules and frames for *total_load_kw* with redundancy."""
    mode = _redundancy(redundancy_mode)
    if total_load_kw <= 0:
        raise CalculationError("UPS load must be positive", step="ups")

    p = params.power
    required = total_load_kw * REDUNDANCY_CONFIGURATIONS[mode].capacity_factor
    modules = max(1, math.ceil(required / p.ups_module_size))
    frames = max(1, math.ceil(modules / p.ups_frame_max_modules))
    modules_per_frame = math.ceil(modules / frames)

    return UPSResult(
        total_load_kw=round(total_load_kw, 2),
        required_capacity_kw=round(required, 2),
        redundancy_mode=mode,
        module_size_kw=p.ups_module_size,
        total_modules=modules,
        total_frames=frames,
        frame_size=select_frame_size(modules_per_frame),
    )


def calculate_battery(
    total_load_kw: float,
    runtime_minutes: float,
    params: CalculationParams,
) -> BatteryResult:
    """Size the battery bank to hold *total_load_kw* for *runtime_minutes*."""
    if runtime_minutes <= 0:
        runtime_minutes = params.power.battery_runtime
    efficiency = params.power.battery_efficiency
    if efficiency <= 0:
        raise CalculationError("Battery efficiency must be positive", step="battery")

    energy = round(total_load_kw * runtime_minutes / (60 * efficiency), 2)
    cabinets = math.ceil(energy / BATTERY_CABINET_KWH)

    return BatteryResult(
        runtime_minutes=runtime_minutes,
        energy_needed_kwh=energy,
        cabinets_needed=cabinets,
        total_weight_kg=cabinets * BATTERY_CABINET_WEIGHT_KG,
    )


def select_generator_model(capacity_kva: float) -> str:
    if capacity_kva <= 1000:
        return "1000kVA"
    if capacity_kva <= 2000:
        return "2000kVA"
    return "3000kVA"


def calculate_generator(
    total_load_kw: float,
    redundancy_mode: RedundancyMode | str,
    params: CalculationParams,
) -> GeneratorResult:
    """Size a standby diesel generator for the redundant load."""
    mode = _redundancy(redundancy_mode)
    g = params.generator
    required = total_load_kw * REDUNDANCY_CONFIGURATIONS[mode].capacity_factor
    capacity = math.ceil(required * g.sizing_margin / g.capacity_step_kva) * g.capacity_step_kva
    consumption = capacity * g.fuel_consumption_factor

    return GeneratorResult(
        capacity_kva=capacity,
        model=select_generator_model(capacity),
        fuel_consumption_lph=round(consumption, 2),
        fuel_tank_liters=round(consumption * g.runtime_hours, 2),
        runtime_hours=g.runtime_hours,
    )
