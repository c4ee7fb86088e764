# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Capital cost derivation from the pricing matrix."""

from __future__ import annotations

import math

from dc_configurator.data.defaults import (
    BUSBAR_RUN_METERS,
    GENERATOR_EHOUSE_SQM,
    RACKS_PER_IMMERSION_TANK,
    RDHX_UNIT_CAPACITY_KW,
)
from dc_configurator.data.models import (
    CalculationInputs,
    CalculationParams,
    CoolingResult,
    CoolingType,
    CostBreakdown,
    ElectricalResult,
    PowerResult,
    PricingMatrix,
)

_DLC_PIPE_METERS = 100
_DLC_VALVES = 10
_SECONDARY_PIPE_METERS = 50
_SOLAR_OVERSIZE = 1.5


def _busbar_cost(electrical: ElectricalResult, pricing: PricingMatrix) -> float:
    base_key = "base1250A" if electrical.busbar_rating <= 1250 else "base2000A"
    run = pricing.price("busbar", base_key) + (
        pricing.price("busbar", "perMeter") * BUSBAR_RUN_METERS
    )
    return run * electrical.busbars_per_row


def _cooling_cost(
    cooling: CoolingResult, total_racks: int, pricing: PricingMatrix
) -> float:
    if cooling.type is CoolingType.dlc:
        # No dn125 price list; it is bought as dn160.
        large = cooling.pipe_size != "dn110"
        return (
            pricing.price("cooler", "tcs310aXht")
            + pricing.price("cooler", "grundfosPump")
            + pricing.price("cooler", "bufferTank")
            + pricing.price("piping", "dn160PerMeter" if large else "dn110PerMeter")
            * _DLC_PIPE_METERS
            + pricing.price("piping", "valveDn160" if large else "valveDn110") * _DLC_VALVES
        )
    if cooling.type is CoolingType.hybrid:
        rdhx_units = max(1, math.ceil(cooling.air_capacity / RDHX_UNIT_CAPACITY_KW))
        return (
            pricing.price("cooler", "tcs310aXht") * 0.7
            + pricing.price("cooler", "grundfosPump")
            + pricing.price("cooler", "bufferTank")
            + pricing.price("piping", "dn110PerMeter") * _SECONDARY_PIPE_METERS
            + pricing.price("rdhx", "average") * rdhx_units
        )
    if cooling.type is CoolingType.immersion:
        tanks = math.ceil(total_racks / RACKS_PER_IMMERSION_TANK)
        return (
            pricing.price("cooler", "immersionTank") * tanks
            + pricing.price("cooler", "immersionCDU")
            + pricing.price("piping", "dn110PerMeter") * _SECONDARY_PIPE_METERS
        )
    return pricing.price("rdhx", cooling.rdhx_model or "basic") * cooling.rdhx_units


def _generator_cost(power: PowerResult, pricing: PricingMatrix) -> float:
    gen = power.generator
    if gen is None:
        return 0.0
    key = "generator" + gen.model.lower()
    return (
        pricing.price("generator", key)
        + gen.fuel_tank_liters * pricing.price("generator", "fuelTankPerLiter")
    )


def _ehouse_cost(power: PowerResult, params: CalculationParams, pricing: PricingMatrix) -> float:
    p = params.power
    area = (
        p.ehouse_base_sqm * power.ups.total_frames
        + p.ehouse_battery_sqm * power.battery.cabinets_needed
    )
    if power.generator is not None:
        area += GENERATOR_EHOUSE_SQM
    return pricing.price("ehouse", "base") + pricing.price("ehouse", "perSqMeter") * area


def _sustainability_cost(inputs: CalculationInputs, pricing: PricingMatrix) -> float:
    cost = 0.0
    if inputs.heat_recovery:
        cost += pricing.price("sustainability", "heatRecoverySystem")
    if inputs.water_recycling:
        cost += pricing.price("sustainability", "waterRecyclingSystem")
    if inputs.renewable_percentage > 0:
        solar_kw = inputs.total_it_load_kw * inputs.renewable_percentage / 100
        cost += solar_kw * _SOLAR_OVERSIZE * pricing.price("sustainability", "solarPanelPerKw")
    return cost


def calculate_cost(
    inputs: CalculationInputs,
    electrical: ElectricalResult,
    cooling: CoolingResult,
    power: PowerResult,
    params: CalculationParams,
    pricing: PricingMatrix,
) -> CostBreakdown:
    """Price every component and roll up soft costs into a project total.

    All amounts are whole dollars.
    """
    racks = inputs.total_racks
    tap_off_key = "custom250A" if cooling.type is CoolingType.dlc else electrical.tap_off_box

    busbar = _busbar_cost(electrical, pricing)
    tap_off_box = pricing.price("tap_off_box", tap_off_key) * racks
    rpdu = pricing.price("rpdu", electrical.rpdu) * racks
    cooling_cost = _cooling_cost(cooling, racks, pricing)
    ups = (
        pricing.price("ups", power.ups.frame_size) * power.ups.total_frames
        + pricing.price("ups", "module250kw") * power.ups.total_modules
    )
    battery = pricing.price("battery", "revoTp240Cabinet") * power.battery.cabinets_needed
    generator = _generator_cost(power, pricing)
    ehouse = _ehouse_cost(power, params, pricing)
    sustainability = _sustainability_cost(inputs, pricing)

    equipment = (
        busbar + tap_off_box + rpdu + cooling_cost + ups + battery
        + generator + ehouse + sustainability
    )
    f = params.cost_factors
    installation = equipment * f.installation_percentage
    engineering = equipment * f.engineering_percentage
    contingency = equipment * f.contingency_percentage
    total = equipment + installation + engineering + contingency
    total_kw = inputs.total_it_load_kw

    return CostBreakdown(
        busbar=round(busbar),
        tap_off_box=round(tap_off_box),
        rpdu=round(rpdu),
        cooling=round(cooling_cost),
        ups=round(ups),
        battery=round(battery),
        generator=round(generator),
        ehouse=round(ehouse),
        sustainability=round(sustainability),
        equipment_total=round(equipment),
        installation=round(installation),
        engineering=round(engineering),
        contingency=round(contingency),
        total_project_cost=round(total),
        cost_per_rack=round(total / racks) if racks else 0,
        cost_per_kw=round(total / total_kw) if total_kw else 0,
    )
