# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Energy, water, carbon and total-cost-of-ownership projections."""

from __future__ import annotations

from dc_configurator.data.defaults import (
    COOLING_TYPES,
    DISCOUNT_RATE,
    ELECTRICITY_RATE,
    ENERGY_INFLATION,
    LIFESPAN_YEARS,
)
from dc_configurator.data.models import (
    CalculationInputs,
    CalculationParams,
    CarbonFootprint,
    CostBreakdown,
    GeneratorResult,
    SustainabilityResult,
    TCOResult,
)

HOURS_PER_YEAR = 8760

# Value of recovered heat in USD per kWh.
_HEAT_RECOVERY_VALUE = 0.05
# Extra maintenance for a standby generator, as a share of base maintenance.
_GENERATOR_MAINTENANCE_UPLIFT = 0.15


def calculate_sustainability(
    inputs: CalculationInputs,
    pue: float,
    params: CalculationParams,
) -> SustainabilityResult:
    """Annual energy, water and carbon for the configured IT load."""
    s = params.sustainability
    load = inputs.total_it_load_kw
    it_energy = load * HOURS_PER_YEAR
    total_energy = it_energy * pue

    water_hourly = load * COOLING_TYPES[inputs.cooling_type].water_usage
    water_annual_m3 = water_hourly * HOURS_PER_YEAR / 1000
    if inputs.water_recycling:
        water_annual_m3 *= 1 - s.water_recovery_rate

    renewable_fraction = inputs.renewable_percentage / 100
    carbon = total_energy * (1 - renewable_fraction) * s.grid_carbon_intensity

    recovered = total_energy * s.waste_heat_recovery_fraction if inputs.heat_recovery else 0.0

    return SustainabilityResult(
        pue=pue,
        annual_it_energy_kwh=round(it_energy),
        annual_total_energy_kwh=round(total_energy),
        annual_overhead_energy_kwh=round(total_energy - it_energy),
        water_usage_hourly_l=round(water_hourly, 2),
        water_usage_annual_m3=round(water_annual_m3, 1),
        water_recycling=inputs.water_recycling,
        renewable_fraction=renewable_fraction,
        annual_carbon_kg=round(carbon),
        waste_heat_recovered_kwh=round(recovered),
        heat_recovery_savings=round(recovered * _HEAT_RECOVERY_VALUE),
    )


def calculate_carbon_footprint(
    annual_energy_kwh: float,
    renewable_percentage: float,
    generator: GeneratorResult | None,
    params: CalculationParams,
) -> CarbonFootprint:
    """Split annual emissions between grid supply and generator testing."""
    s = params.sustainability
    g = params.generator
    grid_kg = annual_energy_kwh * (1 - renewable_percentage / 100) * s.grid_carbon_intensity
    generator_kg = 0.0
    if generator is not None:
        generator_kg = (
            generator.capacity_kva * g.annual_test_hours * g.test_load_factor
            * s.diesel_carbon_intensity
        )
    total_kg = grid_kg + generator_kg
    avoided_kg = annual_energy_kwh * renewable_percentage / 100 * s.grid_carbon_intensity
    mwh = annual_energy_kwh / 1000

    return CarbonFootprint(
        grid_emissions_tonnes=round(grid_kg / 1000, 2),
        generator_emissions_tonnes=round(generator_kg / 1000, 2),
        total_annual_emissions_tonnes=round(total_kg / 1000, 2),
        emissions_per_mwh=round(total_kg / mwh, 2) if mwh else 0.0,
        renewable_percentage=renewable_percentage,
        emissions_avoided_tonnes=round(avoided_kg / 1000, 2),
    )


def calculate_tco(
    inputs: CalculationInputs,
    cost: CostBreakdown,
    annual_energy_kwh: float,
    include_generator: bool,
    params: CalculationParams,
) -> TCOResult:
    """Discounted total cost of ownership over the equipment lifespan."""
    capex = cost.total_project_cost
    cost_factor = COOLING_TYPES[inputs.cooling_type].cost_factor
    f = params.cost_factors

    energy = annual_energy_kwh * ELECTRICITY_RATE
    maintenance = capex * f.maintenance_percentage * cost_factor
    if include_generator:
        maintenance *= 1 + _GENERATOR_MAINTENANCE_UPLIFT
    operational = capex * f.operational_percentage
    annual_total = energy + maintenance + operational

    npv = float(capex)
    for year in range(1, LIFESPAN_YEARS + 1):
        inflated_energy = energy * (1 + ENERGY_INFLATION) ** (year - 1)
        npv += (inflated_energy + maintenance + operational) / (1 + DISCOUNT_RATE) ** year

    return TCOResult(
        capex=capex,
        annual_energy_cost=round(energy),
        annual_maintenance_cost=round(maintenance),
        annual_operational_cost=round(operational),
        annual_total_cost=round(annual_total),
        total_cost_of_ownership=round(npv),
        annualized_tco=round(npv / LIFESPAN_YEARS),
        total_5_year=round(capex + annual_total * 5),
        total_10_year=round(capex + annual_total * 10),
        assumptions={
            "electricity_rate": ELECTRICITY_RATE,
            "energy_inflation": ENERGY_INFLATION,
            "discount_rate": DISCOUNT_RATE,
            "lifespan_years": LIFESPAN_YEARS,
        },
    )
