# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Core Pydantic v2 data models for the configurator.

This module defines the data contract shared by the calculator, the
persistence services, the reporting layer, the API and the CLI.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, computed_field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class CoolingType(str, Enum):
    """Heat-rejection technology for the IT load."""

    air = "air"
    dlc = "dlc"
    hybrid = "hybrid"
    immersion = "immersion"

    @property
    def is_liquid(self) -> bool:
        return self is not CoolingType.air


class RedundancyMode(str, Enum):
    """Power-train redundancy configuration."""

    n = "N"
    n_plus_1 = "N+1"
    two_n = "2N"
    two_n_plus_1 = "2N+1"


class ClimateZone(str, Enum):
    """Coarse climate classification used for cooling adjustments."""

    tropical = "TROPICAL"
    arid = "ARID"
    temperate = "TEMPERATE"
    continental = "CONTINENTAL"
    polar = "POLAR"


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Calculation parameters
# ---------------------------------------------------------------------------

class ElectricalParams(BaseModel):
    current_per_row: float = Field(default=630, gt=0)
    voltage_factor: float = Field(default=400, description="Line voltage in volts")
    power_factor: float = Field(default=0.9)
    busbars_per_row: int = Field(default=1)
    redundancy_mode: str = Field(default="N+1")


class CoolingParams(BaseModel):
    delta_t: float = Field(default=10, description="Supply/return temperature delta in C")
    flow_rate_factor: float = Field(default=2.22, description="L/min per kW of liquid load")
    dlc_residual_heat_fraction: float = Field(default=0.25)
    chiller_efficiency_factor: float = Field(default=1.0)
    hybrid_dlc_ratio: float = Field(default=0.7)


class PowerParams(BaseModel):
    ups_module_size: float = Field(default=250, description="UPS module rating in kW")
    ups_frame_max_modules: int = Field(default=6)
    battery_runtime: float = Field(default=10, description="Minutes")
    battery_efficiency: float = Field(default=0.95)
    ehouse_base_sqm: float = Field(default=20)
    ehouse_battery_sqm: float = Field(default=5)


class CostFactors(BaseModel):
    installation_percentage: float = Field(default=0.15)
    engineering_percentage: float = Field(default=0.10)
    contingency_percentage: float = Field(default=0.05)
    maintenance_percentage: float = Field(default=0.03)
    operational_percentage: float = Field(default=0.02)


class CoolingThresholds(BaseModel):
    air_cooled_max: float = Field(default=75, description="Max kW/rack for air cooling")
    recommended_dlc_min: float = Field(default=75)


class SustainabilityParams(BaseModel):
    grid_carbon_intensity: float = Field(default=0.35, description="kg CO2e per kWh")
    diesel_carbon_intensity: float = Field(default=0.8, description="kg CO2e per kWh")
    water_recovery_rate: float = Field(default=0.6)
    waste_heat_recovery_fraction: float = Field(default=0.4)
    default_renewable_fraction: float = Field(default=0.2)


class ReliabilityParams(BaseModel):
    mtbf_ups: float = Field(default=250_000, description="Hours")
    mtbf_generator: float = Field(default=175_000)
    mtbf_cooling: float = Field(default=200_000)
    mttr_ups: float = Field(default=4)
    mttr_generator: float = Field(default=6)
    mttr_cooling: float = Field(default=8)


class GeneratorParams(BaseModel):
    sizing_margin: float = Field(default=1.2)
    capacity_step_kva: float = Field(default=500)
    fuel_consumption_factor: float = Field(default=0.2, description="L/h per kVA")
    runtime_hours: float = Field(default=8)
    annual_test_hours: float = Field(default=24)
    test_load_factor: float = Field(default=0.8)


class CalculationParams(BaseModel):
    """Engineering constants that drive the calculation pipeline."""

    electrical: ElectricalParams = Field(default_factory=ElectricalParams)
    cooling: CoolingParams = Field(default_factory=CoolingParams)
    power: PowerParams = Field(default_factory=PowerParams)
    cost_factors: CostFactors = Field(default_factory=CostFactors)
    cooling_thresholds: CoolingThresholds = Field(default_factory=CoolingThresholds)
    sustainability: SustainabilityParams = Field(default_factory=SustainabilityParams)
    reliability: ReliabilityParams = Field(default_factory=ReliabilityParams)
    generator: GeneratorParams = Field(default_factory=GeneratorParams)


class PricingMatrix(BaseModel):
    """Unit prices in USD, grouped by equipment family."""

    busbar: dict[str, float] = Field(default_factory=dict)
    tap_off_box: dict[str, float] = Field(default_factory=dict)
    rpdu: dict[str, float] = Field(default_factory=dict)
    rdhx: dict[str, float] = Field(default_factory=dict)
    piping: dict[str, float] = Field(default_factory=dict)
    cooler: dict[str, float] = Field(default_factory=dict)
    ups: dict[str, float] = Field(default_factory=dict)
    battery: dict[str, float] = Field(default_factory=dict)
    generator: dict[str, float] = Field(default_factory=dict)
    ehouse: dict[str, float] = Field(default_factory=dict)
    sustainability: dict[str, float] = Field(default_factory=dict)

    def price(self, section: str, key: str) -> float:
        """Look up a unit price, returning 0.0 for unknown entries."""
        if section not in type(self).model_fields:
            return 0.0
        table = getattr(self, section)
        return float(table.get(key, 0.0))


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class CalculationInputs(BaseModel):
    """User-selected configuration for one calculation run."""

    model_config = {"use_enum_values": False}

    kw_per_rack: float = Field(default=10, gt=0, le=250, description="IT load per rack in kW")
    cooling_type: CoolingType = Field(default=CoolingType.air)
    total_racks: int = Field(default=28, ge=1, le=1000)
    redundancy_mode: RedundancyMode = Field(default=RedundancyMode.n_plus_1)
    include_generator: bool = Field(default=False)
    battery_runtime: float = Field(default=10, gt=0, le=60, description="Minutes")
    renewable_percentage: float = Field(default=20, ge=0, le=100)
    heat_recovery: bool = Field(default=False)
    water_recycling: bool = Field(default=False)
    location: str | None = Field(default=None)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_it_load_kw(self) -> float:
        return self.kw_per_rack * self.total_racks

    def cache_key(self) -> str:
        return self.model_dump_json(exclude={"location"})


# ---------------------------------------------------------------------------
# Result sections
# ---------------------------------------------------------------------------

class ElectricalResult(BaseModel):
    current_per_row: int
    current_per_rack: int
    busbar_rating: int = Field(..., description="Busbar rating in amps")
    busbars_per_row: int = 1
    tap_off_box: str
    rpdu: str
    multiple_busbars_required: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def busbar_size(self) -> str:
        return f"busbar{self.busbar_rating}A"


class CoolingResult(BaseModel):
    type: CoolingType
    total_capacity: float = Field(..., description="kW of heat rejection")
    dlc_capacity: float = 0.0
    residual_capacity: float = 0.0
    air_capacity: float = 0.0
    flow_rate: float = Field(default=0.0, description="L/min")
    pipe_size: str = "none"
    rdhx_units: int = 0
    rdhx_model: str | None = None
    immersion_tanks: int = 0
    pue: float = 1.4


class UPSResult(BaseModel):
    total_load_kw: float
    required_capacity_kw: float
    redundancy_mode: RedundancyMode
    module_size_kw: float
    total_modules: int
    total_frames: int
    frame_size: str


class BatteryResult(BaseModel):
    runtime_minutes: float
    energy_needed_kwh: float
    cabinets_needed: int
    total_weight_kg: float


class GeneratorResult(BaseModel):
    included: bool = True
    capacity_kva: float
    model: str
    fuel_consumption_lph: float
    fuel_tank_liters: float
    runtime_hours: float


class PowerResult(BaseModel):
    ups: UPSResult
    battery: BatteryResult
    generator: GeneratorResult | None = None


class CostBreakdown(BaseModel):
    busbar: float = 0.0
    tap_off_box: float = 0.0
    rpdu: float = 0.0
    cooling: float = 0.0
    ups: float = 0.0
    battery: float = 0.0
    generator: float = 0.0
    ehouse: float = 0.0
    sustainability: float = 0.0
    equipment_total: float = 0.0
    installation: float = 0.0
    engineering: float = 0.0
    contingency: float = 0.0
    total_project_cost: float = 0.0
    cost_per_rack: float = 0.0
    cost_per_kw: float = 0.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def electrical_total(self) -> float:
        return self.busbar + self.tap_off_box + self.rpdu

    @computed_field  # type: ignore[prop-decorator]
    @property
    def power_total(self) -> float:
        return self.ups + self.battery + self.generator


class ComponentAvailability(BaseModel):
    ups: float
    generator: float | None = None
    cooling: float


class ReliabilityResult(BaseModel):
    availability: float = Field(..., ge=0, le=1)
    availability_percentage: float
    tier: str
    annual_downtime_minutes: int
    components: ComponentAvailability
    redundancy_mode: RedundancyMode
    redundancy_description: str = ""


class SustainabilityResult(BaseModel):
    pue: float
    annual_it_energy_kwh: float
    annual_total_energy_kwh: float
    annual_overhead_energy_kwh: float
    water_usage_hourly_l: float
    water_usage_annual_m3: float
    water_recycling: bool = False
    renewable_fraction: float
    annual_carbon_kg: float
    waste_heat_recovered_kwh: float = 0.0
    heat_recovery_savings: float = 0.0


class CarbonFootprint(BaseModel):
    grid_emissions_tonnes: float
    generator_emissions_tonnes: float
    total_annual_emissions_tonnes: float
    emissions_per_mwh: float
    renewable_percentage: float
    emissions_avoided_tonnes: float


class TCOResult(BaseModel):
    capex: float
    annual_energy_cost: float
    annual_maintenance_cost: float
    annual_operational_cost: float
    annual_total_cost: float
    total_cost_of_ownership: float
    annualized_tco: float
    total_5_year: float
    total_10_year: float
    assumptions: dict[str, float] = Field(default_factory=dict)


class ThermalDistribution(BaseModel):
    liquid_percentage: float
    air_percentage: float
    liquid_load_kw: float
    air_load_kw: float
    pue: float
    water_usage_l_per_day: float


class PipeSizing(BaseModel):
    required: bool
    pipe_size: str = "none"
    velocity_ms: float = 0.0
    pressure_drop_kpa_per_m: float = 0.0
    flow_rate_lpm: float = 0.0


class LocationFactors(BaseModel):
    location: str
    latitude: float
    longitude: float
    climate_zone: ClimateZone
    cooling_factor: float
    avg_temperature_c: float
    humidity_pct: float


# ---------------------------------------------------------------------------
# Aggregate result
# ---------------------------------------------------------------------------

class CalculationResult(BaseModel):
    """Complete output of one pipeline run."""

    inputs: CalculationInputs
    electrical: ElectricalResult
    cooling: CoolingResult
    power: PowerResult
    cost: CostBreakdown
    reliability: ReliabilityResult | None = None
    sustainability: SustainabilityResult | None = None
    carbon_footprint: CarbonFootprint | None = None
    tco: TCOResult | None = None
    thermal: ThermalDistribution | None = None
    pipe_sizing: PipeSizing | None = None
    location_factors: LocationFactors | None = None
    warnings: list[str] = Field(default_factory=list)
    is_fallback: bool = False
    calculated_at: datetime = Field(default_factory=_now)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_it_load_kw(self) -> float:
        return self.inputs.total_it_load_kw

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pue(self) -> float:
        return self.cooling.pue


class SavedCalculation(BaseModel):
    """A calculation persisted for a user, optionally tied to a project."""

    id: str = ""
    user_id: str
    project_id: str | None = None
    name: str
    description: str = ""
    inputs: CalculationInputs
    results: CalculationResult
    status: str = "completed"
    created_at: datetime = Field(default_factory=_now)


class Recommendation(BaseModel):
    """An optimisation hint produced by configuration analysis."""

    category: str
    priority: str = Field(..., description="high, medium or low")
    message: str
    impact: str = ""
