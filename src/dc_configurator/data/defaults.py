# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Default engineering constants, pricing and lookup tables.

These values are used whenever the document store has no stored
configuration or cannot be reached.
"""

from __future__ import annotations

from dataclasses import dataclass

from dc_configurator.data.models import (
    CalculationParams,
    ClimateZone,
    CoolingType,
    PricingMatrix,
    RedundancyMode,
)

DEFAULT_CALCULATION_PARAMS = CalculationParams()

DEFAULT_PRICING = PricingMatrix(
    busbar={
        "base1250A": 42_000,
        "base2000A": 65_000,
        "perMeter": 1_200,
        "copperPremium": 1.0,
    },
    tap_off_box={
        "standard63A": 1_200,
        "custom100A": 1_500,
        "custom150A": 1_800,
        "custom200A": 2_100,
        "custom250A": 2_400,
    },
    rpdu={
        "standard80A": 3_500,
        "standard112A": 4_200,
    },
    rdhx={
        "basic": 6_000,
        "standard": 8_000,
        "highDensity": 12_000,
        "average": 8_000,
    },
    piping={
        "dn110PerMeter": 350,
        "dn160PerMeter": 520,
        "valveDn110": 1_200,
        "valveDn160": 1_800,
    },
    cooler={
        "tcs310aXht": 75_000,
        "grundfosPump": 15_000,
        "bufferTank": 8_000,
        "immersionTank": 45_000,
        "immersionCDU": 60_000,
    },
    ups={
        "frame2Module": 85_000,
        "frame4Module": 110_000,
        "frame6Module": 130_000,
        "module250kw": 45_000,
    },
    battery={
        "revoTp240Cabinet": 35_000,
    },
    generator={
        "generator1000kva": 250_000,
        "generator2000kva": 400_000,
        "generator3000kva": 550_000,
        "fuelTankPerLiter": 2,
    },
    ehouse={
        "base": 120_000,
        "perSqMeter": 5_000,
    },
    sustainability={
        "heatRecoverySystem": 150_000,
        "waterRecyclingSystem": 80_000,
        "solarPanelPerKw": 1_000,
    },
)


@dataclass(frozen=True)
class CoolingProfile:
    """Static characteristics of a cooling technology."""

    name: str
    pue_impact: float
    water_usage: float  # litres per kW per hour
    cost_factor: float
    max_density: float  # kW per rack


@dataclass(frozen=True)
class RedundancyProfile:
    """Capacity and reliability multipliers for a redundancy mode."""

    capacity_factor: float
    reliability_factor: float
    description: str


@dataclass(frozen=True)
class ClimateProfile:
    """Representative conditions for a climate zone."""

    cooling_factor: float
    avg_temperature_c: float
    humidity_pct: float


COOLING_TYPES: dict[CoolingType, CoolingProfile] = {
    CoolingType.air: CoolingProfile("Air Cooling", 1.4, 0.5, 1.0, 75),
    CoolingType.dlc: CoolingProfile("Direct Liquid Cooling", 1.15, 1.2, 1.5, 200),
    CoolingType.hybrid: CoolingProfile("Hybrid Cooling", 1.25, 0.9, 1.3, 150),
    CoolingType.immersion: CoolingProfile("Immersion Cooling", 1.08, 0.3, 2.0, 250),
}

REDUNDANCY_CONFIGURATIONS: dict[RedundancyMode, RedundancyProfile] = {
    RedundancyMode.n: RedundancyProfile(1.0, 0.98, "No redundancy"),
    RedundancyMode.n_plus_1: RedundancyProfile(1.2, 0.995, "One redundant component"),
    RedundancyMode.two_n: RedundancyProfile(
        2.0, 0.9998, "Full redundancy (two complete systems)"
    ),
    RedundancyMode.two_n_plus_1: RedundancyProfile(
        2.2, 0.99995, "Full redundancy plus one component"
    ),
}

CLIMATE_ZONES: dict[ClimateZone, ClimateProfile] = {
    ClimateZone.tropical: ClimateProfile(1.2, 28.0, 80.0),
    ClimateZone.arid: ClimateProfile(1.15, 25.0, 40.0),
    ClimateZone.temperate: ClimateProfile(1.0, 15.0, 60.0),
    ClimateZone.continental: ClimateProfile(0.95, 5.0, 50.0),
    ClimateZone.polar: ClimateProfile(0.9, -5.0, 40.0),
}

# Known sites for offline geocoding: name -> (latitude, longitude)
KNOWN_LOCATIONS: dict[str, tuple[float, float]] = {
    "new york": (40.7128, -74.0060),
    "london": (51.5074, -0.1278),
    "tokyo": (35.6762, 139.6503),
    "sydney": (-33.8688, 151.2093),
    "dubai": (25.2048, 55.2708),
}

BUSBAR_RATINGS = [250, 400, 600, 800, 1000, 1250, 1600, 2000]
MAX_BUSBAR_RATING = BUSBAR_RATINGS[-1]

# Energy economics for TCO.
ELECTRICITY_RATE = 0.12  # USD per kWh
ENERGY_INFLATION = 0.02
DISCOUNT_RATE = 0.05
LIFESPAN_YEARS = 10

BATTERY_CABINET_KWH = 40
BATTERY_CABINET_WEIGHT_KG = 1_200
RDHX_UNIT_CAPACITY_KW = 150
RACKS_PER_IMMERSION_TANK = 4
BUSBAR_RUN_METERS = 30
GENERATOR_EHOUSE_SQM = 30
