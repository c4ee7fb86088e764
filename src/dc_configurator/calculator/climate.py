# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Site climate lookup used to adjust cooling capacity and PUE."""

from __future__ import annotations

import logging
import re

from dc_configurator.data.defaults import CLIMATE_ZONES, KNOWN_LOCATIONS
from dc_configurator.data.models import (
    CalculationResult,
    ClimateZone,
    CoolingType,
    LocationFactors,
)
from dc_configurator.errors import CalculationError

logger = logging.getLogger(__name__)

# Liquid loops are half as sensitive to ambient conditions as air.
_LIQUID_SENSITIVITY = 0.5
_HOT_SITE_THRESHOLD_C = 25
_HOT_SITE_PUE_FACTOR = 1.05
_COOL_SITE_PUE_FACTOR = 0.95


_COORDINATES = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)\s*,\s*([-+]?\d+(?:\.\d+)?)\s*$")


def parse_coordinates(location: str) -> tuple[float, float] | None:
    """Parse a ``"lat,lng"`` string, or return None if it is not one."""
    match = _COORDINATES.match(location)
    if match is None:
        return None
    latitude, longitude = float(match.group(1)), float(match.group(2))
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise CalculationError(
            f"Coordinates out of range: '{location}'", step="location"
        )
    return latitude, longitude


def geocode(location: str) -> tuple[float, float]:
    """Resolve a place to (latitude, longitude).

    Accepts ``"lat,lng"`` coordinates or a name from the built-in table.
    """
    coordinates = parse_coordinates(location)
    if coordinates is not None:
        return coordinates
    key = location.strip().lower()
    if key not in KNOWN_LOCATIONS:
        known = ", ".join(name.title() for name in KNOWN_LOCATIONS)
        raise CalculationError(
            f"Unknown location '{location}'. Use 'lat,lng' or one of: {known}",
            step="location",
        )
    return KNOWN_LOCATIONS[key]


def climate_zone_for_latitude(latitude: float) -> ClimateZone:
    lat = abs(latitude)
    if lat < 23.5:
        return ClimateZone.tropical
    if lat < 35:
        return ClimateZone.arid
    if lat < 50:
        return ClimateZone.temperate
    if lat < 66.5:
        return ClimateZone.continental
    return ClimateZone.polar


def get_location_factors(location: str, cooling_type: CoolingType) -> LocationFactors:
    latitude, longitude = geocode(location)
    zone = climate_zone_for_latitude(latitude)
    profile = CLIMATE_ZONES[zone]
    factor = profile.cooling_factor
    if cooling_type is CoolingType.dlc:
        factor = 1 + (factor - 1) * _LIQUID_SENSITIVITY

    return LocationFactors(
        location=location,
        latitude=latitude,
        longitude=longitude,
        climate_zone=zone,
        cooling_factor=round(factor, 4),
        avg_temperature_c=profile.avg_temperature_c,
        humidity_pct=profile.humidity_pct,
    )


def apply_location_factors(
    result: CalculationResult, factors: LocationFactors
) -> CalculationResult:
    """Return a copy of *result* with cooling capacity and PUE adjusted for the site."""
    adjusted = result.model_copy(deep=True)
    cooling = adjusted.cooling
    cooling.total_capacity = round(cooling.total_capacity * factors.cooling_factor)
    pue_factor = (
        _HOT_SITE_PUE_FACTOR
        if factors.avg_temperature_c > _HOT_SITE_THRESHOLD_C
        else _COOL_SITE_PUE_FACTOR
    )
    cooling.pue = round(cooling.pue * pue_factor, 3)
    adjusted.location_factors = factors
    logger.debug(
        "Applied %s climate factors to %s: cooling x%.3f, PUE x%.2f",
        factors.climate_zone.value, factors.location, factors.cooling_factor, pue_factor,
    )
    return adjusted
