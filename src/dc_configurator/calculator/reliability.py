# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Availability and Uptime-tier estimation from MTBF/MTTR figures."""

from __future__ import annotations

from dc_configurator.data.defaults import REDUNDANCY_CONFIGURATIONS
from dc_configurator.data.models import (
    CalculationParams,
    ComponentAvailability,
    RedundancyMode,
    ReliabilityResult,
)

MINUTES_PER_YEAR = 525_600

# (availability strictly above, tier label), highest first
_TIERS = [
    (0.9999, "Tier IV"),
    (0.999, "Tier III"),
    (0.99, "Tier II"),
]


def component_availability(mtbf: float, mttr: float) -> float:
    """Steady-state availability of a repairable component."""
    return mtbf / (mtbf + mttr)


def classify_tier(availability: float) -> str:
    for threshold, label in _TIERS:
        if availability > threshold:
            return label
    return "Tier I"


def calculate_reliability(
    redundancy_mode: RedundancyMode | str,
    include_generator: bool,
    params: CalculationParams,
) -> ReliabilityResult:
    """Estimate system availability for a power/cooling configuration.

    The UPS and generator are treated as parallel power paths when a
    generator is present; cooling is in series with power, and the
    redundancy mode scales the whole chain.
    """
    mode = RedundancyMode(redundancy_mode)
    r = params.reliability

    ups = component_availability(r.mtbf_ups, r.mttr_ups)
    cooling = component_availability(r.mtbf_cooling, r.mttr_cooling)
    generator: float | None = None
    if include_generator:
        generator = component_availability(r.mtbf_generator, r.mttr_generator)
        power = 1 - (1 - ups) * (1 - generator)
    else:
        power = ups

    profile = REDUNDANCY_CONFIGURATIONS[mode]
    availability = power * cooling * profile.reliability_factor

    return ReliabilityResult(
        availability=availability,
        availability_percentage=round(availability * 100, 4),
        tier=classify_tier(availability),
        annual_downtime_minutes=round((1 - availability) * MINUTES_PER_YEAR),
        components=ComponentAvailability(
            ups=round(ups, 6),
            generator=round(generator, 6) if generator is not None else None,
            cooling=round(cooling, 6),
        ),
        redundancy_mode=mode,
        redundancy_description=profile.description,
    )
