# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Electrical distribution sizing: row current, busbar, tap-off box and rPDU."""

from __future__ import annotations

import math

from dc_configurator.data.defaults import BUSBAR_RATINGS, MAX_BUSBAR_RATING
from dc_configurator.data.models import CalculationParams, ElectricalResult
from dc_configurator.errors import CalculationError

# Racks fed from a single busbar run.
RACKS_PER_ROW = 14

BUSBAR_OVERLOAD_WARNING = (
    "Current exceeds maximum busbar rating (2000A). "
    "Multiple busbars required per row."
)


def three_phase_current(kw: float, voltage: float, power_factor: float) -> int:
    """Line current in amps for a balanced three-phase load."""
    if voltage <= 0 or power_factor <= 0:
        raise CalculationError("Voltage and power factor must be positive", step="electrical")
    return round(kw * 1000 / (voltage * math.sqrt(3) * power_factor))


def select_busbar_rating(current: float) -> int:
    """Smallest standard busbar rating that carries *current*, capped at 2000 A."""
    for rating in BUSBAR_RATINGS:
        if rating >= current:
            return rating
    return MAX_BUSBAR_RATING


def select_tap_off_box(current_per_rack: float) -> str:
    if current_per_rack <= 63:
        return "standard63A"
    if current_per_rack <= 100:
        return "custom100A"
    if current_per_rack <= 150:
        return "custom150A"
    if current_per_rack <= 200:
        return "custom200A"
    return "custom250A"


def select_rpdu(current_per_rack: float) -> str:
    return "standard80A" if current_per_rack <= 80 else "standard112A"


def calculate_electrical(
    kw_per_rack: float,
    total_racks: int,
    params: CalculationParams,
    warnings: list[str] | None = None,
) -> ElectricalResult:
    """Size the electrical distribution for one row of racks.

    Warnings (busbar overload) are appended to *warnings* when given.
    """
    if kw_per_rack <= 0 or total_racks <= 0:
        raise CalculationError("Load and rack count must be positive", step="electrical")

    e = params.electrical
    current_per_row = three_phase_current(
        kw_per_rack * RACKS_PER_ROW, e.voltage_factor, e.power_factor
    )
    current_per_rack = three_phase_current(kw_per_rack, e.voltage_factor, e.power_factor)

    overloaded = current_per_row > MAX_BUSBAR_RATING
    if overloaded and warnings is not None:
        warnings.append(BUSBAR_OVERLOAD_WARNING)

    return ElectricalResult(
        current_per_row=current_per_row,
        current_per_rack=current_per_rack,
        busbar_rating=select_busbar_rating(current_per_row),
        busbars_per_row=e.busbars_per_row,
        tap_off_box=select_tap_off_box(current_per_rack),
        rpdu=select_rpdu(current_per_rack),
        multiple_busbars_required=overloaded,
    )
