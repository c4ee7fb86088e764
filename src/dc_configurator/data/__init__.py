# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Data contracts and default constants."""

from dc_configurator.data.models import (
    CalculationInputs,
    CalculationParams,
    CalculationResult,
    ClimateZone,
    CoolingType,
    PricingMatrix,
    RedundancyMode,
    SavedCalculation,
)
from dc_configurator.data.defaults import DEFAULT_CALCULATION_PARAMS, DEFAULT_PRICING

__all__ = [
    "CalculationInputs",
    "CalculationParams",
    "CalculationResult",
    "ClimateZone",
    "CoolingType",
    "DEFAULT_CALCULATION_PARAMS",
    "DEFAULT_PRICING",
    "PricingMatrix",
    "RedundancyMode",
    "SavedCalculation",
]
