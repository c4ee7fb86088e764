# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Calculation pipeline: electrical, cooling, power, cost and projections."""

from dc_configurator.calculator.compare import (
    compare_configurations,
    compare_cooling_technologies,
    compare_redundancy_options,
)
from dc_configurator.calculator.cooling import calculate_cooling
from dc_configurator.calculator.cost import calculate_cost
from dc_configurator.calculator.electrical import calculate_electrical
from dc_configurator.calculator.engine import CalculatorEngine, run_pipeline
from dc_configurator.calculator.optimizer import (
    OptimizationConstraints,
    analyze_configuration,
    optimize_configuration,
)
from dc_configurator.calculator.power import (
    calculate_battery,
    calculate_generator,
    calculate_ups,
)

__all__ = [
    "CalculatorEngine",
    "OptimizationConstraints",
    "analyze_configuration",
    "calculate_battery",
    "calculate_cooling",
    "calculate_cost",
    "calculate_electrical",
    "calculate_generator",
    "calculate_ups",
    "compare_configurations",
    "compare_cooling_technologies",
    "compare_redundancy_options",
    "optimize_configuration",
    "run_pipeline",
]
