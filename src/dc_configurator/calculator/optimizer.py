# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Configuration search and improvement analysis."""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field

from dc_configurator.calculator.compare import payback_period
from dc_configurator.data.models import (
    CalculationInputs,
    CalculationResult,
    CoolingType,
    Recommendation,
)
from dc_configurator.data.defaults import REDUNDANCY_CONFIGURATIONS

if TYPE_CHECKING:
    from dc_configurator.calculator.engine import CalculatorEngine

logger = logging.getLogger(__name__)

OptimizationGoal = Literal["cost", "efficiency", "reliability", "sustainability"]

POWER_DENSITY_OPTIONS = [50, 75, 100, 150, 200]
DEFAULT_RACK_RANGE = (14, 56)
TOP_N = 3


class OptimizationConstraints(BaseModel):
    """Bounds on the search space and on acceptable results."""

    min_power_density: float | None = Field(default=None, gt=0)
    max_power_density: float | None = Field(default=None, gt=0)
    preferred_cooling_types: list[CoolingType] | None = None
    rack_count_range: tuple[int, int] | None = None
    max_budget: float | None = Field(default=None, gt=0)
    min_availability: float | None = Field(
        default=None, ge=0, le=100, description="Minimum availability percentage"
    )
    max_pue: float | None = Field(default=None, gt=1)


class ScoredConfiguration(BaseModel):
    inputs: CalculationInputs
    result: CalculationResult
    score: float


class OptimizationResult(BaseModel):
    goal: str
    evaluated: int
    top_configurations: list[ScoredConfiguration]
    summary: dict[str, Any]

    @property
    def recommended(self) -> ScoredConfiguration | None:
        return self.top_configurations[0] if self.top_configurations else None


def score_result(result: CalculationResult, goal: OptimizationGoal) -> float:
    """Higher is better for every goal."""
    if goal == "cost":
        total = result.cost.total_project_cost
        return 1_000_000 / total if total else 0.0
    if goal == "efficiency":
        return 10 / result.pue if result.pue else 0.0
    if goal == "reliability":
        return result.reliability.availability_percentage if result.reliability else 0.0
    if goal == "sustainability":
        pue_score = 10 / result.pue if result.pue else 0.0
        carbon = (
            result.carbon_footprint.total_annual_emissions_tonnes
            if result.carbon_footprint else 0.0
        )
        carbon_score = 1000 / (carbon + 1)
        water_score = 2 if result.inputs.water_recycling else 1
        return pue_score * 0.4 + carbon_score * 0.4 + water_score * 0.2
    raise ValueError(f"Unknown optimization goal: {goal}")


def _candidates(constraints: OptimizationConstraints) -> list[CalculationInputs]:
    densities = [
        d for d in POWER_DENSITY_OPTIONS
        if (constraints.min_power_density is None or d >= constraints.min_power_density)
        and (constraints.max_power_density is None or d <= constraints.max_power_density)
    ]
    cooling_types = constraints.preferred_cooling_types or list(CoolingType)
    low, high = constraints.rack_count_range or DEFAULT_RACK_RANGE
    rack_counts = sorted({low, (low + high) // 2, high})
    return [
        CalculationInputs(kw_per_rack=kw, cooling_type=cooling, total_racks=racks)
        for kw, cooling, racks in itertools.product(densities, cooling_types, rack_counts)
    ]


def _acceptable(result: CalculationResult, constraints: OptimizationConstraints) -> bool:
    if constraints.max_budget is not None and (
        result.cost.total_project_cost > constraints.max_budget
    ):
        return False
    if constraints.max_pue is not None and result.pue > constraints.max_pue:
        return False
    if constraints.min_availability is not None and (
        result.reliability is None
        or result.reliability.availability_percentage < constraints.min_availability
    ):
        return False
    return True


def _summary(best: ScoredConfiguration | None, goal: OptimizationGoal) -> dict[str, Any]:
    if best is None:
        return {"message": "No configuration satisfies the constraints"}
    result = best.result
    if goal == "cost":
        return {
            "message": "Optimized for lowest total cost of ownership",
            "total_cost": result.cost.total_project_cost,
            "cost_per_rack": result.cost.cost_per_rack,
            "cost_per_kw": result.cost.cost_per_kw,
            "payback_period": payback_period(result),
        }
    if goal == "efficiency":
        return {
            "message": "Optimized for maximum energy efficiency",
            "pue": result.pue,
            "annual_energy_kwh": (
                result.sustainability.annual_total_energy_kwh if result.sustainability else 0
            ),
            "annual_energy_cost": result.tco.annual_energy_cost if result.tco else 0,
        }
    if goal == "reliability":
        reliability = result.reliability
        return {
            "message": "Optimized for maximum system reliability",
            "availability": reliability.availability_percentage if reliability else 0,
            "tier": reliability.tier if reliability else "",
            "annual_downtime": reliability.annual_downtime_minutes if reliability else 0,
        }
    footprint = result.carbon_footprint
    return {
        "message": "Optimized for environmental sustainability",
        "carbon_footprint": footprint.total_annual_emissions_tonnes if footprint else 0,
        "water_usage": (
            result.sustainability.water_usage_annual_m3 if result.sustainability else 0
        ),
        "renewable_percentage": result.inputs.renewable_percentage,
    }


def optimize_configuration(
    engine: CalculatorEngine,
    constraints: OptimizationConstraints | None = None,
    goal: OptimizationGoal = "cost",
) -> OptimizationResult:
    """Evaluate a grid of candidate configurations and keep the best three."""
    constraints = constraints or OptimizationConstraints()
    candidates = _candidates(constraints)
    scored: list[ScoredConfiguration] = []
    for inputs in candidates:
        result = engine.calculate(inputs)
        if result.is_fallback or not _acceptable(result, constraints):
            continue
        scored.append(
            ScoredConfiguration(inputs=inputs, result=result, score=score_result(result, goal))
        )
    scored.sort(key=lambda s: s.score, reverse=True)
    top = scored[:TOP_N]
    logger.debug("Optimizer evaluated %d candidates, %d acceptable", len(candidates), len(scored))

    return OptimizationResult(
        goal=goal,
        evaluated=len(candidates),
        top_configurations=top,
        summary=_summary(top[0] if top else None, goal),
    )


def analyze_configuration(result: CalculationResult) -> dict[str, Any]:
    """Inspect one result and suggest improvements."""
    inputs = result.inputs
    recommendations: list[Recommendation] = []

    if inputs.kw_per_rack > 100 and inputs.cooling_type is CoolingType.air:
        recommendations.append(Recommendation(
            category="cooling",
            priority="high",
            message=(
                "Air cooling may be insufficient for high power density. "
                "Consider DLC or hybrid cooling."
            ),
            impact="Improved cooling efficiency could reduce PUE by 0.2-0.3",
        ))

    if result.pue > 1.3:
        recommendations.append(Recommendation(
            category="efficiency",
            priority="medium",
            message="PUE could be improved with better cooling solutions or waste heat recovery.",
            impact="Reducing PUE by 0.1 could save approximately 7% on energy costs",
        ))

    capacity_factor = REDUNDANCY_CONFIGURATIONS[inputs.redundancy_mode].capacity_factor
    if capacity_factor < 1.2 and inputs.kw_per_rack > 75:
        recommendations.append(Recommendation(
            category="reliability",
            priority="high",
            message="Consider increasing redundancy for high-density deployments.",
            impact="Improved uptime could prevent costly outages",
        ))

    if (
        not inputs.include_generator
        and result.reliability is not None
        and result.reliability.tier == "Tier III"
    ):
        recommendations.append(Recommendation(
            category="reliability",
            priority="medium",
            message="Adding a generator would improve reliability for Tier III requirements.",
            impact="Could improve availability by 0.1-0.2%",
        ))

    if inputs.cooling_type is CoolingType.dlc and not inputs.heat_recovery:
        recommendations.append(Recommendation(
            category="sustainability",
            priority="medium",
            message="DLC systems are ideal for waste heat recovery. Consider enabling this option.",
            impact="Could recover up to 40% of waste heat for reuse",
        ))

    count = len(recommendations)
    if count > 2:
        potential = "high"
    elif count > 0:
        potential = "medium"
    else:
        potential = "low"

    return {
        "recommendations": recommendations,
        "optimization_potential": potential,
        "summary": f"{count} improvement opportunities identified",
    }
