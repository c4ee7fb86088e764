# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Side-by-side comparison of calculated configurations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from dc_configurator.data.models import (
    CalculationInputs,
    CalculationResult,
    CoolingType,
    RedundancyMode,
)

if TYPE_CHECKING:
    from dc_configurator.calculator.engine import CalculatorEngine

_COOLING_REASONS = {
    CoolingType.air: (
        "Air cooling offers the lowest initial cost and simplest implementation, "
        "with a PUE of {pue}."
    ),
    CoolingType.dlc: (
        "Direct Liquid Cooling provides excellent efficiency with a PUE of {pue}, "
        "making it ideal for high-density deployments."
    ),
    CoolingType.hybrid: (
        "Hybrid cooling offers a balanced approach with good efficiency (PUE {pue}) "
        "and moderate cost, suitable for mixed workloads."
    ),
    CoolingType.immersion: (
        "Immersion cooling delivers the best efficiency (PUE {pue}) and is recommended "
        "for very high-density deployments despite higher initial cost."
    ),
}


def _relative(value: float, baseline: float) -> float:
    return (value - baseline) / baseline if baseline else 0.0


def _pct(fraction: float) -> str:
    return f"{fraction * 100:.1f}%"


def payback_period(result: CalculationResult) -> float:
    """Years for annual running costs to equal the capital cost."""
    if result.tco is None or not result.tco.annual_total_cost:
        return 0.0
    return round(result.cost.total_project_cost / result.tco.annual_total_cost, 1)


def _water(result: CalculationResult) -> float:
    return result.sustainability.water_usage_annual_m3 if result.sustainability else 0.0


def _carbon(result: CalculationResult) -> float:
    return result.sustainability.annual_carbon_kg if result.sustainability else 0.0


def _availability(result: CalculationResult) -> float:
    return result.reliability.availability_percentage if result.reliability else 0.0


def _label(result: CalculationResult) -> dict[str, Any]:
    i = result.inputs
    return {
        "kw_per_rack": i.kw_per_rack,
        "cooling_type": i.cooling_type.value,
        "total_racks": i.total_racks,
        "redundancy_mode": i.redundancy_mode.value,
    }


def compare_configurations(results: list[CalculationResult]) -> dict[str, Any]:
    """Compare each result against the first one, which is the baseline.

    Returns ``{"configurations": [...], "summary": {...}}``. The summary
    names the configuration with the lowest cost, PUE, water use and
    carbon, and the highest availability.
    """
    if not results:
        return {"configurations": [], "summary": {}}

    baseline = results[0]
    configurations: list[dict[str, Any]] = []
    for index, result in enumerate(results):
        entry: dict[str, Any] = {"configuration": _label(result), "result": result}
        if index == 0:
            entry["comparison"] = {"is_baseline": True}
        else:
            cost = _relative(result.cost.total_project_cost, baseline.cost.total_project_cost)
            pue = _relative(result.pue, baseline.pue)
            water = _relative(_water(result), _water(baseline))
            carbon = _relative(_carbon(result), _carbon(baseline))
            entry["comparison"] = {
                "is_baseline": False,
                "cost_diff": cost,
                "cost_diff_percentage": _pct(cost),
                "pue_diff": pue,
                "pue_diff_percentage": _pct(pue),
                "water_usage_diff": water,
                "water_usage_diff_percentage": _pct(water),
                "carbon_diff": carbon,
                "carbon_diff_percentage": _pct(carbon),
            }
        configurations.append(entry)

    summary = {
        "lowest_cost": _label(min(results, key=lambda r: r.cost.total_project_cost)),
        "lowest_pue": _label(min(results, key=lambda r: r.pue)),
        "lowest_water_usage": _label(min(results, key=_water)),
        "lowest_carbon_footprint": _label(min(results, key=_carbon)),
        "highest_reliability": _label(max(results, key=_availability)),
    }
    return {"configurations": configurations, "summary": summary}


def _rank_points(rows: list[dict[str, Any]], metric: str) -> dict[str, int]:
    points: dict[str, int] = {}
    for rank, row in enumerate(sorted(rows, key=lambda r: r[metric])):
        points[row["cooling_type"]] = 3 - min(rank, 2)
    return points


def compare_cooling_technologies(
    engine: CalculatorEngine,
    kw_per_rack: float,
    total_racks: int,
) -> dict[str, Any]:
    """Run the same load through every cooling technology, relative to air."""
    rows: list[dict[str, Any]] = []
    baseline: CalculationResult | None = None
    for cooling_type in CoolingType:
        result = engine.calculate(
            CalculationInputs(
                kw_per_rack=kw_per_rack, cooling_type=cooling_type, total_racks=total_racks
            )
        )
        if baseline is None:
            baseline = result
        pue_gain = baseline.pue - result.pue
        cost_diff = result.cost.total_project_cost - baseline.cost.total_project_cost
        energy_savings = 0.0
        if result.sustainability and baseline.sustainability:
            energy_savings = (
                baseline.sustainability.annual_total_energy_kwh
                - result.sustainability.annual_total_energy_kwh
            )
        rows.append({
            "cooling_type": cooling_type.value,
            "pue": result.pue,
            "pue_improvement": round(pue_gain, 3),
            "pue_improvement_percentage": _pct(pue_gain / baseline.pue),
            "initial_cost": result.cost.total_project_cost,
            "cost_difference": cost_diff,
            "cost_difference_percentage": _pct(
                _relative(result.cost.total_project_cost, baseline.cost.total_project_cost)
            ),
            "annual_energy_savings": energy_savings,
            "water_usage": _water(result),
            "payback_period": payback_period(result),
        })

    scores: dict[str, int] = {row["cooling_type"]: 0 for row in rows}
    for metric in ("pue", "initial_cost", "payback_period"):
        for cooling_type, points in _rank_points(rows, metric).items():
            scores[cooling_type] += points
    best_type = max(scores, key=lambda t: scores[t])
    best = next(row for row in rows if row["cooling_type"] == best_type)

    return {
        "base_configuration": {
            "kw_per_rack": kw_per_rack,
            "total_racks": total_racks,
            "total_power": kw_per_rack * total_racks,
        },
        "comparison_results": rows,
        "recommendation": {
            "recommended_cooling_type": best_type,
            "reason": _COOLING_REASONS[CoolingType(best_type)].format(pue=best["pue"]),
            "metrics": best,
        },
    }


def compare_redundancy_options(
    engine: CalculatorEngine,
    kw_per_rack: float,
    cooling_type: CoolingType | str,
    total_racks: int,
) -> dict[str, Any]:
    """Cost and availability of every redundancy mode, relative to N."""
    rows: list[dict[str, Any]] = []
    for mode in RedundancyMode:
        result = engine.calculate(
            CalculationInputs(
                kw_per_rack=kw_per_rack,
                cooling_type=CoolingType(cooling_type),
                total_racks=total_racks,
                redundancy_mode=mode,
            )
        )
        reliability = result.reliability
        rows.append({
            "redundancy_mode": mode.value,
            "availability": _availability(result),
            "annual_downtime": reliability.annual_downtime_minutes if reliability else 0,
            "tier": reliability.tier if reliability else "Tier I",
            "total_cost": result.cost.total_project_cost,
            "cost_increase": 0.0,
            "cost_per_availability_point": 0.0,
        })

    baseline = rows[0]
    for row in rows:
        row["cost_increase"] = row["total_cost"] - baseline["total_cost"]
        gain = row["availability"] - baseline["availability"]
        row["cost_per_availability_point"] = round(row["cost_increase"] / gain) if gain else 0.0

    by_availability = sorted(rows, key=lambda r: r["availability"], reverse=True)
    tier_iv = next((r for r in by_availability if r["tier"] == "Tier IV"), None)
    tier_iii = next((r for r in by_availability if r["tier"] == "Tier III"), None)
    best = tier_iii or by_availability[0]
    cost_effective = sorted(
        (r for r in rows if r["cost_per_availability_point"] > 0),
        key=lambda r: r["cost_per_availability_point"],
    )

    def _increase(row: dict[str, Any]) -> str:
        return _pct(_relative(row["total_cost"], baseline["total_cost"]))

    return {
        "base_configuration": {
            "kw_per_rack": kw_per_rack,
            "cooling_type": CoolingType(cooling_type).value,
            "total_racks": total_racks,
            "total_power": kw_per_rack * total_racks,
        },
        "comparison_results": rows,
        "recommendation": {
            "recommended_redundancy": best["redundancy_mode"],
            "tier": best["tier"],
            "availability": best["availability"],
            "annual_downtime": best["annual_downtime"],
            "cost_implication": (
                f"{_increase(best)} increase over N configuration"
                if best["cost_increase"] > 0
                else "Baseline cost"
            ),
            "highest_availability": (
                {"mode": tier_iv["redundancy_mode"], "availability": tier_iv["availability"],
                 "cost_increase": f"{_increase(tier_iv)} increase"}
                if tier_iv else None
            ),
            "most_cost_effective": (
                {"mode": cost_effective[0]["redundancy_mode"],
                 "availability": cost_effective[0]["availability"]}
                if cost_effective else None
            ),
        },
    }
