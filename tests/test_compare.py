# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Tests for configuration comparison, optimisation and analysis."""

from __future__ import annotations

import pytest

from dc_configurator.calculator.compare import (
    compare_configurations,
    compare_cooling_technologies,
    compare_redundancy_options,
    payback_period,
)
from dc_configurator.calculator.optimizer import (
    OptimizationConstraints,
    analyze_configuration,
    optimize_configuration,
    score_result,
)
from dc_configurator.data.models import CalculationInputs, CoolingType


class TestCompareConfigurations:
    """Pairwise comparison against a baseline."""

    def test_empty(self):
        assert compare_configurations([]) == {"configurations": [], "summary": {}}

    def test_baseline_and_diffs(self, sample_result, dlc_result):
        out = compare_configurations([sample_result, dlc_result])
        first, second = out["configurations"]
        assert first["comparison"] == {"is_baseline": True}
        assert second["comparison"]["is_baseline"] is False
        assert second["comparison"]["cost_diff"] > 0
        assert second["comparison"]["pue_diff"] < 0
        assert second["comparison"]["cost_diff_percentage"].endswith("%")

    def test_summary_picks_extremes(self, sample_result, dlc_result):
        summary = compare_configurations([sample_result, dlc_result])["summary"]
        assert summary["lowest_cost"]["cooling_type"] == "air"
        assert summary["lowest_pue"]["cooling_type"] == "dlc"
        assert summary["highest_reliability"]["redundancy_mode"] == "2N"

    def test_payback_period(self, sample_result):
        expected = round(
            sample_result.cost.total_project_cost / sample_result.tco.annual_total_cost, 1
        )
        assert payback_period(sample_result) == expected


class TestCoolingComparison:
    """Every cooling technology for one load."""

    def test_rows_cover_every_technology(self, engine):
        out = compare_cooling_technologies(engine, 50, 28)
        types = [row["cooling_type"] for row in out["comparison_results"]]
        assert types == [c.value for c in CoolingType]
        assert out["base_configuration"]["total_power"] == 1400

    def test_air_is_baseline(self, engine):
        rows = compare_cooling_technologies(engine, 50, 28)["comparison_results"]
        air = rows[0]
        assert air["pue_improvement"] == 0
        assert air["cost_difference"] == 0
        assert air["annual_energy_savings"] == 0

    def test_liquid_saves_energy(self, engine):
        rows = compare_cooling_technologies(engine, 50, 28)["comparison_results"]
        immersion = next(r for r in rows if r["cooling_type"] == "immersion")
        assert immersion["pue_improvement"] == pytest.approx(0.32)
        assert immersion["annual_energy_savings"] > 0

    def test_recommendation(self, engine):
        rec = compare_cooling_technologies(engine, 50, 28)["recommendation"]
        assert rec["recommended_cooling_type"] in {c.value for c in CoolingType}
        assert str(rec["metrics"]["pue"]) in rec["reason"]


class TestRedundancyComparison:
    """Every redundancy mode for one load."""

    def test_baseline_is_n(self, engine):
        rows = compare_redundancy_options(engine, 25, "air", 20)["comparison_results"]
        assert rows[0]["redundancy_mode"] == "N"
        assert rows[0]["cost_increase"] == 0
        assert rows[0]["cost_per_availability_point"] == 0

    def test_more_redundancy_costs_more(self, engine):
        rows = compare_redundancy_options(engine, 25, "air", 20)["comparison_results"]
        costs = {r["redundancy_mode"]: r["total_cost"] for r in rows}
        assert costs["N"] < costs["N+1"] < costs["2N"] < costs["2N+1"]

    def test_recommends_tier_iii(self, engine):
        out = compare_redundancy_options(engine, 25, CoolingType.air, 20)
        rec = out["recommendation"]
        assert rec["tier"] == "Tier III"
        assert rec["cost_implication"].endswith("increase over N configuration")
        assert rec["most_cost_effective"] is not None


class TestOptimizer:
    """Grid search over candidate configurations."""

    def test_default_search(self, engine):
        result = optimize_configuration(engine)
        assert result.evaluated == 60
        assert len(result.top_configurations) == 3
        scores = [s.score for s in result.top_configurations]
        assert scores == sorted(scores, reverse=True)
        assert result.recommended is result.top_configurations[0]

    def test_cost_goal_prefers_cheapest(self, engine):
        result = optimize_configuration(engine, goal="cost")
        costs = [s.result.cost.total_project_cost for s in result.top_configurations]
        assert costs == sorted(costs)
        assert result.summary["total_cost"] == costs[0]

    def test_constraints_restrict_candidates(self, engine):
        constraints = OptimizationConstraints(
            preferred_cooling_types=[CoolingType.dlc],
            rack_count_range=(14, 28),
            max_power_density=100,
        )
        result = optimize_configuration(engine, constraints, "efficiency")
        assert result.evaluated == 9
        assert all(s.inputs.cooling_type is CoolingType.dlc for s in result.top_configurations)
        assert all(s.inputs.kw_per_rack <= 100 for s in result.top_configurations)

    def test_unsatisfiable_constraints(self, engine):
        constraints = OptimizationConstraints(
            preferred_cooling_types=[CoolingType.air], max_pue=1.1
        )
        result = optimize_configuration(engine, constraints)
        assert result.top_configurations == []
        assert result.recommended is None
        assert result.summary == {"message": "No configuration satisfies the constraints"}

    def test_budget_is_enforced(self, engine):
        constraints = OptimizationConstraints(max_budget=3_000_000)
        result = optimize_configuration(engine, constraints)
        assert all(
            s.result.cost.total_project_cost <= 3_000_000 for s in result.top_configurations
        )

    def test_score_unknown_goal(self, sample_result):
        with pytest.raises(ValueError):
            score_result(sample_result, "speed")  # type: ignore[arg-type]


class TestAnalysis:
    """Improvement hints for a single result."""

    def test_air_at_low_density(self, sample_result):
        analysis = analyze_configuration(sample_result)
        categories = [r.category for r in analysis["recommendations"]]
        assert categories == ["efficiency"]
        assert analysis["optimization_potential"] == "medium"
        assert analysis["summary"] == "1 improvement opportunities identified"

    def test_high_density_air(self, engine):
        result = engine.calculate(
            CalculationInputs(kw_per_rack=120, cooling_type="air", total_racks=14,
                              redundancy_mode="N")
        )
        analysis = analyze_configuration(result)
        priorities = [r.priority for r in analysis["recommendations"]]
        assert priorities.count("high") == 2
        assert analysis["optimization_potential"] == "high"

    def test_dlc_without_heat_recovery(self, engine):
        result = engine.calculate(CalculationInputs(kw_per_rack=80, cooling_type="dlc"))
        messages = [r.message for r in analyze_configuration(result)["recommendations"]]
        assert any("waste heat recovery" in m for m in messages)
