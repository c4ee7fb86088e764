# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Saved calculations and structured configuration reports."""

from __future__ import annotations

import logging
import secrets
import time
from datetime import datetime, timezone
from typing import Any

from dc_configurator.calculator.compare import (
    compare_cooling_technologies,
    compare_redundancy_options,
)
from dc_configurator.calculator.engine import CalculatorEngine
from dc_configurator.calculator.optimizer import analyze_configuration
from dc_configurator.data.models import (
    CalculationInputs,
    CalculationResult,
    SavedCalculation,
)
from dc_configurator.errors import ProjectError
from dc_configurator.services.projects import PROJECTS_COLLECTION, Project
from dc_configurator.store.base import DocumentStore, Filter

logger = logging.getLogger(__name__)

CALCULATIONS_COLLECTION = "matrix_calculator/calculations/results"
REPORTS_COLLECTION = "matrix_calculator/reports/entries"

INDUSTRY_AVERAGE_PUE = 1.58
TREES_PER_TONNE_CO2 = 45
WATER_RECYCLING_POTENTIAL = 0.6
MIN_ACHIEVABLE_PUE = 1.1


def _report_id() -> str:
    stamp = format(int(time.time() * 1000), "x").upper()
    return f"RPT-{stamp}-{secrets.token_hex(3).upper()[:5]}"


def describe_inputs(inputs: CalculationInputs) -> str:
    return (
        f"{inputs.kw_per_rack:g}kW per rack, {inputs.cooling_type.value} cooling, "
        f"{inputs.total_racks} racks"
    )


class CalculationService:
    """Persist calculation results and build reports from them.

    Parameters
    ----------
    store:
        Backing document store.
    engine:
        Used for the comparison sections of generated reports.
    admin_users:
        Users who may read any project's calculations.
    """

    def __init__(
        self,
        store: DocumentStore,
        engine: CalculatorEngine | None = None,
        admin_users: list[str] | None = None,
    ) -> None:
        self.store = store
        self.engine = engine or CalculatorEngine()
        self.admin_users = set(admin_users or [])

    # ------------------------------------------------------------------
    # Access control
    # ------------------------------------------------------------------

    def _check_project_access(self, project_id: str, user_id: str) -> Project:
        doc = self.store.get(PROJECTS_COLLECTION, project_id)
        if doc is None:
            raise ProjectError(f"Project {project_id} not found", code="NOT_FOUND")
        project = Project.model_validate(doc)
        if user_id not in self.admin_users and not project.can_access(user_id):
            raise ProjectError("Unauthorized access to project", code="UNAUTHORIZED")
        return project

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def save_calculation(
        self,
        user_id: str,
        inputs: CalculationInputs,
        results: CalculationResult,
        project_id: str | None = None,
        name: str | None = None,
    ) -> SavedCalculation:
        if project_id:
            self._check_project_access(project_id, user_id)

        saved = SavedCalculation(
            user_id=user_id,
            project_id=project_id,
            name=name or f"Calculation {datetime.now(timezone.utc):%Y-%m-%d %H:%M}",
            description=describe_inputs(inputs),
            inputs=inputs,
            results=results,
        )
        try:
            saved.id = self.store.add(
                CALCULATIONS_COLLECTION, saved.model_dump(mode="json", exclude={"id"})
            )
        except Exception as exc:
            raise ProjectError("Failed to save calculation", code="CREATE_FAILED") from exc
        logger.info("Saved calculation %s for %s", saved.id, user_id)
        return saved

    def get_calculation(self, calculation_id: str) -> SavedCalculation | None:
        doc = self.store.get(CALCULATIONS_COLLECTION, calculation_id)
        return SavedCalculation.model_validate(doc) if doc else None

    def get_calculation_for_user(self, calculation_id: str, user_id: str) -> SavedCalculation:
        """Fetch a calculation the user owns, or can see through its project."""
        saved = self.get_calculation(calculation_id)
        if saved is None:
            raise ProjectError(f"Calculation {calculation_id} not found", code="NOT_FOUND")
        if saved.user_id == user_id or user_id in self.admin_users:
            return saved
        if saved.project_id:
            try:
                self._check_project_access(saved.project_id, user_id)
            except ProjectError as exc:
                if exc.code != "NOT_FOUND":
                    raise
            else:
                return saved
        raise ProjectError("Not authorized to view this calculation", code="UNAUTHORIZED")

    def get_user_calculations(
        self, owner_id: str, user_id: str, limit: int = 5
    ) -> list[SavedCalculation]:
        """History for *owner_id*, readable by that user and admins."""
        if owner_id != user_id and user_id not in self.admin_users:
            raise ProjectError("Not authorized to view this history", code="UNAUTHORIZED")
        return self.fetch_historical_calculations(owner_id, limit=limit)

    def get_project_calculations(self, project_id: str, user_id: str) -> list[SavedCalculation]:
        self._check_project_access(project_id, user_id)
        try:
            docs = self.store.query(
                CALCULATIONS_COLLECTION,
                filters=[Filter("project_id", "==", project_id)],
                order_by="created_at",
                descending=True,
            )
        except Exception as exc:
            raise ProjectError("Failed to fetch project calculations", code="FETCH_FAILED") from exc
        return [SavedCalculation.model_validate(doc) for doc in docs]

    def fetch_historical_calculations(self, user_id: str, limit: int = 5) -> list[SavedCalculation]:
        """Most recent completed calculations for a user, newest first."""
        docs = self.store.query(
            CALCULATIONS_COLLECTION,
            filters=[
                Filter("user_id", "==", user_id),
                Filter("status", "==", "completed"),
            ],
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return [SavedCalculation.model_validate(doc) for doc in docs]

    def delete_calculation(self, calculation_id: str, user_id: str) -> None:
        saved = self.get_calculation(calculation_id)
        if saved is None:
            raise ProjectError(f"Calculation {calculation_id} not found", code="NOT_FOUND")
        if saved.user_id != user_id and user_id not in self.admin_users:
            raise ProjectError("Not authorized to delete this calculation", code="UNAUTHORIZED")
        try:
            self.store.delete(CALCULATIONS_COLLECTION, calculation_id)
        except Exception as exc:
            raise ProjectError("Failed to delete calculation", code="DELETE_FAILED") from exc

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def generate_report(
        self,
        result: CalculationResult,
        user_id: str | None = None,
        include_comparisons: bool = True,
    ) -> dict[str, Any]:
        """Build a structured report for one result.

        The comparison sections re-run the engine for every cooling type
        and redundancy mode; pass ``include_comparisons=False`` to skip them.
        When *user_id* is given the report is also stored; a failed store
        write is logged and does not fail the report.
        """
        analysis = analyze_configuration(result)
        cooling_cmp: dict[str, Any] | None = None
        redundancy_cmp: dict[str, Any] | None = None
        if include_comparisons:
            inputs = result.inputs
            cooling_cmp = compare_cooling_technologies(
                self.engine, inputs.kw_per_rack, inputs.total_racks
            )
            redundancy_cmp = compare_redundancy_options(
                self.engine, inputs.kw_per_rack, inputs.cooling_type, inputs.total_racks
            )

        report: dict[str, Any] = {
            "report_id": _report_id(),
            "user_id": user_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "configuration": result.inputs.model_dump(mode="json"),
            "executive_summary": executive_summary(result, analysis, cooling_cmp, redundancy_cmp),
            "financial_analysis": financial_analysis(result),
            "sustainability_analysis": sustainability_analysis(result),
            "recommendations": [r.model_dump() for r in analysis["recommendations"]],
            "cooling_comparison": cooling_cmp,
            "redundancy_comparison": redundancy_cmp,
        }
        if result.is_fallback:
            report["note"] = (
                "Simplified report: the full calculation failed and estimates were used."
            )

        if user_id:
            try:
                self.store.set(REPORTS_COLLECTION, report["report_id"], report)
            except Exception:
                logger.warning("Could not store report %s", report["report_id"], exc_info=True)
        return report


def executive_summary(
    result: CalculationResult,
    analysis: dict[str, Any],
    cooling_cmp: dict[str, Any] | None = None,
    redundancy_cmp: dict[str, Any] | None = None,
) -> dict[str, Any]:
    inputs = result.inputs
    cost = result.cost
    reliability = result.reliability
    recommendations = analysis["recommendations"]

    summary: dict[str, Any] = {
        "configuration_overview": {
            "power_density": f"{inputs.kw_per_rack:g} kW/rack",
            "total_power": f"{result.total_it_load_kw:g} kW",
            "cooling_type": inputs.cooling_type.value,
            "redundancy_mode": inputs.redundancy_mode.value,
            "tier": reliability.tier if reliability else None,
        },
        "key_metrics": {
            "total_cost": f"${cost.total_project_cost:,.0f}",
            "cost_per_rack": f"${cost.cost_per_rack:,.0f}",
            "cost_per_kw": f"${cost.cost_per_kw:,.0f}",
            "pue": f"{result.pue:.2f}",
            "availability": f"{reliability.availability_percentage}%" if reliability else None,
            "annual_downtime": (
                f"{reliability.annual_downtime_minutes} minutes/year" if reliability else None
            ),
        },
        "optimization_potential": analysis["optimization_potential"],
        "recommendation_count": len(recommendations),
        "top_recommendation": recommendations[0].message if recommendations else "No recommendations",
    }
    if cooling_cmp is not None:
        best = cooling_cmp["recommendation"]["recommended_cooling_type"]
        summary["alternative_cooling"] = (
            f"Consider {best} cooling for better efficiency"
            if best != inputs.cooling_type.value
            else "Current cooling type is optimal"
        )
    if redundancy_cmp is not None:
        best = redundancy_cmp["recommendation"]["recommended_redundancy"]
        summary["alternative_redundancy"] = (
            f"Consider {best} redundancy for better reliability/cost balance"
            if best != inputs.redundancy_mode.value
            else "Current redundancy configuration is optimal"
        )
    return summary


def financial_analysis(result: CalculationResult) -> dict[str, Any]:
    """CAPEX/OPEX breakdown plus two what-if investment scenarios."""
    cost = result.cost
    capex = cost.total_project_cost
    section: dict[str, Any] = {
        "capital_expenditure": {
            "total": capex,
            "breakdown": {
                "electrical": cost.electrical_total,
                "cooling": cost.cooling,
                "power": cost.power_total,
                "infrastructure": cost.ehouse,
                "sustainability": cost.sustainability,
                "installation": cost.installation,
                "engineering": cost.engineering,
                "contingency": cost.contingency,
            },
        },
    }
    tco = result.tco
    if tco is None:
        return section

    annual_opex = tco.annual_total_cost
    section["operational_expenditure"] = {
        "annual": annual_opex,
        "breakdown": {
            "energy": tco.annual_energy_cost,
            "maintenance": tco.annual_maintenance_cost,
            "operational": tco.annual_operational_cost,
        },
    }
    section["total_cost_of_ownership"] = {
        "total": tco.total_cost_of_ownership,
        "annualized": tco.annualized_tco,
        "assumptions": tco.assumptions,
    }

    # 10% more CAPEX for 10% lower OPEX; 20% more CAPEX for a 5% downtime benefit
    efficient_capex = capex * 0.1
    efficient_savings = annual_opex * 0.1
    reliable_capex = capex * 0.2
    reliable_benefit = annual_opex * 0.05
    section["investment_scenarios"] = {
        "baseline": {
            "capex": capex,
            "annual_opex": annual_opex,
            "ten_year_tco": tco.total_cost_of_ownership,
        },
        "efficient_option": {
            "additional_capex": round(efficient_capex),
            "annual_savings": round(efficient_savings),
            "payback_years": round(efficient_capex / efficient_savings, 1) if efficient_savings else None,
            "ten_year_savings": round(efficient_savings * 10 - efficient_capex),
        },
        "reliable_option": {
            "additional_capex": round(reliable_capex),
            "annual_benefit": round(reliable_benefit),
            "payback_years": round(reliable_capex / reliable_benefit, 1) if reliable_benefit else None,
            "ten_year_benefit": round(reliable_benefit * 10 - reliable_capex),
        },
    }
    return section


def _water_rating(litres_per_mwh: float) -> str:
    if litres_per_mwh < 2000:
        return "Excellent"
    if litres_per_mwh < 3500:
        return "Good"
    return "Needs Improvement"


def sustainability_analysis(result: CalculationResult) -> dict[str, Any]:
    """Energy, carbon, water and heat-recovery figures against benchmarks."""
    sus = result.sustainability
    carbon = result.carbon_footprint
    if sus is None or carbon is None:
        return {}

    pue = sus.pue
    total_energy = sus.annual_total_energy_kwh
    vs_industry = (INDUSTRY_AVERAGE_PUE - pue) / INDUSTRY_AVERAGE_PUE * 100
    target_pue = max(MIN_ACHIEVABLE_PUE, pue - 0.2)
    reduction_share = 1 - target_pue / pue if pue else 0.0
    emissions_cut = carbon.total_annual_emissions_tonnes * reduction_share

    water_litres = sus.water_usage_annual_m3 * 1000
    water_per_mwh = water_litres / total_energy * 1000 if total_energy else 0.0

    return {
        "energy_efficiency": {
            "pue": round(pue, 2),
            "industry_comparison": (
                f"{abs(vs_industry):.1f}% {'better' if vs_industry >= 0 else 'worse'} "
                "than industry average"
            ),
            "annual_energy_kwh": {
                "total": total_energy,
                "it": sus.annual_it_energy_kwh,
                "overhead": sus.annual_overhead_energy_kwh,
            },
            "improvement_potential": {
                "target_pue": round(target_pue, 2),
                "energy_savings_kwh": round(total_energy * reduction_share),
            },
        },
        "carbon_footprint": {
            "annual_emissions_tonnes": carbon.total_annual_emissions_tonnes,
            "emissions_per_mwh": carbon.emissions_per_mwh,
            "renewable_percentage": carbon.renewable_percentage,
            "emissions_avoided_tonnes": carbon.emissions_avoided_tonnes,
            "reduction_potential_tonnes": round(emissions_cut),
            "equivalent_trees": round(emissions_cut * TREES_PER_TONNE_CO2),
        },
        "water_usage": {
            "annual_m3": sus.water_usage_annual_m3,
            "recycling_enabled": sus.water_recycling,
            "recycling_savings_potential_m3": (
                0 if sus.water_recycling
                else round(sus.water_usage_annual_m3 * WATER_RECYCLING_POTENTIAL)
            ),
            "litres_per_mwh": round(water_per_mwh),
            "benchmark": _water_rating(water_per_mwh),
        },
        "waste_heat_recovery": {
            "enabled": result.inputs.heat_recovery,
            "recovered_heat_kwh": sus.waste_heat_recovered_kwh,
            "potential_savings": sus.heat_recovery_savings,
            "recommendation": (
                "Waste heat recovery system already implemented"
                if result.inputs.heat_recovery
                else "Implementing waste heat recovery could provide significant benefits"
            ),
        },
    }
