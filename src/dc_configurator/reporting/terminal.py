# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Rich terminal output for calculation results, comparisons and optimisation."""

from __future__ import annotations

from typing import Any

from rich.columns import Columns
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from dc_configurator import __version__
from dc_configurator.calculator.optimizer import OptimizationResult
from dc_configurator.data.models import CalculationResult, PricingMatrix, Recommendation

_PRIORITY_COLORS = {"high": "red", "medium": "yellow", "low": "green"}


def _pue_color(pue: float) -> str:
    if pue <= 1.2:
        return "green"
    if pue <= 1.4:
        return "yellow"
    return "red"


class TerminalRenderer:
    """Renders calculator output to the terminal using Rich."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render(self, result: CalculationResult, show_details: bool = True) -> None:
        """Render a full calculation result."""
        self._render_header(result)
        self._render_key_metrics(result)
        if show_details:
            self._render_electrical(result)
            self._render_cooling(result)
            self._render_power(result)
        self._render_cost(result)
        if show_details:
            self._render_reliability(result)
            self._render_sustainability(result)
        self._render_warnings(result)
        self._render_footer(result)

    def render_recommendations(self, analysis: dict[str, Any]) -> None:
        recommendations: list[Recommendation] = analysis["recommendations"]
        self.console.print()
        self.console.print(Rule("[bold]RECOMMENDATIONS[/bold]"))
        if not recommendations:
            self.console.print("  [green]No improvements identified.[/green]")
            return

        table = Table(show_header=True, header_style="bold", padding=(0, 1))
        table.add_column("Category", style="bold", width=14)
        table.add_column("Priority", justify="center", width=8)
        table.add_column("Recommendation", min_width=30)
        table.add_column("Impact", min_width=20)
        for rec in recommendations:
            color = _PRIORITY_COLORS.get(rec.priority, "white")
            table.add_row(
                rec.category,
                f"[{color}]{rec.priority}[/{color}]",
                rec.message,
                rec.impact,
            )
        self.console.print(table)
        self.console.print(
            f"\n  [bold]Optimisation potential:[/bold] {analysis['optimization_potential']}"
        )

    def render_cooling_comparison(self, comparison: dict[str, Any]) -> None:
        self.console.print()
        base = comparison["base_configuration"]
        self.console.print(Rule(
            f"[bold]COOLING COMPARISON[/bold] - {base['kw_per_rack']:g} kW x {base['total_racks']} racks"
        ))
        recommended = comparison["recommendation"]["recommended_cooling_type"]

        table = Table(show_header=True, header_style="bold", padding=(0, 1))
        table.add_column("Cooling", style="bold")
        table.add_column("PUE", justify="right")
        table.add_column("Initial Cost", justify="right")
        table.add_column("vs Air", justify="right")
        table.add_column("Energy Saved/yr", justify="right")
        table.add_column("Payback", justify="right")
        for row in comparison["comparison_results"]:
            name = row["cooling_type"]
            if name == recommended:
                name = f"[green]{name} *[/green]"
            color = _pue_color(row["pue"])
            table.add_row(
                name,
                f"[{color}]{row['pue']:.2f}[/{color}]",
                f"${row['initial_cost']:,.0f}",
                row["cost_difference_percentage"],
                f"{row['annual_energy_savings']:,.0f} kWh",
                f"{row['payback_period']:.1f} yr",
            )
        self.console.print(table)
        self.console.print(f"\n  [bold]Recommended:[/bold] {comparison['recommendation']['reason']}")

    def render_redundancy_comparison(self, comparison: dict[str, Any]) -> None:
        self.console.print()
        self.console.print(Rule("[bold]REDUNDANCY COMPARISON[/bold]"))
        recommendation = comparison["recommendation"]

        table = Table(show_header=True, header_style="bold", padding=(0, 1))
        table.add_column("Mode", style="bold")
        table.add_column("Tier", justify="center")
        table.add_column("Availability", justify="right")
        table.add_column("Downtime/yr", justify="right")
        table.add_column("Total Cost", justify="right")
        table.add_column("Cost Increase", justify="right")
        for row in comparison["comparison_results"]:
            mode = row["redundancy_mode"]
            if mode == recommendation["recommended_redundancy"]:
                mode = f"[green]{mode} *[/green]"
            table.add_row(
                mode,
                row["tier"],
                f"{row['availability']:.4f}%",
                f"{row['annual_downtime']} min",
                f"${row['total_cost']:,.0f}",
                f"${row['cost_increase']:,.0f}",
            )
        self.console.print(table)
        self.console.print(
            f"\n  [bold]Recommended:[/bold] {recommendation['recommended_redundancy']} "
            f"({recommendation['tier']}, {recommendation['cost_implication']})"
        )

    def render_optimization(self, optimization: OptimizationResult) -> None:
        self.console.print()
        self.console.print(Rule(
            f"[bold]OPTIMISATION[/bold] - goal: {optimization.goal}, "
            f"{optimization.evaluated} configurations evaluated"
        ))
        if not optimization.top_configurations:
            self.console.print(f"  [yellow]{optimization.summary['message']}[/yellow]")
            return

        table = Table(show_header=True, header_style="bold", padding=(0, 1))
        table.add_column("#", justify="right", style="bold", width=3)
        table.add_column("kW/rack", justify="right")
        table.add_column("Racks", justify="right")
        table.add_column("Cooling")
        table.add_column("Redundancy")
        table.add_column("PUE", justify="right")
        table.add_column("Total Cost", justify="right")
        table.add_column("Score", justify="right")
        for rank, scored in enumerate(optimization.top_configurations, start=1):
            res = scored.result
            table.add_row(
                str(rank),
                f"{res.inputs.kw_per_rack:g}",
                str(res.inputs.total_racks),
                res.inputs.cooling_type.value,
                res.inputs.redundancy_mode.value,
                f"{res.pue:.2f}",
                f"${res.cost.total_project_cost:,.0f}",
                f"{scored.score:.3f}",
            )
        self.console.print(table)
        self.console.print(f"\n  {optimization.summary.get('message', '')}")

    def render_pricing(self, pricing: PricingMatrix) -> None:
        self.console.print()
        self.console.print(Rule("[bold]PRICING MATRIX[/bold]"))
        panels = []
        for section, prices in pricing.model_dump().items():
            if not prices:
                continue
            table = Table(show_header=False, box=None, padding=(0, 1))
            table.add_column("Item")
            table.add_column("Price", justify="right")
            for key, value in prices.items():
                table.add_row(key, f"${value:,.0f}")
            panels.append(Panel(table, title=f"[bold]{section}[/bold]", width=40))
        self.console.print(Columns(panels, padding=(0, 1)))

    # ------------------------------------------------------------------
    # Private rendering methods
    # ------------------------------------------------------------------

    def _render_header(self, result: CalculationResult) -> None:
        inputs = result.inputs
        header = Text()
        header.append("DC CONFIGURATOR", style="bold cyan")
        header.append(" | ", style="dim")
        header.append(f"{inputs.total_racks} racks x {inputs.kw_per_rack:g} kW", style="bold")
        header.append(f" | {inputs.cooling_type.value} cooling")
        header.append(f" | {inputs.redundancy_mode.value}")
        if inputs.location:
            header.append(f" ({inputs.location})", style="dim")

        self.console.print()
        self.console.print(Panel(header, title="Configuration"))
        if result.is_fallback:
            self.console.print(
                "  [bold yellow]Estimated result[/bold yellow] "
                "[yellow]- the detailed calculation failed, figures are approximate.[/yellow]"
            )

    def _render_key_metrics(self, result: CalculationResult) -> None:
        pue_color = _pue_color(result.pue)
        tier = result.reliability.tier if result.reliability else "n/a"
        panels = [
            Panel(f"[bold]{result.total_it_load_kw:,.0f} kW[/bold]", title="IT Load", width=24),
            Panel(f"[bold {pue_color}]{result.pue:.2f}[/bold {pue_color}]", title="PUE", width=24),
            Panel(f"[bold]${result.cost.total_project_cost:,.0f}[/bold]", title="Total Cost", width=24),
            Panel(f"[bold]{tier}[/bold]", title="Tier", width=24),
        ]
        self.console.print()
        self.console.print(Columns(panels, padding=(0, 1)))

    def _section(self, title: str, rows: list[tuple[str, str]]) -> None:
        self.console.print()
        self.console.print(Rule(f"[bold]{title}[/bold]"))
        table = Table(show_header=False, padding=(0, 2), box=None)
        table.add_column("Item", style="bold")
        table.add_column("Value", justify="right")
        for label, value in rows:
            table.add_row(label, value)
        self.console.print(table)

    def _render_electrical(self, result: CalculationResult) -> None:
        elec = result.electrical
        self._section("ELECTRICAL", [
            ("Current per row", f"{elec.current_per_row} A"),
            ("Current per rack", f"{elec.current_per_rack} A"),
            ("Busbar", f"{elec.busbar_size} x {elec.busbars_per_row}"),
            ("Tap-off box", elec.tap_off_box),
            ("rPDU", elec.rpdu),
        ])

    def _render_cooling(self, result: CalculationResult) -> None:
        cool = result.cooling
        rows = [
            ("Type", cool.type.value),
            ("Capacity", f"{cool.total_capacity:,.0f} kW"),
        ]
        if cool.flow_rate:
            rows.append(("Flow rate", f"{cool.flow_rate:,.0f} L/min ({cool.pipe_size})"))
        if cool.rdhx_units:
            rows.append(("RDHX", f"{cool.rdhx_units} x {cool.rdhx_model}"))
        if cool.immersion_tanks:
            rows.append(("Immersion tanks", str(cool.immersion_tanks)))
        self._section("COOLING", rows)

    def _render_power(self, result: CalculationResult) -> None:
        power = result.power
        rows = [
            ("UPS", f"{power.ups.total_modules} x {power.ups.module_size_kw:g} kW "
                    f"in {power.ups.total_frames} x {power.ups.frame_size}"),
            ("Battery", f"{power.battery.cabinets_needed} cabinets, "
                        f"{power.battery.energy_needed_kwh:,.0f} kWh"),
        ]
        if power.generator is not None:
            rows.append(("Generator", f"{power.generator.model} "
                                      f"({power.generator.capacity_kva:,.0f} kVA)"))
        self._section("POWER", rows)

    def _render_cost(self, result: CalculationResult) -> None:
        cost = result.cost
        self.console.print()
        self.console.print(Rule("[bold]COST[/bold]"))
        table = Table(show_header=True, header_style="bold", padding=(0, 1))
        table.add_column("Line", style="bold", min_width=20)
        table.add_column("Cost", justify="right", min_width=14)
        for label, value in [
            ("Electrical", cost.electrical_total),
            ("Cooling", cost.cooling),
            ("Power", cost.power_total),
            ("E-House", cost.ehouse),
            ("Sustainability", cost.sustainability),
            ("Installation", cost.installation),
            ("Engineering", cost.engineering),
            ("Contingency", cost.contingency),
        ]:
            table.add_row(label, f"${value:,.0f}")
        table.add_row("[bold]Total[/bold]", f"[bold]${cost.total_project_cost:,.0f}[/bold]")
        self.console.print(table)
        self.console.print(
            f"  [dim]${cost.cost_per_rack:,.0f} per rack | ${cost.cost_per_kw:,.0f} per kW[/dim]"
        )

    def _render_reliability(self, result: CalculationResult) -> None:
        rel = result.reliability
        if rel is None:
            return
        self._section("RELIABILITY", [
            ("Availability", f"{rel.availability_percentage}%"),
            ("Tier", rel.tier),
            ("Downtime", f"{rel.annual_downtime_minutes} min/year"),
        ])

    def _render_sustainability(self, result: CalculationResult) -> None:
        sus = result.sustainability
        if sus is None:
            return
        rows = [
            ("Annual energy", f"{sus.annual_total_energy_kwh:,.0f} kWh"),
            ("Water", f"{sus.water_usage_annual_m3:,.0f} m3/year"),
        ]
        if result.carbon_footprint is not None:
            rows.append((
                "Emissions",
                f"{result.carbon_footprint.total_annual_emissions_tonnes:,.0f} t CO2e/year",
            ))
        if result.tco is not None:
            rows.append(("10-year TCO", f"${result.tco.total_cost_of_ownership:,.0f}"))
        self._section("SUSTAINABILITY", rows)

    def _render_warnings(self, result: CalculationResult) -> None:
        if not result.warnings:
            return
        self.console.print()
        self.console.print("  [bold yellow]Warnings:[/bold yellow]")
        for warning in result.warnings:
            self.console.print(f"    [dim]•[/dim] {warning}")

    def _render_footer(self, result: CalculationResult) -> None:
        self.console.print()
        self.console.print(Rule(style="dim"))
        self.console.print(
            f"  [dim]Calculated: {result.calculated_at.strftime('%Y-%m-%d %H:%M UTC')} | "
            f"dc-configurator v{__version__}[/dim]"
        )
        self.console.print()
