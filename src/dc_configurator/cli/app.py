# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Main CLI application for dc-configurator."""

from __future__ import annotations

import json
import logging

import click
from rich.console import Console

from dc_configurator import __version__
from dc_configurator.calculator.compare import (
    compare_cooling_technologies,
    compare_redundancy_options,
)
from dc_configurator.calculator.optimizer import (
    OptimizationConstraints,
    analyze_configuration,
    optimize_configuration,
)
from dc_configurator.config import AppConfig, load_config
from dc_configurator.data.models import CalculationInputs, CalculationResult, CoolingType, RedundancyMode
from dc_configurator.errors import ConfiguratorError
from dc_configurator.reporting.terminal import TerminalRenderer
from dc_configurator.services.calculations import describe_inputs
from dc_configurator.services.container import ServiceContainer

COOLING_CHOICES = [c.value for c in CoolingType]
REDUNDANCY_CHOICES = [r.value for r in RedundancyMode]
GOAL_CHOICES = ["cost", "efficiency", "reliability", "sustainability"]


def _services(ctx: click.Context) -> ServiceContainer:
    """Build the service container on first use and keep it on the context."""
    if ctx.obj.get("services") is None:
        ctx.obj["services"] = ServiceContainer.build(ctx.obj["config"])
    return ctx.obj["services"]


def _fail(console: Console, error: ConfiguratorError) -> None:
    console.print(f"[red]Error ({error.code}):[/] {error.message}")
    raise SystemExit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option(
    "--config", "-c", "config_path", type=click.Path(), default=None,
    help="Configuration YAML file (store backend, cache, admins)",
)
@click.pass_context
def cli(ctx: click.Context, no_color: bool, verbose: bool, config_path: str | None) -> None:
    """dc-configurator: Data Center Infrastructure Configurator

    Size the power train, cooling plant and budget for a rack deployment:

    \b
      Electrical:  busbars, tap-off boxes and rack PDUs
      Cooling:     air, DLC, hybrid and immersion plants
      Power:       UPS frames, battery cabinets and generators
      Cost:        capex, TCO, reliability and sustainability
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    console = Console(no_color=no_color)
    ctx.obj["console"] = console
    if config_path:
        try:
            ctx.obj["config"] = load_config(config_path)
        except (FileNotFoundError, ValueError) as exc:
            console.print(f"[red]Could not load config:[/] {exc}")
            raise SystemExit(1)
    else:
        ctx.obj["config"] = AppConfig()


@cli.command()
@click.option("--kw-per-rack", "-k", type=float, default=10, help="IT load per rack in kW")
@click.option(
    "--cooling", type=click.Choice(COOLING_CHOICES), default="air",
    help="Cooling technology",
)
@click.option("--racks", "-r", type=int, default=28, help="Number of racks")
@click.option(
    "--redundancy", type=click.Choice(REDUNDANCY_CHOICES), default="N+1",
    help="UPS redundancy mode",
)
@click.option("--generator/--no-generator", default=False, help="Include a backup generator")
@click.option("--battery-runtime", type=float, default=10, help="Battery runtime in minutes")
@click.option("--renewable", type=float, default=20, help="Renewable energy percentage")
@click.option("--heat-recovery", is_flag=True, default=False, help="Add waste-heat recovery")
@click.option("--water-recycling", is_flag=True, default=False, help="Add water recycling")
@click.option("--location", type=str, default=None, help="Site city for climate adjustment")
@click.option("--show-details/--no-details", default=True, help="Show the detailed breakdown")
@click.option("--recommendations", is_flag=True, default=False, help="Show optimisation hints")
@click.option("--save-as", type=str, default=None, help="Save the calculation under this name")
@click.option("--user", "-u", type=str, default=None, help="User id that owns the saved calculation")
@click.option("--project", type=str, default=None, help="Project id to attach the saved calculation to")
@click.option(
    "--export-pdf", type=click.Path(), default=None,
    help="Export results to PDF at this path",
)
@click.option(
    "--export-json", type=click.Path(), default=None,
    help="Export raw results as JSON at this path",
)
@click.pass_context
def calculate(
    ctx: click.Context,
    kw_per_rack: float,
    cooling: str,
    racks: int,
    redundancy: str,
    generator: bool,
    battery_runtime: float,
    renewable: float,
    heat_recovery: bool,
    water_recycling: bool,
    location: str | None,
    show_details: bool,
    recommendations: bool,
    save_as: str | None,
    user: str | None,
    project: str | None,
    export_pdf: str | None,
    export_json: str | None,
) -> None:
    """Size electrical, cooling and power systems and estimate cost."""
    console: Console = ctx.obj["console"]
    services = _services(ctx)

    inputs = {
        "kw_per_rack": kw_per_rack,
        "cooling_type": cooling,
        "total_racks": racks,
        "redundancy_mode": redundancy,
        "include_generator": generator,
        "battery_runtime": battery_runtime,
        "renewable_percentage": renewable,
        "heat_recovery": heat_recovery,
        "water_recycling": water_recycling,
    }

    try:
        with console.status("[bold cyan]Running calculation pipeline..."):
            if location:
                result = services.engine.calculate_with_location(inputs, location)
            else:
                result = services.engine.calculate(inputs)
    except ConfiguratorError as exc:
        _fail(console, exc)

    renderer = TerminalRenderer(console)
    renderer.render(result, show_details=show_details)

    if recommendations:
        renderer.render_recommendations(analyze_configuration(result))

    if save_as:
        if not user:
            console.print("[red]--user/-u is required with --save-as[/]")
            raise SystemExit(1)
        try:
            saved = services.calculations.save_calculation(
                user, result.inputs, result, project_id=project, name=save_as
            )
        except ConfiguratorError as exc:
            _fail(console, exc)
        console.print(f"  [green]Calculation saved:[/green] {saved.id}")

    if export_pdf:
        _export_pdf(result, export_pdf, console)

    if export_json:
        _export_json(result, export_json, console)


@cli.command()
@click.option(
    "--goal", "-g", type=click.Choice(GOAL_CHOICES), default="cost",
    help="What the optimiser should maximise",
)
@click.option("--min-density", type=float, default=None, help="Lowest kW/rack to consider")
@click.option("--max-density", type=float, default=None, help="Highest kW/rack to consider")
@click.option(
    "--cooling", "cooling_types", type=click.Choice(COOLING_CHOICES), multiple=True,
    help="Restrict to these cooling types (repeatable)",
)
@click.option("--min-racks", type=int, default=None, help="Smallest rack count to consider")
@click.option("--max-racks", type=int, default=None, help="Largest rack count to consider")
@click.option("--max-budget", type=float, default=None, help="Reject configurations above this cost")
@click.option("--max-pue", type=float, default=None, help="Reject configurations above this PUE")
@click.option(
    "--min-availability", type=float, default=None,
    help="Reject configurations below this availability percentage",
)
@click.pass_context
def optimize(
    ctx: click.Context,
    goal: str,
    min_density: float | None,
    max_density: float | None,
    cooling_types: tuple[str, ...],
    min_racks: int | None,
    max_racks: int | None,
    max_budget: float | None,
    max_pue: float | None,
    min_availability: float | None,
) -> None:
    """Search candidate configurations and rank the best three."""
    console: Console = ctx.obj["console"]
    services = _services(ctx)

    rack_range = None
    if min_racks is not None or max_racks is not None:
        rack_range = (min_racks or 1, max_racks or 1000)

    constraints = OptimizationConstraints(
        min_power_density=min_density,
        max_power_density=max_density,
        preferred_cooling_types=[CoolingType(c) for c in cooling_types] or None,
        rack_count_range=rack_range,
        max_budget=max_budget,
        max_pue=max_pue,
        min_availability=min_availability,
    )

    with console.status("[bold cyan]Evaluating candidate configurations..."):
        optimization = optimize_configuration(services.engine, constraints, goal)

    TerminalRenderer(console).render_optimization(optimization)


@cli.command("compare-cooling")
@click.option("--kw-per-rack", "-k", type=float, required=True, help="IT load per rack in kW")
@click.option("--racks", "-r", type=int, default=28, help="Number of racks")
@click.pass_context
def compare_cooling(ctx: click.Context, kw_per_rack: float, racks: int) -> None:
    """Compare every cooling technology for the same IT load."""
    console: Console = ctx.obj["console"]
    services = _services(ctx)
    with console.status("[bold cyan]Comparing cooling technologies..."):
        comparison = compare_cooling_technologies(services.engine, kw_per_rack, racks)
    TerminalRenderer(console).render_cooling_comparison(comparison)


@cli.command("compare-redundancy")
@click.option("--kw-per-rack", "-k", type=float, required=True, help="IT load per rack in kW")
@click.option(
    "--cooling", type=click.Choice(COOLING_CHOICES), default="air",
    help="Cooling technology",
)
@click.option("--racks", "-r", type=int, default=28, help="Number of racks")
@click.pass_context
def compare_redundancy(ctx: click.Context, kw_per_rack: float, cooling: str, racks: int) -> None:
    """Compare cost and availability across redundancy modes."""
    console: Console = ctx.obj["console"]
    services = _services(ctx)
    with console.status("[bold cyan]Comparing redundancy options..."):
        comparison = compare_redundancy_options(services.engine, kw_per_rack, cooling, racks)
    TerminalRenderer(console).render_redundancy_comparison(comparison)


@cli.command()
@click.pass_context
def pricing(ctx: click.Context) -> None:
    """Show the active component pricing matrix."""
    console: Console = ctx.obj["console"]
    services = _services(ctx)
    TerminalRenderer(console).render_pricing(services.repository.get_pricing())


@cli.command("init-store")
@click.option("--user", "-u", type=str, default="system", help="User id recorded on the documents")
@click.pass_context
def init_store(ctx: click.Context, user: str) -> None:
    """Write default pricing and calculation parameters if missing."""
    console: Console = ctx.obj["console"]
    services = _services(ctx)
    try:
        created = services.repository.initialize_collections(user)
    except ConfiguratorError as exc:
        _fail(console, exc)
    if created:
        console.print(f"  [green]Initialised:[/green] {', '.join(created)}")
    else:
        console.print("  [dim]Pricing and parameters already present.[/dim]")


@cli.command()
@click.option("--user", "-u", type=str, required=True, help="User id to list calculations for")
@click.option("--limit", "-n", type=int, default=5, help="Maximum number of entries")
@click.pass_context
def history(ctx: click.Context, user: str, limit: int) -> None:
    """List a user's most recent saved calculations."""
    from rich.table import Table

    console: Console = ctx.obj["console"]
    services = _services(ctx)
    try:
        entries = services.calculations.fetch_historical_calculations(user, limit=limit)
    except ConfiguratorError as exc:
        _fail(console, exc)

    if not entries:
        console.print(f"[yellow]No saved calculations for '{user}'.[/yellow]")
        return

    table = Table(title=f"Saved calculations for {user}", show_header=True, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Configuration")
    table.add_column("Total Cost", justify="right")
    table.add_column("Saved", style="dim")
    for entry in entries:
        table.add_row(
            entry.id,
            entry.name,
            describe_inputs(entry.inputs),
            f"${entry.results.cost.total_project_cost:,.0f}",
            entry.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@cli.command()
@click.argument("calculation_id")
@click.option("--output", "-o", type=click.Path(), required=True, help="Output file path")
@click.option(
    "--format", "-f", "fmt",
    type=click.Choice(["pdf", "json"]),
    default="pdf",
    help="Export format",
)
@click.pass_context
def report(ctx: click.Context, calculation_id: str, output: str, fmt: str) -> None:
    """Export a report for a saved calculation."""
    console: Console = ctx.obj["console"]
    services = _services(ctx)
    saved = services.calculations.get_calculation(calculation_id)
    if saved is None:
        console.print(f"[red]Calculation '{calculation_id}' not found.[/red]")
        raise SystemExit(1)

    if fmt == "pdf":
        _export_pdf(saved.results, output, console)
    else:
        payload = services.calculations.generate_report(saved.results, user_id=saved.user_id)
        with open(output, "w") as f:
            json.dump(payload, f, indent=2, default=str)
        console.print(f"  [green]JSON report exported to:[/green] {output}")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind host")
@click.option("--port", default=8000, type=int, help="Bind port")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Start the REST API server."""
    from dc_configurator import check_dependency
    check_dependency("fastapi", "pip install -e '.[api]'")
    check_dependency("uvicorn", "pip install -e '.[api]'")

    console: Console = ctx.obj["console"]
    console.print(f"[bold cyan]Starting API server on {host}:{port}...[/]")

    from dc_configurator.api.server import create_app
    import uvicorn

    app = create_app(_services(ctx))
    uvicorn.run(app, host=host, port=port)


def _export_pdf(result: CalculationResult, path: str, console: Console) -> None:
    """Export to PDF."""
    from dc_configurator.reporting.pdf_report import PDFReportGenerator

    with console.status("[bold cyan]Generating PDF report..."):
        generator = PDFReportGenerator()
        generator.generate(result, path)
    console.print(f"  [green]PDF report exported to:[/green] {path}")


def _export_json(result: CalculationResult, path: str, console: Console) -> None:
    """Export to JSON."""
    with open(path, "w") as f:
        f.write(result.model_dump_json(indent=2))
    console.print(f"  [green]JSON report exported to:[/green] {path}")
