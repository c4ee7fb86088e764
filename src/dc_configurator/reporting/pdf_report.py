# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""ReportLab PDF report for a single calculation result.

Sections: cover, configuration, electrical, cooling, power, cost (with
chart), reliability, sustainability and recommendations.  Every page is
numbered in the footer.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    Image,
    KeepTogether,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from dc_configurator import __version__
from dc_configurator.calculator.optimizer import analyze_configuration
from dc_configurator.data.models import CalculationResult
from dc_configurator.reporting.charts import ChartGenerator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Color palette
# ---------------------------------------------------------------------------
DARK_BLUE = colors.HexColor('#1565C0')
ACCENT_ORANGE = colors.HexColor('#FF9800')
LIGHT_GRAY = colors.HexColor('#F5F5F5')
GRID_GRAY = colors.HexColor('#CCCCCC')
WHITE = colors.white

_PRIORITY_COLORS = {
    "high": '#F44336',
    "medium": '#FF9800',
    "low": '#4CAF50',
}


def _money(value: float) -> str:
    return f"${value:,.0f}"


class PDFReportGenerator:
    """Write a :class:`CalculationResult` to a multi-page PDF."""

    def __init__(self) -> None:
        self._styles = getSampleStyleSheet()
        self._register_custom_styles()

    def _register_custom_styles(self) -> None:
        self._styles.add(ParagraphStyle(
            'CoverTitle',
            parent=self._styles['Title'],
            fontSize=28,
            leading=34,
            textColor=DARK_BLUE,
            spaceAfter=12,
            alignment=1,
        ))
        self._styles.add(ParagraphStyle(
            'CoverSubtitle',
            parent=self._styles['Normal'],
            fontSize=16,
            leading=20,
            textColor=colors.HexColor('#333333'),
            spaceAfter=8,
            alignment=1,
        ))
        self._styles.add(ParagraphStyle(
            'CoverDate',
            parent=self._styles['Normal'],
            fontSize=12,
            leading=16,
            textColor=colors.HexColor('#666666'),
            spaceAfter=24,
            alignment=1,
        ))
        self._styles.add(ParagraphStyle(
            'SectionTitle',
            parent=self._styles['Heading1'],
            fontSize=20,
            leading=24,
            textColor=DARK_BLUE,
            spaceAfter=12,
            spaceBefore=6,
        ))
        self._styles.add(ParagraphStyle(
            'BodyText2',
            parent=self._styles['Normal'],
            fontSize=10,
            leading=14,
            spaceAfter=6,
        ))
        self._styles.add(ParagraphStyle(
            'Warning',
            parent=self._styles['Normal'],
            fontSize=10,
            leading=13,
            leftIndent=18,
            textColor=ACCENT_ORANGE,
            spaceAfter=3,
        ))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(self, result: CalculationResult, output_path: str) -> None:
        """Render the report to *output_path*.

        Chart failures are logged and the PDF is produced without them.
        """
        chart_paths: dict[str, str] = {}
        tmpdir = tempfile.mkdtemp(prefix='dc_configurator_charts_')
        try:
            try:
                chart_paths = ChartGenerator(result).save_all(tmpdir)
            except Exception:
                logger.warning(
                    "Chart generation failed; PDF will be produced without charts.",
                    exc_info=True,
                )

            doc = SimpleDocTemplate(
                output_path,
                pagesize=letter,
                topMargin=0.75 * inch,
                bottomMargin=0.75 * inch,
                leftMargin=0.75 * inch,
                rightMargin=0.75 * inch,
                title="Data Center Configuration Report",
            )

            elements: list = []
            elements.extend(self._build_cover(result))
            elements.append(PageBreak())
            elements.extend(self._build_configuration(result))
            elements.extend(self._build_electrical(result))
            elements.append(PageBreak())
            elements.extend(self._build_cooling(result))
            elements.extend(self._build_power(result))
            elements.append(PageBreak())
            elements.extend(self._build_cost(result, chart_paths))
            elements.append(PageBreak())
            elements.extend(self._build_reliability(result))
            elements.extend(self._build_sustainability(result, chart_paths))
            elements.append(PageBreak())
            elements.extend(self._build_recommendations(result))

            doc.build(elements, onFirstPage=self._add_page_number,
                      onLaterPages=self._add_page_number)
        finally:
            shutil.rmtree(tmpdir, ignore_errors=True)

    @staticmethod
    def _add_page_number(canvas, doc) -> None:
        canvas.saveState()
        canvas.setFont('Helvetica', 8)
        canvas.setFillColor(colors.HexColor('#999999'))
        canvas.drawCentredString(
            letter[0] / 2.0, 0.5 * inch, f"Page {canvas.getPageNumber()}"
        )
        canvas.restoreState()

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _build_cover(self, result: CalculationResult) -> list:
        inputs = result.inputs
        elements: list = [Spacer(1, 1.5 * inch)]
        elements.append(Paragraph("Data Center Configuration Report",
                                  self._styles['CoverTitle']))
        elements.append(Spacer(1, 0.25 * inch))
        elements.append(Paragraph(
            f"{inputs.total_racks} racks at {inputs.kw_per_rack:g} kW "
            f"({result.total_it_load_kw:,.0f} kW IT load)",
            self._styles['CoverSubtitle'],
        ))
        elements.append(Paragraph(
            f"{inputs.cooling_type.value.upper()} cooling, {inputs.redundancy_mode.value} redundancy",
            self._styles['CoverSubtitle'],
        ))
        if inputs.location:
            elements.append(Paragraph(inputs.location, self._styles['CoverSubtitle']))
        elements.append(Spacer(1, 0.15 * inch))
        elements.append(Paragraph(
            result.calculated_at.strftime('%B %d, %Y'), self._styles['CoverDate']
        ))
        elements.append(self._kv_table([
            ("Total Project Cost", _money(result.cost.total_project_cost)),
            ("PUE", f"{result.pue:.2f}"),
            ("Tier", result.reliability.tier if result.reliability else "n/a"),
        ]))
        if result.is_fallback:
            elements.append(Spacer(1, 0.3 * inch))
            elements.append(Paragraph(
                "Figures in this report are estimates: the detailed calculation "
                "could not be completed.",
                self._styles['Warning'],
            ))
        elements.append(Spacer(1, 0.5 * inch))
        elements.append(Paragraph(
            f"dc-configurator v{__version__}", self._styles['CoverDate']
        ))
        return elements

    def _build_configuration(self, result: CalculationResult) -> list:
        inputs = result.inputs
        return [
            Paragraph("Configuration", self._styles['SectionTitle']),
            self._kv_table([
                ("Power density", f"{inputs.kw_per_rack:g} kW/rack"),
                ("Racks", str(inputs.total_racks)),
                ("IT load", f"{result.total_it_load_kw:,.0f} kW"),
                ("Cooling", inputs.cooling_type.value),
                ("Redundancy", inputs.redundancy_mode.value),
                ("Generator", "Yes" if inputs.include_generator else "No"),
                ("Battery runtime", f"{inputs.battery_runtime:g} min"),
                ("Renewable share", f"{inputs.renewable_percentage:g}%"),
                ("Heat recovery", "Yes" if inputs.heat_recovery else "No"),
                ("Water recycling", "Yes" if inputs.water_recycling else "No"),
            ]),
            Spacer(1, 0.25 * inch),
        ]

    def _build_electrical(self, result: CalculationResult) -> list:
        elec = result.electrical
        return [
            Paragraph("Electrical", self._styles['SectionTitle']),
            self._kv_table([
                ("Current per row", f"{elec.current_per_row} A"),
                ("Current per rack", f"{elec.current_per_rack} A"),
                ("Busbar", f"{elec.busbar_size} x {elec.busbars_per_row} per row"),
                ("Tap-off box", elec.tap_off_box),
                ("rPDU", elec.rpdu),
            ]),
            Spacer(1, 0.25 * inch),
        ]

    def _build_cooling(self, result: CalculationResult) -> list:
        cool = result.cooling
        rows = [
            ("Type", cool.type.value),
            ("Total capacity", f"{cool.total_capacity:,.0f} kW"),
            ("PUE", f"{cool.pue:.2f}"),
        ]
        if cool.dlc_capacity:
            rows.append(("Liquid capacity", f"{cool.dlc_capacity:,.0f} kW"))
        if cool.residual_capacity or cool.air_capacity:
            rows.append(("Air capacity", f"{cool.residual_capacity or cool.air_capacity:,.0f} kW"))
        if cool.flow_rate:
            rows.append(("Flow rate", f"{cool.flow_rate:,.0f} L/min"))
            rows.append(("Pipe size", cool.pipe_size))
        if cool.rdhx_units:
            rows.append(("RDHX units", f"{cool.rdhx_units} x {cool.rdhx_model}"))
        if cool.immersion_tanks:
            rows.append(("Immersion tanks", str(cool.immersion_tanks)))
        if result.location_factors:
            loc = result.location_factors
            rows.append(("Climate", f"{loc.climate_zone.value}, {loc.avg_temperature_c:.0f} C"))
        return [
            Paragraph("Cooling", self._styles['SectionTitle']),
            self._kv_table(rows),
            Spacer(1, 0.25 * inch),
        ]

    def _build_power(self, result: CalculationResult) -> list:
        power = result.power
        rows = [
            ("UPS capacity", f"{power.ups.required_capacity_kw:,.0f} kW"),
            ("UPS modules", f"{power.ups.total_modules} x {power.ups.module_size_kw:g} kW"),
            ("UPS frames", f"{power.ups.total_frames} x {power.ups.frame_size}"),
            ("Battery energy", f"{power.battery.energy_needed_kwh:,.0f} kWh"),
            ("Battery cabinets", str(power.battery.cabinets_needed)),
        ]
        if power.generator is not None:
            gen = power.generator
            rows.extend([
                ("Generator", f"{gen.model} ({gen.capacity_kva:,.0f} kVA)"),
                ("Fuel tank", f"{gen.fuel_tank_liters:,.0f} L for {gen.runtime_hours:g} h"),
            ])
        return [
            Paragraph("Power", self._styles['SectionTitle']),
            self._kv_table(rows),
            Spacer(1, 0.25 * inch),
        ]

    def _build_cost(self, result: CalculationResult, chart_paths: dict[str, str]) -> list:
        cost = result.cost
        rows = [
            ("Electrical", _money(cost.electrical_total)),
            ("Cooling", _money(cost.cooling)),
            ("Power", _money(cost.power_total)),
            ("E-House", _money(cost.ehouse)),
            ("Sustainability", _money(cost.sustainability)),
            ("Equipment subtotal", _money(cost.equipment_total)),
            ("Installation", _money(cost.installation)),
            ("Engineering", _money(cost.engineering)),
            ("Contingency", _money(cost.contingency)),
            ("Total project cost", _money(cost.total_project_cost)),
            ("Cost per rack", _money(cost.cost_per_rack)),
            ("Cost per kW", _money(cost.cost_per_kw)),
        ]
        elements: list = [
            Paragraph("Cost", self._styles['SectionTitle']),
            self._kv_table(rows),
            Spacer(1, 0.25 * inch),
        ]
        self._maybe_add_chart(elements, chart_paths, 'cost_breakdown_pie',
                              width=4.5 * inch, height=4.5 * inch)
        return elements

    def _build_reliability(self, result: CalculationResult) -> list:
        rel = result.reliability
        if rel is None:
            return []
        return [
            Paragraph("Reliability", self._styles['SectionTitle']),
            self._kv_table([
                ("Availability", f"{rel.availability_percentage}%"),
                ("Tier", rel.tier),
                ("Annual downtime", f"{rel.annual_downtime_minutes} min"),
                ("Redundancy", f"{rel.redundancy_mode.value} {rel.redundancy_description}".strip()),
            ]),
            Spacer(1, 0.25 * inch),
        ]

    def _build_sustainability(self, result: CalculationResult,
                              chart_paths: dict[str, str]) -> list:
        sus = result.sustainability
        if sus is None:
            return []
        rows = [
            ("Annual energy", f"{sus.annual_total_energy_kwh:,.0f} kWh"),
            ("Water usage", f"{sus.water_usage_annual_m3:,.0f} m3/year"),
            ("Renewable share", f"{sus.renewable_fraction:.0%}"),
        ]
        if result.carbon_footprint is not None:
            carbon = result.carbon_footprint
            rows.append(("Emissions", f"{carbon.total_annual_emissions_tonnes:,.0f} t CO2e/year"))
            rows.append(("Avoided", f"{carbon.emissions_avoided_tonnes:,.0f} t CO2e/year"))
        if result.tco is not None:
            rows.append(("10-year TCO", _money(result.tco.total_cost_of_ownership)))
        elements: list = [
            Paragraph("Sustainability", self._styles['SectionTitle']),
            self._kv_table(rows),
            Spacer(1, 0.2 * inch),
        ]
        self._maybe_add_chart(elements, chart_paths, 'energy_bar',
                              width=5 * inch, height=3 * inch)
        self._maybe_add_chart(elements, chart_paths, 'tco_bar',
                              width=5 * inch, height=3 * inch)
        return elements

    def _build_recommendations(self, result: CalculationResult) -> list:
        elements: list = [Paragraph("Recommendations", self._styles['SectionTitle'])]
        recommendations = analyze_configuration(result)["recommendations"]
        if recommendations:
            data: list = [['Category', 'Priority', 'Recommendation', 'Impact']]
            for rec in recommendations:
                color = _PRIORITY_COLORS.get(rec.priority, '#000000')
                data.append([
                    rec.category.capitalize(),
                    Paragraph(f'<font color="{color}"><b>{rec.priority}</b></font>',
                              self._styles['BodyText2']),
                    Paragraph(rec.message, self._styles['BodyText2']),
                    Paragraph(rec.impact, self._styles['BodyText2']),
                ])
            tbl = Table(data, colWidths=[1.0 * inch, 0.8 * inch, 2.8 * inch, 2.2 * inch],
                        repeatRows=1)
            tbl.setStyle(TableStyle(self._table_style(len(data))))
            elements.append(tbl)
        else:
            elements.append(Paragraph(
                "No recommendations generated.", self._styles['BodyText2']
            ))

        if result.warnings:
            elements.append(Spacer(1, 0.25 * inch))
            elements.append(Paragraph("<b>Warnings</b>", self._styles['BodyText2']))
            for warning in result.warnings:
                elements.append(Paragraph(f"• {warning}", self._styles['Warning']))
        return elements

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _table_style(row_count: int) -> list:
        commands = [
            ('BACKGROUND', (0, 0), (-1, 0), DARK_BLUE),
            ('TEXTCOLOR', (0, 0), (-1, 0), WHITE),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('GRID', (0, 0), (-1, -1), 0.5, GRID_GRAY),
            ('TOPPADDING', (0, 0), (-1, -1), 4),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
            ('LEFTPADDING', (0, 0), (-1, -1), 6),
            ('RIGHTPADDING', (0, 0), (-1, -1), 6),
        ]
        for i in range(2, row_count, 2):
            commands.append(('BACKGROUND', (0, i), (-1, i), LIGHT_GRAY))
        return commands

    def _kv_table(self, rows: list[tuple[str, str]]) -> Table:
        data = [['Item', 'Value'], *[[k, v] for k, v in rows]]
        tbl = Table(data, colWidths=[2.6 * inch, 3.4 * inch])
        tbl.setStyle(TableStyle([
            *self._table_style(len(data)),
            ('ALIGN', (1, 1), (1, -1), 'RIGHT'),
        ]))
        return tbl

    def _maybe_add_chart(self, elements: list, chart_paths: dict[str, str],
                         chart_key: str, width: float, height: float) -> None:
        path = chart_paths.get(chart_key)
        if path and os.path.isfile(path):
            try:
                elements.append(KeepTogether([Image(path, width=width, height=height)]))
            except Exception:
                logger.warning("Failed to embed chart '%s'; skipping.", chart_key,
                               exc_info=True)
