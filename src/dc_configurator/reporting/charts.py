# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Matplotlib charts for configuration reports.

The Agg backend is selected unconditionally so charts render on headless
servers.
"""

from __future__ import annotations

import os

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.figure import Figure  # noqa: E402

from dc_configurator.data.models import CalculationResult  # noqa: E402

# ---------------------------------------------------------------------------
# Style / palette constants
# ---------------------------------------------------------------------------

_STYLE_CANDIDATES = ["seaborn-v0_8-whitegrid", "seaborn-whitegrid"]

_BLUE = "#2196F3"
_GREEN = "#4CAF50"
_ORANGE = "#FF9800"
_RED = "#F44336"
_PURPLE = "#9C27B0"
_CYAN = "#00BCD4"
_GREY = "#9E9E9E"

_PALETTE = [_BLUE, _GREEN, _ORANGE, _RED, _PURPLE, _CYAN, _GREY]

_DPI = 150


def _apply_style() -> None:
    for style in _STYLE_CANDIDATES:
        if style in plt.style.available:
            plt.style.use(style)
            return


_apply_style()


class ChartGenerator:
    """Build the figures embedded in the PDF report.

    Each public method returns a :class:`matplotlib.figure.Figure`.
    Charts whose source data is missing (e.g. a fallback result without
    a TCO projection) are left out of :meth:`generate_all`.
    """

    def __init__(self, result: CalculationResult) -> None:
        self.result = result

    # -- 1. Capital cost breakdown ------------------------------------------

    def cost_breakdown_pie(self) -> Figure:
        cost = self.result.cost
        slices = {
            "Electrical": cost.electrical_total,
            "Cooling": cost.cooling,
            "UPS & Battery": cost.ups + cost.battery,
            "Generator": cost.generator,
            "E-House": cost.ehouse,
            "Sustainability": cost.sustainability,
            "Install & Eng.": cost.installation + cost.engineering + cost.contingency,
        }
        slices = {k: v for k, v in slices.items() if v > 0} or {"No Data": 1.0}

        fig, ax = plt.subplots(figsize=(8, 8), dpi=_DPI)
        _, texts, autotexts = ax.pie(
            list(slices.values()),
            labels=list(slices.keys()),
            colors=[_PALETTE[i % len(_PALETTE)] for i in range(len(slices))],
            autopct="%1.1f%%",
            startangle=140,
            pctdistance=0.80,
            wedgeprops={"edgecolor": "white", "linewidth": 1.5},
        )
        for text in texts:
            text.set_fontsize(10)
        for autotext in autotexts:
            autotext.set_fontsize(9)
            autotext.set_fontweight("bold")

        ax.set_title(
            f"Capital Cost Breakdown (${cost.total_project_cost:,.0f})",
            fontsize=16,
            fontweight="bold",
            pad=20,
        )
        fig.tight_layout()
        return fig

    # -- 2. Annual energy -----------------------------------------------------

    def energy_bar(self) -> Figure:
        """IT versus overhead annual energy, in MWh."""
        sus = self.result.sustainability
        if sus is None:
            raise ValueError("Result has no sustainability metrics")

        categories = ["IT Load", "Overhead", "Total"]
        values = [
            sus.annual_it_energy_kwh / 1000,
            sus.annual_overhead_energy_kwh / 1000,
            sus.annual_total_energy_kwh / 1000,
        ]

        fig, ax = plt.subplots(figsize=(10, 6), dpi=_DPI)
        bars = ax.bar(
            categories, values, color=[_BLUE, _ORANGE, _PURPLE],
            edgecolor="white", linewidth=1.2, width=0.5,
        )
        for bar, value in zip(bars, values):
            ax.text(
                bar.get_x() + bar.get_width() / 2,
                bar.get_height(),
                f"{value:,.0f} MWh",
                ha="center",
                va="bottom",
                fontsize=12,
                fontweight="bold",
            )
        ax.annotate(
            f"PUE {sus.pue:.2f}",
            xy=(0.5, 0.92),
            xycoords="axes fraction",
            fontsize=12,
            fontweight="bold",
            color=_GREEN,
            ha="center",
            bbox={"boxstyle": "round,pad=0.4", "facecolor": "#E8F5E9", "edgecolor": _GREEN},
        )
        ax.set_ylabel("Energy (MWh/year)", fontsize=12)
        ax.set_title("Annual Energy Consumption", fontsize=16, fontweight="bold")
        ax.set_ylim(0, max(values) * 1.18 if max(values) > 0 else 1)
        fig.tight_layout()
        return fig

    # -- 3. Total cost of ownership ------------------------------------------

    def tco_bar(self) -> Figure:
        """Capex against cumulative cost at 5 and 10 years."""
        tco = self.result.tco
        if tco is None:
            raise ValueError("Result has no TCO projection")

        categories = ["CAPEX", "5-Year Total", "10-Year Total"]
        values = [tco.capex, tco.total_5_year, tco.total_10_year]

        fig, ax = plt.subplots(figsize=(10, 6), dpi=_DPI)
        bars = ax.bar(
            categories, values, color=[_BLUE, _ORANGE, _RED],
            edgecolor="white", linewidth=1.2, width=0.5,
        )
        for bar, value in zip(bars, values):
            ax.text(
                bar.get_x() + bar.get_width() / 2,
                bar.get_height(),
                f"${value:,.0f}",
                ha="center",
                va="bottom",
                fontsize=12,
                fontweight="bold",
            )
        ax.set_ylabel("Cost (USD)", fontsize=12)
        ax.set_title("Total Cost of Ownership", fontsize=16, fontweight="bold")
        ax.set_ylim(0, max(values) * 1.18 if max(values) > 0 else 1)
        fig.tight_layout()
        return fig

    # -- Convenience methods ----------------------------------------------

    def generate_all(self) -> dict[str, Figure]:
        charts = {"cost_breakdown_pie": self.cost_breakdown_pie()}
        if self.result.sustainability is not None:
            charts["energy_bar"] = self.energy_bar()
        if self.result.tco is not None:
            charts["tco_bar"] = self.tco_bar()
        return charts

    def save_all(self, output_dir: str) -> dict[str, str]:
        """Save every available chart as a PNG.

        Returns a mapping of chart name to absolute file path. The
        directory is created if needed.
        """
        os.makedirs(output_dir, exist_ok=True)
        paths: dict[str, str] = {}
        for name, fig in self.generate_all().items():
            filepath = os.path.join(output_dir, f"{name}.png")
            fig.savefig(filepath, dpi=_DPI, bbox_inches="tight", facecolor="white")
            plt.close(fig)
            paths[name] = os.path.abspath(filepath)
        return paths
