# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""DC Configurator - data-center power, cooling, cost and layout planning."""

__version__ = "0.1.0"


def check_dependency(package: str, install_hint: str) -> None:
    """Raise *ImportError* with a helpful message if *package* is missing."""
    try:
        __import__(package)
    except ImportError:
        raise ImportError(
            f"This feature requires '{package}'. Install with: {install_hint}"
        ) from None


from dc_configurator.data.models import (  # noqa: E402
    CalculationInputs,
    CalculationParams,
    CalculationResult,
    CoolingType,
    PricingMatrix,
    RedundancyMode,
    SavedCalculation,
)
from dc_configurator.calculator.engine import CalculatorEngine  # noqa: E402
from dc_configurator.repository import ConfigRepository  # noqa: E402
from dc_configurator.scene.models import Connection, Layout, SceneModule  # noqa: E402
from dc_configurator.scene.state import SceneEditor  # noqa: E402
from dc_configurator.store import (  # noqa: E402
    DocumentStore,
    JsonDocumentStore,
    MemoryDocumentStore,
)

__all__ = [
    "CalculationInputs",
    "CalculationParams",
    "CalculationResult",
    "CalculatorEngine",
    "ConfigRepository",
    "Connection",
    "CoolingType",
    "DocumentStore",
    "JsonDocumentStore",
    "Layout",
    "MemoryDocumentStore",
    "PricingMatrix",
    "RedundancyMode",
    "SavedCalculation",
    "SceneEditor",
    "SceneModule",
    "check_dependency",
]
