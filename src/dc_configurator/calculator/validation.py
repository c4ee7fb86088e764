# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Validation and normalisation of calculation inputs and parameters.

Raw inputs arrive from forms, the API and the CLI. They are never
trusted: invalid values are replaced with defaults and logged rather
than raised, so a calculation always has something sensible to run on.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from dc_configurator.data.defaults import DEFAULT_CALCULATION_PARAMS, DEFAULT_PRICING
from dc_configurator.data.models import (
    CalculationInputs,
    CalculationParams,
    CoolingType,
    PricingMatrix,
    RedundancyMode,
)

logger = logging.getLogger(__name__)

VALID_COOLING_TYPES = {c.value for c in CoolingType}
VALID_REDUNDANCY_MODES = {r.value for r in RedundancyMode}

_DEFAULT_INPUTS = CalculationInputs()


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def sanitize_inputs(raw: dict[str, Any] | CalculationInputs) -> CalculationInputs:
    """Coerce a raw input mapping into valid :class:`CalculationInputs`.

    Each field that is missing, of the wrong type or out of range falls
    back to its default with a warning.
    """
    if isinstance(raw, CalculationInputs):
        return raw

    clean: dict[str, Any] = {}

    kw = _as_number(raw.get("kw_per_rack"))
    if kw is None or kw <= 0 or kw > 250:
        logger.warning("Invalid kW per rack %r, using default", raw.get("kw_per_rack"))
        kw = _DEFAULT_INPUTS.kw_per_rack
    clean["kw_per_rack"] = kw

    cooling = str(raw.get("cooling_type", "")).lower()
    if cooling not in VALID_COOLING_TYPES:
        logger.warning("Invalid cooling type %r, using default", raw.get("cooling_type"))
        cooling = _DEFAULT_INPUTS.cooling_type.value
    clean["cooling_type"] = cooling

    racks = _as_number(raw.get("total_racks"))
    if racks is None or racks < 1 or racks > 1000:
        logger.warning("Invalid rack count %r, using default", raw.get("total_racks"))
        racks = _DEFAULT_INPUTS.total_racks
    clean["total_racks"] = int(racks)

    redundancy = str(raw.get("redundancy_mode", _DEFAULT_INPUTS.redundancy_mode.value))
    if redundancy not in VALID_REDUNDANCY_MODES:
        logger.warning("Invalid redundancy mode %r, using default", redundancy)
        redundancy = _DEFAULT_INPUTS.redundancy_mode.value
    clean["redundancy_mode"] = redundancy

    runtime = _as_number(raw.get("battery_runtime", _DEFAULT_INPUTS.battery_runtime))
    if runtime is None or runtime <= 0 or runtime > 60:
        logger.warning("Invalid battery runtime %r, using default", raw.get("battery_runtime"))
        runtime = _DEFAULT_INPUTS.battery_runtime
    clean["battery_runtime"] = runtime

    renewable = _as_number(
        raw.get("renewable_percentage", _DEFAULT_INPUTS.renewable_percentage)
    )
    if renewable is None or renewable < 0 or renewable > 100:
        logger.warning(
            "Invalid renewable percentage %r, using default",
            raw.get("renewable_percentage"),
        )
        renewable = _DEFAULT_INPUTS.renewable_percentage
    clean["renewable_percentage"] = renewable

    clean["include_generator"] = _as_bool(raw.get("include_generator", False))
    clean["heat_recovery"] = _as_bool(raw.get("heat_recovery", False))
    clean["water_recycling"] = _as_bool(raw.get("water_recycling", False))

    location = raw.get("location")
    clean["location"] = str(location) if location else None

    return CalculationInputs.model_validate(clean)


def validate_params(params: CalculationParams) -> list[str]:
    """Return a list of human-readable problems with *params* (empty if valid)."""
    errors: list[str] = []

    e = params.electrical
    if e.voltage_factor <= 0:
        errors.append("Invalid voltage factor")
    if not 0 < e.power_factor <= 1:
        errors.append("Power factor must be between 0 and 1")
    if e.busbars_per_row < 1:
        errors.append("Invalid busbars per row value")
    if e.redundancy_mode not in VALID_REDUNDANCY_MODES:
        errors.append("Invalid redundancy mode")

    c = params.cooling
    if c.delta_t <= 0:
        errors.append("Invalid temperature delta value")
    if c.flow_rate_factor <= 0:
        errors.append("Invalid flow rate factor")
    if not 0 <= c.dlc_residual_heat_fraction <= 1:
        errors.append("DLC residual heat fraction must be between 0 and 1")
    if c.chiller_efficiency_factor <= 0:
        errors.append("Invalid chiller efficiency factor")
    if not 0 <= c.hybrid_dlc_ratio <= 1:
        errors.append("Hybrid DLC ratio must be between 0 and 1")

    p = params.power
    if p.ups_module_size <= 0:
        errors.append("Invalid UPS module size")
    if p.ups_frame_max_modules < 1:
        errors.append("Invalid max modules per UPS frame")
    if p.battery_runtime <= 0:
        errors.append("Invalid battery runtime")
    if not 0 < p.battery_efficiency <= 1:
        errors.append("Battery efficiency must be between 0 and 1")

    f = params.cost_factors
    if not 0 <= f.installation_percentage <= 1:
        errors.append("Installation percentage must be between 0 and 1")
    if not 0 <= f.engineering_percentage <= 1:
        errors.append("Engineering percentage must be between 0 and 1")
    if not 0 <= f.contingency_percentage <= 1:
        errors.append("Contingency percentage must be between 0 and 1")

    return errors


def validate_pricing(pricing: PricingMatrix) -> list[str]:
    """Return problems with a pricing matrix: negative or non-numeric prices."""
    errors: list[str] = []
    for section, table in pricing.model_dump().items():
        for key, value in table.items():
            if value < 0:
                errors.append(f"Negative price for {section}.{key}")
    return errors


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        elif value is not None:
            merged[key] = value
    return merged


def _merge_model(model_cls: type[BaseModel], defaults: BaseModel, raw: Any) -> Any:
    if isinstance(raw, model_cls):
        return raw
    if not isinstance(raw, dict):
        return defaults.model_copy(deep=True)
    return model_cls.model_validate(_deep_merge(defaults.model_dump(), raw))


def ensure_params_structure(raw: Any) -> CalculationParams:
    """Overlay a partial params document onto the defaults.

    An unknown redundancy mode is coerced to N+1 so a half-edited stored
    document can still be used.
    """
    params = _merge_model(CalculationParams, DEFAULT_CALCULATION_PARAMS, raw)
    if params.electrical.redundancy_mode not in VALID_REDUNDANCY_MODES:
        logger.warning(
            "Unknown redundancy mode %r in stored params, using N+1",
            params.electrical.redundancy_mode,
        )
        params.electrical.redundancy_mode = RedundancyMode.n_plus_1.value
    return params


def ensure_pricing_structure(raw: Any) -> PricingMatrix:
    """Overlay a partial pricing document onto the default matrix."""
    return _merge_model(PricingMatrix, DEFAULT_PRICING, raw)
