# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Calculator engine -- orchestrates the full configuration pipeline.

The engine sanitises inputs, loads params and pricing (with default
fallbacks), runs every calculation step and caches the result.  If any
step fails, a simplified fallback estimate is returned instead of an
error.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from dc_configurator.calculator.cache import TTLCache
from dc_configurator.calculator.climate import apply_location_factors, get_location_factors
from dc_configurator.calculator.cooling import (
    calculate_cooling,
    calculate_pipe_sizing,
    calculate_thermal_distribution,
)
from dc_configurator.calculator.cost import calculate_cost
from dc_configurator.calculator.electrical import calculate_electrical
from dc_configurator.calculator.fallback import fallback_result
from dc_configurator.calculator.power import (
    calculate_battery,
    calculate_generator,
    calculate_ups,
)
from dc_configurator.calculator.reliability import calculate_reliability
from dc_configurator.calculator.sustainability import (
    calculate_carbon_footprint,
    calculate_sustainability,
    calculate_tco,
)
from dc_configurator.calculator.validation import sanitize_inputs
from dc_configurator.data.defaults import DEFAULT_CALCULATION_PARAMS, DEFAULT_PRICING
from dc_configurator.data.models import (
    CalculationInputs,
    CalculationParams,
    CalculationResult,
    PowerResult,
    PricingMatrix,
)
from dc_configurator.errors import CalculationError

if TYPE_CHECKING:
    from dc_configurator.repository import ConfigRepository

logger = logging.getLogger(__name__)

# Failures that mean the pipeline itself broke, as opposed to a bug.
_PIPELINE_ERRORS = (CalculationError, ArithmeticError, KeyError, ValueError)


def run_pipeline(
    inputs: CalculationInputs,
    params: CalculationParams,
    pricing: PricingMatrix,
) -> CalculationResult:
    """Run every calculation step for *inputs* and bundle the results."""
    warnings: list[str] = []
    kw = inputs.kw_per_rack
    racks = inputs.total_racks
    load = inputs.total_it_load_kw

    electrical = calculate_electrical(kw, racks, params, warnings)
    cooling = calculate_cooling(kw, inputs.cooling_type, racks, params, warnings)

    power = PowerResult(
        ups=calculate_ups(load, inputs.redundancy_mode, params),
        battery=calculate_battery(load, inputs.battery_runtime, params),
        generator=(
            calculate_generator(load, inputs.redundancy_mode, params)
            if inputs.include_generator
            else None
        ),
    )
    cost = calculate_cost(inputs, electrical, cooling, power, params, pricing)
    reliability = calculate_reliability(
        inputs.redundancy_mode, inputs.include_generator, params
    )
    result = CalculationResult(
        inputs=inputs,
        electrical=electrical,
        cooling=cooling,
        power=power,
        cost=cost,
        reliability=reliability,
        thermal=calculate_thermal_distribution(kw, racks, inputs.cooling_type, params),
        pipe_sizing=calculate_pipe_sizing(cooling),
        warnings=warnings,
    )
    return attach_energy_metrics(result, params)


def attach_energy_metrics(
    result: CalculationResult, params: CalculationParams
) -> CalculationResult:
    """(Re)compute sustainability, carbon and TCO from the result's PUE."""
    inputs = result.inputs
    sustainability = calculate_sustainability(inputs, result.cooling.pue, params)
    result.sustainability = sustainability
    result.carbon_footprint = calculate_carbon_footprint(
        sustainability.annual_total_energy_kwh,
        inputs.renewable_percentage,
        result.power.generator,
        params,
    )
    result.tco = calculate_tco(
        inputs,
        result.cost,
        sustainability.annual_total_energy_kwh,
        inputs.include_generator,
        params,
    )
    return result


class CalculatorEngine:
    """Entry point used by the CLI, API and services.

    Parameters
    ----------
    repository:
        Source of params and pricing. When omitted, the built-in
        defaults are used.
    cache:
        Result cache keyed on the sanitised inputs.
    """

    def __init__(
        self,
        repository: ConfigRepository | None = None,
        cache: TTLCache[CalculationResult] | None = None,
    ) -> None:
        self.repository = repository
        self.cache: TTLCache[CalculationResult] = cache if cache is not None else TTLCache()
        if repository is not None:
            # Cached results are stale once pricing or params change.
            repository.add_listener(self.cache.invalidate)

    def load_config(self) -> tuple[CalculationParams, PricingMatrix]:
        if self.repository is None:
            return DEFAULT_CALCULATION_PARAMS, DEFAULT_PRICING
        return self.repository.get_params(), self.repository.get_pricing()

    def calculate(
        self,
        inputs: CalculationInputs | dict[str, Any],
        use_cache: bool = True,
    ) -> CalculationResult:
        """Run the full pipeline, falling back to an estimate on failure.

        A ``location`` on the inputs is applied as in
        :meth:`calculate_with_location`; if it cannot be resolved the
        unadjusted result is returned with a warning.
        """
        clean = sanitize_inputs(inputs)
        if clean.location:
            try:
                return self.calculate_with_location(clean, clean.location, use_cache=use_cache)
            except CalculationError as exc:
                logger.warning("Ignoring location %r: %s", clean.location, exc)
                result = self._calculate(clean, use_cache)
                result.warnings.append(str(exc))
                return result
        return self._calculate(clean, use_cache)

    def _calculate(self, clean: CalculationInputs, use_cache: bool) -> CalculationResult:
        # Results are cached without a location; climate factors go on top.
        clean = clean.model_copy(update={"location": None})
        key = clean.cache_key()
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Cache hit for %s", key)
                return cached.model_copy(deep=True)

        params, pricing = self.load_config()
        try:
            result = run_pipeline(clean, params, pricing)
        except _PIPELINE_ERRORS as exc:
            logger.warning("Calculation failed, using fallback estimate: %s", exc, exc_info=True)
            return fallback_result(clean, reason=str(exc))

        self.cache.set(key, result)
        return result.model_copy(deep=True)

    def calculate_with_location(
        self,
        inputs: CalculationInputs | dict[str, Any],
        location: str,
        use_cache: bool = True,
    ) -> CalculationResult:
        """Calculate, then adjust cooling capacity and PUE for the site climate.

        *location* is a known city name or ``"lat,lng"`` coordinates.

        Raises
        ------
        CalculationError
            If the location cannot be resolved.
        """
        result = self._calculate(sanitize_inputs(inputs), use_cache)
        if result.is_fallback:
            return result
        factors = get_location_factors(location, result.inputs.cooling_type)
        adjusted = apply_location_factors(result, factors)
        adjusted.inputs = adjusted.inputs.model_copy(update={"location": location})
        params, _ = self.load_config()
        return attach_energy_metrics(adjusted, params)
