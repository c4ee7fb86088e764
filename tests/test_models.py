# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Tests for core Pydantic data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from dc_configurator.data.defaults import DEFAULT_PRICING
from dc_configurator.data.models import (
    CalculationInputs,
    CalculationParams,
    CoolingType,
    CostBreakdown,
    ElectricalResult,
    PricingMatrix,
    RedundancyMode,
)
from dc_configurator.errors import (
    CalculationError,
    ConfiguratorError,
    ParamsValidationError,
    ProjectError,
)


class TestCalculationInputs:
    """Defaults, bounds and derived fields."""

    def test_defaults(self):
        inputs = CalculationInputs()
        assert inputs.kw_per_rack == 10
        assert inputs.cooling_type is CoolingType.air
        assert inputs.total_racks == 28
        assert inputs.redundancy_mode is RedundancyMode.n_plus_1
        assert inputs.include_generator is False
        assert inputs.battery_runtime == 10
        assert inputs.renewable_percentage == 20
        assert inputs.location is None

    def test_total_it_load(self):
        inputs = CalculationInputs(kw_per_rack=12.5, total_racks=8)
        assert inputs.total_it_load_kw == 100
        assert inputs.model_dump()["total_it_load_kw"] == 100

    def test_string_enums_coerced(self):
        inputs = CalculationInputs(cooling_type="immersion", redundancy_mode="2N+1")
        assert inputs.cooling_type is CoolingType.immersion
        assert inputs.redundancy_mode is RedundancyMode.two_n_plus_1

    @pytest.mark.parametrize("field,value", [
        ("kw_per_rack", 0),
        ("kw_per_rack", 300),
        ("total_racks", 0),
        ("battery_runtime", 90),
        ("renewable_percentage", 120),
        ("cooling_type", "plasma"),
        ("redundancy_mode", "3N"),
    ])
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            CalculationInputs(**{field: value})

    def test_cache_key_ignores_location(self):
        plain = CalculationInputs(kw_per_rack=40)
        located = CalculationInputs(kw_per_rack=40, location="Dubai")
        other = CalculationInputs(kw_per_rack=41)
        assert plain.cache_key() == located.cache_key()
        assert plain.cache_key() != other.cache_key()


class TestEnums:
    def test_liquid_cooling(self):
        assert not CoolingType.air.is_liquid
        assert all(c.is_liquid for c in (CoolingType.dlc, CoolingType.hybrid,
                                          CoolingType.immersion))

    def test_redundancy_values(self):
        assert [r.value for r in RedundancyMode] == ["N", "N+1", "2N", "2N+1"]


class TestPricingMatrix:
    """Unit price lookup."""

    def test_known_price(self):
        assert DEFAULT_PRICING.price("ups", "frame2Module") == 85_000

    def test_unknown_key(self):
        assert DEFAULT_PRICING.price("ups", "frame99Module") == 0.0

    def test_unknown_section(self):
        assert DEFAULT_PRICING.price("flux_capacitor", "any") == 0.0

    def test_non_table_attribute(self):
        assert PricingMatrix().price("model_config", "busbar") == 0.0


class TestResultModels:
    def test_busbar_size_label(self):
        electrical = ElectricalResult(
            current_per_row=420, current_per_rack=30, busbar_rating=630,
            tap_off_box="63A", rpdu="22kW",
        )
        assert electrical.busbar_size == "busbar630A"

    def test_cost_subtotals(self):
        cost = CostBreakdown(busbar=10, tap_off_box=5, rpdu=2.5, ups=100, battery=50, generator=25)
        assert cost.electrical_total == 17.5
        assert cost.power_total == 175
        assert cost.model_dump()["electrical_total"] == 17.5

    def test_params_round_trip_through_dict(self):
        params = CalculationParams()
        rebuilt = CalculationParams.model_validate(params.model_dump())
        assert rebuilt == params
        assert rebuilt.power.ups_frame_max_modules == 6


class TestErrors:
    """Error codes and serialisation."""

    def test_default_codes(self):
        assert ConfiguratorError("x").code == "ERROR"
        assert CalculationError("x", step="cooling").code == "CALCULATION_FAILED"
        assert ProjectError("x").code == "PROJECT_ERROR"

    def test_explicit_code_wins(self):
        assert ProjectError("gone", code="NOT_FOUND").code == "NOT_FOUND"

    def test_to_dict(self):
        assert ProjectError("gone", code="NOT_FOUND").to_dict() == {
            "error": "gone", "code": "NOT_FOUND",
        }

    def test_params_validation_error(self):
        error = ParamsValidationError(["a must be positive", "b missing"])
        assert error.code == "VALIDATION_FAILED"
        assert error.message == "Invalid parameters: a must be positive; b missing"
        assert error.to_dict()["details"] == ["a must be positive", "b missing"]
        assert isinstance(error, ConfiguratorError)
