# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Tests for the calculator engine, caching, fallback and input validation."""

from __future__ import annotations

import pytest

from dc_configurator.calculator import engine as engine_module
from dc_configurator.calculator.cache import TTLCache
from dc_configurator.calculator.engine import CalculatorEngine
from dc_configurator.calculator.fallback import FALLBACK_WARNING, fallback_result
from dc_configurator.calculator.validation import (
    ensure_params_structure,
    ensure_pricing_structure,
    sanitize_inputs,
    validate_params,
    validate_pricing,
)
from dc_configurator.data.defaults import DEFAULT_PRICING
from dc_configurator.data.models import (
    CalculationInputs,
    ClimateZone,
    CoolingType,
    PricingMatrix,
    RedundancyMode,
)
from dc_configurator.errors import CalculationError


class TestPipeline:
    """End-to-end results from the engine."""

    def test_sample_configuration(self, sample_result):
        r = sample_result
        assert r.is_fallback is False
        assert r.total_it_load_kw == 280
        assert r.electrical.busbar_rating == 250
        assert r.cooling.total_capacity == 308
        assert r.power.ups.total_modules == 2
        assert r.power.battery.cabinets_needed == 2
        assert r.power.generator is None
        assert r.pue == 1.4
        assert r.reliability is not None and r.reliability.tier == "Tier II"
        assert r.sustainability is not None
        assert r.carbon_footprint is not None
        assert r.tco is not None
        assert r.pipe_sizing is not None and r.pipe_sizing.required is False

    def test_cost_rollup(self, sample_result):
        cost = sample_result.cost
        assert cost.total_project_cost == pytest.approx(cost.equipment_total * 1.30, abs=3)
        assert cost.generator == 0
        assert cost.cost_per_rack == round(cost.total_project_cost / 28)
        assert cost.electrical_total == cost.busbar + cost.tap_off_box + cost.rpdu

    def test_dlc_configuration(self, dlc_result):
        r = dlc_result
        assert r.cooling.type is CoolingType.dlc
        assert r.cooling.pipe_size == "dn160"
        assert r.power.generator is not None
        assert r.cost.generator > 0
        assert r.cost.sustainability > 0
        assert r.electrical.multiple_busbars_required is True
        assert r.warnings

    def test_dlc_forces_250a_tap_off_boxes(self, dlc_result):
        expected = DEFAULT_PRICING.price("tap_off_box", "custom250A") * 28
        assert dlc_result.cost.tap_off_box == round(expected)

    def test_tco_horizons(self, sample_result):
        tco = sample_result.tco
        assert tco.capex == sample_result.cost.total_project_cost
        assert tco.total_10_year > tco.total_5_year > tco.capex
        assert tco.annualized_tco == round(tco.total_cost_of_ownership / 10)

    def test_accepts_raw_dict(self, engine):
        result = engine.calculate({"kw_per_rack": "20", "cooling_type": "HYBRID", "total_racks": 14})
        assert result.inputs.kw_per_rack == 20
        assert result.inputs.cooling_type is CoolingType.hybrid

    def test_without_repository_uses_defaults(self, sample_inputs):
        result = CalculatorEngine().calculate(sample_inputs)
        assert result.is_fallback is False
        assert result.pue == 1.4

    def test_stored_params_are_used(self, engine, repository, params):
        params.cooling.chiller_efficiency_factor = 0.5
        repository.save_params(params, "tester")
        result = engine.calculate(CalculationInputs(kw_per_rack=10, total_racks=28))
        assert result.pue == 1.2


class TestCaching:
    """Results are cached on the sanitised inputs."""

    def test_second_call_hits_cache(self, engine, sample_inputs):
        first = engine.calculate(sample_inputs)
        second = engine.calculate(sample_inputs)
        assert first == second
        assert len(engine.cache) == 1

    def test_cached_result_is_a_copy(self, engine, sample_inputs):
        first = engine.calculate(sample_inputs)
        first.warnings.append("mutated")
        second = engine.calculate(sample_inputs)
        assert "mutated" not in second.warnings

    def test_bypass_cache(self, engine, sample_inputs, monkeypatch):
        engine.calculate(sample_inputs)
        calls = []
        original = engine_module.run_pipeline

        def counting(*args, **kwargs):
            calls.append(1)
            return original(*args, **kwargs)

        monkeypatch.setattr(engine_module, "run_pipeline", counting)
        engine.calculate(sample_inputs, use_cache=False)
        engine.calculate(sample_inputs)
        assert len(calls) == 1

    def test_ttl_expiry(self):
        now = [0.0]
        cache: TTLCache[int] = TTLCache(ttl=10, clock=lambda: now[0])
        cache.set("a", 1)
        assert cache.get("a") == 1
        now[0] = 11
        assert cache.get("a") is None
        assert "a" not in cache

    def test_evicts_oldest(self):
        cache: TTLCache[int] = TTLCache(max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)
        assert cache.get("a") is None
        assert cache.get("c") == 3

    def test_invalidate(self):
        cache: TTLCache[int] = TTLCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        assert len(cache) == 1
        cache.invalidate()
        assert len(cache) == 0

    def test_pricing_write_invalidates_results(self, engine, repository, sample_inputs):
        before = engine.calculate(sample_inputs)
        pricing = DEFAULT_PRICING.model_copy(deep=True)
        pricing.busbar = {size: price * 2 for size, price in pricing.busbar.items()}
        repository.save_pricing(pricing, "admin")
        after = engine.calculate(sample_inputs)
        assert after.cost.busbar == pytest.approx(before.cost.busbar * 2, abs=1)
        assert after == engine.calculate(sample_inputs, use_cache=False)

    def test_params_write_invalidates_results(self, engine, repository, sample_inputs, params):
        assert engine.calculate(sample_inputs).pue == 1.4
        params.cooling.chiller_efficiency_factor = 0.5
        repository.save_params(params, "admin")
        assert engine.calculate(sample_inputs).pue == 1.2


class TestFallback:
    """A failing pipeline yields a rule-of-thumb estimate."""

    def test_engine_falls_back_on_failure(self, engine, sample_inputs, monkeypatch):
        def broken(*args, **kwargs):
            raise CalculationError("boom", step="electrical")

        monkeypatch.setattr(engine_module, "calculate_electrical", broken)
        result = engine.calculate(sample_inputs)
        assert result.is_fallback is True
        assert FALLBACK_WARNING in result.warnings
        assert "boom" in result.warnings
        assert len(engine.cache) == 0

    def test_fallback_figures(self, sample_inputs):
        result = fallback_result(sample_inputs)
        # (280 + 280 / 0.7) * 1.2 = 816 kW facility load
        assert result.pue == pytest.approx(2.914)
        assert result.cost.total_project_cost == 8_160_000
        assert result.reliability.availability_percentage == 99.99
        assert result.electrical.current_per_rack == 16
        assert result.warnings == [FALLBACK_WARNING]

    def test_fallback_liquid_efficiency(self):
        inputs = CalculationInputs(kw_per_rack=50, cooling_type="dlc", total_racks=10,
                                   redundancy_mode="N")
        result = fallback_result(inputs)
        assert result.pue == pytest.approx(round((500 + 500 / 0.85) / 500, 3))
        assert result.cooling.dlc_capacity == pytest.approx(375)


class TestLocation:
    """Climate adjustment of cooling and PUE."""

    def test_known_location(self, engine, sample_inputs):
        result = engine.calculate_with_location(sample_inputs, "London")
        assert result.location_factors is not None
        assert result.location_factors.climate_zone is ClimateZone.continental
        assert result.cooling.total_capacity == 293
        assert result.pue == pytest.approx(1.33)
        assert result.inputs.location == "London"
        assert result.sustainability.pue == pytest.approx(1.33)

    def test_location_lookup_is_case_insensitive(self, engine, sample_inputs):
        result = engine.calculate_with_location(sample_inputs, "  tokyo ")
        assert result.location_factors.climate_zone is ClimateZone.temperate

    def test_unknown_location(self, engine, sample_inputs):
        with pytest.raises(CalculationError) as exc_info:
            engine.calculate_with_location(sample_inputs, "Atlantis")
        assert exc_info.value.code == "CALCULATION_FAILED"

    def test_location_does_not_touch_cached_result(self, engine, sample_inputs):
        engine.calculate_with_location(sample_inputs, "London")
        plain = engine.calculate(sample_inputs)
        assert plain.pue == 1.4
        assert plain.location_factors is None
        assert plain.inputs.location is None

    def test_coordinates(self, engine, sample_inputs):
        result = engine.calculate_with_location(sample_inputs, "51.5, -0.12")
        factors = result.location_factors
        assert factors.climate_zone is ClimateZone.continental
        assert factors.latitude == 51.5
        assert factors.longitude == -0.12
        assert result.cooling.total_capacity == 293

    def test_coordinates_outside_named_table(self, engine, sample_inputs):
        # Singapore: tropical band.
        result = engine.calculate_with_location(sample_inputs, "1.35,103.82")
        assert result.location_factors.climate_zone is ClimateZone.tropical

    @pytest.mark.parametrize("location", ["95,10", "10,-181"])
    def test_coordinates_out_of_range(self, engine, sample_inputs, location):
        with pytest.raises(CalculationError):
            engine.calculate_with_location(sample_inputs, location)

    def test_location_on_inputs_is_applied(self, engine):
        result = engine.calculate(CalculationInputs(kw_per_rack=10, total_racks=28, location="London"))
        assert result.inputs.location == "London"
        assert result.location_factors.climate_zone is ClimateZone.continental

    def test_cached_result_does_not_echo_earlier_location(self, engine, sample_inputs):
        engine.calculate(sample_inputs.model_copy(update={"location": "Dubai"}))
        plain = engine.calculate(sample_inputs)
        assert plain.inputs.location is None
        assert plain.location_factors is None

    def test_unknown_location_on_inputs_warns(self, engine, sample_inputs):
        result = engine.calculate(sample_inputs.model_copy(update={"location": "Atlantis"}))
        assert result.is_fallback is False
        assert result.location_factors is None
        assert result.inputs.location is None
        assert any("Atlantis" in warning for warning in result.warnings)


class TestInputValidation:
    """Raw inputs are coerced, never rejected."""

    def test_invalid_values_fall_back(self):
        clean = sanitize_inputs({
            "kw_per_rack": "abc",
            "cooling_type": "plasma",
            "total_racks": 5000,
            "redundancy_mode": "3N",
            "battery_runtime": -5,
            "renewable_percentage": 150,
        })
        assert clean.kw_per_rack == 10
        assert clean.cooling_type is CoolingType.air
        assert clean.total_racks == 28
        assert clean.redundancy_mode is RedundancyMode.n_plus_1
        assert clean.battery_runtime == 10
        assert clean.renewable_percentage == 20

    def test_string_values_are_coerced(self):
        clean = sanitize_inputs({
            "kw_per_rack": "45.5",
            "cooling_type": "DLC",
            "total_racks": "12",
            "include_generator": "yes",
            "heat_recovery": "false",
        })
        assert clean.kw_per_rack == 45.5
        assert clean.cooling_type is CoolingType.dlc
        assert clean.total_racks == 12
        assert clean.include_generator is True
        assert clean.heat_recovery is False

    def test_booleans_are_not_numbers(self):
        assert sanitize_inputs({"kw_per_rack": True}).kw_per_rack == 10

    def test_model_passthrough(self, sample_inputs):
        assert sanitize_inputs(sample_inputs) is sample_inputs

    def test_validate_params(self, params):
        assert validate_params(params) == []
        params.electrical.power_factor = 1.5
        params.cooling.delta_t = 0
        errors = validate_params(params)
        assert "Power factor must be between 0 and 1" in errors
        assert "Invalid temperature delta value" in errors

    def test_validate_pricing(self):
        pricing = PricingMatrix(busbar={"perMeter": -1})
        assert validate_pricing(pricing) == ["Negative price for busbar.perMeter"]

    def test_partial_params_keep_defaults(self):
        params = ensure_params_structure({"electrical": {"voltage_factor": 415}})
        assert params.electrical.voltage_factor == 415
        assert params.electrical.power_factor == 0.9
        assert params.power.ups_module_size == 250

    def test_unknown_redundancy_in_params(self):
        params = ensure_params_structure({"electrical": {"redundancy_mode": "bogus"}})
        assert params.electrical.redundancy_mode == "N+1"

    def test_non_dict_pricing_gives_defaults(self):
        assert ensure_pricing_structure("garbage") == DEFAULT_PRICING
