# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Shared test fixtures for the dc-configurator test suite."""

from __future__ import annotations

import pytest

from dc_configurator.calculator.engine import CalculatorEngine
from dc_configurator.config import AppConfig, StoreConfig
from dc_configurator.data.defaults import DEFAULT_CALCULATION_PARAMS
from dc_configurator.data.models import CalculationInputs, CalculationParams, CalculationResult
from dc_configurator.repository import ConfigRepository
from dc_configurator.services.container import ServiceContainer
from dc_configurator.store.memory import MemoryDocumentStore


@pytest.fixture()
def params() -> CalculationParams:
    return DEFAULT_CALCULATION_PARAMS.model_copy(deep=True)


@pytest.fixture()
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture()
def repository(store: MemoryDocumentStore) -> ConfigRepository:
    return ConfigRepository(store, sleep=lambda _: None)


@pytest.fixture()
def engine(repository: ConfigRepository) -> CalculatorEngine:
    return CalculatorEngine(repository)


@pytest.fixture()
def sample_inputs() -> CalculationInputs:
    """28 racks at 10 kW, air cooled, N+1."""
    return CalculationInputs(kw_per_rack=10, cooling_type="air", total_racks=28)


@pytest.fixture()
def sample_result(engine: CalculatorEngine, sample_inputs: CalculationInputs) -> CalculationResult:
    return engine.calculate(sample_inputs)


@pytest.fixture()
def dlc_result(engine: CalculatorEngine) -> CalculationResult:
    """High-density DLC configuration with a generator and heat recovery."""
    return engine.calculate(
        CalculationInputs(
            kw_per_rack=100,
            cooling_type="dlc",
            total_racks=28,
            redundancy_mode="2N",
            include_generator=True,
            heat_recovery=True,
            water_recycling=True,
            renewable_percentage=50,
        )
    )


@pytest.fixture()
def container(store: MemoryDocumentStore) -> ServiceContainer:
    config = AppConfig(store=StoreConfig(backend="memory"), admin_users=["admin"])
    return ServiceContainer.build(config, store=store)
