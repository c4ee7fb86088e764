# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Tests for pricing/params persistence with retry and default fallback."""

from __future__ import annotations

import pytest

from dc_configurator.data.defaults import DEFAULT_CALCULATION_PARAMS, DEFAULT_PRICING
from dc_configurator.errors import ParamsValidationError, StoreError
from dc_configurator.repository import (
    CONFIG_COLLECTION,
    PARAMS_DOC,
    PRICING_DOC,
    VERSION_HISTORY_COLLECTION,
    ConfigRepository,
)
from dc_configurator.store.memory import MemoryDocumentStore


class FlakyStore(MemoryDocumentStore):
    """Fails the first *failures* reads, then behaves normally."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.reads = 0

    def get(self, collection, doc_id):
        self.reads += 1
        if self.reads <= self.failures:
            raise StoreError("unavailable", code="READ_FAILED")
        return super().get(collection, doc_id)


class TestReads:
    """Defaults, stored values and caching."""

    def test_defaults_when_empty(self, repository):
        assert repository.get_pricing() == DEFAULT_PRICING
        assert repository.get_params() == DEFAULT_CALCULATION_PARAMS

    def test_defaults_are_copies(self, repository):
        params = repository.get_params()
        params.electrical.power_factor = 0.5
        assert DEFAULT_CALCULATION_PARAMS.electrical.power_factor == 0.9

    def test_stored_pricing_is_returned(self, repository):
        pricing = DEFAULT_PRICING.model_copy(deep=True)
        pricing.busbar["perMeter"] = 999
        repository.save_pricing(pricing, "admin")
        assert repository.get_pricing().busbar["perMeter"] == 999

    def test_partial_stored_params_are_completed(self, store, repository):
        store.set(CONFIG_COLLECTION, PARAMS_DOC, {"cooling": {"delta_t": 12}})
        params = repository.get_params()
        assert params.cooling.delta_t == 12
        assert params.power.ups_module_size == 250

    def test_invalid_stored_params_fall_back(self, store, repository):
        store.set(CONFIG_COLLECTION, PARAMS_DOC, {"electrical": {"power_factor": 3}})
        assert repository.get_params() == DEFAULT_CALCULATION_PARAMS

    def test_reads_are_cached(self, store, repository):
        repository.get_pricing()
        store.set(CONFIG_COLLECTION, PRICING_DOC, {"busbar": {"perMeter": 1}})
        assert repository.get_pricing() == DEFAULT_PRICING


class TestRetry:
    """Transient failures are retried with a linear backoff."""

    def test_recovers_after_transient_failures(self):
        store = FlakyStore(failures=2)
        store.set(CONFIG_COLLECTION, PRICING_DOC, DEFAULT_PRICING.model_dump(mode="json"))
        delays: list[float] = []
        repository = ConfigRepository(store, retry_delay=0.5, sleep=delays.append)
        assert repository.get_pricing() == DEFAULT_PRICING
        assert store.reads == 3
        assert delays == [0.5, 1.0]

    def test_gives_up_and_uses_defaults(self):
        store = FlakyStore(failures=100)
        delays: list[float] = []
        repository = ConfigRepository(store, max_retries=3, sleep=delays.append)
        assert repository.get_params() == DEFAULT_CALCULATION_PARAMS
        assert store.reads == 3
        assert delays == [1.0, 2.0]

    def test_read_with_retry_raises_store_error(self):
        repository = ConfigRepository(FlakyStore(failures=100), max_retries=2,
                                      sleep=lambda _: None)
        with pytest.raises(StoreError) as exc_info:
            repository._read_with_retry(PRICING_DOC)
        assert exc_info.value.code == "READ_FAILED"


class TestWrites:
    """Validated saves with version history."""

    def test_save_params_records_version(self, store, repository, params):
        params.cooling.delta_t = 8
        repository.save_params(params, "alice")
        stored = store.get(CONFIG_COLLECTION, PARAMS_DOC)
        assert stored["updated_by"] == "alice"
        assert stored["cooling"]["delta_t"] == 8
        history = store.query(VERSION_HISTORY_COLLECTION)
        assert len(history) == 1
        assert history[0]["type"] == "params"
        assert history[0]["user_id"] == "alice"

    def test_save_invalidates_cache(self, repository, params):
        repository.get_params()
        params.cooling.delta_t = 8
        repository.save_params(params, "alice")
        assert repository.get_params().cooling.delta_t == 8

    def test_invalid_params_are_rejected(self, store, repository, params):
        params.electrical.power_factor = 2
        with pytest.raises(ParamsValidationError) as exc_info:
            repository.save_params(params, "alice")
        assert "Power factor must be between 0 and 1" in exc_info.value.errors
        assert store.get(CONFIG_COLLECTION, PARAMS_DOC) is None

    def test_invalid_pricing_is_rejected(self, repository):
        pricing = DEFAULT_PRICING.model_copy(deep=True)
        pricing.ups["module250kw"] = -10
        with pytest.raises(ParamsValidationError):
            repository.save_pricing(pricing, "alice")

    def test_version_history(self, repository, params):
        repository.save_params(params, "alice")
        repository.save_pricing(DEFAULT_PRICING, "bob")
        history = repository.get_version_history()
        assert sorted(h["type"] for h in history) == ["params", "pricing"]
        assert len(repository.get_version_history(limit=1)) == 1


class TestUserConfigurations:
    """Named input sets per user."""

    def test_save_and_list(self, repository, params):
        first = repository.save_user_configuration("alice", "Hall A", {"kw_per_rack": 20})
        repository.save_user_configuration("bob", "Other", {"kw_per_rack": 5})
        second = repository.save_user_configuration("alice", "Hall B", {"kw_per_rack": 40},
                                                    params)
        configs = repository.get_user_configurations("alice")
        assert {c["id"] for c in configs} == {first, second}
        hall_b = next(c for c in configs if c["id"] == second)
        assert hall_b["params"]["cooling"]["delta_t"] == 10
        hall_a = next(c for c in configs if c["id"] == first)
        assert hall_a["params"] is None


class TestInitializeCollections:
    """Seeding the default documents."""

    def test_first_run_creates_both(self, store, repository):
        assert repository.initialize_collections("admin") == [PRICING_DOC, PARAMS_DOC]
        assert store.exists(CONFIG_COLLECTION, PRICING_DOC)
        assert store.exists(CONFIG_COLLECTION, PARAMS_DOC)

    def test_second_run_is_noop(self, repository):
        repository.initialize_collections()
        assert repository.initialize_collections() == []

    def test_only_missing_documents_are_created(self, repository, params):
        repository.save_params(params, "alice")
        assert repository.initialize_collections() == [PRICING_DOC]
