# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Wire a document store, the calculator and every service together."""

from __future__ import annotations

from dataclasses import dataclass

from dc_configurator.calculator.cache import TTLCache
from dc_configurator.calculator.engine import CalculatorEngine
from dc_configurator.config import AppConfig, build_store
from dc_configurator.repository import ConfigRepository
from dc_configurator.services.calculations import CalculationService
from dc_configurator.services.layouts import LayoutService
from dc_configurator.services.modules import ModuleService
from dc_configurator.services.preferences import EditorPreferencesService
from dc_configurator.services.projects import ProjectService
from dc_configurator.store.base import DocumentStore


@dataclass
class ServiceContainer:
    """Everything the CLI and the REST API need, sharing one store."""

    config: AppConfig
    store: DocumentStore
    repository: ConfigRepository
    engine: CalculatorEngine
    calculations: CalculationService
    projects: ProjectService
    modules: ModuleService
    layouts: LayoutService
    preferences: EditorPreferencesService

    @classmethod
    def build(
        cls,
        config: AppConfig | None = None,
        store: DocumentStore | None = None,
    ) -> ServiceContainer:
        config = config or AppConfig()
        store = store if store is not None else build_store(config)
        repository = ConfigRepository(store, cache_ttl=config.cache_ttl_seconds)
        engine = CalculatorEngine(repository, cache=TTLCache(ttl=config.cache_ttl_seconds))
        return cls(
            config=config,
            store=store,
            repository=repository,
            engine=engine,
            calculations=CalculationService(store, engine, admin_users=config.admin_users),
            projects=ProjectService(store),
            modules=ModuleService(store),
            layouts=LayoutService(store),
            preferences=EditorPreferencesService(store),
        )
