# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Pricing matrix and calculation-parameter persistence.

Reads are cached for a short TTL and retried with a linear backoff.
If the store still cannot be read, the built-in defaults are returned
so calculations keep working offline.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from dc_configurator.calculator.cache import DEFAULT_TTL_SECONDS, TTLCache
from dc_configurator.calculator.validation import (
    ensure_params_structure,
    ensure_pricing_structure,
    validate_params,
    validate_pricing,
)
from dc_configurator.data.defaults import DEFAULT_CALCULATION_PARAMS, DEFAULT_PRICING
from dc_configurator.data.models import CalculationParams, PricingMatrix
from dc_configurator.errors import ParamsValidationError, StoreError
from dc_configurator.store.base import DocumentStore, Filter

logger = logging.getLogger(__name__)

CONFIG_COLLECTION = "matrix_calculator"
PRICING_DOC = "pricing_matrix"
PARAMS_DOC = "calculation_params"
USER_CONFIGS_COLLECTION = "matrix_calculator/user_configurations/configs"
VERSION_HISTORY_COLLECTION = "matrix_calculator/version_history/entries"

MAX_RETRIES = 3
RETRY_DELAY_SECONDS = 1.0

T = TypeVar("T")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConfigRepository:
    """Loads and saves the pricing matrix and calculation parameters."""

    def __init__(
        self,
        store: DocumentStore,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._cache: TTLCache[Any] = TTLCache(ttl=cache_ttl, max_entries=8)
        self._listeners: list[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _read_with_retry(self, doc_id: str) -> dict[str, Any] | None:
        last_error: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                return self.store.get(CONFIG_COLLECTION, doc_id)
            except Exception as exc:  # store backends raise their own error types
                last_error = exc
                logger.warning(
                    "Reading %s failed (attempt %d/%d): %s",
                    doc_id, attempt, self.max_retries, exc,
                )
                if attempt < self.max_retries:
                    self._sleep(self.retry_delay * attempt)
        raise StoreError(
            f"Could not read {CONFIG_COLLECTION}/{doc_id} after {self.max_retries} attempts",
            code="READ_FAILED",
        ) from last_error

    def _load(
        self,
        doc_id: str,
        parse: Callable[[Any], T],
        default: T,
    ) -> T:
        cached = self._cache.get(doc_id)
        if cached is not None:
            return cached.model_copy(deep=True)  # type: ignore[attr-defined]
        try:
            raw = self._read_with_retry(doc_id)
            if raw is None:
                logger.info("No stored %s, using defaults", doc_id)
                value = default.model_copy(deep=True)  # type: ignore[attr-defined]
            else:
                raw.pop("id", None)
                raw.pop("updated_at", None)
                raw.pop("updated_by", None)
                value = parse(raw)
        except Exception:
            logger.warning("Falling back to default %s", doc_id, exc_info=True)
            return default.model_copy(deep=True)  # type: ignore[attr-defined]
        self._cache.set(doc_id, value)
        return value.model_copy(deep=True)  # type: ignore[attr-defined]

    def get_pricing(self) -> PricingMatrix:
        """Current pricing matrix, or the defaults if it cannot be read."""
        return self._load(PRICING_DOC, ensure_pricing_structure, DEFAULT_PRICING)

    def get_params(self) -> CalculationParams:
        """Current calculation parameters, or the defaults if they cannot be read."""
        params = self._load(PARAMS_DOC, ensure_params_structure, DEFAULT_CALCULATION_PARAMS)
        errors = validate_params(params)
        if errors:
            logger.warning("Stored params are invalid (%s); using defaults", "; ".join(errors))
            self._cache.invalidate(PARAMS_DOC)
            return DEFAULT_CALCULATION_PARAMS.model_copy(deep=True)
        return params

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Call *callback* after every pricing or params write."""
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in self._listeners:
            callback()

    def _record_version(self, kind: str, data: dict[str, Any], user_id: str) -> None:
        self.store.add(
            VERSION_HISTORY_COLLECTION,
            {"type": kind, "data": data, "user_id": user_id, "timestamp": _timestamp()},
        )

    def save_pricing(self, pricing: PricingMatrix, user_id: str) -> None:
        errors = validate_pricing(pricing)
        if errors:
            raise ParamsValidationError(errors)
        data = pricing.model_dump(mode="json")
        self.store.set(
            CONFIG_COLLECTION,
            PRICING_DOC,
            {**data, "updated_at": _timestamp(), "updated_by": user_id},
        )
        self._record_version("pricing", data, user_id)
        self._cache.invalidate(PRICING_DOC)
        self._notify()

    def save_params(self, params: CalculationParams, user_id: str) -> None:
        errors = validate_params(params)
        if errors:
            raise ParamsValidationError(errors)
        data = params.model_dump(mode="json")
        self.store.set(
            CONFIG_COLLECTION,
            PARAMS_DOC,
            {**data, "updated_at": _timestamp(), "updated_by": user_id},
        )
        self._record_version("params", data, user_id)
        self._cache.invalidate(PARAMS_DOC)
        self._notify()

    def get_version_history(self, limit: int = 20) -> list[dict[str, Any]]:
        return self.store.query(
            VERSION_HISTORY_COLLECTION, order_by="timestamp", descending=True, limit=limit
        )

    def save_user_configuration(
        self,
        user_id: str,
        name: str,
        inputs: dict[str, Any],
        params: CalculationParams | None = None,
    ) -> str:
        """Store a named set of inputs (and optional param overrides) for a user."""
        doc = {
            "user_id": user_id,
            "name": name,
            "inputs": inputs,
            "params": params.model_dump(mode="json") if params else None,
            "created_at": _timestamp(),
        }
        return self.store.add(USER_CONFIGS_COLLECTION, doc)

    def get_user_configurations(self, user_id: str) -> list[dict[str, Any]]:
        return self.store.query(
            USER_CONFIGS_COLLECTION,
            filters=[Filter("user_id", "==", user_id)],
            order_by="created_at",
            descending=True,
        )

    def initialize_collections(self, user_id: str = "system") -> list[str]:
        """Write default pricing and params if they are missing.

        Returns the names of the documents that were created.
        """
        created: list[str] = []
        if not self.store.exists(CONFIG_COLLECTION, PRICING_DOC):
            self.save_pricing(DEFAULT_PRICING, user_id)
            created.append(PRICING_DOC)
        if not self.store.exists(CONFIG_COLLECTION, PARAMS_DOC):
            self.save_params(DEFAULT_CALCULATION_PARAMS, user_id)
            created.append(PARAMS_DOC)
        if created:
            logger.info("Initialised %s", ", ".join(created))
        return created
