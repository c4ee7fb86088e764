# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Exception hierarchy shared by the calculator, services, API and CLI."""

from __future__ import annotations

from typing import Any


class ConfiguratorError(Exception):
    """Base class for all configurator errors.

    Every error carries a machine-readable ``code`` and optional
    ``details`` payload so the API layer can map it to a status code.
    """

    default_code = "ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class CalculationError(ConfiguratorError):
    """A step of the calculation pipeline could not produce a result."""

    default_code = "CALCULATION_FAILED"

    def __init__(self, message: str, step: str = "", details: Any = None) -> None:
        super().__init__(message, details=details)
        self.step = step


class ParamsValidationError(ConfiguratorError):
    """Calculation parameters or pricing failed validation."""

    default_code = "VALIDATION_FAILED"

    def __init__(self, errors: list[str]) -> None:
        super().__init__("Invalid parameters: " + "; ".join(errors), details=errors)
        self.errors = errors


class StoreError(ConfiguratorError):
    """The document store rejected or failed an operation."""

    default_code = "STORE_ERROR"


class ProjectError(ConfiguratorError):
    """Project and saved-calculation access errors."""

    default_code = "PROJECT_ERROR"


class ModuleError(ConfiguratorError):
    """Module library errors."""

    default_code = "MODULE_ERROR"


class LayoutError(ConfiguratorError):
    """Layout persistence errors."""

    default_code = "LAYOUT_ERROR"
