# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""API request/response Pydantic models for the REST interface."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from dc_configurator.calculator.optimizer import OptimizationConstraints
from dc_configurator.data.models import CalculationInputs, CalculationResult, CoolingType
from dc_configurator.scene.models import Connection, SceneModule


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class LocationCalculateRequest(BaseModel):
    """Request body for ``POST /api/v1/calculate/location``.

    Give either a ``location`` (city name or ``"lat,lng"``) or both
    ``latitude`` and ``longitude``.
    """

    inputs: CalculationInputs = Field(default_factory=CalculationInputs)
    location: str | None = Field(
        default=None, min_length=1, description="City name, e.g. 'London', or 'lat,lng'."
    )
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)

    @model_validator(mode="after")
    def _require_site(self) -> LocationCalculateRequest:
        if self.location is None and (self.latitude is None or self.longitude is None):
            raise ValueError("Provide location, or both latitude and longitude")
        return self

    @property
    def site(self) -> str:
        if self.location is not None:
            return self.location
        return f"{self.latitude},{self.longitude}"


class OptimizeRequest(BaseModel):
    """Request body for ``POST /api/v1/optimize``."""

    constraints: OptimizationConstraints = Field(default_factory=OptimizationConstraints)
    goal: Literal["cost", "efficiency", "reliability", "sustainability"] = "cost"


class CoolingComparisonRequest(BaseModel):
    kw_per_rack: float = Field(..., gt=0, le=250)
    total_racks: int = Field(default=28, ge=1, le=1000)


class RedundancyComparisonRequest(BaseModel):
    kw_per_rack: float = Field(..., gt=0, le=250)
    cooling_type: CoolingType = CoolingType.air
    total_racks: int = Field(default=28, ge=1, le=1000)


class SaveCalculationRequest(BaseModel):
    """Request body for ``POST /api/v1/calculations``.

    When *results* is omitted the server runs the calculation.
    """

    inputs: CalculationInputs
    results: CalculationResult | None = None
    project_id: str | None = None
    name: str | None = None


class ProjectRequest(BaseModel):
    name: str
    description: str = ""
    company_name: str = ""
    client_email: str = ""
    client_phone: str = ""
    client_address: str = ""
    plot_width: float | None = None
    plot_length: float | None = None
    status: str | None = None


class ShareRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="User to share the project with.")
    remove: bool = Field(default=False, description="Revoke instead of grant access.")


class LayoutCreateRequest(BaseModel):
    name: str
    description: str = ""


class LayoutUpdateRequest(BaseModel):
    modules: list[SceneModule] = Field(default_factory=list)
    connections: list[Connection] = Field(default_factory=list)
    name: str | None = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    """Response body returned by ``GET /api/v1/health``."""

    status: str = Field(..., description="Service health status (e.g. 'ok').")
    version: str = Field(..., description="Application version string.")
    store_backend: str = Field(..., description="Configured document store backend.")


class ErrorResponse(BaseModel):
    error: str
    code: str
    details: Any = None
