# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""FastAPI router with REST endpoints for the configurator."""

from __future__ import annotations

from typing import Any

from dc_configurator import check_dependency

check_dependency("fastapi", "pip install -e '.[api]'")

from fastapi import APIRouter, Depends, Header, HTTPException  # noqa: E402

import dc_configurator  # noqa: E402
from dc_configurator.api.models import (  # noqa: E402
    CoolingComparisonRequest,
    HealthResponse,
    LayoutCreateRequest,
    LayoutUpdateRequest,
    LocationCalculateRequest,
    OptimizeRequest,
    ProjectRequest,
    RedundancyComparisonRequest,
    SaveCalculationRequest,
    ShareRequest,
)
from dc_configurator.calculator.compare import (  # noqa: E402
    compare_cooling_technologies,
    compare_redundancy_options,
)
from dc_configurator.calculator.optimizer import (  # noqa: E402
    OptimizationResult,
    optimize_configuration,
)
from dc_configurator.data.models import (  # noqa: E402
    CalculationInputs,
    CalculationParams,
    CalculationResult,
    PricingMatrix,
    SavedCalculation,
)
from dc_configurator.errors import ConfiguratorError  # noqa: E402
from dc_configurator.scene.models import Layout  # noqa: E402
from dc_configurator.services.container import ServiceContainer  # noqa: E402
from dc_configurator.services.modules import ModuleTemplate  # noqa: E402
from dc_configurator.services.projects import Project  # noqa: E402

router = APIRouter(prefix="/api/v1", tags=["dc-configurator"])


# ---------------------------------------------------------------------------
# Dependency injection
# ---------------------------------------------------------------------------

_container: ServiceContainer | None = None


def get_services() -> ServiceContainer:
    """Return the process-wide service container.

    Used as a FastAPI dependency so tests and deployments can override
    it through ``app.dependency_overrides``.
    """
    global _container
    if _container is None:
        _container = ServiceContainer.build()
    return _container


def current_user(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    """Caller identity; authentication happens upstream of this service."""
    return x_user_id


_STATUS_BY_CODE = {
    "NOT_FOUND": 404,
    "UNAUTHORIZED": 403,
    "AUTH_REQUIRED": 403,
    "VALIDATION_FAILED": 422,
    "CALCULATION_FAILED": 422,
}


def status_for(error: ConfiguratorError) -> int:
    return _STATUS_BY_CODE.get(error.code, 500)


def _http_error(error: ConfiguratorError) -> HTTPException:
    return HTTPException(status_code=status_for(error), detail=error.to_dict())


# ---------------------------------------------------------------------------
# Calculator endpoints
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
async def health(services: ServiceContainer = Depends(get_services)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=dc_configurator.__version__,
        store_backend=services.config.store.backend,
    )


@router.post("/calculate", response_model=CalculationResult)
def calculate(
    inputs: CalculationInputs,
    services: ServiceContainer = Depends(get_services),
) -> CalculationResult:
    """Run the full calculation pipeline for one configuration."""
    return services.engine.calculate(inputs)


@router.post("/calculate/location", response_model=CalculationResult)
def calculate_location(
    request: LocationCalculateRequest,
    services: ServiceContainer = Depends(get_services),
) -> CalculationResult:
    """Calculate, then adjust cooling and PUE for the site's climate."""
    try:
        return services.engine.calculate_with_location(request.inputs, request.site)
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc


@router.post("/optimize", response_model=OptimizationResult)
def optimize(
    request: OptimizeRequest,
    services: ServiceContainer = Depends(get_services),
) -> OptimizationResult:
    return optimize_configuration(services.engine, request.constraints, request.goal)


@router.post("/compare/cooling")
def compare_cooling(
    request: CoolingComparisonRequest,
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    return compare_cooling_technologies(services.engine, request.kw_per_rack, request.total_racks)


@router.post("/compare/redundancy")
def compare_redundancy(
    request: RedundancyComparisonRequest,
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    return compare_redundancy_options(
        services.engine, request.kw_per_rack, request.cooling_type, request.total_racks
    )


@router.get("/pricing", response_model=PricingMatrix)
def pricing(services: ServiceContainer = Depends(get_services)) -> PricingMatrix:
    return services.repository.get_pricing()


@router.get("/params", response_model=CalculationParams)
def params(services: ServiceContainer = Depends(get_services)) -> CalculationParams:
    return services.repository.get_params()


# ---------------------------------------------------------------------------
# Saved calculations
# ---------------------------------------------------------------------------

@router.post("/calculations", response_model=SavedCalculation, status_code=201)
def save_calculation(
    request: SaveCalculationRequest,
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> SavedCalculation:
    results = request.results or services.engine.calculate(request.inputs)
    try:
        return services.calculations.save_calculation(
            user_id, request.inputs, results, project_id=request.project_id, name=request.name
        )
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc


@router.get("/calculations/{calculation_id}", response_model=SavedCalculation)
def get_calculation(
    calculation_id: str,
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> SavedCalculation:
    try:
        return services.calculations.get_calculation_for_user(calculation_id, user_id)
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc


@router.get("/users/{owner_id}/calculations", response_model=list[SavedCalculation])
def user_calculations(
    owner_id: str,
    limit: int = 5,
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> list[SavedCalculation]:
    try:
        return services.calculations.get_user_calculations(owner_id, user_id, limit=limit)
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc


@router.get("/projects/{project_id}/calculations", response_model=list[SavedCalculation])
def project_calculations(
    project_id: str,
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> list[SavedCalculation]:
    try:
        return services.calculations.get_project_calculations(project_id, user_id)
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

@router.get("/projects", response_model=list[Project])
def list_projects(
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> list[Project]:
    return services.projects.get_user_projects(user_id)


@router.post("/projects", response_model=Project, status_code=201)
def create_project(
    request: ProjectRequest,
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> Project:
    try:
        return services.projects.create_project(request.model_dump(exclude_none=True), user_id)
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc


@router.get("/projects/{project_id}", response_model=Project)
def get_project(
    project_id: str,
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> Project:
    project = services.projects.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    if not project.can_access(user_id) and user_id not in services.config.admin_users:
        raise HTTPException(status_code=403, detail="Not authorized to view this project")
    return project


@router.put("/projects/{project_id}", response_model=Project)
def update_project(
    project_id: str,
    updates: dict[str, Any],
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> Project:
    try:
        return services.projects.update_project(project_id, updates, user_id)
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc


@router.delete("/projects/{project_id}", status_code=204)
def delete_project(
    project_id: str,
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> None:
    try:
        services.projects.delete_project(project_id, user_id)
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc


@router.post("/projects/{project_id}/share", response_model=Project)
def share_project(
    project_id: str,
    request: ShareRequest,
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> Project:
    try:
        if request.remove:
            return services.projects.remove_share(project_id, request.user_id, user_id)
        return services.projects.share_project(project_id, request.user_id, user_id)
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc


# ---------------------------------------------------------------------------
# Module library
# ---------------------------------------------------------------------------

@router.get("/modules", response_model=list[ModuleTemplate])
def list_modules(services: ServiceContainer = Depends(get_services)) -> list[ModuleTemplate]:
    try:
        return services.modules.get_all_modules()
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc


@router.post("/modules", response_model=ModuleTemplate, status_code=201)
def create_module(
    data: dict[str, Any],
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> ModuleTemplate:
    try:
        return services.modules.create_module(data, user_id)
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc


# ---------------------------------------------------------------------------
# Layouts
# ---------------------------------------------------------------------------

def _require_project_access(services: ServiceContainer, project_id: str, user_id: str) -> None:
    project = services.projects.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    if not project.can_access(user_id) and user_id not in services.config.admin_users:
        raise HTTPException(status_code=403, detail="Not authorized for this project")


@router.get("/projects/{project_id}/layouts", response_model=list[Layout])
def list_layouts(
    project_id: str,
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> list[Layout]:
    _require_project_access(services, project_id, user_id)
    return services.layouts.get_project_layouts(project_id)


@router.post("/projects/{project_id}/layouts", response_model=Layout, status_code=201)
def create_layout(
    project_id: str,
    request: LayoutCreateRequest,
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> Layout:
    _require_project_access(services, project_id, user_id)
    try:
        return services.layouts.create_layout(project_id, request.name, request.description)
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc


def _require_layout_access(services: ServiceContainer, layout_id: str, user_id: str) -> Layout:
    try:
        layout = services.layouts.get_layout(layout_id)
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc
    if layout is None:
        raise HTTPException(status_code=404, detail=f"Layout {layout_id} not found")
    _require_project_access(services, layout.project_id, user_id)
    return layout


@router.get("/layouts/{layout_id}", response_model=Layout)
def get_layout(
    layout_id: str,
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> Layout:
    return _require_layout_access(services, layout_id, user_id)


@router.put("/layouts/{layout_id}", response_model=Layout)
def update_layout(
    layout_id: str,
    request: LayoutUpdateRequest,
    user_id: str = Depends(current_user),
    services: ServiceContainer = Depends(get_services),
) -> Layout:
    _require_layout_access(services, layout_id, user_id)
    try:
        return services.layouts.update_layout(
            layout_id, request.modules, request.connections, name=request.name
        )
    except ConfiguratorError as exc:
        raise _http_error(exc) from exc
