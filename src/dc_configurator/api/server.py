# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""FastAPI application factory for the configurator REST API."""

from __future__ import annotations

from dc_configurator import check_dependency

check_dependency("fastapi", "pip install -e '.[api]'")

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from dc_configurator import __version__  # noqa: E402
from dc_configurator.api.routes import get_services, router  # noqa: E402
from dc_configurator.services.container import ServiceContainer  # noqa: E402


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    services:
        Container to serve requests from. When omitted, one is built
        lazily from the default configuration on first request.
    """
    app = FastAPI(
        title="DC Configurator API",
        description=(
            "REST API for data-center infrastructure sizing: electrical, "
            "cooling, power and cost calculations, projects and layouts."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    if services is not None:
        app.dependency_overrides[get_services] = lambda: services

    return app
