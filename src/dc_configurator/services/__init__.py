# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Persistence services for projects, modules, layouts and calculations."""

from dc_configurator.services.calculations import CalculationService
from dc_configurator.services.container import ServiceContainer
from dc_configurator.services.layouts import LayoutService
from dc_configurator.services.modules import Category, ModuleService, ModuleTemplate
from dc_configurator.services.preferences import EditorPreferences, EditorPreferencesService
from dc_configurator.services.projects import Project, ProjectService

__all__ = [
    "CalculationService",
    "Category",
    "EditorPreferences",
    "EditorPreferencesService",
    "LayoutService",
    "ModuleService",
    "ModuleTemplate",
    "Project",
    "ProjectService",
    "ServiceContainer",
]
