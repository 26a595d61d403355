"""
Module catalog: reusable bundles of task templates.

- models.py: TaskTemplate, ModuleDefinition and apply request models
- normalize.py: Cleanup of loosely-typed template JSON
- catalog.py: Storage primitives for the board_modules table
"""

from cardflow.core.modules.catalog import create_module, get_module, list_modules
from cardflow.core.modules.models import (
    ApplyModuleRequest,
    ModuleDefinition,
    TaskOverride,
    TaskTemplate,
)
from cardflow.core.modules.normalize import normalize_task_templates

__all__ = [
    "ApplyModuleRequest",
    "ModuleDefinition",
    "TaskOverride",
    "TaskTemplate",
    "create_module",
    "get_module",
    "list_modules",
    "normalize_task_templates",
]
