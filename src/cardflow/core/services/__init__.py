"""
Service layer for cardflow.

Services are stateless orchestrators that compose domain operations into clean
API surfaces. The HTTP API and the CLI call service methods instead of
reaching into core packages directly.

Design principles:
- Methods accept typed inputs, return typed outputs, raise typed exceptions.
- No Rich, no sys.exit, no print statements; presentation belongs to the caller.
- Services are created via factory methods that accept configuration.

Modules:
    module_apply: ModuleApplyService instantiates modules onto boards.
    release: ReleaseService runs the staged task scheduler.
"""

from cardflow.core.services.module_apply import ModuleApplyService
from cardflow.core.services.release import ReleaseService

__all__ = [
    "ModuleApplyService",
    "ReleaseService",
]
