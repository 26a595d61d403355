"""
Staged task release for cardflow.

Building blocks used by module instantiation and by the release scheduler:
- models.py: Release descriptor variants and result models
- chain.py: Ordering of task templates into dependency chains
- dates.py: Scheduled release date computation
- positions.py: Per-list card position allocation
- scheduler.py: Promotion of due staged tasks into their target lists

Import from the submodules directly.
"""

__all__: list[str] = []
