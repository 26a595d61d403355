"""
Cardflow - module instantiation and staged task release for kanban boards.

Turns reusable modules (bundles of task templates with dependency chains)
into Epic -> UserStory -> Task cards, and later releases staged tasks into
their working lists once their scheduled release date arrives.
"""

__version__ = "0.1.0"

from cardflow.core.config.models import CardflowConfig

__all__ = ["CardflowConfig", "__version__"]
