"""
Request dependencies shared by the API routes.

Routes receive the database path and cron secret through FastAPI dependencies
so tests can swap them with ``app.dependency_overrides``.
"""

from pathlib import Path

from fastapi import Request

from cardflow.core.config import load_config


def get_db_path(request: Request) -> Path:
    """
    Get the cardflow database path.

    Uses ``app.state.db_path`` when the server was started with an explicit
    database, otherwise the configured path.
    """
    state_path = getattr(request.app.state, "db_path", None)
    if state_path is not None:
        return Path(state_path)
    return Path(load_config().database.path)


def get_cron_secret() -> str | None:
    """Shared secret the cron endpoint expects, or None if unset."""
    return load_config().cron.secret
