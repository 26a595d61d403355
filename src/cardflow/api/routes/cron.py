"""
Cron API routes.

Provides the endpoint an external scheduler calls on a fixed cadence:
- GET|POST /api/cron/release-staged-tasks

Callers authenticate with the shared secret, sent either as
``Authorization: Bearer <secret>`` or as ``x-cron-secret: <secret>``.
"""

import logging
import secrets
from pathlib import Path

from fastapi import APIRouter, Depends, Header, HTTPException

from cardflow.api.deps import get_cron_secret, get_db_path
from cardflow.core.release.models import ReleaseSummary
from cardflow.core.services.release import ReleaseService

logger = logging.getLogger(__name__)

router = APIRouter()

BEARER_PREFIX = "Bearer "


def is_authorized(secret: str, authorization: str | None, cron_secret: str | None) -> bool:
    """
    Check a request's credentials against the shared secret.

    Example:
        >>> is_authorized("s3cret", "Bearer s3cret", None)
        True
        >>> is_authorized("s3cret", None, "wrong")
        False
    """
    candidates = []
    if authorization and authorization.startswith(BEARER_PREFIX):
        candidates.append(authorization[len(BEARER_PREFIX):])
    if cron_secret:
        candidates.append(cron_secret)
    return any(secrets.compare_digest(token.encode(), secret.encode()) for token in candidates)


@router.api_route(
    "/cron/release-staged-tasks",
    methods=["GET", "POST"],
    response_model=ReleaseSummary,
)
def release_staged_tasks(
    authorization: str | None = Header(default=None),
    x_cron_secret: str | None = Header(default=None),
    secret: str | None = Depends(get_cron_secret),
    db_path: Path = Depends(get_db_path),
) -> ReleaseSummary:
    """
    Release every staged task whose scheduled release date has arrived.

    Returns:
        ReleaseSummary with released, skipped and failed counts

    Raises:
        HTTPException: 500 if no secret is configured or the run fails,
            401 if the caller's secret does not match

    Example response:
        {"releasedCount": 3, "skippedCount": 1, "failedCount": 0}
    """
    if not secret:
        raise HTTPException(
            status_code=500,
            detail="CRON_SECRET environment variable is not configured",
        )

    if not is_authorized(secret, authorization, x_cron_secret):
        raise HTTPException(status_code=401, detail="Invalid cron secret")

    try:
        result = ReleaseService(db_path).run()
    except Exception as e:
        logger.exception("Cron staged-task release failed")
        raise HTTPException(
            status_code=500,
            detail="Failed to process staged task releases",
        ) from e

    return ReleaseSummary.from_result(result)
