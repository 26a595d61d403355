"""
Module API routes.

Provides the endpoint that instantiates a module onto a board:
- POST /api/boards/{board_id}/modules/apply
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from cardflow.api.deps import get_db_path
from cardflow.core.errors import CardflowError
from cardflow.core.modules.models import ApplyModuleRequest
from cardflow.core.release.models import ApplyResult
from cardflow.core.services.module_apply import ModuleApplyService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/boards/{board_id}/modules/apply", response_model=ApplyResult)
def apply_module(
    board_id: str,
    body: ApplyModuleRequest,
    db_path: Path = Depends(get_db_path),
) -> ApplyResult:
    """
    Apply a module to a board.

    Creates (or reuses) the module's Epic, a UserStory in the chosen planning
    list, and one Task per template, all in one transaction.

    Args:
        board_id: Board receiving the cards
        body: Module id, planning list id and optional overrides

    Returns:
        ApplyResult with every created card

    Raises:
        CardflowError: 400 on validation failures, 404 if the module is unknown
        HTTPException: 500 on any unexpected failure

    Example request:
        {
          "moduleId": "mod-1",
          "planningListId": "sprint-4",
          "tasks": [
            {"taskTemplateId": "t-concept", "destinationMode": "STAGED"}
          ]
        }
    """
    service = ModuleApplyService(db_path)
    try:
        return service.apply(board_id, body)
    except CardflowError:
        raise
    except Exception as e:
        logger.exception("Failed to apply module %s to board %s", body.module_id, board_id)
        raise HTTPException(status_code=500, detail="Failed to apply module") from e
