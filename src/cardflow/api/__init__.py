"""
FastAPI application for cardflow.

API Endpoints:
- POST /api/boards/{board_id}/modules/apply - Instantiate a module on a board
- GET|POST /api/cron/release-staged-tasks - Release due staged tasks

Usage:
    # Run the server
    uvicorn cardflow.api.app:app --reload

    # Or from Python
    from cardflow.api.app import app
"""

from cardflow.api.app import app

__all__ = ["app"]
