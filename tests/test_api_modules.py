"""
Tests for the module apply endpoint.

Tests validate:
- Successful apply returns every created card in camelCase JSON
- Validation and not-found errors map to 400 / 404 with error codes
- Malformed bodies are rejected with 422
- A missing or non-list tasks field means no overrides
- Unexpected failures return an opaque 500
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from cardflow.api.app import ErrorCode, app
from cardflow.api.deps import get_db_path
from cardflow.core.services.module_apply import ModuleApplyService

APPLY_URL = "/api/boards/board-1/modules/apply"


@pytest.fixture
def client(db_path):
    """Test client bound to the temporary database."""
    app.dependency_overrides[get_db_path] = lambda: db_path
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def module(make_module):
    return make_module(
        [
            {"id": "t-concept", "title": "CONCEPT", "chainGroupId": "g", "chainOrder": 0},
            {"id": "t-art", "title": "STATIC ART", "chainGroupId": "g", "chainOrder": 1},
        ],
        symbol="CHR",
    )


class TestApplyModule:
    """Test POST /api/boards/{board_id}/modules/apply."""

    def test_apply_returns_created_cards(self, client, board, module):
        response = client.post(
            APPLY_URL,
            json={
                "moduleId": module.id,
                "planningListId": board.sprint_4,
                "tasks": [{"taskTemplateId": "t-art", "destinationMode": "STAGED"}],
            },
        )

        assert response.status_code == 200
        created = response.json()["created"]
        assert [card["type"] for card in created] == ["EPIC", "USER_STORY", "TASK", "TASK"]

        epic, story, concept, art = created
        assert story["userStoryData"] == {"linkedEpicId": epic["id"]}
        assert story["list"]["name"] == "Sprint 4"

        assert concept["listId"] == board.backlog
        assert concept["taskData"]["releaseMode"] == "IMMEDIATE"
        assert concept["taskData"]["dependsOnTaskId"] is None
        assert concept["taskData"]["releasedAt"] is not None

        assert art["listId"] == board.sprint_4
        assert art["taskData"]["releaseMode"] == "STAGED"
        assert art["taskData"]["scheduledReleaseDate"] == "2026-02-27"
        assert art["taskData"]["releaseTargetListId"] == board.backlog
        assert art["taskData"]["releasedAt"] is None
        assert art["taskData"]["dependsOnTaskId"] == concept["id"]
        assert art["assignees"] == []
        assert art["checklists"] == []

    @pytest.mark.parametrize("tasks", [None, "all of them", {"taskTemplateId": "t-art"}])
    def test_non_list_tasks_means_no_overrides(self, client, board, module, tasks):
        """A null or non-array tasks field applies every template with its defaults."""
        response = client.post(
            APPLY_URL,
            json={"moduleId": module.id, "planningListId": board.sprint_4, "tasks": tasks},
        )

        assert response.status_code == 200
        created = response.json()["created"]
        assert [card["type"] for card in created] == ["EPIC", "USER_STORY", "TASK", "TASK"]
        assert all(
            card["taskData"]["releaseMode"] == "IMMEDIATE" for card in created[2:]
        )

    def test_reused_epic_is_still_returned(self, client, board, module):
        body = {"moduleId": module.id, "planningListId": board.sprint_4}
        first = client.post(APPLY_URL, json=body).json()["created"][0]
        second = client.post(APPLY_URL, json=body).json()["created"][0]

        assert second["type"] == "EPIC"
        assert second["id"] == first["id"]
        assert "epicReused" not in client.post(APPLY_URL, json=body).json()


class TestApplyModuleErrors:
    """Test error responses of the apply endpoint."""

    def test_missing_module_id(self, client, board):
        response = client.post(APPLY_URL, json={"planningListId": board.sprint_4})

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == ErrorCode.VALIDATION_ERROR
        assert data["message"] == "moduleId is required"
        assert "request_id" in data

    def test_unknown_module(self, client, board):
        response = client.post(
            APPLY_URL, json={"moduleId": "nope", "planningListId": board.sprint_4}
        )

        assert response.status_code == 404
        assert response.json()["code"] == ErrorCode.NOT_FOUND
        assert response.json()["message"] == "Module 'nope' not found"

    def test_staging_list_without_start_date(self, client, board, module, card_count):
        response = client.post(
            APPLY_URL,
            json={
                "moduleId": module.id,
                "planningListId": board.sprint_4,
                "tasks": [
                    {
                        "taskTemplateId": "t-concept",
                        "destinationMode": "STAGED",
                        "stagingPlanningListId": board.someday,
                    }
                ],
            },
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Staging list must have a start date for CONCEPT"
        assert card_count() == 0

    def test_planning_list_on_other_board(self, client, board, module):
        response = client.post(
            "/api/boards/board-2/modules/apply",
            json={"moduleId": module.id, "planningListId": board.sprint_4},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Planning list not found in this board"

    def test_malformed_body(self, client, board):
        response = client.post(
            APPLY_URL,
            json={
                "moduleId": "m",
                "planningListId": "p",
                "tasks": [{"destinationMode": "STAGED"}],
            },
        )

        assert response.status_code == 422
        assert response.json()["code"] == ErrorCode.VALIDATION_ERROR
        assert "tasks" in response.json()["message"]

    def test_unexpected_error_is_opaque(self, client, board, module):
        with patch.object(ModuleApplyService, "apply", side_effect=RuntimeError("secret path")):
            response = client.post(
                APPLY_URL, json={"moduleId": module.id, "planningListId": board.sprint_4}
            )

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == ErrorCode.INTERNAL_ERROR
        assert data["message"] == "Failed to apply module"
        assert "secret path" not in str(data)


class TestHealth:
    """Test the health endpoint."""

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}
