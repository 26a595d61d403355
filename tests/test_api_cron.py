"""
Tests for the cron release endpoint.

Tests validate:
- Shared-secret authentication via Bearer token or x-cron-secret header
- Missing configuration is a server error, a bad secret is 401
- A run releases due tasks and reports counts
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from cardflow.api.app import ErrorCode, app
from cardflow.api.deps import get_cron_secret, get_db_path
from cardflow.api.routes.cron import is_authorized
from cardflow.core.db.connection import get_connection, insert_list
from cardflow.core.modules.models import ApplyModuleRequest
from cardflow.core.services.module_apply import ModuleApplyService
from cardflow.core.services.release import ReleaseService

CRON_URL = "/api/cron/release-staged-tasks"
SECRET = "s3cret"


@pytest.fixture
def client(db_path):
    """Test client with the temporary database and a configured secret."""
    app.dependency_overrides[get_db_path] = lambda: db_path
    app.dependency_overrides[get_cron_secret] = lambda: SECRET
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def due_task(db_path, board, make_module):
    """A task staged in a planning block that started long ago, so it is due."""
    with get_connection(db_path) as conn:
        insert_list(conn, board.id, "Sprint 1", "PLANNING", list_id="sprint-1",
                    position=9, start_date="2000-01-10")
        conn.commit()

    module = make_module([{"title": "CONCEPT", "destinationMode": "STAGED"}])
    result = ModuleApplyService(db_path).apply(
        board.id,
        ApplyModuleRequest(module_id=module.id, planning_list_id="sprint-1"),
        now=datetime(2000, 1, 3, tzinfo=timezone.utc),
    )
    return result.tasks[0]


class TestIsAuthorized:
    """Test the shared-secret check."""

    def test_bearer(self):
        assert is_authorized(SECRET, f"Bearer {SECRET}", None)

    def test_header(self):
        assert is_authorized(SECRET, None, SECRET)

    def test_either_may_match(self):
        assert is_authorized(SECRET, "Bearer wrong", SECRET)

    @pytest.mark.parametrize(
        "authorization, header",
        [(None, None), ("Bearer wrong", None), (SECRET, None), ("Basic s3cret", "nope")],
    )
    def test_rejected(self, authorization, header):
        assert not is_authorized(SECRET, authorization, header)


class TestCronAuth:
    """Test authentication of the cron endpoint."""

    def test_unconfigured_secret(self, client):
        app.dependency_overrides[get_cron_secret] = lambda: None
        response = client.post(CRON_URL, headers={"x-cron-secret": SECRET})

        assert response.status_code == 500
        assert response.json()["message"] == "CRON_SECRET environment variable is not configured"

    def test_missing_credentials(self, client):
        response = client.post(CRON_URL)

        assert response.status_code == 401
        assert response.json()["code"] == ErrorCode.UNAUTHORIZED
        assert response.json()["message"] == "Invalid cron secret"

    def test_wrong_secret(self, client):
        response = client.get(CRON_URL, headers={"Authorization": "Bearer guess"})
        assert response.status_code == 401

    @pytest.mark.parametrize("method", ["get", "post"])
    def test_bearer_accepted(self, client, method):
        response = getattr(client, method)(
            CRON_URL, headers={"Authorization": f"Bearer {SECRET}"}
        )
        assert response.status_code == 200

    def test_secret_from_config(self, db_path, monkeypatch):
        """Without overrides the secret comes from CRON_SECRET."""
        monkeypatch.setenv("CRON_SECRET", "from-env")
        app.dependency_overrides[get_db_path] = lambda: db_path
        try:
            response = TestClient(app).post(CRON_URL, headers={"x-cron-secret": "from-env"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200


class TestCronRelease:
    """Test the release run behind the cron endpoint."""

    def test_releases_due_tasks(self, client, board, due_task, fetch_card):
        response = client.post(CRON_URL, headers={"x-cron-secret": SECRET})

        assert response.status_code == 200
        assert response.json() == {"releasedCount": 1, "skippedCount": 0, "failedCount": 0}
        row = fetch_card(due_task.id)
        assert row["list_id"] == board.backlog
        assert row["released_at"] is not None

    def test_second_call_releases_nothing(self, client, due_task):
        headers = {"x-cron-secret": SECRET}
        client.post(CRON_URL, headers=headers)
        response = client.post(CRON_URL, headers=headers)

        assert response.json() == {"releasedCount": 0, "skippedCount": 0, "failedCount": 0}

    def test_run_failure(self, client):
        with patch.object(ReleaseService, "run", side_effect=RuntimeError("database is locked")):
            response = client.post(CRON_URL, headers={"x-cron-secret": SECRET})

        assert response.status_code == 500
        assert response.json()["code"] == ErrorCode.INTERNAL_ERROR
        assert response.json()["message"] == "Failed to process staged task releases"
