# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- A fresh SQLite database per test under pytest's tmp_path
- A registered user and a FastAPI TestClient with a frozen clock
- An ``make_event`` factory for building editor events at fixed offsets
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from code_time.db import create_user, database_connection
from code_time.models import EditorEvent
from code_time.webapp import create_app

FROZEN_TIME = datetime(2025, 1, 1, 18, 0, 0, tzinfo=timezone.utc)
TEST_DAY = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
NINE_AM = TEST_DAY + timedelta(hours=9)


@pytest.fixture()
def make_event():
    """Build an event ``seconds`` after 09:00 UTC on the test day."""

    def _make(seconds=0, language="Ruby", project="test-project", platform="darwin", at=None):
        return EditorEvent(
            timestamp=at if at is not None else NINE_AM + timedelta(seconds=seconds),
            event_type="fileEdited",
            language=language,
            project=project,
            platform=platform,
            editor="vscode",
            relative_file="test.rb",
        )

    return _make


@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "events.sqlite3"


@pytest.fixture()
def user(db_path):
    with database_connection(db_path) as conn:
        return create_user(conn, "dev@example.com", name="Dev")


@pytest.fixture()
def client(db_path):
    app = create_app(db_path=db_path, clock=lambda: FROZEN_TIME)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def auth_headers(user):
    return {"Authorization": f"Bearer {user.token}"}
