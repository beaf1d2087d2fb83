"""Shared test fixtures: in-memory database, fake Composio client and an authenticated API client."""

import os
import tempfile

# Settings are read at import time, so the test environment is fixed before
# anything from taskmate is imported.
_runtime_dir = tempfile.mkdtemp(prefix="taskmate-tests-")
os.environ.update({
    "DATABASE_URL": "sqlite://",
    "SECRET_KEY": "test-secret-key",
    "LOG_DIR": os.path.join(_runtime_dir, "logs"),
    "CACHE_DIR": os.path.join(_runtime_dir, "cache"),
    "TOOL_CACHE_SECONDS": "0",
    "FRONTEND_URL": "http://localhost:5173",
    "APP_BASE_URL": "http://localhost:3001",
    "COMPOSIO_API_KEY": "test-composio-key",
    "GMAIL_AUTH_CONFIG_ID": "ac_gmail",
    "GCALENDAR_AUTH_CONFIG_ID": "ac_gcal",
    "GOOGLEMEETINGS_AUTH_CONFIG_ID": "",
    "CANVAS_AUTH_CONFIG_ID": "ac_canvas",
    "CANVAS_API_KEY": "",
    "CANVAS_BASE_URL": "https://canvas.test",
    "ANTHROPIC_API_KEY": "",
    "CLAUDE_API_KEY": "",
    "DEFAULT_TIMEZONE": "America/New_York",
    "GITHUB_CLIENT_ID": "gh-client",
    "GITHUB_CLIENT_SECRET": "gh-secret",
})

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from taskmate.controller.auth import token_for_user
from taskmate.database import Base, SessionLocal, engine, get_db
from taskmate.main import app
from taskmate.model.user import User
from taskmate.service.composio_service import ComposioService, get_composio_service
from taskmate.service.email_analyzer import EmailAnalyzer, get_email_analyzer


def make_tools(*slugs):
    """Raw Composio tool dicts as returned by ``tools.get``."""
    return [{"slug": slug, "description": f"{slug} tool", "input_parameters": {}} for slug in slugs]


class FakeComposio:
    """
    Stand-in for the Composio SDK client.

    ``toolkits`` maps a toolkit name to its tools (or an exception to raise);
    ``results`` maps a tool slug to its result, an exception, or a callable
    taking the arguments.
    """

    def __init__(self, toolkits=None, results=None):
        self.toolkits = toolkits or {}
        self.results = results or {}
        self.calls = []
        self.tools = Mock()
        self.tools.get.side_effect = self._get
        self.tools.execute.side_effect = self._execute
        self.connected_accounts = Mock()

    def _get(self, user_id=None, toolkits=None, search=None, limit=None):
        tools = []
        for toolkit in toolkits or []:
            found = self.toolkits.get(toolkit, [])
            if isinstance(found, Exception):
                raise found
            tools.extend(found)
        return tools

    def _execute(self, slug, user_id=None, arguments=None, **kwargs):
        self.calls.append((slug, user_id, arguments))
        result = self.results.get(slug, {"data": {}})
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(arguments)
        return result

    def executed(self, slug):
        return [call for call in self.calls if call[0] == slug]


@pytest.fixture
def db_session():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def fake_composio():
    return FakeComposio()


@pytest.fixture
def composio(fake_composio):
    return ComposioService(client=fake_composio, api_key="test-composio-key", cache_seconds=0)


@pytest.fixture
def analyzer():
    """Analyzer without a Claude client, so every email gets the fallback analysis."""
    return EmailAnalyzer(client=None, api_key="")


@pytest.fixture
def user(db_session):
    user = User(username="octocat", first_name="Mona", avatar_url="https://avatars.test/octocat.png")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def other_user(db_session):
    user = User(username="hubot")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {token_for_user(user)}"}


@pytest.fixture
def client(db_session, composio, analyzer):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_composio_service] = lambda: composio
    app.dependency_overrides[get_email_analyzer] = lambda: analyzer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
