"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from chathub.chat.hub import ChatHub, hub
from chathub.chat.state import HubState
from chathub.config import HubSettings
from chathub.main import app


@pytest.fixture
def api_client():
    """Provide a TestClient for the main FastAPI app.

    Entered as a context manager so every WebSocket opened through it shares
    one event loop, as connections do under uvicorn.
    """
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def chat_hub():
    """A standalone hub with default limits and empty state."""
    return ChatHub(HubState(), HubSettings())


@pytest.fixture
def reset_global_hub():
    """Wipe the app-wide hub state after a test that used the live app."""
    yield hub
    hub.state.reset()
