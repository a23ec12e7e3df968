import pytest
from fastapi.testclient import TestClient

from app import app
from dispatcher import RelayDispatcher, relay_dispatcher
from registry import ConnectionRegistry, room_registry


@pytest.fixture
def registry():
    """Fresh two-seat registry, independent from the app's shared one."""
    return ConnectionRegistry(capacity=2)


@pytest.fixture
def dispatcher(registry):
    return RelayDispatcher(registry, require_token=False, access_token="", default_room="default")


@pytest.fixture
def connected(registry):
    """Register connection ids as live and return them."""
    def _connect(*connection_ids):
        for conn_id in connection_ids:
            registry.connect(conn_id)
        return connection_ids
    return _connect


@pytest.fixture(autouse=True)
def reset_shared_state(monkeypatch):
    """The app works on module-level singletons; start each test from a clean slate."""
    room_registry.reset()
    monkeypatch.setattr(relay_dispatcher, "require_token", False)
    monkeypatch.setattr(relay_dispatcher, "access_token", "")
    monkeypatch.setattr(relay_dispatcher, "default_room", "default")
    monkeypatch.setattr(room_registry, "capacity", 2)
    yield
    room_registry.reset()


@pytest.fixture
def client():
    # entering the client shares one event loop between all websocket sessions
    with TestClient(app) as test_client:
        yield test_client
