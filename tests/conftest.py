"""
Shared fixtures. Supabase, auth, media storage and the broadcaster are swapped
through app.dependency_overrides.
"""
import pytest
from fastapi.testclient import TestClient

from app.core.dependencies import get_auth_service, get_broadcaster
from app.database.supabase_client import get_auth_client, get_supabase
from app.main import app, limiter
from app.modules.group_messages.media_storage import get_media_storage
from app.modules.realtime.broadcaster import GroupBroadcaster
from tests.fakes import FakeAuthService, FakeStorage, FakeSupabase, make_user


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def broadcaster():
    return GroupBroadcaster()


@pytest.fixture
def users(db):
    """admin, two premium users (u1, u2) and a non-premium user (free)"""
    make_user(db, "admin", role="admin", premium=False)
    make_user(db, "u1", email="U1@Example.com")
    make_user(db, "u2")
    make_user(db, "free", premium=False)
    return db


@pytest.fixture
def client(db, storage, broadcaster):
    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[get_auth_client] = lambda: db
    app.dependency_overrides[get_auth_service] = lambda: FakeAuthService(db)
    app.dependency_overrides[get_media_storage] = lambda: storage
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    limiter.reset()
    # one portal for HTTP and websocket sessions so publishes reach test sockets
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
