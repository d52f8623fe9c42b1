"""Shared fixtures: an in-memory MongoDB and an HTTP client bound to the app."""
import uuid
from datetime import datetime

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

TEST_USER_ID = "123123"


@pytest_asyncio.fixture
async def db():
    """Fresh database seeded with the default user (totalCost 0)."""
    client = AsyncMongoMockClient()
    database = client[f"cost_manager_test_{uuid.uuid4().hex}"]
    await database.users.insert_one({
        "id": TEST_USER_ID,
        "first_name": "mosh",
        "last_name": "israeli",
        "birthday": datetime(1990, 1, 1),
        "marital_status": "single",
        "totalCost": 0,
    })
    return database


@pytest_asyncio.fixture
async def client(db):
    from main import app
    from routes import get_database

    app.dependency_overrides[get_database] = lambda: db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client_without_db():
    from main import app

    app.dependency_overrides.clear()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
