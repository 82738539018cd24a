# tests/api/conftest.py
import httpx
import pytest_asyncio

from attendify.backend.main import app
from attendify.backend.api.dependencies import get_store, get_qr_cache


@pytest_asyncio.fixture
async def api_client(store):
    """Bellek içi depoya bağlı, lifespan çalıştırmayan bir test istemcisi."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_qr_cache] = lambda: None
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
