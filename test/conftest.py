import os
import logging

import pytest
import pytest_asyncio

# The test client talks plain HTTP and must get the session cookie back
os.environ["SECURE_COOKIES"] = "false"
os.environ.pop("REDIS_URL", None)

from httpx import AsyncClient, ASGITransport
from asgi_lifespan import LifespanManager

from service.service import app


@pytest_asyncio.fixture
async def client():
    async with LifespanManager(app) as manager:
        async with AsyncClient(transport=ASGITransport(app=manager.app), base_url="http://localhost:5000") as client:
            yield client


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Configure logging for tests."""
    logging.basicConfig(level=logging.INFO)
