import random

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import build_services
from app.main import app

STAFF_PASSPHRASE = "test-passphrase"


def _services(directory, cache, clock, ids):
    services = build_services(directory, cache, clock=clock, ids=ids, fortune_rng=random.Random(7))
    services.ledger.staff_passphrase = STAFF_PASSPHRASE
    return services


@pytest.fixture
def services(directory, cache, clock, ids):
    return _services(directory, cache, clock, ids)


@pytest.fixture
def offline_services(offline_directory, cache, clock, ids):
    return _services(offline_directory, cache, clock, ids)


async def _client(services):
    # lifespan is not run; services are wired by hand
    app.state.services = services
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest_asyncio.fixture
async def client(services):
    async with await _client(services) as client:
        yield client
    services.admin.stop()
    services.recipes.stop()


@pytest_asyncio.fixture
async def offline_client(offline_services):
    async with await _client(offline_services) as client:
        yield client


@pytest.fixture
def staff_headers():
    return {"X-Staff-Passphrase": STAFF_PASSPHRASE}
