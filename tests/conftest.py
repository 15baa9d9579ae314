import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient
from pymongo.errors import ServerSelectionTimeoutError

from app.db.local_cache import LocalCache
from app.models.member import Member
from app.repositories.directory import DirectoryClient
from app.services.membership_service import MembershipLedger
from app.services.quota_service import BusinessClock
from app.services.session_service import SessionContext, SessionManager

TEST_DB = "warakado_test"
STAFF_PASSPHRASE = "test-passphrase"


class FrozenNow:
    """Settable stand-in for the wall clock."""

    def __init__(self, value: datetime):
        self.value = value

    def __call__(self) -> datetime:
        return self.value

    def advance(self, **kwargs) -> None:
        self.value = self.value + timedelta(**kwargs)


class SequentialIds:
    """Deterministic serials, keys and recipe ids."""

    def __init__(self):
        self.serials = 0
        self.keys = 0
        self.recipes = 1_760_000_000_000

    def serial_number(self) -> str:
        self.serials += 1
        return f"WK-{self.serials:04d}"

    def tarot_key(self, length: int = 6) -> str:
        self.keys += 1
        return f"K{self.keys:0{length - 1}d}"

    def recipe_id(self) -> int:
        self.recipes += 1
        return self.recipes


async def _wait_until(predicate, timeout: float = 1.0):
    """Yield to the loop until ``predicate()`` holds."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def wait_until():
    return _wait_until


@pytest.fixture
def frozen_now():
    # 12:00 in Tokyo
    return FrozenNow(datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc))


@pytest.fixture
def clock(frozen_now):
    return BusinessClock("Asia/Tokyo", now=frozen_now)


@pytest.fixture
def ids():
    return SequentialIds()


@pytest.fixture
def cache(tmp_path):
    return LocalCache(tmp_path / "local_cache.json")


@pytest_asyncio.fixture
async def mongo_db():
    client = AsyncMongoMockClient()
    yield client[TEST_DB]


@pytest.fixture
def directory(mongo_db):
    return DirectoryClient(mongo_db, available=True, change_streams=False, poll_interval=0.01)


@pytest.fixture
def offline_directory():
    """Handshake failed: local-only mode."""
    return DirectoryClient(None, available=False)


@pytest.fixture
def failing_directory():
    """Authenticated, but every call fails at the transport."""
    error = ServerSelectionTimeoutError("directory unreachable")
    collection = MagicMock()
    collection.find_one = AsyncMock(side_effect=error)
    collection.insert_one = AsyncMock(side_effect=error)
    collection.update_one = AsyncMock(side_effect=error)
    collection.find = MagicMock(side_effect=error)
    db = MagicMock()
    db.__getitem__.return_value = collection
    return DirectoryClient(db, available=True, change_streams=False)


@pytest.fixture
def context():
    return SessionContext()


def make_ledger(directory, cache, context, ids, clock):
    return MembershipLedger(
        directory,
        cache,
        context,
        ids=ids,
        clock=clock,
        free_tarot_uses=3,
        tarot_key_credits=30,
        tarot_key_length=6,
        points_per_grant=1,
        default_nickname="Guest",
        staff_passphrase=STAFF_PASSPHRASE,
    )


@pytest.fixture
def ledger(directory, cache, context, ids, clock):
    return make_ledger(directory, cache, context, ids, clock)


@pytest.fixture
def offline_ledger(offline_directory, cache, context, ids, clock):
    return make_ledger(offline_directory, cache, context, ids, clock)


@pytest.fixture
def failing_ledger(failing_directory, cache, context, ids, clock):
    return make_ledger(failing_directory, cache, context, ids, clock)


@pytest.fixture
def session_manager(ledger, cache, context):
    return SessionManager(ledger, cache, context)


@pytest.fixture
def sample_member():
    return Member(
        nickname="Hanako",
        email="hanako@example.com",
        gender="female",
        age_group="30s",
        serial_number="WK-1234",
        registered_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
    )


@pytest_asyncio.fixture
async def remote_member(mongo_db, sample_member):
    """``sample_member`` stored in the directory only."""
    await mongo_db["members"].insert_one(sample_member.to_document())
    return sample_member
