import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Ensure project root is on sys.path for CI environments where
# Python might not automatically include it.
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from services.db.database import Database
from services.ticket_service import TicketLifecycleService
from tests.factories import (
    ROLE_MEMBER_ID,
    ROLE_SUPREME_ID,
    ROLE_VIP_ID,
    SUPPORT_ROLE_ID,
    FakeClock,
    FakeGuild,
    FakeMember,
    FakeRole,
    FakeScheduler,
    make_settings,
)


@pytest_asyncio.fixture()
async def temp_db(tmp_path):
    """Initialize Database to a temporary file for isolation across tests."""
    orig_path = Database._db_path
    orig_initialized = Database._initialized

    Database._initialized = False
    db_file = tmp_path / "test.db"
    await Database.initialize(str(db_file))

    assert Database._initialized is True
    assert Database._db_path == str(db_file)

    yield str(db_file)

    Database._db_path = orig_path
    Database._initialized = orig_initialized


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return FakeScheduler(clock)


@pytest.fixture
def guild():
    """Guild with the support role, the three tier roles and one owner member."""
    g = FakeGuild(guild_id=1)
    g.add_role(FakeRole(SUPPORT_ROLE_ID, "Support"))
    g.add_role(FakeRole(ROLE_MEMBER_ID, "Member"))
    g.add_role(FakeRole(ROLE_VIP_ID, "VIP"))
    g.add_role(FakeRole(ROLE_SUPREME_ID, "Supreme"))
    return g


@pytest.fixture
def owner(guild):
    return guild.add_member(FakeMember(user_id=1001, name="Alice_Customer"))


@pytest_asyncio.fixture()
async def ticket_service(temp_db, settings, scheduler, clock):
    service = TicketLifecycleService(settings, scheduler=scheduler, clock=clock)
    await service.initialize()
    yield service
    await service.shutdown()
