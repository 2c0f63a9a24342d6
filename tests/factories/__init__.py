"""
Test Factories Module

Centralized factory functions and fakes for creating test objects.
Provides DRY utilities for Discord mocks, settings, clocks/schedulers and DB seeding.
"""

from .config_factories import (
    DEFAULT_TEST_TIERS,
    ROLE_MEMBER_ID,
    ROLE_SUPREME_ID,
    ROLE_VIP_ID,
    SUPPORT_ROLE_ID,
    make_config,
    make_settings,
    temp_config_file,
)
from .db_factories import make_ticket_metadata, seed_ticket
from .discord_factories import (
    FakeGuild,
    FakeInteraction,
    FakeMember,
    FakeRole,
    FakeTextChannel,
    FakeUser,
    forbidden,
    http_error,
    not_found,
)
from .service_factories import START_MS, FakeClock, FakeScheduler

__all__ = [
    "DEFAULT_TEST_TIERS",
    "ROLE_MEMBER_ID",
    "ROLE_SUPREME_ID",
    "ROLE_VIP_ID",
    "START_MS",
    "SUPPORT_ROLE_ID",
    "FakeClock",
    "FakeGuild",
    "FakeInteraction",
    "FakeMember",
    "FakeRole",
    "FakeScheduler",
    "FakeTextChannel",
    "FakeUser",
    "forbidden",
    "http_error",
    "make_config",
    "make_settings",
    "make_ticket_metadata",
    "not_found",
    "seed_ticket",
    "temp_config_file",
]
