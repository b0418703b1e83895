# This project was developed with assistance from AI tools.
"""Fixtures for functional tests.

Functional tests drive the real app through HTTP against the per-test
SQLite schema. ``cast`` seeds one profile per persona plus an approved
bank agent, so each journey starts from a populated marketplace.
"""

from types import SimpleNamespace

import pytest
from db.enums import RegistrationStatus, UserRole

from src.main import app as real_app
from tests.factories import make_profile, make_property, make_registration

from .personas import (
    ADMIN_USER_ID,
    AGENT_USER_ID,
    BUYER_USER_ID,
    OTHER_BUYER_USER_ID,
    OTHER_SELLER_USER_ID,
    SELLER_USER_ID,
)


@pytest.fixture(autouse=True)
def _clean_overrides():
    """Clear app dependency overrides after each test."""
    yield
    real_app.dependency_overrides.clear()


@pytest.fixture
async def cast(db_session, mock_storage):
    """Profiles for every persona, one active listing and one approved agent."""
    await make_profile(db_session, BUYER_USER_ID, display_name="Amira Ben Ali")
    await make_profile(db_session, OTHER_BUYER_USER_ID, display_name="Karim Haddad")
    await make_profile(db_session, SELLER_USER_ID, role=UserRole.SELLER, display_name="Leila Mansour")
    await make_profile(db_session, OTHER_SELLER_USER_ID, role=UserRole.SELLER)
    await make_profile(db_session, AGENT_USER_ID, role=UserRole.BANK_AGENT, display_name="Sami Gharbi")
    await make_profile(db_session, ADMIN_USER_ID, role=UserRole.ADMIN)

    listing = await make_property(
        db_session, SELLER_USER_ID, images=["http://storage.test/property-images/cover.jpg"]
    )
    agent = await make_registration(db_session, AGENT_USER_ID, status=RegistrationStatus.APPROVED)
    return SimpleNamespace(listing=listing, agent=agent, storage=mock_storage)
