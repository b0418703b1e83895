# This project was developed with assistance from AI tools.
"""Tests for the profile store."""

import pytest
from db.enums import UserRole

from src.core.errors import AuthorizationError, NotFoundError, ValidationError
from src.services import profile as profile_service
from tests.factories import make_profile
from tests.functional.personas import BUYER_USER_ID, SELLER_USER_ID, admin, seller


async def test_ensure_profile_creates_buyer_by_default(db_session):
    profile = await profile_service.ensure_profile(db_session, BUYER_USER_ID, "Amira")
    assert profile.role == UserRole.BUYER
    assert profile.display_name == "Amira"


async def test_ensure_profile_is_idempotent(db_session):
    first = await profile_service.ensure_profile(
        db_session, SELLER_USER_ID, "Leila", role=UserRole.SELLER
    )
    again = await profile_service.ensure_profile(
        db_session, SELLER_USER_ID, "Someone else", role=UserRole.BUYER
    )
    assert again.id == first.id
    assert again.role == UserRole.SELLER
    assert again.display_name == "Leila"


@pytest.mark.parametrize("role", [UserRole.BANK_AGENT, UserRole.ADMIN])
async def test_privileged_roles_cannot_be_self_assigned(db_session, role):
    with pytest.raises(ValidationError, match="cannot be self-assigned"):
        await profile_service.ensure_profile(db_session, BUYER_USER_ID, "Amira", role=role)


async def test_update_profile_ignores_role(db_session):
    await make_profile(db_session, BUYER_USER_ID)
    profile = await profile_service.update_profile(
        db_session, BUYER_USER_ID, city="Sfax", role=UserRole.ADMIN
    )
    assert profile.city == "Sfax"
    assert profile.role == UserRole.BUYER


async def test_update_unknown_profile(db_session):
    with pytest.raises(NotFoundError):
        await profile_service.update_profile(db_session, "ghost", city="Sfax")


async def test_set_role_requires_admin(db_session):
    await make_profile(db_session, BUYER_USER_ID)
    with pytest.raises(AuthorizationError):
        await profile_service.set_role(db_session, seller(), BUYER_USER_ID, UserRole.ADMIN)

    promoted = await profile_service.set_role(
        db_session, admin(), BUYER_USER_ID, UserRole.SELLER
    )
    assert promoted.role == UserRole.SELLER


async def test_list_profiles_filters_by_role(db_session):
    await make_profile(db_session, BUYER_USER_ID)
    await make_profile(db_session, SELLER_USER_ID, role=UserRole.SELLER)

    everyone, total = await profile_service.list_profiles(db_session)
    sellers, seller_total = await profile_service.list_profiles(db_session, role=UserRole.SELLER)

    assert total == 2
    assert {p.id for p in everyone} == {BUYER_USER_ID, SELLER_USER_ID}
    assert seller_total == 1
    assert sellers[0].id == SELLER_USER_ID
