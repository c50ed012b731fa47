# tests/test_effective_user.py

import json

import pytest
from sqlalchemy.exc import OperationalError

from piercerhub.core.exceptions import RemoteServiceError
from piercerhub.core.permissions import (
    DEFAULT_MEMBER_PERMISSIONS,
    OWNER_PERMISSIONS,
    has_permission,
    normalize_permissions,
)
from piercerhub.services import effective_user
from piercerhub.services.effective_user import (
    get_team_context,
    invalidate_team_context,
    resolve_effective_user_id,
    team_context_cache_key,
)
from tests.constants import MEMBER_ID, OWNER_ID


# --- Права ---

def test_has_permission_is_strict():
    permissions = {"pos": True, "clients": "true", "reports": 1, "settings": False}

    assert has_permission(permissions, "pos") is True
    assert has_permission(permissions, "clients") is False
    assert has_permission(permissions, "reports") is False
    assert has_permission(permissions, "settings") is False
    assert has_permission(permissions, "inventory") is False
    assert has_permission(permissions, "unknown") is False


def test_normalize_permissions_fills_defaults():
    assert normalize_permissions(None) == DEFAULT_MEMBER_PERMISSIONS
    assert normalize_permissions({"reports": True, "pos": "yes"}) == {
        "pos": False,
        "clients": True,
        "inventory": False,
        "reports": True,
        "settings": False,
        "appointments": True,
    }


def test_owner_permissions_are_all_true():
    assert set(OWNER_PERMISSIONS) == set(DEFAULT_MEMBER_PERMISSIONS)
    assert all(OWNER_PERMISSIONS.values())


# --- Эффективный пользователь ---

def test_active_member_resolves_to_owner(db_session, team_member):
    assert resolve_effective_user_id(db_session, MEMBER_ID) == OWNER_ID


def test_owner_resolves_to_self(db_session, team_member):
    assert resolve_effective_user_id(db_session, OWNER_ID) == OWNER_ID


def test_inactive_member_resolves_to_self(db_session, team_member):
    team_member.is_active = False
    db_session.commit()

    assert resolve_effective_user_id(db_session, MEMBER_ID) == MEMBER_ID


def test_lookup_failure_falls_back_to_self(db_session, mocker):
    mocker.patch.object(
        effective_user.crud_team, "get_active_membership",
        side_effect=OperationalError("SELECT", {}, Exception("db down")),
    )

    assert resolve_effective_user_id(db_session, MEMBER_ID, fallback_to_self=True) == MEMBER_ID


def test_lookup_failure_raises_without_fallback(db_session, mocker):
    mocker.patch.object(
        effective_user.crud_team, "get_active_membership",
        side_effect=OperationalError("SELECT", {}, Exception("db down")),
    )

    with pytest.raises(RemoteServiceError):
        resolve_effective_user_id(db_session, MEMBER_ID, fallback_to_self=False)


# --- Контекст команды ---

async def test_team_context_for_member(db_session, fake_redis, team_member):
    context = await get_team_context(db_session, fake_redis, MEMBER_ID)

    assert context.is_team_member is True
    assert context.is_owner is False
    assert context.owner_user_id == OWNER_ID
    assert context.member_name == "Ana Recepção"
    assert context.permissions.model_dump() == DEFAULT_MEMBER_PERMISSIONS
    assert team_context_cache_key(MEMBER_ID) in fake_redis.store


async def test_team_context_for_owner(db_session, fake_redis):
    context = await get_team_context(db_session, fake_redis, OWNER_ID)

    assert context.is_owner is True
    assert context.is_team_member is False
    assert context.owner_user_id == OWNER_ID
    assert context.permissions.model_dump() == OWNER_PERMISSIONS


async def test_team_context_is_served_from_cache(db_session, fake_redis, mocker):
    cached = {
        "is_team_member": True,
        "is_owner": False,
        "owner_user_id": "cached-owner",
        "permissions": DEFAULT_MEMBER_PERMISSIONS,
        "member_name": "Cache",
    }
    fake_redis.store[team_context_cache_key(MEMBER_ID)] = json.dumps(cached)
    lookup = mocker.patch.object(effective_user.crud_team, "get_active_membership")

    context = await get_team_context(db_session, fake_redis, MEMBER_ID)

    assert context.owner_user_id == "cached-owner"
    lookup.assert_not_called()


async def test_team_context_fallback_is_not_cached(db_session, fake_redis, mocker):
    mocker.patch.object(
        effective_user.crud_team, "get_active_membership",
        side_effect=OperationalError("SELECT", {}, Exception("db down")),
    )

    context = await get_team_context(db_session, fake_redis, MEMBER_ID, fallback_to_self=True)

    assert context.owner_user_id == MEMBER_ID
    assert fake_redis.store == {}


async def test_team_context_raises_without_fallback(db_session, fake_redis, mocker):
    mocker.patch.object(
        effective_user.crud_team, "get_active_membership",
        side_effect=OperationalError("SELECT", {}, Exception("db down")),
    )

    with pytest.raises(RemoteServiceError):
        await get_team_context(db_session, fake_redis, MEMBER_ID, fallback_to_self=False)


@pytest.mark.parametrize("actor_id, member_active", [
    (MEMBER_ID, True),
    (MEMBER_ID, False),
    (OWNER_ID, True),
])
async def test_team_context_owner_matches_resolver(db_session, fake_redis, team_member, actor_id, member_active):
    team_member.is_active = member_active
    db_session.commit()

    context = await get_team_context(db_session, fake_redis, actor_id)

    assert context.owner_user_id == resolve_effective_user_id(db_session, actor_id)


async def test_invalidate_team_context(fake_redis):
    fake_redis.store[team_context_cache_key(MEMBER_ID)] = "{}"

    await invalidate_team_context(fake_redis, MEMBER_ID)

    assert fake_redis.store == {}
