# tests/test_team_service.py

from unittest.mock import AsyncMock

import httpx
import pytest

from piercerhub.core.exceptions import DuplicateTeamMemberError, NotFoundError, RemoteServiceError
from piercerhub.crud import team as crud_team
from piercerhub.schemas.team import TeamMemberCreate, TeamMemberUpdate, TeamPermissions, TeamPermissionsUpdate
from piercerhub.services import team as team_service
from piercerhub.services.effective_user import team_context_cache_key
from tests.constants import MEMBER_ID, OWNER_ID


@pytest.fixture
def mock_invite(mocker) -> AsyncMock:
    return mocker.patch.object(
        team_service.functions_client, "invoke",
        new_callable=AsyncMock, return_value={"userId": "new-member-id"},
    )


def _invite_error(status_code: int, body: dict) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "http://functions.test/send-team-invite")
    response = httpx.Response(status_code, json=body, request=request)
    return httpx.HTTPStatusError("invite failed", request=request, response=response)


async def test_add_member_without_permissions_gets_default_profile(db_session, fake_redis, mock_invite):
    data = TeamMemberCreate(name="João", email="joao@studio.test", password="segredo123")

    member = await team_service.add_member(db_session, fake_redis, OWNER_ID, data)

    assert member.member_user_id == "new-member-id"
    assert member.owner_user_id == OWNER_ID
    assert member.role == "employee"
    assert member.is_active is True
    assert member.permissions == {
        "pos": True,
        "clients": True,
        "appointments": True,
        "inventory": False,
        "reports": False,
        "settings": False,
    }
    mock_invite.assert_awaited_once_with(
        "send-team-invite",
        {"email": "joao@studio.test", "name": "João", "password": "segredo123"},
    )


async def test_add_member_with_explicit_permissions(db_session, fake_redis, mock_invite):
    data = TeamMemberCreate(
        name="Gerente",
        email="gerente@studio.test",
        password="segredo123",
        role="manager",
        permissions=TeamPermissions(reports=True, inventory=True, settings=True),
    )

    member = await team_service.add_member(db_session, fake_redis, OWNER_ID, data)

    assert member.permissions["reports"] is True
    assert member.permissions["settings"] is True


async def test_add_member_invalidates_cached_context(db_session, fake_redis, mock_invite):
    fake_redis.store[team_context_cache_key("new-member-id")] = "{}"
    data = TeamMemberCreate(name="João", email="joao@studio.test", password="segredo123")

    await team_service.add_member(db_session, fake_redis, OWNER_ID, data)

    assert fake_redis.store == {}


async def test_add_member_duplicate_email(db_session, fake_redis, team_member, mock_invite):
    data = TeamMemberCreate(name="Ana", email=team_member.email, password="segredo123")

    with pytest.raises(DuplicateTeamMemberError) as exc_info:
        await team_service.add_member(db_session, fake_redis, OWNER_ID, data)

    assert exc_info.value.message == "Este email já está cadastrado na equipe"
    mock_invite.assert_not_awaited()


async def test_add_member_invite_error_message_is_surfaced(db_session, fake_redis, mocker):
    mocker.patch.object(
        team_service.functions_client, "invoke",
        new_callable=AsyncMock, side_effect=_invite_error(400, {"error": "Email inválido"}),
    )
    data = TeamMemberCreate(name="João", email="joao@studio.test", password="segredo123")

    with pytest.raises(RemoteServiceError) as exc_info:
        await team_service.add_member(db_session, fake_redis, OWNER_ID, data)

    assert exc_info.value.message == "Email inválido"
    assert crud_team.get_members(db_session, OWNER_ID) == []


async def test_add_member_network_error(db_session, fake_redis, mocker):
    mocker.patch.object(
        team_service.functions_client, "invoke",
        new_callable=AsyncMock, side_effect=httpx.ConnectError("refused"),
    )
    data = TeamMemberCreate(name="João", email="joao@studio.test", password="segredo123")

    with pytest.raises(RemoteServiceError) as exc_info:
        await team_service.add_member(db_session, fake_redis, OWNER_ID, data)

    assert exc_info.value.message == "Erro ao comunicar com o serviço externo"


async def test_update_member_invalidates_context(db_session, fake_redis, team_member):
    fake_redis.store[team_context_cache_key(MEMBER_ID)] = "{}"

    member = await team_service.update_member(
        db_session, fake_redis, OWNER_ID, team_member.id,
        TeamMemberUpdate(permissions=TeamPermissionsUpdate(pos=False)),
    )

    assert member.permissions["pos"] is False
    assert member.permissions["clients"] is True
    assert fake_redis.store == {}


async def test_partial_permission_updates_keep_other_flags(db_session, fake_redis, team_member):
    await team_service.update_member(
        db_session, fake_redis, OWNER_ID, team_member.id,
        TeamMemberUpdate(permissions=TeamPermissionsUpdate(pos=False)),
    )
    member = await team_service.update_member(
        db_session, fake_redis, OWNER_ID, team_member.id,
        TeamMemberUpdate.model_validate({"permissions": {"reports": True}}),
    )

    assert member.permissions == {
        "pos": False,
        "clients": True,
        "inventory": False,
        "reports": True,
        "settings": False,
        "appointments": True,
    }


async def test_update_without_permissions_leaves_them_untouched(db_session, fake_redis, team_member):
    team_member.permissions = {**team_member.permissions, "clients": False}
    db_session.commit()

    member = await team_service.update_member(
        db_session, fake_redis, OWNER_ID, team_member.id, TeamMemberUpdate(name="Ana Souza"),
    )

    assert member.name == "Ana Souza"
    assert member.permissions["clients"] is False


async def test_toggle_member_status(db_session, fake_redis, team_member):
    member = await team_service.toggle_member_status(db_session, fake_redis, OWNER_ID, team_member.id, False)

    assert member.is_active is False
    assert crud_team.get_active_membership(db_session, MEMBER_ID) is None


async def test_remove_member(db_session, fake_redis, team_member):
    await team_service.remove_member(db_session, fake_redis, OWNER_ID, team_member.id)

    assert crud_team.get_members(db_session, OWNER_ID) == []


async def test_other_owner_cannot_touch_member(db_session, fake_redis, team_member):
    with pytest.raises(NotFoundError):
        await team_service.remove_member(db_session, fake_redis, "another-owner", team_member.id)
