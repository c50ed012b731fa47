# piercerhub/services/team.py

import logging
from typing import List

import httpx
from redis.asyncio import Redis
from sqlalchemy.orm import Session

from piercerhub.clients.functions import functions_client
from piercerhub.core import locales
from piercerhub.core.exceptions import (
    DuplicateTeamMemberError,
    NotFoundError,
    RemoteServiceError,
)
from piercerhub.core.permissions import DEFAULT_MEMBER_PERMISSIONS, normalize_permissions
from piercerhub.crud import team as crud_team
from piercerhub.models.team import TeamMember
from piercerhub.schemas.team import TeamMemberCreate, TeamMemberUpdate
from piercerhub.services.effective_user import invalidate_team_context

logger = logging.getLogger(__name__)

TEAM_INVITE_FUNCTION = "send-team-invite"


def list_members(db: Session, owner_user_id: str) -> List[TeamMember]:
    return crud_team.get_members(db, owner_user_id)


def _get_member_or_404(db: Session, owner_user_id: str, member_id: int) -> TeamMember:
    member = crud_team.get_member(db, owner_user_id, member_id)
    if not member:
        raise NotFoundError(locales.ERROR_TEAM_MEMBER_NOT_FOUND)
    return member


async def send_team_invite(email: str, name: str, password: str) -> str:
    """
    Создает аккаунт сотрудника через удаленную функцию и возвращает его user id.
    """
    try:
        result = await functions_client.invoke(
            TEAM_INVITE_FUNCTION, {"email": email, "name": name, "password": password}
        )
    except httpx.HTTPStatusError as e:
        # Функция возвращает понятное сообщение в поле error
        try:
            message = e.response.json().get("error")
        except ValueError:
            message = None
        raise RemoteServiceError(message) from e
    except httpx.RequestError as e:
        raise RemoteServiceError() from e

    user_id = result.get("userId")
    if not user_id:
        logger.error(f"Team invite function returned no userId for {email}: {result}")
        raise RemoteServiceError()
    return user_id


async def add_member(db: Session, redis: Redis, owner_user_id: str, data: TeamMemberCreate) -> TeamMember:
    """Приглашает нового сотрудника в команду владельца."""
    if crud_team.get_member_by_email(db, owner_user_id, data.email):
        raise DuplicateTeamMemberError()

    if data.permissions is not None:
        permissions = data.permissions.model_dump()
    else:
        permissions = dict(DEFAULT_MEMBER_PERMISSIONS)

    member_user_id = await send_team_invite(data.email, data.name, data.password)

    member = crud_team.create_member(
        db,
        owner_user_id=owner_user_id,
        member_user_id=member_user_id,
        name=data.name,
        email=data.email,
        role=data.role,
        permissions=normalize_permissions(permissions),
    )
    # Сбрасываем закешированный контекст нового сотрудника
    await invalidate_team_context(redis, member_user_id)
    logger.info(f"Owner {owner_user_id} added team member {member.id} ({member.role}).")
    return member


async def update_member(
    db: Session, redis: Redis, owner_user_id: str, member_id: int, data: TeamMemberUpdate
) -> TeamMember:
    member = _get_member_or_404(db, owner_user_id, member_id)

    fields = data.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in fields and fields["email"] != member.email:
        if crud_team.get_member_by_email(db, owner_user_id, fields["email"]):
            raise DuplicateTeamMemberError()
    if "permissions" in fields:
        # Флаги, не пришедшие в запросе, сохраняют текущие значения
        fields["permissions"] = {**normalize_permissions(member.permissions), **fields["permissions"]}

    member = crud_team.update_member(db, member, **fields)
    await invalidate_team_context(redis, member.member_user_id)
    return member


async def toggle_member_status(
    db: Session, redis: Redis, owner_user_id: str, member_id: int, is_active: bool
) -> TeamMember:
    member = _get_member_or_404(db, owner_user_id, member_id)
    member = crud_team.update_member(db, member, is_active=is_active)
    await invalidate_team_context(redis, member.member_user_id)
    logger.info(f"Team member {member.id} of owner {owner_user_id} set active={is_active}.")
    return member


async def remove_member(db: Session, redis: Redis, owner_user_id: str, member_id: int) -> None:
    member = _get_member_or_404(db, owner_user_id, member_id)
    member_user_id = member.member_user_id
    crud_team.delete_member(db, member)
    await invalidate_team_context(redis, member_user_id)
    logger.info(f"Team member {member_id} removed by owner {owner_user_id}.")
