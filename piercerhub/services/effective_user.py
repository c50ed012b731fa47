# piercerhub/services/effective_user.py
"""
Эффективный пользователь и права команды.

Все данные студии принадлежат владельцу аккаунта. Сотрудник работает с
данными владельца, поэтому любые выборки и записи фильтруются не по ID
вошедшего аккаунта, а по ID владельца его команды.
"""

import json
import logging
from typing import Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from piercerhub.core.config import settings
from piercerhub.core.exceptions import RemoteServiceError
from piercerhub.core.permissions import OWNER_PERMISSIONS, normalize_permissions
from piercerhub.crud import team as crud_team
from piercerhub.models.team import TeamMember
from piercerhub.schemas.team import TeamContext, TeamPermissions

logger = logging.getLogger(__name__)


def _lookup_failed(actor_id: str, fallback_to_self: bool | None) -> None:
    if fallback_to_self is None:
        fallback_to_self = settings.EFFECTIVE_USER_FALLBACK_TO_SELF
    if not fallback_to_self:
        raise RemoteServiceError()
    logger.warning(
        f"Team membership lookup failed for actor {actor_id}. Falling back to self-scope.",
        exc_info=True,
    )


def _lookup_membership(
    db: Session, actor_id: str, fallback_to_self: bool | None
) -> Tuple[TeamMember | None, bool]:
    """
    Активное членство аккаунта в команде.
    Второй элемент - удалось ли прочитать БД (при фолбэке False).
    """
    try:
        return crud_team.get_active_membership(db, member_user_id=actor_id), True
    except SQLAlchemyError:
        db.rollback()
        _lookup_failed(actor_id, fallback_to_self)
        return None, False


def resolve_effective_user_id(db: Session, actor_id: str, fallback_to_self: bool | None = None) -> str:
    """
    Возвращает ID владельца данных для вошедшего аккаунта:
    владельца команды, если аккаунт - активный сотрудник, иначе сам аккаунт.
    """
    membership, _ = _lookup_membership(db, actor_id, fallback_to_self)
    if membership:
        return membership.owner_user_id
    return actor_id


def _owner_context(actor_id: str) -> TeamContext:
    return TeamContext(
        is_team_member=False,
        is_owner=True,
        owner_user_id=actor_id,
        permissions=TeamPermissions(**OWNER_PERMISSIONS),
        member_name=None,
    )


def team_context_cache_key(actor_id: str) -> str:
    return f"team_context:{actor_id}"


async def get_team_context(
    db: Session, redis: Redis, actor_id: str, fallback_to_self: bool | None = None
) -> TeamContext:
    """
    Полный контекст команды для аккаунта (с кешированием в Redis).
    """
    cache_key = team_context_cache_key(actor_id)

    # 1. Пытаемся получить контекст из кеша
    try:
        cached = await redis.get(cache_key)
        if cached:
            return TeamContext.model_validate(json.loads(cached))
    except RedisError:
        logger.warning(f"Redis unavailable while reading team context for {actor_id}.", exc_info=True)
    except ValueError as e:
        logger.warning(f"Failed to validate cached team context: {e}. Resolving fresh context.")

    # 2. Идем в БД
    membership, found = _lookup_membership(db, actor_id, fallback_to_self)
    if not found:
        # Результат фолбэка не кешируем
        return _owner_context(actor_id)

    if membership:
        context = TeamContext(
            is_team_member=True,
            is_owner=False,
            owner_user_id=membership.owner_user_id,
            permissions=TeamPermissions(**normalize_permissions(membership.permissions)),
            member_name=membership.name,
        )
    else:
        context = _owner_context(actor_id)

    # 3. Сохраняем в кеш
    try:
        await redis.set(cache_key, context.model_dump_json(), ex=settings.TEAM_CONTEXT_CACHE_TTL_SECONDS)
    except RedisError:
        logger.warning(f"Redis unavailable while caching team context for {actor_id}.", exc_info=True)

    return context


async def invalidate_team_context(redis: Redis, actor_id: str) -> None:
    try:
        await redis.delete(team_context_cache_key(actor_id))
    except RedisError:
        logger.warning(f"Failed to invalidate team context cache for {actor_id}.", exc_info=True)
