# piercerhub/routers/team.py

from typing import List

from fastapi import APIRouter, Depends, Request, Response, status
from redis.asyncio import Redis
from sqlalchemy.orm import Session

from piercerhub.core.limiter import limiter
from piercerhub.core.redis import get_redis_client
from piercerhub.dependencies import get_db, require_active_subscription, require_owner
from piercerhub.schemas.team import (
    TeamContext,
    TeamMember,
    TeamMemberCreate,
    TeamMemberStatusUpdate,
    TeamMemberUpdate,
)
from piercerhub.services import team as team_service

# Управление командой - только владелец аккаунта
router = APIRouter(prefix="/team", dependencies=[Depends(require_active_subscription)])

@router.get("/members", response_model=List[TeamMember])
def get_members(
    owner: TeamContext = Depends(require_owner),
    db: Session = Depends(get_db),
):
    return team_service.list_members(db, owner.owner_user_id)

@router.post("/members", response_model=TeamMember, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def add_member(
    request: Request,
    data: TeamMemberCreate,
    owner: TeamContext = Depends(require_owner),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis_client),
):
    """
    Создает аккаунт сотрудника через функцию приглашения и добавляет его в команду.
    Без явных прав сотрудник получает профиль по умолчанию.
    """
    return await team_service.add_member(db, redis, owner.owner_user_id, data)

@router.patch("/members/{member_id}", response_model=TeamMember)
async def update_member(
    member_id: int,
    data: TeamMemberUpdate,
    owner: TeamContext = Depends(require_owner),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis_client),
):
    return await team_service.update_member(db, redis, owner.owner_user_id, member_id, data)

@router.put("/members/{member_id}/status", response_model=TeamMember)
async def set_member_status(
    member_id: int,
    data: TeamMemberStatusUpdate,
    owner: TeamContext = Depends(require_owner),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis_client),
):
    """Включает или отключает доступ сотрудника."""
    return await team_service.toggle_member_status(db, redis, owner.owner_user_id, member_id, data.is_active)

@router.delete("/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    member_id: int,
    owner: TeamContext = Depends(require_owner),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis_client),
):
    await team_service.remove_member(db, redis, owner.owner_user_id, member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
