# piercerhub/routers/me.py

from fastapi import APIRouter, Depends, HTTPException, Request, status
from redis.asyncio import Redis
from sqlalchemy.orm import Session

from piercerhub.core.limiter import limiter
from piercerhub.core.redis import get_redis_client
from piercerhub.dependencies import (
    get_current_actor_email,
    get_db,
    get_effective_user_id,
    get_team_context_dep,
    require_owner,
)
from piercerhub.schemas.subscription import SubscriptionAccess, SubscriptionStatus
from piercerhub.schemas.team import TeamContext
from piercerhub.services import subscription as subscription_service

router = APIRouter(prefix="/me")

@router.get("/context", response_model=TeamContext)
def get_my_context(context: TeamContext = Depends(get_team_context_dep)):
    """Кто вошел: владелец или сотрудник, чьи данные видны и какие права есть."""
    return context

@router.get("/subscription", response_model=SubscriptionAccess)
def get_my_subscription(
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    """Состояние подписки студии (для сотрудника - подписка владельца)."""
    return subscription_service.get_subscription_access(db, owner_id)

@router.post("/subscription/check", response_model=SubscriptionStatus)
@limiter.limit("10/minute")
async def check_my_subscription(
    request: Request,
    force: bool = False,
    email: str | None = Depends(get_current_actor_email),
    owner: TeamContext = Depends(require_owner),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis_client),
):
    """
    Сверяет подписку со Stripe. Проверять может только сам владелец:
    клиент Stripe ищется по email вошедшего аккаунта.
    """
    if not email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token has no email claim")
    return await subscription_service.check_subscription(db, redis, owner.owner_user_id, email, force=force)
