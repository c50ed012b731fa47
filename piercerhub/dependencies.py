# piercerhub/dependencies.py

import logging
from typing import Iterator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from redis.asyncio import Redis
from sqlalchemy.orm import Session

from piercerhub.core import locales
from piercerhub.core.config import settings
from piercerhub.core.exceptions import PermissionDeniedError, SubscriptionRequiredError
from piercerhub.core.permissions import has_permission
from piercerhub.core.redis import get_redis_client
from piercerhub.db.session import SessionLocal
from piercerhub.schemas.team import TeamContext
from piercerhub.services import subscription as subscription_service
from piercerhub.services.effective_user import get_team_context

# --- Инициализация логгера ---
logger = logging.getLogger(__name__)

# --- Схема аутентификации ---
bearer_scheme = HTTPBearer(auto_error=True)

# --- Управление сессией БД ---
def get_db_session_instance() -> Session:
    """Создает и возвращает экземпляр сессии БД."""
    return SessionLocal()

def get_db() -> Iterator[Session]:
    """
    Основная зависимость FastAPI для получения сессии БД.
    """
    db = get_db_session_instance()
    try:
        yield db
    finally:
        db.close()

# --- Аутентификация ---

def _decode_token(token: str) -> dict:
    return jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        audience=settings.JWT_AUDIENCE,
    )

def get_token_payload(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> dict:
    """
    ОБЯЗАТЕЛЬНАЯ зависимость.
    Требует валидный токен провайдера аутентификации. Иначе 401.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = _decode_token(credentials.credentials)
    except JWTError as e:
        logger.warning(f"JWT Error during token decoding: {e}")
        raise credentials_exception

    if not payload.get("sub"):
        logger.warning("Token payload is missing 'sub' (actor id).")
        raise credentials_exception

    # Лимитер считает запросы по аккаунту
    request.state.actor_id = payload["sub"]
    return payload

def get_current_actor_id(payload: dict = Depends(get_token_payload)) -> str:
    """ID вошедшего аккаунта (владелец или сотрудник)."""
    return payload["sub"]

def get_current_actor_email(payload: dict = Depends(get_token_payload)) -> str | None:
    return payload.get("email")

# --- Команда и эффективный пользователь ---

async def get_team_context_dep(
    actor_id: str = Depends(get_current_actor_id),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis_client),
) -> TeamContext:
    return await get_team_context(db, redis, actor_id)

def get_effective_user_id(context: TeamContext = Depends(get_team_context_dep)) -> str:
    """
    ID владельца данных: все выборки и записи студии идут по нему.
    """
    return context.owner_user_id

def require_permission(key: str):
    """
    Фабрика зависимостей: пропускает владельца и сотрудников с правом `key`.
    """
    def dependency(context: TeamContext = Depends(get_team_context_dep)) -> TeamContext:
        if context.is_owner:
            return context
        if not has_permission(context.permissions.model_dump(), key):
            logger.warning(f"Permission '{key}' denied for team member of owner {context.owner_user_id}.")
            raise PermissionDeniedError()
        return context

    return dependency

def require_owner(context: TeamContext = Depends(get_team_context_dep)) -> TeamContext:
    """Управление командой доступно только владельцу аккаунта."""
    if not context.is_owner:
        logger.warning(f"Owner-only action attempted by team member of owner {context.owner_user_id}.")
        raise PermissionDeniedError(locales.ERROR_OWNER_ONLY)
    return context

def require_active_subscription(
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
) -> str:
    """
    Закрывает бизнес-разделы, если у владельца студии нет активной подписки.
    Сотрудник пользуется подпиской своего владельца.
    """
    access = subscription_service.get_subscription_access(db, owner_id)
    if not access.has_active_access:
        logger.info(f"Access blocked for owner {owner_id}: no active subscription.")
        raise SubscriptionRequiredError()
    return owner_id
