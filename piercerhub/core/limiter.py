# piercerhub/core/limiter.py

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from piercerhub.core.config import settings

logger = logging.getLogger(__name__)


def key_func(request: Request) -> str:
    """
    Определяет, как идентифицировать запрос для применения лимита.
    Приоритет: ID аккаунта (если авторизован) -> IP-адрес.
    """
    # actor_id кладет в request.state зависимость аутентификации
    actor_id = getattr(request.state, "actor_id", None)
    if actor_id:
        return str(actor_id)
    return get_remote_address(request)


# 'moving-window' - гибкий алгоритм; хранилище счетчиков задается в настройках
limiter = Limiter(
    key_func=key_func,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="moving-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)
