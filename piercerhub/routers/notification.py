# piercerhub/routers/notification.py

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from piercerhub.core.limiter import limiter
from piercerhub.dependencies import (
    get_current_actor_email,
    get_db,
    get_effective_user_id,
    require_active_subscription,
    require_permission,
)
from piercerhub.schemas.notification import (
    AppointmentNotificationRequest,
    DispatchResult,
    PaginatedNotifications,
)
from piercerhub.services import appointment_notification
from piercerhub.services import notification_api as notification_service_api

router = APIRouter(dependencies=[Depends(require_active_subscription)])

@router.get("/notifications", response_model=PaginatedNotifications)
def get_notifications(
    unread_only: bool = Query(False, description="Вернуть только непрочитанные уведомления"),
    page: int = Query(1, ge=1, description="Номер страницы"),
    size: int = Query(20, ge=1, le=100, description="Количество уведомлений на странице"),
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db)
):
    """
    Получает пагинированный список уведомлений студии.
    Используйте ?unread_only=true для получения только новых.
    """
    return notification_service_api.get_paginated(db, owner_id, page, size, unread_only)

@router.post("/notifications/{notification_id}/read", status_code=204)
def read_notification(
    notification_id: int,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db)
):
    """Помечает одно уведомление как прочитанное."""
    notification_service_api.mark_as_read(db, owner_id, notification_id)
    return Response(status_code=204)

@router.post("/notifications/read-all", status_code=204)
def read_all_notifications(
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db)
):
    """Помечает ВСЕ уведомления студии как прочитанные."""
    notification_service_api.mark_all_as_read(db, owner_id)
    return Response(status_code=204)

@router.post(
    "/notifications/appointment",
    response_model=DispatchResult,
    dependencies=[Depends(require_permission("appointments"))],
)
@limiter.limit("20/minute")
async def dispatch_appointment_notification(
    request: Request,
    data: AppointmentNotificationRequest,
    actor_email: str | None = Depends(get_current_actor_email),
):
    """
    Отправляет клиенту подтверждение записи (email + ссылки календаря).
    Без piercer_email в запросе копия уходит на email вошедшего аккаунта.
    """
    return await appointment_notification.send_appointment_notification(data, piercer_email=actor_email)
