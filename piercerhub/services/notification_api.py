# piercerhub/services/notification_api.py
import math

from sqlalchemy.orm import Session

from piercerhub.core import locales
from piercerhub.core.exceptions import NotFoundError
from piercerhub.crud import notification as crud_notification
from piercerhub.schemas.notification import PaginatedNotifications

def get_paginated(db: Session, user_id: str, page: int, size: int, unread_only: bool) -> PaginatedNotifications:
    """Собирает пагинированный ответ для уведомлений студии."""
    skip = (page - 1) * size

    notifications = crud_notification.get_notifications(
        db, user_id=user_id, skip=skip, limit=size, unread_only=unread_only
    )
    total_items = crud_notification.count_notifications(db, user_id=user_id, unread_only=unread_only)
    total_pages = math.ceil(total_items / size) if total_items > 0 else 1

    return PaginatedNotifications(
        total_items=total_items,
        total_pages=total_pages,
        current_page=page,
        size=size,
        items=notifications
    )

def mark_as_read(db: Session, user_id: str, notification_id: int):
    notification = crud_notification.mark_notification_as_read(db, user_id=user_id, notification_id=notification_id)
    if notification is None:
        raise NotFoundError(locales.ERROR_NOTIFICATION_NOT_FOUND)
    return notification

def mark_all_as_read(db: Session, user_id: str):
    crud_notification.mark_all_notifications_as_read(db, user_id=user_id)
