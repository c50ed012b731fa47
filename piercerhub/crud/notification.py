# piercerhub/crud/notification.py
from datetime import datetime, timedelta, timezone
from typing import List

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from piercerhub.models.notification import Notification

def create_notification(
    db: Session,
    user_id: str,
    type: str,
    title: str,
    message: str | None = None,
    related_entity_id: str | None = None,
    action_url: str | None = None,
) -> Notification:
    """Создает новое уведомление для аккаунта."""
    db_notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        related_entity_id=related_entity_id,
        action_url=action_url,
    )
    db.add(db_notification)
    db.commit()
    db.refresh(db_notification)
    return db_notification

def get_notifications(
    db: Session,
    user_id: str,
    skip: int = 0,
    limit: int = 20,
    unread_only: bool = False
) -> List[Notification]:
    """Получает пагинированный список уведомлений."""
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(skip).limit(limit).all()

def count_notifications(db: Session, user_id: str, unread_only: bool = False) -> int:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    return query.count()

def mark_notification_as_read(db: Session, user_id: str, notification_id: int) -> Notification | None:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id
    ).first()
    if notification is None:
        return None
    notification.is_read = True
    db.commit()
    return notification

def mark_all_notifications_as_read(db: Session, user_id: str):
    stmt = update(Notification).where(
        Notification.user_id == user_id,
        Notification.is_read == False
    ).values(is_read=True)
    db.execute(stmt)
    db.commit()

def smart_delete_old_notifications(
    db: Session,
    read_older_than_days: int,
    any_older_than_days: int
) -> int:
    """Удаляет прочитанные старые и любые очень старые уведомления."""
    now = datetime.now(timezone.utc)
    read_threshold = now - timedelta(days=read_older_than_days)
    any_threshold = now - timedelta(days=any_older_than_days)

    result = db.query(Notification).filter(
        or_(
            (Notification.is_read == True) & (Notification.created_at < read_threshold),
            Notification.created_at < any_threshold,
        )
    ).delete(synchronize_session=False)

    db.commit()
    return result

def get_notification_by_type_and_entity(
    db: Session,
    user_id: str,
    type: str,
    related_entity_id: str
) -> Notification | None:
    """
    Ищет конкретное уведомление, чтобы избежать дубликатов.
    """
    return db.query(Notification).filter_by(
        user_id=user_id,
        type=type,
        related_entity_id=related_entity_id
    ).first()
