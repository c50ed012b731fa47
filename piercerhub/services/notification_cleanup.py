# piercerhub/services/notification_cleanup.py
import logging

from sqlalchemy.exc import SQLAlchemyError

from piercerhub.core.config import settings
from piercerhub.crud import notification as crud_notification
from piercerhub.db.session import SessionLocal

logger = logging.getLogger(__name__)


def cleanup_old_notifications_task() -> int:
    """
    Ежедневная чистка: прочитанные уведомления живут NOTIFICATIONS_READ_RETENTION_DAYS,
    любые остальные - NOTIFICATIONS_MAX_AGE_DAYS. Возвращает число удаленных.
    """
    logger.info("--- Starting scheduled job: Notification Cleanup ---")
    deleted_count = 0
    with SessionLocal() as db:
        try:
            deleted_count = crud_notification.smart_delete_old_notifications(
                db,
                read_older_than_days=settings.NOTIFICATIONS_READ_RETENTION_DAYS,
                any_older_than_days=settings.NOTIFICATIONS_MAX_AGE_DAYS,
            )
        except SQLAlchemyError:
            logger.error("Notification cleanup failed", exc_info=True)
            db.rollback()
    logger.info(f"--- Finished scheduled job: Notification Cleanup ({deleted_count} deleted) ---")
    return deleted_count
