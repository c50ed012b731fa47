# piercerhub/services/birthday_clients.py

import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from piercerhub.core import locales
from piercerhub.crud import client as crud_client
from piercerhub.crud import notification as crud_notification
from piercerhub.db.session import SessionLocal
from piercerhub.services.loyalty import studio_today

logger = logging.getLogger(__name__)

NOTIFICATION_TYPE = "birthday_client"


def birthday_entity_id(client_id: int, today: date) -> str:
    """Одно уведомление на клиента за месяц."""
    return f"birthday:{client_id}:{today.year}-{today.month:02d}"


def notify_owner_birthday_clients(db: Session, owner_id: str, today: date) -> int:
    created = 0
    for client in crud_client.get_clients_with_birthday_in_month(db, owner_id, today.month):
        entity_id = birthday_entity_id(client.id, today)
        if crud_notification.get_notification_by_type_and_entity(db, owner_id, NOTIFICATION_TYPE, entity_id):
            continue
        crud_notification.create_notification(
            db,
            user_id=owner_id,
            type=NOTIFICATION_TYPE,
            title=locales.NOTIFICATION_BIRTHDAY_TITLE.format(client_name=client.name),
            message=locales.NOTIFICATION_BIRTHDAY_MESSAGE.format(client_name=client.name),
            related_entity_id=entity_id,
            action_url=f"/clients/{client.id}",
        )
        created += 1
    return created


def notify_birthday_clients_task(today: date | None = None):
    """
    Фоновая задача: напоминает студиям об именинниках месяца.
    Ошибка одной студии не останавливает остальные.
    """
    logger.info("--- Starting scheduled job: Birthday Clients ---")
    if today is None:
        today = studio_today()

    with SessionLocal() as db:
        try:
            owner_ids = crud_client.get_owner_ids_with_birthdays(db, today.month)
        except SQLAlchemyError:
            logger.error("Failed to load studios with birthday clients", exc_info=True)
            return

        if not owner_ids:
            logger.info("No birthday clients this month.")

        for owner_id in owner_ids:
            try:
                created = notify_owner_birthday_clients(db, owner_id, today)
                if created:
                    logger.info(f"Created {created} birthday notification(s) for owner {owner_id}.")
            except SQLAlchemyError:
                logger.error(f"Failed to notify birthday clients for owner {owner_id}", exc_info=True)
                db.rollback()

    logger.info("--- Finished scheduled job: Birthday Clients ---")
