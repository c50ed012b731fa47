# piercerhub/crud/client.py
from datetime import datetime, timezone
from typing import List

from sqlalchemy import extract
from sqlalchemy.orm import Session

from piercerhub.models.client import Client


def get_client(db: Session, user_id: str, client_id: int) -> Client | None:
    """Клиент в рамках одной студии."""
    return db.query(Client).filter(Client.id == client_id, Client.user_id == user_id).first()

def get_clients_by_visits(db: Session, user_id: str) -> List[Client]:
    """Все клиенты студии, самые частые гости первыми."""
    return db.query(Client).filter(Client.user_id == user_id).order_by(Client.visits.desc()).all()

def get_clients_with_birthday_in_month(db: Session, user_id: str, month: int) -> List[Client]:
    return db.query(Client).filter(
        Client.user_id == user_id,
        Client.birth_date.isnot(None),
        extract('month', Client.birth_date) == month
    ).order_by(Client.name.asc()).all()

def get_owner_ids_with_birthdays(db: Session, month: int) -> List[str]:
    rows = db.query(Client.user_id).filter(
        Client.birth_date.isnot(None),
        extract('month', Client.birth_date) == month
    ).distinct().all()
    return [row[0] for row in rows]

def increment_visits(db: Session, client: Client) -> Client:
    client.visits = (client.visits or 0) + 1
    client.last_visit = datetime.now(timezone.utc)
    db.commit()
    db.refresh(client)
    return client
