# piercerhub/crud/subscription.py
from datetime import datetime

from sqlalchemy.orm import Session

from piercerhub.models.subscription import UserSubscription


def get_subscription(db: Session, user_id: str) -> UserSubscription | None:
    return db.query(UserSubscription).filter(UserSubscription.user_id == user_id).first()

def upsert_subscription(db: Session, user_id: str, **fields) -> UserSubscription:
    """Создает или обновляет единственную строку подписки аккаунта."""
    subscription = get_subscription(db, user_id)
    if subscription is None:
        subscription = UserSubscription(user_id=user_id)
        db.add(subscription)
    for key, value in fields.items():
        setattr(subscription, key, value)
    db.commit()
    db.refresh(subscription)
    return subscription

def start_trial(db: Session, user_id: str, start: datetime, end: datetime, **fields) -> UserSubscription:
    """
    Пробный период без клиента в Stripe.
    Уже выданный период не продлевается: даты ставятся только если их еще нет.
    """
    subscription = get_subscription(db, user_id)
    if subscription is None or subscription.trial_end_date is None:
        fields.update(trial_start_date=start, trial_end_date=end)
    return upsert_subscription(db, user_id, subscription_type="trial", **fields)
