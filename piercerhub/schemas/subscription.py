# piercerhub/schemas/subscription.py
from datetime import datetime
from typing import Literal

from pydantic import BaseModel

class SubscriptionStatus(BaseModel):
    """Ответ проверки подписки в Stripe."""
    subscribed: bool
    status: str
    trial_active: bool
    trial_end: datetime | None = None
    subscription_end: datetime | None = None
    product_id: str | None = None

class UserSubscription(BaseModel):
    subscription_type: Literal["trial", "active", "expired"]
    trial_start_date: datetime | None = None
    trial_end_date: datetime | None = None
    subscription_start_date: datetime | None = None
    subscription_end_date: datetime | None = None

    class Config:
        from_attributes = True

class SubscriptionAccess(BaseModel):
    subscription: UserSubscription | None
    has_active_access: bool
    days_remaining: int
    is_trial: bool
    is_active: bool
    is_expired: bool
