# piercerhub/services/subscription.py

import json
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import stripe
from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from piercerhub.clients import stripe_billing
from piercerhub.core.config import settings
from piercerhub.core.exceptions import RemoteServiceError
from piercerhub.crud import subscription as crud_subscription
from piercerhub.models.subscription import UserSubscription
from piercerhub.schemas.subscription import SubscriptionAccess, SubscriptionStatus
from piercerhub.schemas.subscription import UserSubscription as UserSubscriptionSchema

logger = logging.getLogger(__name__)

ACTIVE_STRIPE_STATUSES = ("active", "trialing")


def subscription_cache_key(user_id: str) -> str:
    return f"subscription_status:{user_id}"


def _from_timestamp(value: int | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _as_aware(value: datetime | None) -> datetime | None:
    # SQLite отдает даты без таймзоны, считаем их UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _period_end(sub: Dict[str, Any]) -> datetime | None:
    """Конец текущего периода: в новых версиях API он лежит в позициях подписки."""
    if sub.get("current_period_end"):
        return _from_timestamp(sub["current_period_end"])
    items = (sub.get("items") or {}).get("data") or []
    if items:
        return _from_timestamp(items[0].get("current_period_end"))
    return None


def _product_id(sub: Dict[str, Any]) -> str | None:
    items = (sub.get("items") or {}).get("data") or []
    if not items:
        return None
    price = items[0].get("price") or {}
    product = price.get("product")
    if isinstance(product, dict):
        return product.get("id")
    return product


async def _fetch_status(db: Session, user_id: str, email: str) -> SubscriptionStatus:
    customer = await stripe_billing.find_customer_by_email(email)

    if customer is None:
        logger.info(f"No Stripe customer for user {user_id}, keeping trial state.")
        now = datetime.now(timezone.utc)
        subscription = crud_subscription.start_trial(
            db,
            user_id,
            start=now,
            end=now + timedelta(days=settings.TRIAL_DAYS),
            stripe_customer_id=None,
            stripe_subscription_id=None,
            subscription_start_date=None,
            subscription_end_date=None,
        )
        trial_end = _as_aware(subscription.trial_end_date)
        return SubscriptionStatus(
            subscribed=False,
            status="no_customer",
            trial_active=trial_end is not None and trial_end > now,
            trial_end=trial_end,
        )

    customer_id = customer["id"]
    subscriptions = await stripe_billing.list_subscriptions(customer_id, limit=10)
    active = next((s for s in subscriptions if s.get("status") in ACTIVE_STRIPE_STATUSES), None)

    if active is None:
        latest = subscriptions[0] if subscriptions else None
        logger.info(f"No active subscription for user {user_id} (customer {customer_id}).")
        crud_subscription.upsert_subscription(
            db,
            user_id,
            subscription_type="expired",
            stripe_customer_id=customer_id,
            stripe_subscription_id=latest["id"] if latest else None,
            subscription_end_date=_period_end(latest) if latest else None,
        )
        return SubscriptionStatus(
            subscribed=False,
            status=latest.get("status") if latest else "no_subscription",
            trial_active=False,
        )

    is_trialing = active["status"] == "trialing"
    subscription_end = _period_end(active)
    trial_end = _from_timestamp(active.get("trial_end"))

    crud_subscription.upsert_subscription(
        db,
        user_id,
        subscription_type="trial" if is_trialing else "active",
        stripe_customer_id=customer_id,
        stripe_subscription_id=active["id"],
        subscription_start_date=_from_timestamp(active.get("start_date")),
        subscription_end_date=subscription_end,
        trial_start_date=_from_timestamp(active.get("trial_start")),
        trial_end_date=trial_end,
    )
    logger.info(f"Subscription {active['id']} of user {user_id} is {active['status']}.")

    return SubscriptionStatus(
        subscribed=True,
        status=active["status"],
        trial_active=is_trialing,
        trial_end=trial_end,
        subscription_end=subscription_end,
        product_id=_product_id(active),
    )


async def check_subscription(
    db: Session, redis: Redis, user_id: str, email: str, force: bool = False
) -> SubscriptionStatus:
    """
    Сверяет подписку аккаунта со Stripe и обновляет локальную строку.
    Результат кешируется в Redis; force=True идет в Stripe мимо кеша.
    """
    cache_key = subscription_cache_key(user_id)

    if not force:
        try:
            cached = await redis.get(cache_key)
            if cached:
                return SubscriptionStatus.model_validate(json.loads(cached))
        except RedisError:
            logger.warning(f"Redis unavailable while reading subscription status of {user_id}.", exc_info=True)
        except ValueError as e:
            logger.warning(f"Failed to validate cached subscription status: {e}. Checking Stripe.")

    try:
        status = await _fetch_status(db, user_id, email)
    except (stripe.StripeError, RuntimeError) as e:
        logger.error(f"Stripe subscription check failed for user {user_id}: {e}", exc_info=True)
        raise RemoteServiceError() from e

    try:
        await redis.set(cache_key, status.model_dump_json(), ex=settings.SUBSCRIPTION_CACHE_TTL_SECONDS)
    except RedisError:
        logger.warning(f"Redis unavailable while caching subscription status of {user_id}.", exc_info=True)

    return status


def _access_end(subscription: UserSubscription | None) -> datetime | None:
    if subscription is None:
        return None
    if subscription.subscription_type == "trial":
        return _as_aware(subscription.trial_end_date)
    if subscription.subscription_type == "active":
        return _as_aware(subscription.subscription_end_date)
    return None


def has_active_access(subscription: UserSubscription | None, now: datetime) -> bool:
    """Доступ открыт, пока не истек пробный период или оплаченный период."""
    end = _access_end(subscription)
    return end is not None and end > now


def days_remaining(subscription: UserSubscription | None, now: datetime) -> int:
    end = _access_end(subscription)
    if end is None:
        return 0
    days = math.ceil((end - now).total_seconds() / 86400)
    return max(0, days)


def get_subscription_access(db: Session, user_id: str, now: datetime | None = None) -> SubscriptionAccess:
    if now is None:
        now = datetime.now(timezone.utc)
    subscription = crud_subscription.get_subscription(db, user_id)
    subscription_type = subscription.subscription_type if subscription else None
    return SubscriptionAccess(
        subscription=UserSubscriptionSchema.model_validate(subscription) if subscription else None,
        has_active_access=has_active_access(subscription, now),
        days_remaining=days_remaining(subscription, now),
        is_trial=subscription_type == "trial",
        is_active=subscription_type == "active",
        is_expired=subscription_type == "expired",
    )
