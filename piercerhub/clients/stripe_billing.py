# piercerhub/clients/stripe_billing.py
"""
Тонкая обертка над Stripe SDK.

SDK синхронный, поэтому вызовы уходят в рабочий поток через anyio,
чтобы не блокировать цикл событий. Наружу отдаются обычные dict.
"""

from typing import Any, Dict, List

import anyio
import stripe

from piercerhub.core.config import settings


def _api_key() -> str:
    if not settings.STRIPE_SECRET_KEY:
        raise RuntimeError("STRIPE_SECRET_KEY is not set")
    return settings.STRIPE_SECRET_KEY


def _as_dict(obj: Any) -> Dict[str, Any]:
    return obj.to_dict() if hasattr(obj, "to_dict") else dict(obj)


async def find_customer_by_email(email: str) -> Dict[str, Any] | None:
    """Первый клиент Stripe с этим email или None."""
    api_key = _api_key()

    def _find() -> Dict[str, Any] | None:
        customers = stripe.Customer.list(email=email, limit=1, api_key=api_key)
        if not customers.data:
            return None
        return _as_dict(customers.data[0])

    return await anyio.to_thread.run_sync(_find)


async def list_subscriptions(customer_id: str, limit: int = 10) -> List[Dict[str, Any]]:
    """Подписки клиента, от новых к старым (порядок Stripe)."""
    api_key = _api_key()

    def _list() -> List[Dict[str, Any]]:
        subscriptions = stripe.Subscription.list(customer=customer_id, limit=limit, api_key=api_key)
        return [_as_dict(sub) for sub in subscriptions.data]

    return await anyio.to_thread.run_sync(_list)
