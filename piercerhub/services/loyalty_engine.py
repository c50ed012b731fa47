# piercerhub/services/loyalty_engine.py
"""
Правила программы лояльности.

Чистые функции над уже загруженными матрикулами: без обращений к БД и
без чтения часов. Текущая дата передается явно (today), чтобы расчет
"месяца рождения" был воспроизводимым.

Описания условий и наград хранятся в плане как свободный JSON и
разбираются только здесь. Если структура не разбирается или в ней нет
нужного порога, клиент просто "не положен" - ошибки наружу не выходят.
"""

import logging
from datetime import date
from typing import Iterable

from pydantic import ValidationError

from piercerhub.core import locales
from piercerhub.schemas.loyalty import (
    BestDiscount,
    BirthdayCondition,
    ClientLoyalty,
    CustomReward,
    DiscountReward,
    Eligibility,
    FreeItemReward,
    LoyaltyCondition,
    LoyaltyProgress,
    LoyaltyReward,
    PointsCondition,
    SpendingCondition,
    VisitsCondition,
    condition_adapter,
    reward_adapter,
)

logger = logging.getLogger(__name__)

NOT_ELIGIBLE = Eligibility(eligible=False)

# Уровни клиента по количеству визитов, от высшего к низшему
LOYALTY_LEVELS = (
    ("vip", 10),
    ("frequente", 5),
    ("regular", 1),
    ("novo", 0),
)

REWARD_TYPE_BY_FIELD = (
    ("discount_percentage", "discount"),
    ("free_item_name", "free_item"),
    ("custom_description", "custom"),
)


def parse_condition(raw) -> LoyaltyCondition | None:
    """Разбирает условие плана. Неизвестный тип или мусор -> None."""
    if not raw:
        return None
    try:
        return condition_adapter.validate_python(raw)
    except ValidationError:
        logger.debug(f"Unparseable loyalty condition: {raw!r}")
        return None


def _infer_reward_type(raw):
    # Старые планы хранят награду без поля type
    if not isinstance(raw, dict) or "type" in raw:
        return raw
    for field, reward_type in REWARD_TYPE_BY_FIELD:
        if raw.get(field) is not None:
            return {**raw, "type": reward_type}
    return raw


def parse_reward(raw) -> LoyaltyReward | None:
    if not raw:
        return None
    raw = _infer_reward_type(raw)
    try:
        return reward_adapter.validate_python(raw)
    except ValidationError:
        logger.debug(f"Unparseable loyalty reward: {raw!r}")
        return None


def _format_number(value: float | int) -> str:
    """100.0 -> '100', 99.5 -> '99.5'."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _reward_discount(reward: LoyaltyReward) -> float | None:
    if isinstance(reward, DiscountReward):
        return reward.discount_percentage
    return None


def check_eligibility(enrollment: ClientLoyalty, today: date) -> Eligibility:
    """
    Определяет, может ли клиент прямо сейчас получить награду по этой матрикуле.
    Состояние не хранится: каждый вызов считает заново по текущим значениям.
    """
    if enrollment.plan is None:
        return NOT_ELIGIBLE

    condition = parse_condition(enrollment.plan.conditions)
    reward = parse_reward(enrollment.plan.reward)
    if condition is None or reward is None:
        return NOT_ELIGIBLE

    discount = _reward_discount(reward)

    if isinstance(condition, VisitsCondition):
        if not condition.min_visits:
            return NOT_ELIGIBLE
        client_visits = enrollment.client.visits if enrollment.client else 0
        if client_visits >= condition.min_visits:
            reason = locales.REASON_VISITS.format(min_visits=condition.min_visits)
            return Eligibility(eligible=True, reason=reason, discount=discount)
        return NOT_ELIGIBLE

    if isinstance(condition, SpendingCondition):
        if not condition.min_amount:
            return NOT_ELIGIBLE
        if enrollment.total_spent >= condition.min_amount:
            reason = locales.REASON_SPENDING.format(min_amount=_format_number(condition.min_amount))
            return Eligibility(eligible=True, reason=reason, discount=discount)
        return NOT_ELIGIBLE

    if isinstance(condition, PointsCondition):
        if not condition.min_points:
            return NOT_ELIGIBLE
        if enrollment.points >= condition.min_points:
            reason = locales.REASON_POINTS.format(min_points=condition.min_points)
            return Eligibility(eligible=True, reason=reason, discount=discount)
        return NOT_ELIGIBLE

    if isinstance(condition, BirthdayCondition):
        birth_date = enrollment.client.birth_date if enrollment.client else None
        # Год не учитывается, только календарный месяц
        if birth_date is not None and birth_date.month == today.month:
            return Eligibility(eligible=True, reason=locales.REASON_BIRTHDAY, discount=discount)
        return NOT_ELIGIBLE

    return NOT_ELIGIBLE


def get_best_discount(
    enrollments: Iterable[ClientLoyalty], client_id: int, today: date
) -> BestDiscount | None:
    """
    Лучшая скидка среди всех матрикул клиента.
    Учитываются только "положенные" матрикулы с ненулевой скидкой.
    При равенстве остается первая встреченная (порядок - от новых к старым).
    """
    best: BestDiscount | None = None

    for enrollment in enrollments:
        if enrollment.client_id != client_id:
            continue
        eligibility = check_eligibility(enrollment, today)
        if not eligibility.eligible or not eligibility.discount:
            continue
        if best is None or eligibility.discount > best.discount:
            best = BestDiscount(
                discount=eligibility.discount,
                plan_name=enrollment.plan.name if enrollment.plan else "",
                reason=eligibility.reason or "",
            )

    return best


def get_progress(enrollment: ClientLoyalty) -> LoyaltyProgress:
    """
    Прогресс к порогу для карточки клиента (на право на награду не влияет).
    Процент всегда в диапазоне [0, 100].
    """
    condition = parse_condition(enrollment.plan.conditions if enrollment.plan else None)

    if isinstance(condition, VisitsCondition):
        current = enrollment.client.visits if enrollment.client else 0
        target = condition.min_visits or 1
    elif isinstance(condition, SpendingCondition):
        current = enrollment.total_spent
        target = condition.min_amount or 1
    elif isinstance(condition, PointsCondition):
        current = enrollment.points
        target = condition.min_points or 1
    else:
        return LoyaltyProgress(current=0, target=0, percentage=0)

    percentage = max(0.0, min(current * 100 / target, 100.0))
    return LoyaltyProgress(current=current, target=target, percentage=percentage)


def condition_label(enrollment: ClientLoyalty, progress: LoyaltyProgress | None = None) -> str:
    condition = parse_condition(enrollment.plan.conditions if enrollment.plan else None)
    if condition is None:
        return ""
    if progress is None:
        progress = get_progress(enrollment)

    current, target = progress.current, _format_number(progress.target)
    if isinstance(condition, VisitsCondition):
        return locales.LABEL_VISITS.format(current=_format_number(current), target=target)
    if isinstance(condition, SpendingCondition):
        return locales.LABEL_SPENDING.format(current=current, target=target)
    if isinstance(condition, PointsCondition):
        return locales.LABEL_POINTS.format(current=_format_number(current), target=target)
    if isinstance(condition, BirthdayCondition):
        return locales.LABEL_BIRTHDAY
    return ""


def reward_label(enrollment: ClientLoyalty) -> str:
    reward = parse_reward(enrollment.plan.reward if enrollment.plan else None)

    if isinstance(reward, DiscountReward) and reward.discount_percentage:
        return locales.LABEL_REWARD_DISCOUNT.format(
            discount_percentage=_format_number(reward.discount_percentage)
        )
    if isinstance(reward, FreeItemReward):
        return reward.free_item_name or locales.LABEL_REWARD_FREE_ITEM
    if isinstance(reward, CustomReward):
        return reward.custom_description or locales.LABEL_REWARD_CUSTOM
    return locales.LABEL_REWARD_DEFAULT


def determine_loyalty_level(visits: int) -> str:
    """Определяет уровень клиента по количеству визитов."""
    for level, threshold in LOYALTY_LEVELS:
        if visits >= threshold:
            return level
    return "novo"
