# piercerhub/services/loyalty.py

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from piercerhub.core import locales
from piercerhub.core.config import settings
from piercerhub.core.exceptions import (
    DuplicateEnrollmentError,
    InvalidInputError,
    NotFoundError,
)
from piercerhub.crud import client as crud_client
from piercerhub.crud import loyalty as crud_loyalty
from piercerhub.models.client import Client
from piercerhub.models.loyalty import ClientLoyalty as ClientLoyaltyModel
from piercerhub.models.loyalty import LoyaltyPlan as LoyaltyPlanModel
from piercerhub.models.loyalty import LoyaltyRewardHistory
from piercerhub.schemas.loyalty import (
    BestDiscount,
    ClientLoyalty,
    EnrollmentStatus,
    LoyaltyClient,
    LoyaltyPlanCreate,
    LoyaltyPlanUpdate,
    RedeemRewardRequest,
)
from piercerhub.services import loyalty_engine

logger = logging.getLogger(__name__)

def studio_today() -> date:
    """Текущая дата в часовом поясе студии."""
    return datetime.now(ZoneInfo(settings.STUDIO_TIMEZONE)).date()

# --- Планы ---

def list_plans(db: Session, owner_id: str) -> List[LoyaltyPlanModel]:
    return crud_loyalty.get_plans(db, owner_id)

def get_plan_or_404(db: Session, owner_id: str, plan_id: int) -> LoyaltyPlanModel:
    plan = crud_loyalty.get_plan(db, owner_id, plan_id)
    if not plan:
        raise NotFoundError(locales.ERROR_PLAN_NOT_FOUND)
    return plan

def create_plan(db: Session, owner_id: str, data: LoyaltyPlanCreate) -> LoyaltyPlanModel:
    plan = crud_loyalty.create_plan(db, owner_id, **data.model_dump())
    logger.info(f"Created loyalty plan {plan.id} for owner {owner_id}")
    return plan

def update_plan(db: Session, owner_id: str, plan_id: int, data: LoyaltyPlanUpdate) -> LoyaltyPlanModel:
    plan = get_plan_or_404(db, owner_id, plan_id)
    return crud_loyalty.update_plan(db, plan, **data.model_dump(exclude_unset=True))

def delete_plan(db: Session, owner_id: str, plan_id: int) -> None:
    plan = get_plan_or_404(db, owner_id, plan_id)
    for enrollment in crud_loyalty.get_plan_enrollments(db, owner_id, plan_id):
        db.delete(enrollment)
    crud_loyalty.delete_plan(db, plan)
    logger.info(f"Deleted loyalty plan {plan_id} of owner {owner_id}")

# --- Клиенты ---

def get_client_or_404(db: Session, owner_id: str, client_id: int) -> Client:
    client = crud_client.get_client(db, owner_id, client_id)
    if not client:
        raise NotFoundError(locales.ERROR_CLIENT_NOT_FOUND)
    return client

def register_visit(db: Session, owner_id: str, client_id: int) -> Client:
    """Засчитывает клиенту еще один визит."""
    client = get_client_or_404(db, owner_id, client_id)
    return crud_client.increment_visits(db, client)

def _to_loyalty_client(client: Client) -> LoyaltyClient:
    visits = client.visits or 0
    return LoyaltyClient(
        id=client.id,
        name=client.name,
        phone=client.phone,
        email=client.email,
        visits=visits,
        last_visit=client.last_visit,
        birth_date=client.birth_date,
        loyalty_level=loyalty_engine.determine_loyalty_level(visits),
    )

def list_loyalty_clients(db: Session, owner_id: str) -> List[LoyaltyClient]:
    return [_to_loyalty_client(c) for c in crud_client.get_clients_by_visits(db, owner_id)]

def get_birthday_clients(db: Session, owner_id: str, today: date) -> List[LoyaltyClient]:
    """Клиенты, у которых день рождения в текущем месяце."""
    clients = crud_client.get_clients_with_birthday_in_month(db, owner_id, today.month)
    return [_to_loyalty_client(c) for c in clients]

# --- Матрикулы ---

def get_enrollment_or_404(db: Session, owner_id: str, enrollment_id: int) -> ClientLoyaltyModel:
    enrollment = crud_loyalty.get_enrollment(db, owner_id, enrollment_id)
    if not enrollment:
        raise NotFoundError(locales.ERROR_ENROLLMENT_NOT_FOUND)
    return enrollment

def list_enrollments(db: Session, owner_id: str) -> List[ClientLoyalty]:
    return [ClientLoyalty.model_validate(e) for e in crud_loyalty.get_enrollments(db, owner_id)]

def get_client_enrollments(db: Session, owner_id: str, client_id: int) -> List[ClientLoyalty]:
    enrollments = crud_loyalty.get_client_enrollments(db, owner_id, client_id)
    return [ClientLoyalty.model_validate(e) for e in enrollments]

def get_plan_clients(db: Session, owner_id: str, plan_id: int) -> List[ClientLoyalty]:
    get_plan_or_404(db, owner_id, plan_id)
    enrollments = crud_loyalty.get_plan_enrollments(db, owner_id, plan_id)
    return [ClientLoyalty.model_validate(e) for e in enrollments]

def enroll(db: Session, owner_id: str, client_id: int, plan_id: int) -> ClientLoyaltyModel:
    """Матрикулирует клиента в плане с нулевым прогрессом."""
    get_client_or_404(db, owner_id, client_id)
    get_plan_or_404(db, owner_id, plan_id)

    try:
        enrollment = crud_loyalty.create_enrollment(db, owner_id, client_id, plan_id)
    except IntegrityError:
        db.rollback()
        logger.info(f"Client {client_id} is already enrolled in plan {plan_id}")
        raise DuplicateEnrollmentError()

    logger.info(f"Client {client_id} enrolled in loyalty plan {plan_id} (owner {owner_id})")
    return crud_loyalty.get_enrollment(db, owner_id, enrollment.id)

def unenroll(db: Session, owner_id: str, enrollment_id: int) -> None:
    """Удаляет матрикулу вместе с историей наград. Прогресс не восстановить."""
    enrollment = get_enrollment_or_404(db, owner_id, enrollment_id)
    crud_loyalty.delete_enrollment(db, enrollment)
    logger.info(f"Enrollment {enrollment_id} removed (owner {owner_id})")

def add_points(
    db: Session,
    owner_id: str,
    client_id: int,
    points: int = 0,
    amount_spent: Decimal = Decimal("0"),
    plan_id: int | None = None,
    fanout: bool | None = None,
) -> List[ClientLoyalty]:
    """
    Начисляет баллы и сумму покупки.
    Без plan_id начисление уходит во ВСЕ матрикулы клиента: каждая обновляется
    отдельным commit, поэтому сбой посередине оставляет часть обновленной.
    """
    if fanout is None:
        fanout = settings.LOYALTY_POINTS_FANOUT
    amount_spent = Decimal(str(amount_spent))

    if plan_id is not None:
        enrollments = [
            e for e in crud_loyalty.get_client_enrollments(db, owner_id, client_id)
            if e.plan_id == plan_id
        ]
    elif fanout:
        enrollments = crud_loyalty.get_client_enrollments(db, owner_id, client_id)
    else:
        raise InvalidInputError(locales.ERROR_PLAN_REQUIRED)

    if not enrollments:
        return []

    updated = []
    for enrollment in enrollments:
        crud_loyalty.add_progress(db, enrollment, points, amount_spent)
        updated.append(ClientLoyalty.model_validate(enrollment))

    logger.info(
        f"Added {points} points and {amount_spent} spent to {len(updated)} enrollment(s) "
        f"of client {client_id} (owner {owner_id})"
    )
    return updated

def redeem_reward(
    db: Session, owner_id: str, enrollment_id: int, data: RedeemRewardRequest
) -> LoyaltyRewardHistory:
    """
    Фиксирует выдачу награды. Баллы и сумма покупок НЕ списываются.
    """
    enrollment = get_enrollment_or_404(db, owner_id, enrollment_id)

    record = crud_loyalty.create_reward_history(
        db,
        client_loyalty_id=enrollment.id,
        reward_type=data.reward_type,
        reward_value=data.reward_value,
        description=data.description,
        sale_id=data.sale_id,
    )
    crud_loyalty.mark_reward_claimed(db, enrollment)
    db.commit()
    db.refresh(record)

    logger.info(f"Reward '{data.reward_type}' redeemed for enrollment {enrollment.id} (owner {owner_id})")
    return record

def list_reward_history(db: Session, owner_id: str, enrollment_id: int) -> List[LoyaltyRewardHistory]:
    enrollment = get_enrollment_or_404(db, owner_id, enrollment_id)
    return crud_loyalty.get_reward_history(db, enrollment.id)

# --- Расчеты ---

def get_enrollment_status(db: Session, owner_id: str, enrollment_id: int, today: date) -> EnrollmentStatus:
    enrollment = ClientLoyalty.model_validate(get_enrollment_or_404(db, owner_id, enrollment_id))
    progress = loyalty_engine.get_progress(enrollment)
    return EnrollmentStatus(
        enrollment=enrollment,
        eligibility=loyalty_engine.check_eligibility(enrollment, today),
        progress=progress,
        condition_label=loyalty_engine.condition_label(enrollment, progress),
        reward_label=loyalty_engine.reward_label(enrollment),
    )

def get_best_discount_for_client(db: Session, owner_id: str, client_id: int, today: date) -> BestDiscount | None:
    enrollments = get_client_enrollments(db, owner_id, client_id)
    return loyalty_engine.get_best_discount(enrollments, client_id, today)
