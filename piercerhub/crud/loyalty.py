# piercerhub/crud/loyalty.py

from datetime import datetime, timezone
from decimal import Decimal
from typing import List

from sqlalchemy.orm import Session, joinedload

from piercerhub.models.loyalty import ClientLoyalty, LoyaltyPlan, LoyaltyRewardHistory

# --- Планы ---

def get_plans(db: Session, user_id: str) -> List[LoyaltyPlan]:
    return db.query(LoyaltyPlan).filter(
        LoyaltyPlan.user_id == user_id
    ).order_by(LoyaltyPlan.created_at.desc(), LoyaltyPlan.id.desc()).all()

def get_plan(db: Session, user_id: str, plan_id: int) -> LoyaltyPlan | None:
    return db.query(LoyaltyPlan).filter(LoyaltyPlan.id == plan_id, LoyaltyPlan.user_id == user_id).first()

def create_plan(db: Session, user_id: str, **fields) -> LoyaltyPlan:
    plan = LoyaltyPlan(user_id=user_id, **fields)
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan

def update_plan(db: Session, plan: LoyaltyPlan, **fields) -> LoyaltyPlan:
    for key, value in fields.items():
        setattr(plan, key, value)
    db.commit()
    db.refresh(plan)
    return plan

def delete_plan(db: Session, plan: LoyaltyPlan) -> None:
    db.delete(plan)
    db.commit()

# --- Матрикулы ---

def _enrollments_query(db: Session, user_id: str):
    return db.query(ClientLoyalty).options(
        joinedload(ClientLoyalty.client), joinedload(ClientLoyalty.plan)
    ).filter(ClientLoyalty.user_id == user_id)

def get_enrollments(db: Session, user_id: str) -> List[ClientLoyalty]:
    """Все матрикулы студии, от новых к старым."""
    return _enrollments_query(db, user_id).order_by(
        ClientLoyalty.created_at.desc(), ClientLoyalty.id.desc()
    ).all()

def get_client_enrollments(db: Session, user_id: str, client_id: int) -> List[ClientLoyalty]:
    return _enrollments_query(db, user_id).filter(
        ClientLoyalty.client_id == client_id
    ).order_by(ClientLoyalty.created_at.desc(), ClientLoyalty.id.desc()).all()

def get_plan_enrollments(db: Session, user_id: str, plan_id: int) -> List[ClientLoyalty]:
    return _enrollments_query(db, user_id).filter(
        ClientLoyalty.plan_id == plan_id
    ).order_by(ClientLoyalty.created_at.desc(), ClientLoyalty.id.desc()).all()

def get_enrollment(db: Session, user_id: str, enrollment_id: int) -> ClientLoyalty | None:
    return _enrollments_query(db, user_id).filter(ClientLoyalty.id == enrollment_id).first()

def create_enrollment(db: Session, user_id: str, client_id: int, plan_id: int) -> ClientLoyalty:
    """
    Создает матрикулу с нулевым прогрессом.
    IntegrityError по уникальной паре (client_id, plan_id) обрабатывает вызывающий код.
    """
    enrollment = ClientLoyalty(
        user_id=user_id,
        client_id=client_id,
        plan_id=plan_id,
        points=0,
        total_spent=Decimal("0"),
    )
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    return enrollment

def delete_enrollment(db: Session, enrollment: ClientLoyalty) -> None:
    db.delete(enrollment)
    db.commit()

def add_progress(db: Session, enrollment: ClientLoyalty, points: int, amount_spent: Decimal) -> ClientLoyalty:
    """Одно независимое обновление одной матрикулы (свой commit)."""
    enrollment.points = (enrollment.points or 0) + points
    enrollment.total_spent = Decimal(enrollment.total_spent or 0) + amount_spent
    db.commit()
    db.refresh(enrollment)
    return enrollment

# --- История наград ---

def create_reward_history(
    db: Session,
    client_loyalty_id: int,
    reward_type: str,
    reward_value: Decimal | None = None,
    description: str | None = None,
    sale_id: str | None = None,
) -> LoyaltyRewardHistory:
    """
    Добавляет запись в историю наград.
    Требует внешнего вызова db.commit().
    """
    record = LoyaltyRewardHistory(
        client_loyalty_id=client_loyalty_id,
        reward_type=reward_type,
        reward_value=reward_value,
        description=description,
        sale_id=sale_id,
    )
    db.add(record)
    return record

def mark_reward_claimed(db: Session, enrollment: ClientLoyalty) -> None:
    """Увеличивает счетчик наград. Требует внешнего вызова db.commit()."""
    enrollment.rewards_claimed = (enrollment.rewards_claimed or 0) + 1
    enrollment.last_reward_at = datetime.now(timezone.utc)

def get_reward_history(db: Session, client_loyalty_id: int) -> List[LoyaltyRewardHistory]:
    return db.query(LoyaltyRewardHistory).filter(
        LoyaltyRewardHistory.client_loyalty_id == client_loyalty_id
    ).order_by(LoyaltyRewardHistory.redeemed_at.desc(), LoyaltyRewardHistory.id.desc()).all()
