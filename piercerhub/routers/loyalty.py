# piercerhub/routers/loyalty.py

from typing import List

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from piercerhub.core.limiter import limiter
from piercerhub.dependencies import (
    get_db,
    get_effective_user_id,
    require_active_subscription,
    require_permission,
)
from piercerhub.schemas.client import ClientVisit
from piercerhub.schemas.loyalty import (
    AddPointsRequest,
    BestDiscount,
    ClientEnrollments,
    ClientLoyalty,
    EnrollmentStatus,
    EnrollRequest,
    LoyaltyClient,
    LoyaltyPlan,
    LoyaltyPlanCreate,
    LoyaltyPlanUpdate,
    LoyaltyRewardHistory,
    RedeemRewardRequest,
)
from piercerhub.services import loyalty as loyalty_service

# Карточки клиентов и планы: право "clients"
router = APIRouter(
    prefix="/loyalty",
    dependencies=[Depends(require_active_subscription), Depends(require_permission("clients"))],
)

# Операции кассы: право "pos"
pos_router = APIRouter(
    prefix="/loyalty",
    dependencies=[Depends(require_active_subscription), Depends(require_permission("pos"))],
)

# --- Планы ---

@router.get("/plans", response_model=List[LoyaltyPlan])
def get_plans(
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    return loyalty_service.list_plans(db, owner_id)

@router.post("/plans", response_model=LoyaltyPlan, status_code=status.HTTP_201_CREATED)
def create_plan(
    data: LoyaltyPlanCreate,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    return loyalty_service.create_plan(db, owner_id, data)

@router.patch("/plans/{plan_id}", response_model=LoyaltyPlan)
def update_plan(
    plan_id: int,
    data: LoyaltyPlanUpdate,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    return loyalty_service.update_plan(db, owner_id, plan_id, data)

@router.delete("/plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_plan(
    plan_id: int,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    loyalty_service.delete_plan(db, owner_id, plan_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/plans/{plan_id}/clients", response_model=List[ClientLoyalty])
def get_plan_clients(
    plan_id: int,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    """Клиенты, матрикулированные в плане."""
    return loyalty_service.get_plan_clients(db, owner_id, plan_id)

# --- Матрикулы ---

@router.get("/enrollments", response_model=List[ClientLoyalty])
def get_enrollments(
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    return loyalty_service.list_enrollments(db, owner_id)

@router.post("/enrollments", response_model=ClientLoyalty, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def enroll_client(
    request: Request,
    data: EnrollRequest,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    return loyalty_service.enroll(db, owner_id, data.client_id, data.plan_id)

@router.delete("/enrollments/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
def unenroll_client(
    enrollment_id: int,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    loyalty_service.unenroll(db, owner_id, enrollment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/enrollments/{enrollment_id}/status", response_model=EnrollmentStatus)
def get_enrollment_status(
    enrollment_id: int,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    """Право на награду, прогресс и подписи для карточки клиента."""
    return loyalty_service.get_enrollment_status(db, owner_id, enrollment_id, loyalty_service.studio_today())

@router.get("/enrollments/{enrollment_id}/history", response_model=List[LoyaltyRewardHistory])
def get_reward_history(
    enrollment_id: int,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    return loyalty_service.list_reward_history(db, owner_id, enrollment_id)

# --- Клиенты ---

@router.get("/clients", response_model=List[LoyaltyClient])
def get_loyalty_clients(
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    """Клиенты студии с уровнем лояльности, самые частые первыми."""
    return loyalty_service.list_loyalty_clients(db, owner_id)

@router.get("/clients/{client_id}/enrollments", response_model=ClientEnrollments)
def get_client_enrollments(
    client_id: int,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    return ClientEnrollments(
        client_id=client_id,
        enrollments=loyalty_service.get_client_enrollments(db, owner_id, client_id),
    )

@router.post("/clients/{client_id}/visits", response_model=ClientVisit)
def register_visit(
    client_id: int,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    return loyalty_service.register_visit(db, owner_id, client_id)

@router.get("/birthdays", response_model=List[LoyaltyClient])
def get_birthday_clients(
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    """Именинники текущего месяца."""
    return loyalty_service.get_birthday_clients(db, owner_id, loyalty_service.studio_today())

# --- Касса ---

@pos_router.post("/clients/{client_id}/points", response_model=List[ClientLoyalty])
@limiter.limit("60/minute")
def add_points(
    request: Request,
    client_id: int,
    data: AddPointsRequest,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    """
    Начисляет баллы и сумму продажи.
    Без plan_id начисление уходит во все матрикулы клиента.
    """
    return loyalty_service.add_points(
        db,
        owner_id,
        client_id,
        points=data.points,
        amount_spent=data.amount_spent,
        plan_id=data.plan_id,
    )

@pos_router.get("/clients/{client_id}/best-discount", response_model=BestDiscount | None)
def get_best_discount(
    client_id: int,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    """Лучшая доступная скидка клиента или null."""
    return loyalty_service.get_best_discount_for_client(db, owner_id, client_id, loyalty_service.studio_today())

@pos_router.post(
    "/enrollments/{enrollment_id}/redeem",
    response_model=LoyaltyRewardHistory,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("30/minute")
def redeem_reward(
    request: Request,
    enrollment_id: int,
    data: RedeemRewardRequest,
    owner_id: str = Depends(get_effective_user_id),
    db: Session = Depends(get_db),
):
    return loyalty_service.redeem_reward(db, owner_id, enrollment_id, data)
