# piercerhub/schemas/loyalty.py
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, List, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

# --- Условия плана (размеченное объединение по полю type) ---
# Пороги опциональны: отсутствующий или нулевой порог означает "не положено".

class VisitsCondition(BaseModel):
    type: Literal["visits"]
    min_visits: int | None = None

class SpendingCondition(BaseModel):
    type: Literal["spending"]
    min_amount: float | None = None

class PointsCondition(BaseModel):
    type: Literal["points"]
    min_points: int | None = None

class BirthdayCondition(BaseModel):
    type: Literal["birthday"]

LoyaltyCondition = Annotated[
    Union[VisitsCondition, SpendingCondition, PointsCondition, BirthdayCondition],
    Field(discriminator="type"),
]
condition_adapter = TypeAdapter(LoyaltyCondition)

# --- Награды ---

class DiscountReward(BaseModel):
    type: Literal["discount"]
    discount_percentage: float | None = None

class FreeItemReward(BaseModel):
    type: Literal["free_item"]
    free_item_name: str | None = None

class CustomReward(BaseModel):
    type: Literal["custom"]
    custom_description: str | None = None

LoyaltyReward = Annotated[
    Union[DiscountReward, FreeItemReward, CustomReward],
    Field(discriminator="type"),
]
reward_adapter = TypeAdapter(LoyaltyReward)

# --- Планы ---

class LoyaltyPlanCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    # Храним как есть, проверка только в момент расчета
    conditions: dict[str, Any] | None = None
    reward: dict[str, Any] | None = None
    active: bool = True

class LoyaltyPlanUpdate(BaseModel):
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    conditions: dict[str, Any] | None = None
    reward: dict[str, Any] | None = None
    active: bool | None = None

class LoyaltyPlan(BaseModel):
    id: int
    name: str
    description: str
    conditions: Any = None
    reward: Any = None
    active: bool
    created_at: datetime

    class Config:
        from_attributes = True

# --- Матрикулы ---

class LoyaltyClientBrief(BaseModel):
    id: int
    name: str
    phone: str | None = None
    email: str | None = None
    visits: int = 0
    birth_date: date | None = None

    class Config:
        from_attributes = True

class LoyaltyPlanBrief(BaseModel):
    id: int
    name: str
    conditions: Any = None
    reward: Any = None
    active: bool = True

    class Config:
        from_attributes = True

class ClientLoyalty(BaseModel):
    """Матрикула вместе с клиентом и планом - вход для движка лояльности."""
    id: int
    client_id: int
    plan_id: int
    points: int = 0
    total_spent: float = 0.0
    rewards_claimed: int = 0
    last_reward_at: datetime | None = None
    enrolled_at: datetime | None = None
    client: LoyaltyClientBrief | None = None
    plan: LoyaltyPlanBrief | None = None

    class Config:
        from_attributes = True

class EnrollRequest(BaseModel):
    client_id: int
    plan_id: int

class AddPointsRequest(BaseModel):
    points: int = Field(0, ge=0)
    amount_spent: Decimal = Field(Decimal("0"), ge=0)
    # Без плана начисление уходит во все матрикулы клиента (если разрешено настройкой)
    plan_id: int | None = None

class RedeemRewardRequest(BaseModel):
    reward_type: str = Field(..., min_length=1)
    reward_value: Decimal | None = None
    description: str | None = None
    sale_id: str | None = None

class LoyaltyRewardHistory(BaseModel):
    id: int
    client_loyalty_id: int
    reward_type: str
    reward_value: float | None = None
    description: str | None = None
    sale_id: str | None = None
    redeemed_at: datetime

    class Config:
        from_attributes = True

# --- Результаты расчета ---

class Eligibility(BaseModel):
    eligible: bool
    reason: str | None = None
    discount: float | None = None

class BestDiscount(BaseModel):
    discount: float
    plan_name: str
    reason: str

class LoyaltyProgress(BaseModel):
    current: float
    target: float
    percentage: float

class EnrollmentStatus(BaseModel):
    enrollment: ClientLoyalty
    eligibility: Eligibility
    progress: LoyaltyProgress
    condition_label: str
    reward_label: str

class LoyaltyClient(BaseModel):
    id: int
    name: str
    phone: str | None = None
    email: str | None = None
    visits: int
    last_visit: datetime | None = None
    birth_date: date | None = None
    loyalty_level: Literal["novo", "regular", "frequente", "vip"]

class ClientEnrollments(BaseModel):
    client_id: int
    enrollments: List[ClientLoyalty]
