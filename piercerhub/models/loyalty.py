# piercerhub/models/loyalty.py
from sqlalchemy import (
    JSON, Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text,
    UniqueConstraint, func,
)
from sqlalchemy.orm import relationship

from piercerhub.db.session import Base

class LoyaltyPlan(Base):
    __tablename__ = "loyalty_plans"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="", server_default="")

    # Свободные JSON-структуры с полем type. Проверяются только при расчете.
    # conditions: {"type": "visits", "min_visits": 5}
    # reward: {"type": "discount", "discount_percentage": 15}
    conditions = Column(JSON, nullable=True)
    reward = Column(JSON, nullable=True)

    active = Column(Boolean, default=True, nullable=False, server_default='true')
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ClientLoyalty(Base):
    """Матрикула клиента в плане лояльности."""
    __tablename__ = "client_loyalty"
    __table_args__ = (
        UniqueConstraint("client_id", "plan_id", name="uq_client_loyalty_client_plan"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("loyalty_plans.id", ondelete="CASCADE"), nullable=False, index=True)

    points = Column(Integer, default=0, nullable=False, server_default='0')
    total_spent = Column(Numeric(12, 2), default=0, nullable=False, server_default='0')
    rewards_claimed = Column(Integer, default=0, nullable=False, server_default='0')
    last_reward_at = Column(DateTime(timezone=True), nullable=True)

    enrolled_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    client = relationship("Client")
    plan = relationship("LoyaltyPlan")
    rewards_history = relationship(
        "LoyaltyRewardHistory", back_populates="client_loyalty",
        cascade="all, delete-orphan",
    )


class LoyaltyRewardHistory(Base):
    """Неизменяемая запись о выданной награде."""
    __tablename__ = "loyalty_rewards_history"

    id = Column(Integer, primary_key=True, index=True)
    client_loyalty_id = Column(
        Integer, ForeignKey("client_loyalty.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # 'discount', 'free_item', 'custom'
    reward_type = Column(String, nullable=False)
    reward_value = Column(Numeric(12, 2), nullable=True)
    description = Column(Text, nullable=True)
    # ID продажи в кассе, если награда применена к продаже
    sale_id = Column(String, nullable=True)
    redeemed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    client_loyalty = relationship("ClientLoyalty", back_populates="rewards_history")
