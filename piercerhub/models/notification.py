# piercerhub/models/notification.py
from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func

from piercerhub.db.session import Base

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)

    # Тип уведомления: 'loyalty', 'appointment', 'stock'
    type = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=True)

    # ID связанной сущности (клиента, записи и т.д.)
    related_entity_id = Column(String, nullable=True)
    action_url = Column(String, nullable=True)

    is_read = Column(Boolean, default=False, nullable=False, server_default='false')
    created_at = Column(DateTime(timezone=True), server_default=func.now())
