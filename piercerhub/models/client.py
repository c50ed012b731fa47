# piercerhub/models/client.py

from sqlalchemy import Column, Date, DateTime, Integer, String, func

from piercerhub.db.session import Base

class Client(Base):
    """Клиент студии. Ведется владельцем аккаунта (user_id)."""
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    # ID владельца студии (эффективного пользователя), а не того, кто создал запись
    user_id = Column(String(64), nullable=False, index=True)

    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)

    visits = Column(Integer, default=0, nullable=False, server_default='0')
    last_visit = Column(DateTime(timezone=True), nullable=True)
    birth_date = Column(Date, nullable=True) # Храним только дату, без времени

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
