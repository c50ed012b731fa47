# piercerhub/models/team.py
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, UniqueConstraint, func

from piercerhub.db.session import Base

class TeamMember(Base):
    __tablename__ = "team_members"
    __table_args__ = (
        UniqueConstraint("owner_user_id", "email", name="uq_team_members_owner_email"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_user_id = Column(String(64), nullable=False, index=True)
    member_user_id = Column(String(64), nullable=False, index=True)

    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    # 'employee', 'manager', 'receptionist'
    role = Column(String, nullable=False, default="employee", server_default="employee")

    # Ровно шесть флагов: pos, clients, inventory, reports, settings, appointments
    permissions = Column(JSON, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False, server_default='true')
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
