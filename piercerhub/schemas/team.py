# piercerhub/schemas/team.py
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, StrictBool, field_validator

from piercerhub.core.permissions import normalize_permissions

TeamRole = Literal["employee", "manager", "receptionist"]

class TeamPermissions(BaseModel):
    """
    Фиксированный набор из шести флагов.
    Значения по умолчанию - консервативный профиль нового сотрудника.
    """
    pos: StrictBool = True
    clients: StrictBool = True
    inventory: StrictBool = False
    reports: StrictBool = False
    settings: StrictBool = False
    appointments: StrictBool = True

class TeamPermissionsUpdate(BaseModel):
    """Частичное изменение прав: неуказанные флаги остаются как были."""
    pos: StrictBool | None = None
    clients: StrictBool | None = None
    inventory: StrictBool | None = None
    reports: StrictBool | None = None
    settings: StrictBool | None = None
    appointments: StrictBool | None = None

class TeamMemberCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    # Пароль передается в функцию приглашения и у нас не хранится
    password: str = Field(..., min_length=6)
    role: TeamRole = "employee"
    permissions: TeamPermissions | None = None

class TeamMemberUpdate(BaseModel):
    name: str | None = Field(None, min_length=1)
    email: EmailStr | None = None
    role: TeamRole | None = None
    permissions: TeamPermissionsUpdate | None = None

class TeamMemberStatusUpdate(BaseModel):
    is_active: bool

class TeamMember(BaseModel):
    id: int
    owner_user_id: str
    member_user_id: str
    name: str
    email: str
    role: str
    permissions: TeamPermissions
    is_active: bool
    created_at: datetime

    @field_validator("permissions", mode="before")
    @classmethod
    def fill_permissions(cls, v):
        # В старых строках набор прав мог быть неполным
        if isinstance(v, TeamPermissions):
            return v
        return normalize_permissions(v)

    class Config:
        from_attributes = True

class TeamContext(BaseModel):
    is_team_member: bool
    is_owner: bool
    owner_user_id: str
    permissions: TeamPermissions
    member_name: str | None = None
