# piercerhub/crud/team.py
from typing import List

from sqlalchemy.orm import Session

from piercerhub.models.team import TeamMember


def get_active_membership(db: Session, member_user_id: str) -> TeamMember | None:
    """Активное членство аккаунта в чужой команде (если есть)."""
    return db.query(TeamMember).filter(
        TeamMember.member_user_id == member_user_id,
        TeamMember.is_active == True
    ).first()

def get_members(db: Session, owner_user_id: str) -> List[TeamMember]:
    return db.query(TeamMember).filter(
        TeamMember.owner_user_id == owner_user_id
    ).order_by(TeamMember.created_at.desc(), TeamMember.id.desc()).all()

def get_member(db: Session, owner_user_id: str, member_id: int) -> TeamMember | None:
    return db.query(TeamMember).filter(
        TeamMember.id == member_id,
        TeamMember.owner_user_id == owner_user_id
    ).first()

def get_member_by_email(db: Session, owner_user_id: str, email: str) -> TeamMember | None:
    return db.query(TeamMember).filter_by(owner_user_id=owner_user_id, email=email).first()

def create_member(
    db: Session,
    owner_user_id: str,
    member_user_id: str,
    name: str,
    email: str,
    role: str,
    permissions: dict,
) -> TeamMember:
    member = TeamMember(
        owner_user_id=owner_user_id,
        member_user_id=member_user_id,
        name=name,
        email=email,
        role=role,
        permissions=permissions,
        is_active=True,
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    return member

def update_member(db: Session, member: TeamMember, **fields) -> TeamMember:
    for key, value in fields.items():
        setattr(member, key, value)
    db.commit()
    db.refresh(member)
    return member

def delete_member(db: Session, member: TeamMember) -> None:
    db.delete(member)
    db.commit()
