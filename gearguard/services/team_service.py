from typing import Any, Dict, List

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..errors import Conflict, InvariantViolation, NotFound
from ..models.models import Equipment, MaintenanceRequest, Team, TeamMember, User
from .store import conflict_on_integrity_error, require_text


_DUPLICATE_TEAM = "A team with this name already exists"
ASSIGNABLE_ROLES = ("technician", "manager")


def _get_row(db: Session, team_id: int) -> Team:
    team = db.query(Team).filter(Team.id == team_id).first()
    if not team:
        raise NotFound("Team not found")
    return team


def _member_dict(user: User, joined_at) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "joined_at": joined_at.isoformat() if joined_at else None,
    }


def list_teams(db: Session) -> List[Dict[str, Any]]:
    member_count = func.count(TeamMember.id)
    rows = (
        db.query(Team, member_count)
        .outerjoin(TeamMember, TeamMember.team_id == Team.id)
        .group_by(Team.id)
        .order_by(Team.name.asc())
        .all()
    )
    return [
        {
            "id": team.id,
            "name": team.name,
            "member_count": int(count or 0),
            "created_at": team.created_at.isoformat() if team.created_at else None,
        }
        for team, count in rows
    ]


def get_team(db: Session, team_id: int) -> Dict[str, Any]:
    team = _get_row(db, team_id)
    rows = (
        db.query(User, TeamMember.created_at)
        .join(TeamMember, TeamMember.user_id == User.id)
        .filter(TeamMember.team_id == team.id)
        .order_by(User.name.asc())
        .all()
    )
    return {
        "id": team.id,
        "name": team.name,
        "created_at": team.created_at.isoformat() if team.created_at else None,
        "members": [_member_dict(user, joined_at) for user, joined_at in rows],
    }


def create_team(db: Session, *, name: str) -> Team:
    name = require_text(name, "name", "Team name")
    if db.query(Team.id).filter(Team.name == name).first() is not None:
        raise Conflict(_DUPLICATE_TEAM)
    team = Team(name=name)
    with conflict_on_integrity_error(db, _DUPLICATE_TEAM):
        db.add(team)
    structlog.get_logger().info("team_created", team_id=team.id)
    return team


def rename_team(db: Session, team_id: int, *, name: str) -> Team:
    team = _get_row(db, team_id)
    name = require_text(name, "name", "Team name")
    if db.query(Team.id).filter(Team.name == name, Team.id != team.id).first() is not None:
        raise Conflict(_DUPLICATE_TEAM)
    team.name = name
    with conflict_on_integrity_error(db, _DUPLICATE_TEAM):
        db.add(team)
    return team


def delete_team(db: Session, team_id: int) -> None:
    """Delete a team and its memberships; open requests lose their team reference."""
    team = _get_row(db, team_id)
    if db.query(Equipment.id).filter(Equipment.maintenance_team_id == team.id).first() is not None:
        raise InvariantViolation("Cannot delete team with assigned equipment")
    db.execute(
        update(MaintenanceRequest)
        .where(MaintenanceRequest.team_id == team.id)
        .values(team_id=None)
        .execution_options(synchronize_session=False)
    )
    db.delete(team)
    db.flush()
    structlog.get_logger().info("team_deleted", team_id=team_id)


def add_member(db: Session, team_id: int, *, user_id: int) -> TeamMember:
    team = _get_row(db, team_id)
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    existing = (
        db.query(TeamMember.id)
        .filter(TeamMember.team_id == team.id, TeamMember.user_id == user.id)
        .first()
    )
    if existing is not None:
        raise Conflict("User is already a member of this team")
    member = TeamMember(team_id=team.id, user_id=user.id)
    with conflict_on_integrity_error(db, "User is already a member of this team", missing="User not found"):
        db.add(member)
    structlog.get_logger().info("team_member_added", team_id=team.id, user_id=user.id)
    return member


def remove_member(db: Session, team_id: int, *, user_id: int) -> None:
    member = (
        db.query(TeamMember)
        .filter(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
        .first()
    )
    if not member:
        raise NotFound("Team member not found")
    db.delete(member)
    db.flush()
    structlog.get_logger().info("team_member_removed", team_id=team_id, user_id=user_id)


def list_all_users(db: Session) -> List[Dict[str, Any]]:
    users = db.query(User).order_by(User.name.asc(), User.id.asc()).all()
    return [{"id": u.id, "name": u.name, "email": u.email, "role": u.role} for u in users]


def list_available_users(db: Session, team_id: int) -> List[Dict[str, Any]]:
    """Technicians and managers who are not yet members of the team."""
    team = _get_row(db, team_id)
    member_ids = select(TeamMember.user_id).where(TeamMember.team_id == team.id)
    users = (
        db.query(User)
        .filter(
            User.role.in_(ASSIGNABLE_ROLES),
            User.is_active.is_(True),
            User.id.not_in(member_ids),
        )
        .order_by(User.name.asc())
        .all()
    )
    return [{"id": u.id, "name": u.name, "email": u.email, "role": u.role} for u in users]
