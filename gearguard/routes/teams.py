from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import User
from ..responses import ok
from ..schemas.teams import TeamCreate, TeamMemberAdd, TeamUpdate
from ..services import team_service


router = APIRouter(prefix="/teams", tags=["teams"])


@router.get("")
def list_teams(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return ok(team_service.list_teams(db))


@router.post("", status_code=201)
def create_team(payload: TeamCreate, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    team = team_service.create_team(db, name=payload.name)
    db.commit()
    return ok(team_service.get_team(db, team.id), "Team created successfully")


# Static paths must be declared before /{team_id}
@router.get("/users/all")
def list_all_users(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return ok(team_service.list_all_users(db))


@router.get("/{team_id}")
def get_team(team_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return ok(team_service.get_team(db, team_id))


@router.put("/{team_id}")
def rename_team(
    team_id: int,
    payload: TeamUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    team_service.rename_team(db, team_id, name=payload.name)
    db.commit()
    return ok(team_service.get_team(db, team_id), "Team updated successfully")


@router.delete("/{team_id}")
def delete_team(team_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    team_service.delete_team(db, team_id)
    db.commit()
    return ok(None, "Team deleted successfully")


@router.post("/{team_id}/members", status_code=201)
def add_member(
    team_id: int,
    payload: TeamMemberAdd,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    team_service.add_member(db, team_id, user_id=payload.user_id)
    db.commit()
    return ok(team_service.get_team(db, team_id), "Member added successfully")


@router.delete("/{team_id}/members/{user_id}")
def remove_member(
    team_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    team_service.remove_member(db, team_id, user_id=user_id)
    db.commit()
    return ok(None, "Member removed successfully")


@router.get("/{team_id}/available-users")
def available_users(team_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return ok(team_service.list_available_users(db, team_id))
