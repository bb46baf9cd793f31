from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import require_roles
from ..db import get_db
from ..errors import NotFound
from ..models.models import User
from ..responses import ok
from ..schemas.auth import UserOut, UserUpdate


router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
def list_users(db: Session = Depends(get_db), _: User = Depends(require_roles("manager"))):
    users = db.query(User).order_by(User.name.asc(), User.id.asc()).all()
    return ok([UserOut.model_validate(u).model_dump(mode="json") for u in users])


@router.patch("/{user_id}")
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles("admin")),
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in changes:
        changes["name"] = changes["name"].strip() or user.name
    if "role" in changes:
        changes["role"] = changes["role"].value
    for key, value in changes.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return ok(UserOut.model_validate(user).model_dump(mode="json"), "User updated successfully")
