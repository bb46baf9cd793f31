from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import User
from ..responses import ok
from ..schemas.work_centers import AlternativeCreate, WorkCenterCreate
from ..services import work_center_service


router = APIRouter(prefix="/work-centers", tags=["work-centers"])


@router.get("")
def list_work_centers(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return ok(work_center_service.list_work_centers(db))


@router.post("", status_code=201)
def create_work_center(
    payload: WorkCenterCreate,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    wc = work_center_service.create_work_center(db, payload.model_dump())
    db.commit()
    return ok(wc, "Work center created successfully")


@router.get("/{work_center_id}")
def get_work_center(work_center_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return ok(work_center_service.get_work_center(db, work_center_id))


@router.get("/{work_center_id}/alternatives")
def list_alternatives(work_center_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return ok(work_center_service.list_alternatives(db, work_center_id))


@router.post("/{work_center_id}/alternatives", status_code=201)
def add_alternative(
    work_center_id: int,
    payload: AlternativeCreate,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    alt = work_center_service.add_alternative(
        db, work_center_id, alternative_work_center_id=payload.alternative_work_center_id
    )
    db.commit()
    return ok(alt, "Alternative added successfully")
