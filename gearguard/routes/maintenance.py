from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_roles
from ..db import get_db
from ..errors import Forbidden
from ..models.models import User
from ..responses import ok
from ..schemas.maintenance import AssignRequest, MaintenanceRequestCreate, NoteCreate, StatusUpdate
from ..services import dashboard, maintenance_service


router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.get("")
def list_requests(
    equipment_id: Optional[int] = None,
    work_center_id: Optional[int] = None,
    assigned_to_user_id: Optional[int] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    rows = maintenance_service.list_requests(
        db,
        equipment_id=equipment_id,
        work_center_id=work_center_id,
        assigned_to_user_id=assigned_to_user_id,
    )
    return ok(rows)


@router.post("", status_code=201)
def create_request(
    payload: MaintenanceRequestCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if payload.created_by_user_id is not None and payload.created_by_user_id != user.id:
        raise Forbidden("Requests can only be created on your own behalf")
    req = maintenance_service.create_request(
        db,
        created_by=user,
        type=payload.type.value,
        subject=payload.subject,
        equipment_id=payload.equipment_id,
        work_center_id=payload.work_center_id,
        team_id=payload.team_id,
        scheduled_date=payload.scheduled_date,
    )
    db.commit()
    return ok(maintenance_service.get_request(db, req.id), "Maintenance request created successfully")


@router.get("/calendar")
def calendar(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return ok(maintenance_service.calendar_entries(db))


@router.get("/summary")
def summary(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return ok(dashboard.summarize(maintenance_service.list_requests(db)))


@router.get("/{request_id}")
def get_request(request_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return ok(maintenance_service.get_request(db, request_id))


@router.delete("/{request_id}")
def delete_request(
    request_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles("manager")),
):
    maintenance_service.delete_request(db, request_id)
    db.commit()
    return ok(None, "Maintenance request deleted successfully")


@router.patch("/{request_id}/assign")
def assign_request(
    request_id: int,
    payload: AssignRequest,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    maintenance_service.assign_request(db, request_id, user_id=payload.user_id)
    db.commit()
    return ok(maintenance_service.get_request(db, request_id), "Request assigned successfully")


@router.patch("/{request_id}/status")
def update_status(
    request_id: int,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    maintenance_service.change_status(
        db,
        request_id,
        actor=user,
        status=payload.status.value,
        duration_hours=payload.duration_hours,
    )
    db.commit()
    return ok(maintenance_service.get_request(db, request_id), "Status updated successfully")


@router.get("/{request_id}/notes")
def list_notes(request_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return ok(maintenance_service.list_notes(db, request_id))


@router.post("/{request_id}/notes", status_code=201)
def add_note(
    request_id: int,
    payload: NoteCreate,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    note = maintenance_service.add_note(db, request_id, message=payload.message)
    db.commit()
    return ok(note, "Note added successfully")
