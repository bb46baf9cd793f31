"""
Maintenance request lifecycle.

A request moves new -> in_progress -> repaired, or to scrap from any
non-terminal state. Assignment and status changes are written with a
conditional UPDATE so two concurrent callers cannot both win.
"""
import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import structlog
from sqlalchemy import or_, update
from sqlalchemy.orm import Session, aliased

from ..errors import Conflict, Forbidden, NotFound, ValidationError
from ..models.models import Equipment, MaintenanceRequest, Note, Team, User, WorkCenter
from .store import clean_text, conflict_on_integrity_error, require_text, utcnow


REQUEST_TYPES = ("corrective", "preventive")
OPEN_STATUSES = ("new", "in_progress")
TERMINAL_STATUSES = ("repaired", "scrap")
SCRAP_ROLES = ("manager", "admin")

_ALLOWED_TRANSITIONS = {
    "new": ("in_progress", "scrap"),
    "in_progress": ("repaired", "scrap"),
    "repaired": (),
    "scrap": (),
}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _detail_query(db: Session):
    assignee = aliased(User)
    creator = aliased(User)
    return (
        db.query(
            MaintenanceRequest,
            Equipment.name,
            Equipment.department,
            Equipment.assigned_employee_name,
            WorkCenter.name,
            Team.name,
            assignee.name,
            creator.name,
        )
        .outerjoin(Equipment, MaintenanceRequest.equipment_id == Equipment.id)
        .outerjoin(WorkCenter, MaintenanceRequest.work_center_id == WorkCenter.id)
        .outerjoin(Team, MaintenanceRequest.team_id == Team.id)
        .outerjoin(assignee, MaintenanceRequest.assigned_to_user_id == assignee.id)
        .outerjoin(creator, MaintenanceRequest.created_by_user_id == creator.id)
    )


def _detail_dict(row) -> Dict[str, Any]:
    (req, equipment_name, department, employee_name,
     work_center_name, team_name, assigned_to_name, created_by_name) = row
    return {
        "id": req.id,
        "type": req.type,
        "subject": req.subject,
        "equipment_id": req.equipment_id,
        "work_center_id": req.work_center_id,
        "team_id": req.team_id,
        "scheduled_date": _iso(req.scheduled_date),
        "status": req.status,
        "assigned_to_user_id": req.assigned_to_user_id,
        "duration_hours": req.duration_hours,
        "created_by_user_id": req.created_by_user_id,
        "created_at": _iso(req.created_at),
        "updated_at": _iso(req.updated_at),
        "equipment_name": equipment_name,
        "department": department,
        "assigned_employee_name": employee_name,
        "work_center_name": work_center_name,
        "team_name": team_name,
        "assigned_to_name": assigned_to_name,
        "created_by_name": created_by_name,
    }


def _get_row(db: Session, request_id: int) -> MaintenanceRequest:
    req = db.query(MaintenanceRequest).filter(MaintenanceRequest.id == request_id).first()
    if not req:
        raise NotFound("Maintenance request not found")
    return req


def list_requests(
    db: Session,
    *,
    equipment_id: Optional[int] = None,
    work_center_id: Optional[int] = None,
    assigned_to_user_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    query = _detail_query(db)
    if equipment_id is not None:
        query = query.filter(MaintenanceRequest.equipment_id == equipment_id)
    if work_center_id is not None:
        query = query.filter(MaintenanceRequest.work_center_id == work_center_id)
    if assigned_to_user_id is not None:
        query = query.filter(MaintenanceRequest.assigned_to_user_id == assigned_to_user_id)
    rows = query.order_by(MaintenanceRequest.created_at.desc(), MaintenanceRequest.id.desc()).all()
    return [_detail_dict(row) for row in rows]


def get_request(db: Session, request_id: int) -> Dict[str, Any]:
    row = _detail_query(db).filter(MaintenanceRequest.id == request_id).first()
    if not row:
        raise NotFound("Maintenance request not found")
    return _detail_dict(row)


def list_for_equipment(db: Session, equipment_id: int) -> List[Dict[str, Any]]:
    if db.query(Equipment.id).filter(Equipment.id == equipment_id).first() is None:
        raise NotFound("Equipment not found")
    return list_requests(db, equipment_id=equipment_id)


def calendar_entries(db: Session) -> List[Dict[str, Any]]:
    """Requests with a scheduled date, earliest first."""
    rows = (
        db.query(MaintenanceRequest, Equipment.name, WorkCenter.name)
        .outerjoin(Equipment, MaintenanceRequest.equipment_id == Equipment.id)
        .outerjoin(WorkCenter, MaintenanceRequest.work_center_id == WorkCenter.id)
        .filter(MaintenanceRequest.scheduled_date.isnot(None))
        .order_by(MaintenanceRequest.scheduled_date.asc(), MaintenanceRequest.id.asc())
        .all()
    )
    return [
        {
            "id": req.id,
            "subject": req.subject,
            "type": req.type,
            "status": req.status,
            "scheduled_date": _iso(req.scheduled_date),
            "equipment_name": equipment_name,
            "work_center_name": work_center_name,
        }
        for req, equipment_name, work_center_name in rows
    ]


def create_request(
    db: Session,
    *,
    created_by: User,
    type: str,
    subject: str,
    equipment_id: Optional[int] = None,
    work_center_id: Optional[int] = None,
    team_id: Optional[int] = None,
    scheduled_date: Optional[datetime] = None,
) -> MaintenanceRequest:
    subject = require_text(subject, "subject", "Subject")
    type = clean_text(type)
    if type not in REQUEST_TYPES:
        raise ValidationError("Type must be corrective or preventive", field="type")
    if (equipment_id is None) == (work_center_id is None):
        raise ValidationError("Provide exactly one of equipment or work center", field="equipment_id")
    if equipment_id is not None and db.query(Equipment.id).filter(Equipment.id == equipment_id).first() is None:
        raise NotFound("Equipment not found")
    if work_center_id is not None and db.query(WorkCenter.id).filter(WorkCenter.id == work_center_id).first() is None:
        raise NotFound("Work center not found")
    if team_id is not None and db.query(Team.id).filter(Team.id == team_id).first() is None:
        raise NotFound("Team not found")
    if type == "preventive" and scheduled_date is None:
        raise ValidationError("Preventive requests need a scheduled date", field="scheduled_date")

    now = utcnow()
    req = MaintenanceRequest(
        type=type,
        subject=subject,
        equipment_id=equipment_id,
        work_center_id=work_center_id,
        team_id=team_id,
        scheduled_date=scheduled_date,
        status="new",
        created_by_user_id=created_by.id,
        created_at=now,
        updated_at=now,
    )
    with conflict_on_integrity_error(db, "Maintenance request could not be saved"):
        db.add(req)
    structlog.get_logger().info(
        "maintenance_request_created",
        request_id=req.id,
        type=type,
        equipment_id=equipment_id,
        work_center_id=work_center_id,
        created_by=created_by.id,
    )
    return req


def assign_request(db: Session, request_id: int, *, user_id: int) -> MaintenanceRequest:
    """Claim a request for a user. Re-assigning to the same user is a no-op."""
    req = _get_row(db, request_id)
    if req.status not in OPEN_STATUSES:
        raise Conflict("Closed requests cannot be assigned")
    if db.query(User.id).filter(User.id == user_id).first() is None:
        raise NotFound("User not found")
    if req.assigned_to_user_id == user_id:
        return req
    if req.assigned_to_user_id is not None:
        raise Conflict("Request is already assigned to another user")

    result = db.execute(
        update(MaintenanceRequest)
        .where(
            MaintenanceRequest.id == req.id,
            MaintenanceRequest.status.in_(OPEN_STATUSES),
            or_(
                MaintenanceRequest.assigned_to_user_id.is_(None),
                MaintenanceRequest.assigned_to_user_id == user_id,
            ),
        )
        .values(assigned_to_user_id=user_id, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.refresh(req)
    if result.rowcount == 0:
        if req.status not in OPEN_STATUSES:
            raise Conflict("Closed requests cannot be assigned")
        raise Conflict("Request is already assigned to another user")
    structlog.get_logger().info("maintenance_request_assigned", request_id=req.id, user_id=user_id)
    return req


def _transition(db: Session, req: MaintenanceRequest, target: str, **values) -> MaintenanceRequest:
    source = req.status
    result = db.execute(
        update(MaintenanceRequest)
        .where(MaintenanceRequest.id == req.id, MaintenanceRequest.status == source)
        .values(status=target, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    db.refresh(req)
    if result.rowcount == 0:
        raise Conflict(f"Cannot move request from {req.status} to {target}")
    structlog.get_logger().info(
        "maintenance_request_status_changed", request_id=req.id, from_status=source, to_status=target
    )
    return req


def _check_allowed(req: MaintenanceRequest, target: str) -> None:
    if target not in _ALLOWED_TRANSITIONS.get(req.status, ()):
        raise Conflict(f"Cannot move request from {req.status} to {target}")


def start_work(db: Session, request_id: int, *, actor: User) -> MaintenanceRequest:
    req = _get_row(db, request_id)
    _check_allowed(req, "in_progress")
    if req.assigned_to_user_id is None or req.assigned_to_user_id != actor.id:
        raise Forbidden("Only the assigned technician can start this request")
    return _transition(db, req, "in_progress")


def complete(db: Session, request_id: int, *, actor: User, duration_hours: Optional[float]) -> MaintenanceRequest:
    if duration_hours is None or not math.isfinite(duration_hours) or duration_hours <= 0:
        raise ValidationError("Duration must be greater than zero", field="duration_hours")
    req = _get_row(db, request_id)
    _check_allowed(req, "repaired")
    if req.assigned_to_user_id != actor.id:
        raise Forbidden("Only the assigned technician can complete this request")
    return _transition(db, req, "repaired", duration_hours=float(duration_hours))


def scrap(db: Session, request_id: int, *, actor: User) -> MaintenanceRequest:
    req = _get_row(db, request_id)
    _check_allowed(req, "scrap")
    if actor.role not in SCRAP_ROLES:
        raise Forbidden("Only managers can scrap a request")
    return _transition(db, req, "scrap")


def change_status(
    db: Session,
    request_id: int,
    *,
    actor: User,
    status: str,
    duration_hours: Optional[float] = None,
) -> MaintenanceRequest:
    status = clean_text(status)
    if status == "in_progress":
        return start_work(db, request_id, actor=actor)
    if status == "repaired":
        return complete(db, request_id, actor=actor, duration_hours=duration_hours)
    if status == "scrap":
        return scrap(db, request_id, actor=actor)
    req = _get_row(db, request_id)
    raise Conflict(f"Cannot move request from {req.status} to {status}")


def delete_request(db: Session, request_id: int) -> None:
    req = _get_row(db, request_id)
    db.delete(req)
    db.flush()
    structlog.get_logger().info("maintenance_request_deleted", request_id=request_id)


def _note_dict(note: Note) -> Dict[str, Any]:
    return {
        "id": note.id,
        "request_id": note.request_id,
        "message": note.message,
        "created_at": _iso(note.created_at),
    }


def add_note(db: Session, request_id: int, *, message: str) -> Dict[str, Any]:
    req = _get_row(db, request_id)
    message = require_text(message, "message", "Message")
    note = Note(request_id=req.id, message=message, created_at=utcnow())
    db.add(note)
    db.flush()
    return _note_dict(note)


def list_notes(db: Session, request_id: int) -> List[Dict[str, Any]]:
    req = _get_row(db, request_id)
    notes: Iterable[Note] = (
        db.query(Note)
        .filter(Note.request_id == req.id)
        .order_by(Note.created_at.asc(), Note.id.asc())
        .all()
    )
    return [_note_dict(n) for n in notes]
