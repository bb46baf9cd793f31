from typing import Any, Dict, List

import structlog
from sqlalchemy.orm import Session

from ..errors import Conflict, NotFound, ValidationError
from ..models.models import WorkCenter, WorkCenterAlternative
from .store import clean_text, conflict_on_integrity_error, require_text


def _dict(wc: WorkCenter) -> Dict[str, Any]:
    return {
        "id": wc.id,
        "name": wc.name,
        "code": wc.code,
        "tag": wc.tag,
        "cost_per_hour": wc.cost_per_hour,
        "capacity_per_hour": wc.capacity_per_hour,
        "time_efficiency_pct": wc.time_efficiency_pct,
        "oee_target_pct": wc.oee_target_pct,
        "status": wc.status,
        "created_at": wc.created_at.isoformat() if wc.created_at else None,
    }


def _get_row(db: Session, work_center_id: int) -> WorkCenter:
    wc = db.query(WorkCenter).filter(WorkCenter.id == work_center_id).first()
    if not wc:
        raise NotFound("Work center not found")
    return wc


def list_work_centers(db: Session) -> List[Dict[str, Any]]:
    rows = db.query(WorkCenter).order_by(WorkCenter.name.asc(), WorkCenter.id.asc()).all()
    return [_dict(wc) for wc in rows]


def get_work_center(db: Session, work_center_id: int) -> Dict[str, Any]:
    return _dict(_get_row(db, work_center_id))


def create_work_center(db: Session, fields: Dict[str, Any]) -> Dict[str, Any]:
    name = require_text(fields.get("name"), "name", "Work center name")
    code = clean_text(fields.get("code"))
    if code and db.query(WorkCenter.id).filter(WorkCenter.code == code).first() is not None:
        raise Conflict("A work center with this code already exists")
    wc = WorkCenter(
        name=name,
        code=code,
        tag=clean_text(fields.get("tag")),
        cost_per_hour=fields.get("cost_per_hour", 0),
        capacity_per_hour=fields.get("capacity_per_hour", 0),
        time_efficiency_pct=fields.get("time_efficiency_pct", 100),
        oee_target_pct=fields.get("oee_target_pct", 0),
        status=clean_text(fields.get("status")) or "active",
    )
    with conflict_on_integrity_error(db, "A work center with this code already exists"):
        db.add(wc)
    structlog.get_logger().info("work_center_created", work_center_id=wc.id)
    return _dict(wc)


def list_alternatives(db: Session, work_center_id: int) -> List[Dict[str, Any]]:
    wc = _get_row(db, work_center_id)
    rows = (
        db.query(WorkCenter)
        .join(WorkCenterAlternative, WorkCenterAlternative.alternative_work_center_id == WorkCenter.id)
        .filter(WorkCenterAlternative.work_center_id == wc.id)
        .order_by(WorkCenter.name.asc())
        .all()
    )
    return [_dict(alt) for alt in rows]


def add_alternative(db: Session, work_center_id: int, *, alternative_work_center_id: int) -> Dict[str, Any]:
    wc = _get_row(db, work_center_id)
    if alternative_work_center_id == wc.id:
        raise ValidationError("A work center cannot be its own alternative", field="alternative_work_center_id")
    alternative = _get_row(db, alternative_work_center_id)
    exists = (
        db.query(WorkCenterAlternative.id)
        .filter(
            WorkCenterAlternative.work_center_id == wc.id,
            WorkCenterAlternative.alternative_work_center_id == alternative.id,
        )
        .first()
    )
    if exists is not None:
        raise Conflict("Alternative already linked")
    link = WorkCenterAlternative(work_center_id=wc.id, alternative_work_center_id=alternative.id)
    with conflict_on_integrity_error(db, "Alternative already linked"):
        db.add(link)
    return _dict(alternative)
