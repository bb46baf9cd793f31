from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.orm import Session

from ..errors import InvariantViolation, NotFound, ValidationError, Conflict
from ..models.models import Equipment, MaintenanceRequest, Team
from .store import clean_text, conflict_on_integrity_error, require_text, utcnow


_DUPLICATE_SERIAL = "Equipment with this serial number already exists"
_REQUIRED_FIELDS = {"name": "Equipment name", "serial_number": "Serial number", "status": "Status"}


def serialize_equipment(equipment: Equipment, team_name: Optional[str]) -> Dict[str, Any]:
    return {
        "id": equipment.id,
        "name": equipment.name,
        "serial_number": equipment.serial_number,
        "department": equipment.department,
        "assigned_employee_name": equipment.assigned_employee_name,
        "purchase_date": equipment.purchase_date.isoformat() if equipment.purchase_date else None,
        "warranty_end_date": equipment.warranty_end_date.isoformat() if equipment.warranty_end_date else None,
        "location": equipment.location,
        "maintenance_team_id": equipment.maintenance_team_id,
        "team_name": team_name,
        "status": equipment.status,
        "created_at": equipment.created_at.isoformat() if equipment.created_at else None,
        "updated_at": equipment.updated_at.isoformat() if equipment.updated_at else None,
    }


def _ensure_team(db: Session, team_id: Optional[int]) -> None:
    if team_id is None:
        return
    if db.query(Team.id).filter(Team.id == team_id).first() is None:
        raise NotFound("Maintenance team not found")


def _ensure_serial_free(db: Session, serial_number: str, exclude_id: Optional[int] = None) -> None:
    q = db.query(Equipment.id).filter(Equipment.serial_number == serial_number)
    if exclude_id is not None:
        q = q.filter(Equipment.id != exclude_id)
    if q.first() is not None:
        raise Conflict(_DUPLICATE_SERIAL)


def _get_row(db: Session, equipment_id: int) -> Equipment:
    equipment = db.query(Equipment).filter(Equipment.id == equipment_id).first()
    if not equipment:
        raise NotFound("Equipment not found")
    return equipment


def list_equipment(
    db: Session,
    *,
    department: Optional[str] = None,
    employee: Optional[str] = None,
    status: Optional[str] = None,
) -> List[Dict[str, Any]]:
    query = db.query(Equipment, Team.name).outerjoin(Team, Equipment.maintenance_team_id == Team.id)
    if department:
        query = query.filter(Equipment.department == department)
    if employee:
        query = query.filter(Equipment.assigned_employee_name == employee)
    if status:
        query = query.filter(Equipment.status == status)
    rows = query.order_by(Equipment.created_at.desc(), Equipment.id.desc()).all()
    return [serialize_equipment(eq, team_name) for eq, team_name in rows]


def get_equipment(db: Session, equipment_id: int) -> Dict[str, Any]:
    row = (
        db.query(Equipment, Team.name)
        .outerjoin(Team, Equipment.maintenance_team_id == Team.id)
        .filter(Equipment.id == equipment_id)
        .first()
    )
    if not row:
        raise NotFound("Equipment not found")
    return serialize_equipment(*row)


def create_equipment(db: Session, fields: Dict[str, Any]) -> Equipment:
    name = require_text(fields.get("name"), "name", "Equipment name")
    serial_number = require_text(fields.get("serial_number"), "serial_number", "Serial number")
    _ensure_serial_free(db, serial_number)
    team_id = fields.get("maintenance_team_id")
    _ensure_team(db, team_id)

    equipment = Equipment(
        name=name,
        serial_number=serial_number,
        department=clean_text(fields.get("department")),
        assigned_employee_name=clean_text(fields.get("assigned_employee_name")),
        purchase_date=fields.get("purchase_date"),
        warranty_end_date=fields.get("warranty_end_date"),
        location=clean_text(fields.get("location")),
        maintenance_team_id=team_id,
        status=clean_text(fields.get("status")) or "active",
    )
    with conflict_on_integrity_error(db, _DUPLICATE_SERIAL, missing="Maintenance team not found"):
        db.add(equipment)
    structlog.get_logger().info("equipment_created", equipment_id=equipment.id, serial_number=serial_number)
    return equipment


def update_equipment(db: Session, equipment_id: int, changes: Dict[str, Any]) -> Equipment:
    """Apply a patch: only keys present in ``changes`` are written."""
    equipment = _get_row(db, equipment_id)

    for key, label in _REQUIRED_FIELDS.items():
        if key in changes and not clean_text(changes[key]):
            raise ValidationError(f"{label} cannot be empty", field=key)

    if "serial_number" in changes:
        _ensure_serial_free(db, clean_text(changes["serial_number"]), exclude_id=equipment.id)
    if "maintenance_team_id" in changes:
        _ensure_team(db, changes["maintenance_team_id"])

    for key, value in changes.items():
        setattr(equipment, key, clean_text(value))
    equipment.updated_at = utcnow()

    with conflict_on_integrity_error(db, _DUPLICATE_SERIAL, missing="Maintenance team not found"):
        db.add(equipment)
    structlog.get_logger().info("equipment_updated", equipment_id=equipment.id, fields=sorted(changes))
    return equipment


def delete_equipment(db: Session, equipment_id: int) -> None:
    equipment = _get_row(db, equipment_id)
    referenced = (
        db.query(MaintenanceRequest.id)
        .filter(MaintenanceRequest.equipment_id == equipment.id)
        .first()
    )
    if referenced is not None:
        raise InvariantViolation("Cannot delete equipment with existing maintenance requests")
    db.delete(equipment)
    db.flush()
    structlog.get_logger().info("equipment_deleted", equipment_id=equipment_id)
