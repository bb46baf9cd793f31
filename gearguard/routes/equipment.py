from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_user
from ..db import get_db
from ..models.models import User
from ..responses import ok
from ..schemas.equipment import EquipmentCreate, EquipmentStatus, EquipmentUpdate
from ..services import equipment_service, maintenance_service


router = APIRouter(prefix="/equipment", tags=["equipment"])


@router.get("")
def list_equipment(
    department: Optional[str] = None,
    employee: Optional[str] = None,
    status: Optional[EquipmentStatus] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    rows = equipment_service.list_equipment(
        db,
        department=department,
        employee=employee,
        status=status.value if status else None,
    )
    return ok(rows)


@router.post("", status_code=201)
def create_equipment(
    payload: EquipmentCreate,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    equipment = equipment_service.create_equipment(db, payload.model_dump())
    db.commit()
    return ok(equipment_service.get_equipment(db, equipment.id), "Equipment created successfully")


@router.get("/{equipment_id}")
def get_equipment(equipment_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return ok(equipment_service.get_equipment(db, equipment_id))


@router.put("/{equipment_id}")
def update_equipment(
    equipment_id: int,
    payload: EquipmentUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    equipment_service.update_equipment(db, equipment_id, payload.model_dump(exclude_unset=True))
    db.commit()
    return ok(equipment_service.get_equipment(db, equipment_id), "Equipment updated successfully")


@router.delete("/{equipment_id}")
def delete_equipment(equipment_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    equipment_service.delete_equipment(db, equipment_id)
    db.commit()
    return ok(None, "Equipment deleted successfully")


@router.get("/{equipment_id}/requests")
def list_equipment_requests(equipment_id: int, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return ok(maintenance_service.list_for_equipment(db, equipment_id))
