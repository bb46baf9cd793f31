from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class EquipmentStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    under_maintenance = "under_maintenance"
    scrapped = "scrapped"


class EquipmentBase(BaseModel):
    name: str
    serial_number: str
    department: Optional[str] = None
    assigned_employee_name: Optional[str] = None
    purchase_date: Optional[date] = None
    warranty_end_date: Optional[date] = None
    location: Optional[str] = None
    maintenance_team_id: Optional[int] = None


class EquipmentCreate(EquipmentBase):
    status: Optional[EquipmentStatus] = None


class EquipmentUpdate(BaseModel):
    """Patch object: omitted fields keep their value, explicit nulls clear them."""

    name: Optional[str] = None
    serial_number: Optional[str] = None
    department: Optional[str] = None
    assigned_employee_name: Optional[str] = None
    purchase_date: Optional[date] = None
    warranty_end_date: Optional[date] = None
    location: Optional[str] = None
    maintenance_team_id: Optional[int] = None
    status: Optional[EquipmentStatus] = None
