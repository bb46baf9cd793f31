from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class RequestType(str, Enum):
    corrective = "corrective"
    preventive = "preventive"


class RequestStatus(str, Enum):
    new = "new"
    in_progress = "in_progress"
    repaired = "repaired"
    scrap = "scrap"


class MaintenanceRequestCreate(BaseModel):
    type: RequestType
    subject: str
    equipment_id: Optional[int] = None
    work_center_id: Optional[int] = None
    team_id: Optional[int] = None
    scheduled_date: Optional[datetime] = None
    created_by_user_id: Optional[int] = None  # must match the caller when sent


class AssignRequest(BaseModel):
    user_id: int


class StatusUpdate(BaseModel):
    status: RequestStatus
    duration_hours: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)


class NoteCreate(BaseModel):
    message: str
