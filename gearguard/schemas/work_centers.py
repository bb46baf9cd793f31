from typing import Optional

from pydantic import BaseModel, Field


class WorkCenterCreate(BaseModel):
    name: str
    code: Optional[str] = None
    tag: Optional[str] = None
    cost_per_hour: float = Field(default=0, ge=0)
    capacity_per_hour: float = Field(default=0, ge=0)
    time_efficiency_pct: float = Field(default=100, ge=0, le=100)
    oee_target_pct: float = Field(default=0, ge=0, le=100)
    status: str = "active"


class AlternativeCreate(BaseModel):
    alternative_work_center_id: int
