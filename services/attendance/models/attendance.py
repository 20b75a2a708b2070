"""Pydantic models for attendance records"""
from enum import Enum
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    LATE = "late"
    EXCUSED = "excused"
    SICK = "sick"
    ABSENT = "absent"
    PENDING_APPROVAL = "pending_approval"


class AttendanceMethod(str, Enum):
    QR_CODE = "qr_code"
    MANUAL = "manual"


class AttendanceResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    activity_id: str
    user_id: str
    status: AttendanceStatus
    method: AttendanceMethod
    checked_in_at: Optional[datetime] = None
    checked_in_by: Optional[str] = None
    points: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ActivityAttendanceResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    activity_id: str
    total: int
    records: List[AttendanceResponse]
