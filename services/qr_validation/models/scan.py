"""Pydantic models for QR scan verification"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional
from services.attendance.models.attendance import AttendanceResponse


class ScanRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: Optional[str] = None
    activity_id: Optional[str] = None
    timestamp: Optional[str] = None
    signature: Optional[str] = None


class ScanResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ok: bool = True
    result: str
    attendance: AttendanceResponse
