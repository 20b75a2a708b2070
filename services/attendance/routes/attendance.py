"""Attendance listing for admins"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict
from shared.database.session import get_db
from shared.auth.dependencies import get_current_admin
from services.attendance.models.attendance import ActivityAttendanceResponse, AttendanceResponse
from services.attendance.services.attendance_service import AttendanceService


router = APIRouter()


@router.get("/activities/{activity_id}", response_model=ActivityAttendanceResponse)
async def list_activity_attendance(
    activity_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Dict = Depends(get_current_admin),
):
    """Attendance records of one activity, earliest check-in first"""
    records = await AttendanceService().list_attendance(db, activity_id)
    return ActivityAttendanceResponse(
        activity_id=activity_id,
        total=len(records),
        records=[AttendanceResponse.model_validate(r) for r in records],
    )
