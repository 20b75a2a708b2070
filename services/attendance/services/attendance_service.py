"""Attendance records keyed by (activity_id, user_id)"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.database.models import Activity, Attendance
from services.attendance.models.attendance import AttendanceMethod, AttendanceStatus

logger = logging.getLogger(__name__)

POINTS = {
    AttendanceStatus.PRESENT: 100,
    AttendanceStatus.LATE: 75,
    AttendanceStatus.EXCUSED: 50,
    AttendanceStatus.SICK: 50,
    AttendanceStatus.ABSENT: 0,
    AttendanceStatus.PENDING_APPROVAL: 0,
}

CHECKED_IN = (AttendanceStatus.PRESENT.value, AttendanceStatus.LATE.value)

DEFAULT_LATE_TOLERANCE_MINUTES = 15


def calculate_points(status) -> int:
    """Score of one attendance status, 0 for anything unknown"""
    try:
        return POINTS[AttendanceStatus(status)]
    except ValueError:
        return 0


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class RecordResult:
    result: str  # created, updated_to_present, updated_to_late, already_present
    attendance: Attendance


class AttendanceService:
    """Check-ins recorded from verified QR scans"""

    @staticmethod
    def check_in_status(activity: Optional[Activity], checked_in_at: datetime) -> AttendanceStatus:
        """``late`` once the activity's tolerance after start has passed, else ``present``"""
        if activity is None or activity.start_datetime is None:
            return AttendanceStatus.PRESENT

        tolerance = activity.late_tolerance
        if tolerance is None:
            tolerance = DEFAULT_LATE_TOLERANCE_MINUTES
        deadline = _as_utc(activity.start_datetime) + timedelta(minutes=tolerance)

        if _as_utc(checked_in_at) > deadline:
            return AttendanceStatus.LATE
        return AttendanceStatus.PRESENT

    async def record_qr_attendance(
        self,
        db: AsyncSession,
        user_id: str,
        activity_id: str,
        checked_in_at: datetime,
        checked_in_by: Optional[str] = None,
        qr_code_hash: Optional[str] = None,
    ) -> RecordResult:
        """
        Mark ``user_id`` as checked in to ``activity_id``.

        A member already present (or late) keeps the original record. Records
        in any other status (absent, pending approval...) are overwritten
        with the check-in.
        """
        activity = await db.get(Activity, activity_id)
        status = self.check_in_status(activity, checked_in_at)

        existing = await self._get_record(db, activity_id, user_id)
        if existing is None:
            record = Attendance(
                activity_id=activity_id,
                user_id=user_id,
                status=status.value,
                method=AttendanceMethod.QR_CODE.value,
                checked_in_at=checked_in_at,
                checked_in_by=checked_in_by,
                qr_code_hash=qr_code_hash,
                points=calculate_points(status),
                created_at=checked_in_at,
                updated_at=checked_in_at,
            )
            db.add(record)
            try:
                await db.commit()
            except IntegrityError:
                # another scan for the same member inserted first
                await db.rollback()
                existing = await self._get_record(db, activity_id, user_id)
                if existing is None:
                    raise
            else:
                logger.info(f"Attendance created activity_id={activity_id} user_id={user_id} status={status.value}")
                return RecordResult("created", record)

        if existing.status in CHECKED_IN:
            logger.info(f"Attendance already recorded activity_id={activity_id} user_id={user_id}")
            return RecordResult("already_present", existing)

        previous = existing.status
        existing.status = status.value
        existing.method = AttendanceMethod.QR_CODE.value
        existing.checked_in_at = checked_in_at
        existing.checked_in_by = checked_in_by
        existing.qr_code_hash = qr_code_hash
        existing.points = calculate_points(status)
        existing.updated_at = checked_in_at
        await db.commit()

        logger.info(
            f"Attendance updated activity_id={activity_id} user_id={user_id} {previous} -> {status.value}"
        )
        return RecordResult(f"updated_to_{status.value}", existing)

    async def list_attendance(self, db: AsyncSession, activity_id: str) -> List[Attendance]:
        stmt = (
            select(Attendance)
            .where(Attendance.activity_id == activity_id)
            .order_by(Attendance.checked_in_at.asc(), Attendance.user_id.asc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def _get_record(db: AsyncSession, activity_id: str, user_id: str) -> Optional[Attendance]:
        stmt = select(Attendance).where(
            Attendance.activity_id == activity_id,
            Attendance.user_id == user_id,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()
