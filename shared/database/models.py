"""SQLAlchemy models for activities and attendance records"""
from sqlalchemy import Column, String, Integer, DateTime, UniqueConstraint
from datetime import datetime, timezone
import uuid
from shared.database.connection import Base


def _uuid_str() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String, primary_key=True, default=_uuid_str)
    name = Column(String, nullable=False)
    start_datetime = Column(DateTime(timezone=True), nullable=False)
    late_tolerance = Column(Integer, nullable=False, default=15)  # minutes after start
    status = Column(String, nullable=False, default="upcoming")  # upcoming, ongoing, completed, cancelled
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("activity_id", "user_id", name="uq_attendance_activity_user"),
    )

    id = Column(String, primary_key=True, default=_uuid_str)
    activity_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    # present, late, excused, sick, absent, pending_approval
    status = Column(String, nullable=False, default="absent")
    method = Column(String, nullable=False, default="qr_code")  # qr_code, manual
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_by = Column(String, nullable=True)
    qr_code_hash = Column(String, nullable=True)
    points = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
