"""Verification of scanned attendance QR payloads"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import SigningKey, compute_signature, parse_timestamp, signatures_match
from shared.errors import AlreadyUsed, AttendanceError, Expired, InternalError, SignatureMismatch
from services.attendance.services.attendance_service import AttendanceService, RecordResult
from services.qr_signing.services.signer import Clock, require_field, utc_now
from services.qr_validation.services.replay_guard import ReplayGuard

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScannedPayload:
    user_id: Optional[str]
    activity_id: Optional[str]
    timestamp: Optional[str]
    signature: Optional[str]


class QRVerifier:
    """
    Decides whether a scanned payload earns an attendance record.

    Checks run in a fixed order: required fields, signature, validity
    window, replay-guard. Only a payload passing all four reaches the
    attendance store.
    """

    def __init__(
        self,
        key: SigningKey,
        replay_guard: ReplayGuard,
        attendance_service: AttendanceService,
        validity_seconds: int = 300,
        clock_skew_seconds: int = 5,
        clock: Clock = utc_now,
    ):
        self.key = key
        self.replay_guard = replay_guard
        self.attendance_service = attendance_service
        self.validity = timedelta(seconds=validity_seconds)
        self.clock_skew = timedelta(seconds=clock_skew_seconds)
        self.clock = clock

    @property
    def replay_ttl_seconds(self) -> int:
        return int((self.validity + self.clock_skew).total_seconds())

    def check_signature(self, payload: ScannedPayload) -> None:
        expected = compute_signature(self.key, payload.user_id, payload.activity_id, payload.timestamp)
        if not signatures_match(expected, payload.signature):
            raise SignatureMismatch(
                "signature does not match payload",
                context={"user_id": payload.user_id, "activity_id": payload.activity_id},
            )

    def check_freshness(self, payload: ScannedPayload, now: datetime) -> None:
        issued_at = parse_timestamp(payload.timestamp)
        age = now - issued_at
        context = {"user_id": payload.user_id, "activity_id": payload.activity_id}
        if age > self.validity:
            raise Expired(f"payload is {age.total_seconds():.0f}s old", context=context)
        if age < -self.clock_skew:
            raise Expired(f"payload is {-age.total_seconds():.0f}s in the future", context=context)

    async def verify(
        self,
        db: AsyncSession,
        payload: ScannedPayload,
        scanner_id: Optional[str] = None,
    ) -> RecordResult:
        """
        Validate ``payload`` and record the attendance it proves.

        Raises:
            InvalidRequest: a field is missing, or the timestamp is malformed
            ConfigurationError: no signing secret is configured
            SignatureMismatch, Expired, AlreadyUsed: security rejections
            InternalError: the attendance store failed
        """
        for name, value in (
            ("userId", payload.user_id),
            ("activityId", payload.activity_id),
            ("timestamp", payload.timestamp),
            ("signature", payload.signature),
        ):
            require_field(name, value)

        self.check_signature(payload)

        now = self.clock()
        self.check_freshness(payload, now)

        nonce = payload.signature
        if not await self.replay_guard.mark_used(nonce, self.replay_ttl_seconds):
            raise AlreadyUsed(
                "payload was already scanned",
                context={"user_id": payload.user_id, "activity_id": payload.activity_id},
            )

        try:
            return await self.attendance_service.record_qr_attendance(
                db,
                user_id=payload.user_id,
                activity_id=payload.activity_id,
                checked_in_at=now,
                checked_in_by=scanner_id,
                qr_code_hash=payload.signature,
            )
        except Exception as e:
            # the scan did not count, so the same code may be presented again
            try:
                await self.replay_guard.release(nonce)
            except Exception as release_error:
                logger.error(
                    f"Releasing replay mark failed: {type(release_error).__name__}: {release_error}",
                    exc_info=True,
                )
            if isinstance(e, AttendanceError):
                raise
            logger.error(f"Recording attendance failed: {type(e).__name__}: {e}", exc_info=True)
            raise InternalError("attendance could not be recorded") from e
