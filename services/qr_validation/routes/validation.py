"""QR scan verification route"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict
from shared.database.session import get_db
from shared.auth.dependencies import get_current_scanner
from shared.utils.rate_limiter import limiter, RATE_LIMITS
from services.attendance.models.attendance import AttendanceResponse
from services.attendance.services.attendance_service import AttendanceService
from services.qr_validation.models.scan import ScanRequest, ScanResponse
from services.qr_validation.services.verifier import QRVerifier, ScannedPayload


router = APIRouter()


def get_verifier(request: Request) -> QRVerifier:
    state = request.app.state
    settings = state.settings
    return QRVerifier(
        key=state.signing_key,
        replay_guard=state.replay_guard,
        attendance_service=AttendanceService(),
        validity_seconds=settings.QR_VALIDITY_SECONDS,
        clock_skew_seconds=settings.QR_CLOCK_SKEW_SECONDS,
    )


@router.post("/verify", response_model=ScanResponse)
@limiter.limit(RATE_LIMITS["verify"])
async def verify_qr(
    request: Request,  # required by the rate limiter
    scan: ScanRequest,
    db: AsyncSession = Depends(get_db),
    verifier: QRVerifier = Depends(get_verifier),
    current_user: Dict = Depends(get_current_scanner),
):
    """
    Verify a scanned payload and record attendance.

    Rejections answer 400 (INVALID_REQUEST), 401 (SIGNATURE_MISMATCH,
    EXPIRED) or 409 (ALREADY_USED) with a generic message.
    """
    outcome = await verifier.verify(
        db,
        ScannedPayload(
            user_id=scan.user_id,
            activity_id=scan.activity_id,
            timestamp=scan.timestamp,
            signature=scan.signature,
        ),
        scanner_id=current_user.get("user_id"),
    )
    return ScanResponse(
        result=outcome.result,
        attendance=AttendanceResponse.model_validate(outcome.attendance),
    )
