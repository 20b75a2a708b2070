"""QR signing route"""
from fastapi import APIRouter, Depends, Query, Request
from typing import Dict
import logging
from shared.auth.dependencies import get_current_user
from shared.errors import AttendanceError, Forbidden, InternalError
from shared.utils.qr_generator import encode_payload, generate_qr_image_base64
from shared.utils.rate_limiter import limiter, RATE_LIMITS
from services.qr_signing.models.payload import SigningRequest, SignResponse
from services.qr_signing.services.signer import QRSigner

logger = logging.getLogger(__name__)

router = APIRouter()


def get_signer(request: Request) -> QRSigner:
    return QRSigner(request.app.state.signing_key)


@router.post("/sign", response_model=SignResponse, response_model_exclude_none=True)
@limiter.limit(RATE_LIMITS["sign"])
async def sign_qr(
    request: Request,  # required by the rate limiter
    signing_request: SigningRequest,
    include_image: bool = Query(False),
    signer: QRSigner = Depends(get_signer),
    current_user: Dict = Depends(get_current_user),
):
    """
    Sign an attendance payload for the member to show as a QR code.

    Members can only sign for themselves; admins can sign for anyone.
    """
    if (
        signing_request.user_id
        and current_user.get("role") != "admin"
        and current_user.get("user_id") != signing_request.user_id
    ):
        raise Forbidden(
            "Cannot sign attendance codes for another member",
            context={"user_id": current_user.get("user_id")},
        )

    try:
        payload = signer.sign(signing_request.user_id, signing_request.activity_id)
        qr_image = None
        if include_image:
            qr_image = generate_qr_image_base64(encode_payload(payload.model_dump(by_alias=True)))
    except AttendanceError:
        raise
    except Exception as e:
        logger.error(f"Exception in sign_qr: {type(e).__name__}: {e}", exc_info=True)
        raise InternalError("signing failed") from e

    return SignResponse(payload=payload, qr_image=qr_image)
