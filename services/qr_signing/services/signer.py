"""Signing of attendance QR payloads"""
from datetime import datetime, timezone
from typing import Callable, Optional
import logging

from app.core.security import SigningKey, compute_signature, format_timestamp
from shared.errors import InvalidRequest
from services.qr_signing.models.payload import SignedPayload

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def require_field(name: str, value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        raise InvalidRequest(f"{name} is required")
    try:
        str(value).encode("utf-8")
    except UnicodeEncodeError:
        # lone surrogates survive JSON decoding but cannot be signed
        raise InvalidRequest(f"{name} is not valid UTF-8")
    return value


class QRSigner:
    """Produces time-stamped, HMAC-signed payloads for (user, activity) pairs"""

    def __init__(self, key: SigningKey, clock: Clock = utc_now):
        self.key = key
        self.clock = clock

    def sign(self, user_id: Optional[str], activity_id: Optional[str]) -> SignedPayload:
        """
        Sign a payload for ``user_id`` attending ``activity_id``.

        Raises:
            InvalidRequest: a field is missing or blank
            ConfigurationError: no signing secret is configured
        """
        user_id = require_field("userId", user_id)
        activity_id = require_field("activityId", activity_id)
        # fail before reading the clock so nothing is produced without a key
        self.key.require()

        timestamp = format_timestamp(self.clock())
        signature = compute_signature(self.key, user_id, activity_id, timestamp)

        logger.info(f"Signed QR payload user_id={user_id} activity_id={activity_id} timestamp={timestamp}")
        return SignedPayload(
            user_id=user_id,
            activity_id=activity_id,
            timestamp=timestamp,
            signature=signature,
        )
