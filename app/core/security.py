"""
Canonical form and HMAC primitives shared by the QR signer and verifier.

The signed message is ``userId|activityId|timestamp`` where ``timestamp`` is
an ISO-8601 UTC string with millisecond precision and a ``Z`` designator
(``2025-03-01T08:00:00.000Z``). Any change to this formatting changes every
signature, so both sides must go through ``format_timestamp`` and
``canonical_message``.
"""
import hashlib
import hmac
from datetime import datetime, timezone
from typing import Optional

from app.core.config import Settings
from shared.errors import ConfigurationError, InvalidRequest


class SigningKey:
    """HMAC secret loaded once at startup and injected into signer/verifier"""

    __slots__ = ("_secret",)

    def __init__(self, secret: Optional[str]):
        self._secret = secret or None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SigningKey":
        return cls(settings.SIGNING_SECRET)

    @property
    def configured(self) -> bool:
        return self._secret is not None

    def require(self) -> bytes:
        """Return the raw key, failing instead of signing with an empty secret"""
        if self._secret is None:
            raise ConfigurationError("SIGNING_SECRET is not configured")
        return self._secret.encode("utf-8")

    def __repr__(self) -> str:
        return f"SigningKey(configured={self.configured})"


def format_timestamp(dt: datetime) -> str:
    if dt.tzinfo is None:
        raise ValueError("timestamp must be timezone-aware")
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S") + ".%03dZ" % (dt.microsecond // 1000)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp carrying a timezone designator"""
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidRequest(f"Malformed timestamp: {value!r}")
    if parsed.tzinfo is None:
        raise InvalidRequest(f"Timestamp has no timezone designator: {value!r}")
    return parsed.astimezone(timezone.utc)


def canonical_message(user_id: str, activity_id: str, timestamp: str) -> str:
    return f"{user_id}|{activity_id}|{timestamp}"


def compute_signature(key: SigningKey, user_id: str, activity_id: str, timestamp: str) -> str:
    """HMAC-SHA256 over the canonical message, lowercase hex"""
    message = canonical_message(user_id, activity_id, timestamp)
    return hmac.new(key.require(), message.encode("utf-8"), hashlib.sha256).hexdigest()


def signatures_match(expected: str, presented: str) -> bool:
    # bytes so that non-ASCII input is compared instead of raising TypeError
    return hmac.compare_digest(expected.encode("utf-8"), presented.encode("utf-8"))
