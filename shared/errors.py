"""Attendance error taxonomy and FastAPI exception handlers"""
import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

GENERIC_REJECTION_MESSAGE = "Invalid or expired QR code"


class AttendanceError(Exception):
    """Base error carrying a stable code and an HTTP status"""

    code = "ATTENDANCE_ERROR"
    status_code = 400
    public_message: Optional[str] = None

    def __init__(self, message: str = "", context: Optional[Dict[str, Any]] = None):
        self.message = message or self.code
        self.context = context or {}
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        return {
            "ok": False,
            "error": {
                "code": self.code,
                "message": self.public_message or self.message,
            },
        }


class InvalidRequest(AttendanceError):
    """Malformed or missing input, not retryable"""

    code = "INVALID_REQUEST"
    status_code = 400


class ConfigurationError(AttendanceError):
    """Deployment misconfiguration, e.g. no signing secret"""

    code = "CONFIGURATION_ERROR"
    status_code = 500
    public_message = "Service is not configured"


class Forbidden(AttendanceError):
    """Authenticated caller acting outside its role"""

    code = "FORBIDDEN"
    status_code = 403


class InternalError(AttendanceError):
    code = "INTERNAL_ERROR"
    status_code = 500
    public_message = "Internal server error"


class SecurityRejection(AttendanceError):
    """Rejected payload. Callers see the code, end users see one generic message."""

    code = "REJECTED"
    status_code = 401
    public_message = GENERIC_REJECTION_MESSAGE


class SignatureMismatch(SecurityRejection):
    code = "SIGNATURE_MISMATCH"


class Expired(SecurityRejection):
    code = "EXPIRED"


class AlreadyUsed(SecurityRejection):
    code = "ALREADY_USED"
    status_code = 409


async def attendance_error_handler(request: Request, exc: AttendanceError) -> JSONResponse:
    if isinstance(exc, SecurityRejection):
        logger.warning(
            "QR rejected kind=%s path=%s user_id=%s activity_id=%s reason=%s",
            exc.code,
            request.url.path,
            exc.context.get("user_id"),
            exc.context.get("activity_id"),
            exc.message,
        )
    elif isinstance(exc, ConfigurationError):
        logger.critical("Configuration error on %s: %s", request.url.path, exc.message)
    elif isinstance(exc, InternalError):
        logger.error("Internal error on %s: %s", request.url.path, exc.message)
    else:
        logger.info("Invalid request on %s: %s", request.url.path, exc.message)

    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body that does not even parse is reported like any other invalid request"""
    fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
    error = InvalidRequest(f"Invalid request body: {', '.join(fields) or 'unparseable'}")
    return await attendance_error_handler(request, error)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled %s on %s", type(exc).__name__, request.url.path, exc_info=exc
    )
    return JSONResponse(status_code=500, content=InternalError().to_body())
