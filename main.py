"""API entry point - QR attendance service of the robotics club membership app"""
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from typing import Optional
import logging
from contextlib import asynccontextmanager

from app.core.config import Settings, get_settings
from app.core.security import SigningKey
from shared.database.connection import init_db, close_db, create_tables
from shared.cache.redis_client import init_redis, close_redis, get_redis
from shared.errors import (
    AttendanceError,
    attendance_error_handler,
    validation_error_handler,
    unhandled_error_handler,
)
from shared.utils.rate_limiter import limiter, rate_limit_exceeded_handler
from services.qr_validation.services.replay_guard import build_replay_guard

logging.basicConfig(
    level=get_settings().LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting attendance service...")
        if not app.state.signing_key.configured:
            logger.critical("SIGNING_SECRET is not set: every QR sign/verify request will fail")

        await init_db(
            settings.DATABASE_URL,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
        )
        if settings.DATABASE_AUTO_CREATE:
            await create_tables()

        if settings.REPLAY_GUARD_BACKEND == "redis":
            await init_redis(settings.REDIS_URL, settings.REDIS_MAX_CONNECTIONS)
        app.state.replay_guard = build_replay_guard(settings.REPLAY_GUARD_BACKEND, get_redis)
        logger.info("Attendance service started")
        yield
        logger.info("Stopping attendance service...")
        await close_db()
        if settings.REPLAY_GUARD_BACKEND == "redis":
            await close_redis()
        logger.info("Attendance service stopped")

    app = FastAPI(
        title="MRC Attendance API",
        description="Signed QR attendance codes for club activities",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    # read once; signer and verifier receive this value, never the environment
    app.state.signing_key = SigningKey.from_settings(settings)

    if settings.APP_ENV == "development":
        allow_origins = ["*"]
        allow_credentials = False  # not allowed together with allow_origins=["*"]
    else:
        allow_origins = settings.cors_origins
        allow_credentials = True
        logger.info(f"CORS origins: {allow_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(AttendanceError, attendance_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    from services.qr_signing.routes.sign import router as sign_router
    from services.qr_validation.routes.validation import router as validation_router
    from services.attendance.routes.attendance import router as attendance_router

    app.include_router(sign_router, prefix="/api/v1/attendance/qr", tags=["qr"])
    app.include_router(validation_router, prefix="/api/v1/attendance/qr", tags=["qr"])
    app.include_router(attendance_router, prefix="/api/v1/attendance", tags=["attendance"])

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        return {"status": "ok", "service": "mrc-attendance", "signing": app.state.signing_key.configured}

    @app.get("/ready")
    async def ready():
        """Readiness: database and, when used, Redis"""
        try:
            from sqlalchemy import text
            from shared.database import connection
            async with connection.async_session_maker() as session:
                await session.execute(text("SELECT 1"))

            redis_state = "not used"
            if settings.REPLAY_GUARD_BACKEND == "redis":
                redis = await get_redis()
                await redis.ping()
                redis_state = "connected"

            return {"status": "ready", "database": "connected", "redis": redis_state}
        except Exception as e:
            logger.error(f"Ready check failed: {e}")
            return JSONResponse(status_code=503, content={"status": "not ready"})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().APP_ENV == "development"
    )
