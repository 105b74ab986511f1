from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from dotenv import load_dotenv
import logging

# Load environment variables as early as possible
load_dotenv()

from .core.config import settings
from .database import create_db_and_tables
from .dependencies import (
    build_reaper_task,
    get_auth_service,
    get_notification_dispatcher,
    get_twilio_provider,
)
from .exceptions import AuthError, auth_exception_handler, http_exception_handler, validation_exception_handler
from .middleware import ErrorHandlingMiddleware, RequestContextMiddleware, SecurityMiddleware
from .routers import auth_router
from .utils import utcnow

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.APP_NAME}...")
    app.state.db_init_ok = True
    app.state.db_init_error = None
    try:
        create_db_and_tables()
        logger.info("Database initialized successfully")
    except Exception as e:
        # Do not crash the app; report via health endpoint
        app.state.db_init_ok = False
        app.state.db_init_error = str(e)
        logger.exception("Database initialization failed")

    # Build the shared service graph once, before the first request
    get_auth_service()
    reaper = build_reaper_task()
    reaper.start()
    app.state.reaper = reaper
    yield
    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}...")
    reaper.stop()
    get_notification_dispatcher().shutdown(wait=True)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url=("/docs" if settings.DOCS_ENABLED else None),
    redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
    openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
)

app.add_exception_handler(AuthError, auth_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(SecurityMiddleware)
app.add_middleware(RequestContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router.router)


@app.get("/health")
def health_check():
    reaper = getattr(app.state, "reaper", None)
    channels = get_notification_dispatcher().channels
    return {
        "status": "healthy" if getattr(app.state, "db_init_ok", True) else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": utcnow().isoformat(),
        "database": {
            "ok": getattr(app.state, "db_init_ok", True),
            "error": getattr(app.state, "db_init_error", None)
        },
        "auth": {
            "secret_key_configured": settings.secret_key_configured,
            "jwt_algorithm": settings.ALGORITHM,
            "token_expiry_minutes": settings.ACCESS_TOKEN_EXPIRE_MINUTES,
            "otp_expiry_seconds": settings.OTP_EXPIRY_SECONDS,
        },
        "notifications": {
            "twilio_configured": get_twilio_provider().configured,
            "channels": {c.name: c.is_configured() for c in channels},
        },
        "reaper": {
            "running": bool(reaper and reaper.running),
            "runs": reaper.runs if reaper else 0,
            "failures": reaper.failures if reaper else 0,
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "emr_auth.main:app",
        host=settings.HOST,
        port=settings.PORT,
        # the reaper and the notification pool are per process
        workers=1,
        log_level=settings.LOG_LEVEL.lower()
    )
