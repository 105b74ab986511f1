"""Process-wide service graph.

Every provider is cached, so each resource (Twilio client, worker pool, stores)
exists once per process. ``main.lifespan`` builds the graph eagerly at startup;
routes receive it through ``Depends`` and tests swap it via
``app.dependency_overrides``.
"""
import logging
from datetime import timedelta
from functools import lru_cache

from .core.config import settings
from .database import engine
from .application.services.auth_service import AuthService
from .application.services.expiry_reaper import ExpiryReaper
from .application.services.otp_service import OTPService
from .application.services.token_service import TokenService
from .infrastructure.audit.std_logger import StdAuditLogger
from .infrastructure.notifications import (
    NotificationDispatcher,
    TwilioClientProvider,
    TwilioSmsChannel,
    TwilioWhatsAppChannel,
)
from .infrastructure.persistence.sqlalchemy.repositories.challenge_repository_sql import SqlChallengeRepository
from .infrastructure.persistence.sqlalchemy.repositories.principal_directory_sql import SqlPrincipalDirectory
from .infrastructure.scheduling.ticker import PeriodicTask

logger = logging.getLogger(__name__)


@lru_cache()
def get_challenge_repository() -> SqlChallengeRepository:
    return SqlChallengeRepository(engine)


@lru_cache()
def get_principal_directory() -> SqlPrincipalDirectory:
    return SqlPrincipalDirectory(engine)


@lru_cache()
def get_twilio_provider() -> TwilioClientProvider:
    return TwilioClientProvider(
        settings.TWILIO_ACCOUNT_SID,
        settings.TWILIO_AUTH_TOKEN,
        timeout=settings.TWILIO_TIMEOUT_SECONDS,
    )


@lru_cache()
def get_notification_dispatcher() -> NotificationDispatcher:
    provider = get_twilio_provider()
    # WhatsApp first, plain SMS as fallback
    channels = [
        TwilioWhatsAppChannel(provider, settings.TWILIO_WHATSAPP_NUMBER),
        TwilioSmsChannel(provider, settings.TWILIO_PHONE_NUMBER),
    ]
    configured = [c.name for c in channels if c.is_configured()]
    if configured:
        logger.info(f"Notification channels configured: {', '.join(configured)}")
    else:
        logger.warning("No notification channel configured; messages will only be logged")
    return NotificationDispatcher(channels, max_workers=settings.NOTIFICATION_WORKERS)


@lru_cache()
def get_otp_service() -> OTPService:
    return OTPService(
        repo=get_challenge_repository(),
        notifier=get_notification_dispatcher(),
        ttl_seconds=settings.OTP_EXPIRY_SECONDS,
        code_length=settings.OTP_LENGTH,
    )


@lru_cache()
def get_token_service() -> TokenService:
    if not settings.secret_key_configured:
        if not settings.DEBUG:
            raise RuntimeError("JWT_SECRET_KEY must be set outside DEBUG mode")
        logger.warning("JWT_SECRET_KEY is not configured; using the development default")
    return TokenService(
        secret_key=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        access_token_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        refresh_token_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


@lru_cache()
def get_audit_logger() -> StdAuditLogger:
    return StdAuditLogger()


@lru_cache()
def get_auth_service() -> AuthService:
    return AuthService(
        otp_service=get_otp_service(),
        token_service=get_token_service(),
        principals=get_principal_directory(),
        audit=get_audit_logger(),
        expose_code=settings.OTP_EXPOSE_CODE,
    )


@lru_cache()
def get_expiry_reaper() -> ExpiryReaper:
    return ExpiryReaper(repo=get_challenge_repository())


def build_reaper_task() -> PeriodicTask:
    return PeriodicTask(
        name="otp-expiry-reaper",
        interval_seconds=settings.OTP_CLEANUP_INTERVAL_SECONDS,
        work=get_expiry_reaper().sweep,
    )
