import logging
import os

from fastapi import HTTPException, Request

from adapter.external.brevo_email import BrevoEmailAdapter
from adapter.external.log_notifier import LogNotificationAdapter
from adapter.mongodb.connection import get_mongodb_client, DATABASE_NAME
from adapter.mongodb.user_repository import MongoUserRepository
from adapter.security.bcrypt_hasher import BcryptPasswordHasher
from adapter.store.memory_pending_store import InMemoryPendingStore
from adapter.store.redis_pending_store import (
    REDIS_URL,
    RESET_KEY_PREFIX,
    SIGNUP_KEY_PREFIX,
    RedisPendingStore,
)
from domain.model.pending import PendingPasswordReset, PendingSignup
from domain.model.user import normalize_email
from port.notification import NotificationPort
from port.password_hasher import PasswordHasher
from port.pending_store import PendingStore
from port.user_repository import UserRepository
from services.auth_service import OTP_EXPIRY_MINUTES

logger = logging.getLogger(__name__)

# Comma-separated allowlist of addresses that receive the ADMIN role at signup
ADMIN_EMAILS = frozenset(
    normalize_email(e) for e in os.getenv("ADMIN_EMAILS", "").split(",") if e.strip()
)

_password_hasher = BcryptPasswordHasher()
_notifier: NotificationPort | None = None


def _get_db():
    """Get MongoDB database, raising 503 if unavailable."""
    client = get_mongodb_client()
    if client is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return client[DATABASE_NAME]


def get_user_repo() -> UserRepository:
    return MongoUserRepository(_get_db())


def get_password_hasher() -> PasswordHasher:
    return _password_hasher


def get_notifier() -> NotificationPort:
    global _notifier
    if _notifier is None:
        if os.getenv("BREVO_API_KEY"):
            _notifier = BrevoEmailAdapter.from_env(expiry_minutes=OTP_EXPIRY_MINUTES)
        else:
            logger.warning("BREVO_API_KEY not set, verification codes will only be logged")
            _notifier = LogNotificationAdapter()
    return _notifier


def get_admin_emails() -> frozenset[str]:
    return ADMIN_EMAILS


# ── pending stores (created once per application lifespan) ──


def build_pending_stores() -> tuple[PendingStore[PendingSignup], PendingStore[PendingPasswordReset]]:
    """Redis-backed when REDIS_URL is set (required for multiple workers), else in-process."""
    if REDIS_URL:
        logger.info("Using Redis pending stores")
        return (
            RedisPendingStore(PendingSignup, SIGNUP_KEY_PREFIX, url=REDIS_URL),
            RedisPendingStore(PendingPasswordReset, RESET_KEY_PREFIX, url=REDIS_URL),
        )
    logger.info("Using in-memory pending stores")
    return InMemoryPendingStore(), InMemoryPendingStore()


def get_signup_store(request: Request) -> PendingStore[PendingSignup]:
    return request.app.state.signup_store


def get_reset_store(request: Request) -> PendingStore[PendingPasswordReset]:
    return request.app.state.reset_store
