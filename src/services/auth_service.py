"""Auth service: signup with email OTP, login, and password reset.

Pure business logic with no HTTP dependencies.
Raises domain errors that route handlers map to HTTP status codes.

Signup flow:
    start_signup → OTP emailed, PendingSignup stored
    verify_signup → PendingSignup consumed, User persisted
Reset flow:
    request_password_reset → OTP emailed, PendingPasswordReset stored
    verify_password_reset → reset token issued, bound to the current password
    reset_password → password hash replaced (which voids the token)
"""

import hashlib
import logging
import os
import secrets
from datetime import timedelta
from typing import Collection

from domain.model.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidOtpError,
    InvalidResetTokenError,
    NotificationError,
    RepositoryError,
    ServiceUnavailableError,
    ValidationError,
)
from domain.model.pending import CodePurpose, PendingPasswordReset, PendingSignup
from domain.model.user import MAX_PASSWORD_BYTES, Role, User, normalize_email, password_too_long
from port.notification import NotificationPort
from port.password_hasher import PasswordHasher
from port.pending_store import PendingStore
from port.token_issuer import TokenIssuer
from port.user_repository import UserRepository

logger = logging.getLogger(__name__)

OTP_MIN = 1000
OTP_MAX = 9999
OTP_EXPIRY_MINUTES = int(os.getenv("OTP_EXPIRY_MINUTES", "10"))
OTP_TTL = timedelta(minutes=OTP_EXPIRY_MINUTES)
RESET_TOKEN_TTL = timedelta(minutes=int(os.getenv("RESET_TOKEN_MINUTES", "15")))

ACCESS_TOKEN_TYPE = "access"
RESET_TOKEN_TYPE = "password_reset"


def generate_otp() -> str:
    """Uniform 4-digit numeric code in [OTP_MIN, OTP_MAX]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def role_for(email: str, admin_emails: Collection[str]) -> Role:
    """ADMIN only for addresses on the configured allowlist."""
    return Role.ADMIN if normalize_email(email) in admin_emails else Role.USER


def _require(value: str, field: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field} is required")
    return value


def _require_password(password: str, field: str = "Password") -> str:
    _require(password, field)
    if password_too_long(password):
        raise ValidationError(f"{field} must be at most {MAX_PASSWORD_BYTES} bytes")
    return password


def _find_user(repo: UserRepository, email: str) -> User | None:
    try:
        return repo.get_by_email(email)
    except RepositoryError as e:
        raise ServiceUnavailableError("Account service is temporarily unavailable") from e


def _password_fingerprint(password_hash: str) -> str:
    """Short digest of the stored hash; changes whenever the password does."""
    return hashlib.sha256(password_hash.encode('utf-8')).hexdigest()[:16]


def _send_or_rollback(
    notifier: NotificationPort,
    store: PendingStore,
    record,
    purpose: CodePurpose,
    previous=None,
) -> None:
    """Deliver record.otp; on failure drop the new record (swapping ``previous`` back in)."""
    try:
        notifier.send_code(record.email, record.otp, purpose)
    except NotificationError as e:
        if previous is None:
            store.discard(record)
        else:
            store.replace(record, previous)
        logger.error(
            "Failed to deliver verification code",
            extra={"email": record.email, "purpose": purpose.value, "error": str(e)},
        )
        raise ServiceUnavailableError("Could not send verification email. Please try again later.") from e


# ── signup ───────────────────────────────────────────────────


def start_signup(
    *,
    repo: UserRepository,
    pending_store: PendingStore[PendingSignup],
    hasher: PasswordHasher,
    notifier: NotificationPort,
    name: str,
    email: str,
    password: str,
) -> PendingSignup:
    """Begin a signup: store the pending profile and email an OTP.

    A later signup for the same email replaces the pending one.

    Raises:
        ValidationError: missing name, email or password, or an over-long password
        ConflictError: email already registered (nothing is stored)
        ServiceUnavailableError: database, pending store or email delivery failed
    """
    _require(name, "Name")
    _require_password(password)
    email = normalize_email(_require(email, "Email"))

    if _find_user(repo, email):
        raise ConflictError("Email already exists")

    pending = PendingSignup.issue(
        email=email,
        otp=generate_otp(),
        name=name.strip(),
        password_hash=hasher.hash(password),
        ttl=OTP_TTL,
    )
    if not pending_store.put(pending):
        raise ServiceUnavailableError("Signup is temporarily unavailable")

    _send_or_rollback(notifier, pending_store, pending, CodePurpose.SIGNUP)

    logger.info("Signup OTP issued", extra={"email": email})
    return pending


def resend_signup_otp(
    *,
    pending_store: PendingStore[PendingSignup],
    notifier: NotificationPort,
    email: str,
) -> PendingSignup:
    """Issue a fresh code for an in-flight signup, keeping its profile.

    The new code only replaces the exact signup that was read, so a
    signup submitted meanwhile is never overwritten with the old profile.

    Raises:
        InvalidOtpError: no pending signup for this email, or it changed meanwhile
        ServiceUnavailableError: email delivery failed
    """
    email = normalize_email(email)
    previous = pending_store.get(email)
    if previous is None:
        raise InvalidOtpError()

    pending = previous.reissue(otp=generate_otp(), ttl=OTP_TTL)
    if not pending_store.replace(previous, pending):
        logger.info("Pending signup changed before re-send", extra={"email": email})
        raise InvalidOtpError()

    _send_or_rollback(notifier, pending_store, pending, CodePurpose.SIGNUP, previous=previous)

    logger.info("Signup OTP re-issued", extra={"email": email})
    return pending


def verify_signup(
    *,
    repo: UserRepository,
    pending_store: PendingStore[PendingSignup],
    admin_emails: Collection[str],
    email: str,
    otp: str,
) -> User:
    """Finish a signup: consume the pending record and persist the User.

    The consumed record is put back if the user cannot be saved, so the
    same code can be retried.

    Raises:
        InvalidOtpError: no pending signup, expired, or wrong code
        ConflictError: the email was registered in the meantime
        ServiceUnavailableError: the user could not be persisted
    """
    email = normalize_email(email)
    pending = pending_store.consume(email, otp)
    if pending is None:
        logger.info("Signup OTP rejected", extra={"email": email})
        raise InvalidOtpError()

    try:
        existing = _find_user(repo, email)
    except ServiceUnavailableError:
        pending_store.restore(pending)
        raise
    if existing:
        raise ConflictError("Email already exists")

    user = User.create(
        name=pending.name,
        email=email,
        password_hash=pending.password_hash,
        role=role_for(email, admin_emails),
    )
    saved = repo.save(user)
    if not saved:
        restored = pending_store.restore(pending)
        logger.error("Failed to persist verified user", extra={"email": email, "restored": restored})
        raise ServiceUnavailableError("Failed to create account. Please try again.")

    logger.info("Signup completed", extra={"userId": saved.id, "email": email, "role": saved.role.value})
    return saved


# ── login ────────────────────────────────────────────────────


def login(
    *,
    repo: UserRepository,
    hasher: PasswordHasher,
    token_issuer: TokenIssuer,
    email: str,
    password: str,
) -> str:
    """Check credentials and return a signed access token.

    Doesn't reveal whether the email exists.

    Raises:
        InvalidCredentialsError: unknown email or wrong password
        ServiceUnavailableError: the database could not be queried
    """
    email = normalize_email(email)
    user = _find_user(repo, email)
    if not user or not hasher.verify(password or "", user.password_hash):
        raise InvalidCredentialsError()

    # login succeeds even if the timestamp update fails
    repo.update_last_login(user.id)

    token = token_issuer.issue(
        subject=user.email,
        claims={"role": user.role.value, "typ": ACCESS_TOKEN_TYPE},
    )
    logger.info("User logged in", extra={"userId": user.id, "email": user.email})
    return token


def authenticate_token(*, repo: UserRepository, token_issuer: TokenIssuer, token: str) -> User | None:
    """Resolve an access token to its User, or None.

    Raises:
        ServiceUnavailableError: the database could not be queried
    """
    claims = token_issuer.decode(token)
    if not claims or claims.get("typ", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
        return None
    return _find_user(repo, claims["sub"])


# ── password reset ───────────────────────────────────────────


def request_password_reset(
    *,
    repo: UserRepository,
    reset_store: PendingStore[PendingPasswordReset],
    notifier: NotificationPort,
    email: str,
) -> None:
    """Email a reset code if the account exists; silent otherwise.

    Raises:
        ServiceUnavailableError: database, store write or email delivery failed
    """
    email = normalize_email(email)
    if not _find_user(repo, email):
        logger.info("Password reset requested for unknown email", extra={"email": email})
        return

    pending = PendingPasswordReset.issue(email=email, otp=generate_otp(), ttl=OTP_TTL)
    if not reset_store.put(pending):
        raise ServiceUnavailableError("Password reset is temporarily unavailable")

    _send_or_rollback(notifier, reset_store, pending, CodePurpose.PASSWORD_RESET)
    logger.info("Password reset OTP issued", extra={"email": email})


def verify_password_reset(
    *,
    repo: UserRepository,
    reset_store: PendingStore[PendingPasswordReset],
    token_issuer: TokenIssuer,
    email: str,
    otp: str,
) -> str:
    """Exchange a valid reset code for a short-lived, single-use reset token.

    The token names the current password hash, so it stops working once
    the password has been changed.

    Raises:
        InvalidOtpError: no pending reset, expired, or wrong code
        ServiceUnavailableError: the database could not be queried
    """
    email = normalize_email(email)
    user = _find_user(repo, email)
    if reset_store.consume(email, otp) is None or user is None:
        raise InvalidOtpError()

    return token_issuer.issue(
        subject=email,
        claims={"typ": RESET_TOKEN_TYPE, "pwd": _password_fingerprint(user.password_hash)},
        expires_in=RESET_TOKEN_TTL,
    )


def reset_password(
    *,
    repo: UserRepository,
    hasher: PasswordHasher,
    token_issuer: TokenIssuer,
    email: str,
    reset_token: str,
    new_password: str,
) -> User:
    """Replace the password of the account named by a valid reset token.

    Raises:
        InvalidResetTokenError: bad token, wrong purpose, another account, or already used
        ValidationError: empty or over-long new password
        ServiceUnavailableError: the database could not be read or updated
    """
    email = normalize_email(email)
    claims = token_issuer.decode(reset_token or "")
    if not claims or claims.get("typ") != RESET_TOKEN_TYPE or claims.get("sub") != email:
        raise InvalidResetTokenError()

    _require_password(new_password, "New password")

    user = _find_user(repo, email)
    if not user or claims.get("pwd") != _password_fingerprint(user.password_hash):
        raise InvalidResetTokenError()

    password_hash = hasher.hash(new_password)
    if not repo.update_password(user.id, password_hash):
        raise ServiceUnavailableError("Failed to update password. Please try again.")

    user.password_hash = password_hash
    logger.info("Password reset completed", extra={"userId": user.id})
    return user
