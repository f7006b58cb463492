"""Authentication routes (signup with email OTP, login, password reset).

Endpoints (prefix /api/user):
- POST /signup: Start signup, email an OTP
- POST /verify-otp: Confirm the OTP and create the account
- POST /resend-otp: Send a fresh OTP for a pending signup
- POST /login: Exchange credentials for a bearer token
- POST /forgot-password: Email a password reset OTP
- POST /reset-password: Exchange a reset OTP for a reset token
- POST /verify-reset-otp: Set a new password with a reset token
- GET /profile: Current user's profile

Flow:
    Client → POST /signup → OTP emailed
    Client → POST /verify-otp?email=&otp= → account created
    Client → POST /login → {token}
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from api.dependencies import (
    get_admin_emails,
    get_notifier,
    get_password_hasher,
    get_reset_store,
    get_signup_store,
    get_user_repo,
)
from api.models import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResetPasswordRequest,
    ResetTokenResponse,
    SignupRequest,
    UserResponse,
)
from api.security import get_current_user_required, get_token_issuer
from domain.model.errors import (
    ConflictError,
    DomainError,
    InvalidCredentialsError,
    InvalidOtpError,
    InvalidResetTokenError,
    ServiceUnavailableError,
    ValidationError,
)
from domain.model.pending import PendingPasswordReset, PendingSignup
from port.notification import NotificationPort
from port.password_hasher import PasswordHasher
from port.pending_store import PendingStore
from port.token_issuer import TokenIssuer
from port.user_repository import UserRepository
from services import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["auth"])

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

# Checked in order; first isinstance match wins
_STATUS_BY_ERROR: list[tuple[type[DomainError], int]] = [
    (ConflictError, status.HTTP_400_BAD_REQUEST),
    (InvalidOtpError, status.HTTP_400_BAD_REQUEST),
    (InvalidCredentialsError, status.HTTP_400_BAD_REQUEST),
    (InvalidResetTokenError, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ServiceUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def _http_error(error: DomainError) -> HTTPException:
    """Map a domain error to an HTTPException carrying its code in X-Error-Code."""
    status_code = next(
        (code for error_type, code in _STATUS_BY_ERROR if isinstance(error, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return HTTPException(
        status_code=status_code,
        detail=str(error),
        headers={"X-Error-Code": error.code.value},
    )


async def _read_params(request: Request, *names: str) -> dict[str, str]:
    """Read named parameters from the query string, falling back to form fields."""
    values = {name: request.query_params.get(name) for name in names}

    content_type = request.headers.get("content-type", "")
    if not all(values.values()) and content_type.startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        for name in names:
            if not values[name] and isinstance(form.get(name), str):
                values[name] = form.get(name)

    missing = [name for name, value in values.items() if not value]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Missing required parameter(s): {', '.join(missing)}",
        )
    return values


async def email_otp_params(request: Request) -> dict[str, str]:
    return await _read_params(request, "email", "otp")


async def email_param(request: Request) -> dict[str, str]:
    return await _read_params(request, "email")


# ── signup ───────────────────────────────────────────────────


@router.post("/signup", response_model=MessageResponse)
def signup(
    request: SignupRequest,
    repo: UserRepository = Depends(get_user_repo),
    pending_store: PendingStore[PendingSignup] = Depends(get_signup_store),
    hasher: PasswordHasher = Depends(get_password_hasher),
    notifier: NotificationPort = Depends(get_notifier),
):
    """Start signup: email a one-time code to the address.

    Raises:
        HTTPException: 400 if email already registered, 503 if the email could not be sent
    """
    try:
        pending = auth_service.start_signup(
            repo=repo,
            pending_store=pending_store,
            hasher=hasher,
            notifier=notifier,
            name=request.name,
            email=request.email,
            password=request.password,
        )
    except DomainError as e:
        raise _http_error(e)

    return {"message": f"OTP sent to {pending.email}"}


@router.post("/verify-otp", response_model=MessageResponse)
def verify_otp(
    params: dict[str, str] = Depends(email_otp_params),
    repo: UserRepository = Depends(get_user_repo),
    pending_store: PendingStore[PendingSignup] = Depends(get_signup_store),
    admin_emails: frozenset[str] = Depends(get_admin_emails),
):
    """Confirm the emailed code and create the account.

    Raises:
        HTTPException: 400 "Invalid or expired OTP." on any mismatch
    """
    try:
        auth_service.verify_signup(
            repo=repo,
            pending_store=pending_store,
            admin_emails=admin_emails,
            email=params["email"],
            otp=params["otp"],
        )
    except DomainError as e:
        raise _http_error(e)

    return {"message": "Signup complete. Redirecting to dashboard..."}


@router.post("/resend-otp", response_model=MessageResponse)
def resend_otp(
    params: dict[str, str] = Depends(email_param),
    pending_store: PendingStore[PendingSignup] = Depends(get_signup_store),
    notifier: NotificationPort = Depends(get_notifier),
):
    """Send a fresh code for a signup that is still pending."""
    try:
        pending = auth_service.resend_signup_otp(
            pending_store=pending_store,
            notifier=notifier,
            email=params["email"],
        )
    except DomainError as e:
        raise _http_error(e)

    return {"message": f"OTP re-sent to {pending.email}"}


# ── login ────────────────────────────────────────────────────


@router.post("/login", response_model=LoginResponse)
def login(
    request: LoginRequest,
    repo: UserRepository = Depends(get_user_repo),
    hasher: PasswordHasher = Depends(get_password_hasher),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Login user and return JWT token.

    Raises:
        HTTPException: 400 "Invalid email or password" for unknown email or wrong password
    """
    try:
        token = auth_service.login(
            repo=repo,
            hasher=hasher,
            token_issuer=token_issuer,
            email=request.email,
            password=request.password,
        )
    except DomainError as e:
        raise _http_error(e)

    return {"token": token}


@router.get("/profile", response_model=UserResponse)
def get_profile(current_user: UserResponse = Depends(get_current_user_required)):
    """Get current authenticated user info."""
    return current_user


# ── password reset ───────────────────────────────────────────


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    request: ForgotPasswordRequest,
    repo: UserRepository = Depends(get_user_repo),
    reset_store: PendingStore[PendingPasswordReset] = Depends(get_reset_store),
    notifier: NotificationPort = Depends(get_notifier),
):
    """Email a reset code. The answer is the same whether or not the account exists."""
    try:
        auth_service.request_password_reset(
            repo=repo,
            reset_store=reset_store,
            notifier=notifier,
            email=request.email,
        )
    except DomainError as e:
        raise _http_error(e)

    return {"message": "If an account with that email exists, a reset code has been sent."}


@router.post("/reset-password", response_model=ResetTokenResponse)
def reset_password_otp(
    params: dict[str, str] = Depends(email_otp_params),
    repo: UserRepository = Depends(get_user_repo),
    reset_store: PendingStore[PendingPasswordReset] = Depends(get_reset_store),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Exchange a reset code for a short-lived, single-use reset token."""
    try:
        reset_token = auth_service.verify_password_reset(
            repo=repo,
            reset_store=reset_store,
            token_issuer=token_issuer,
            email=params["email"],
            otp=params["otp"],
        )
    except DomainError as e:
        raise _http_error(e)

    return {"resetToken": reset_token}


@router.post("/verify-reset-otp", response_model=MessageResponse)
def set_new_password(
    request: ResetPasswordRequest,
    repo: UserRepository = Depends(get_user_repo),
    hasher: PasswordHasher = Depends(get_password_hasher),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Set a new password using the token from /reset-password."""
    try:
        auth_service.reset_password(
            repo=repo,
            hasher=hasher,
            token_issuer=token_issuer,
            email=request.email,
            reset_token=request.reset_token,
            new_password=request.new_password,
        )
    except DomainError as e:
        raise _http_error(e)

    return {"message": "Password reset successful."}
