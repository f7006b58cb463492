"""JWT authentication and security dependencies."""

import os
import logging
from datetime import timedelta
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from adapter.security.jwt_token_issuer import JoseTokenIssuer
from api.dependencies import get_user_repo
from api.models import UserResponse
from domain.model.errors import ServiceUnavailableError
from domain.model.user import Role
from port.token_issuer import TokenIssuer
from port.user_repository import UserRepository
from services.auth_service import authenticate_token

logger = logging.getLogger(__name__)

# JWT Configuration
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not JWT_SECRET_KEY:
    raise ValueError(
        "JWT_SECRET_KEY environment variable is required. "
        "Generate a secure key with: openssl rand -hex 32"
    )
JWT_EXPIRATION_DAYS = int(os.getenv("JWT_EXPIRATION_DAYS", "7"))

_token_issuer = JoseTokenIssuer(JWT_SECRET_KEY, default_expiry=timedelta(days=JWT_EXPIRATION_DAYS))

security = HTTPBearer(auto_error=False)


def get_token_issuer() -> TokenIssuer:
    return _token_issuer


def get_current_user_required(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    user_repo: UserRepository = Depends(get_user_repo),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> UserResponse:
    """Get current authenticated user (required). Raises 401 if not authenticated."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user = authenticate_token(repo=user_repo, token_issuer=token_issuer, token=credentials.credentials)
    except ServiceUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
            headers={"X-Error-Code": e.code.value},
        )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return UserResponse(**user.public_dict())


def require_admin(current_user: UserResponse = Depends(get_current_user_required)) -> UserResponse:
    """Allow only ADMIN accounts. Raises 403 otherwise."""
    if current_user.role != Role.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return current_user
