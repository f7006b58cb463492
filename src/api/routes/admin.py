"""Administrator routes.

Endpoints:
- GET /api/admin/users: List registered users (ADMIN role required)
"""

import logging

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_user_repo
from api.models import UserResponse
from api.security import require_admin
from port.user_repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users", response_model=list[UserResponse])
def list_users(
    limit: int = Query(100, ge=1, le=500, description="Maximum number of users to return"),
    admin: UserResponse = Depends(require_admin),
    repo: UserRepository = Depends(get_user_repo),
):
    """List users, newest first."""
    users = repo.list_all(limit=limit)

    logger.info("Users listed", extra={"adminId": admin.id, "count": len(users)})
    return [UserResponse(**user.public_dict()) for user in users]
