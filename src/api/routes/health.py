"""Health check endpoint."""

import logging
from datetime import datetime, timezone
from typing import Callable

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.dependencies import get_reset_store, get_signup_store
from adapter.mongodb.connection import get_mongodb_client
from domain.model.pending import PendingPasswordReset, PendingSignup
from port.pending_store import PendingStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


def _status_of(check: Callable[[], bool]) -> dict:
    """Run one dependency check and describe the outcome."""
    try:
        if check():
            return {"status": "healthy", "message": "Connection successful"}
        return {"status": "unhealthy", "message": "Connection failed or not configured"}
    except Exception as e:
        return {"status": "unhealthy", "message": f"Connection error: {str(e)[:200]}"}


def _ping_mongodb() -> bool:
    client = get_mongodb_client()
    if client is None:
        return False
    client.admin.command('ping')
    return True


@router.get("")
def health(
    signup_store: PendingStore[PendingSignup] = Depends(get_signup_store),
    reset_store: PendingStore[PendingPasswordReset] = Depends(get_reset_store),
):
    """Report whether the pending stores and MongoDB are reachable.

    Returns 200 when every dependency is healthy, 503 otherwise.
    """
    services = {
        "pending_signup_store": _status_of(signup_store.ping),
        "pending_reset_store": _status_of(reset_store.ping),
        "mongodb": _status_of(_ping_mongodb),
    }
    healthy = all(s["status"] == "healthy" for s in services.values())

    if not healthy:
        logger.warning("Health check degraded", extra={"services": services})

    return JSONResponse(
        content={
            "status": "healthy" if healthy else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            "services": services,
        },
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
    )
