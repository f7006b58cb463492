"""python-jose implementation of TokenIssuer (HS256 JWTs)."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


class JoseTokenIssuer:
    def __init__(self, secret_key: str, default_expiry: timedelta, algorithm: str = JWT_ALGORITHM):
        if not secret_key:
            raise ValueError("JWT secret key must not be empty")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._default_expiry = default_expiry

    def issue(
        self,
        subject: str,
        claims: dict[str, Any] | None = None,
        expires_in: timedelta | None = None,
    ) -> str:
        """Create a signed token for ``subject``."""
        now = datetime.now(timezone.utc)
        payload = dict(claims or {})
        payload.update({
            "sub": subject,
            "iat": now,
            "exp": now + (expires_in or self._default_expiry),
        })
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode(self, token: str) -> dict[str, Any] | None:
        """Verify signature and expiry; return the claims or None."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError as e:
            logger.debug(f"JWT verification failed: {e}")
            return None
        if not payload.get("sub"):
            return None
        return payload
