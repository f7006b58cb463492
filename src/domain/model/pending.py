"""Pending verifications: short-lived records awaiting an emailed OTP.

A pending record is keyed by email and carries the code together with any
payload needed to finish the flow, so the code and the payload are always
stored, read and removed as one unit.
"""

import hmac
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TypeVar


class CodePurpose(str, Enum):
    """What an emailed code is for; selects the email wording."""
    SIGNUP = 'signup'
    PASSWORD_RESET = 'password_reset'


_DATETIME_FIELDS = ('created_at', 'expires_at')


@dataclass(frozen=True)
class PendingVerification:
    """Base record: an OTP issued to an email, valid until expires_at."""
    email: str
    otp: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires_at

    def matches(self, otp: str) -> bool:
        """Constant-time comparison against the submitted code."""
        return hmac.compare_digest(self.otp.encode('utf-8'), (otp or '').encode('utf-8'))

    def ttl_seconds(self, now: datetime | None = None) -> int:
        remaining = self.expires_at - (now or datetime.now(timezone.utc))
        return max(0, int(remaining.total_seconds()))

    def same_issue(self, other: 'PendingVerification') -> bool:
        """True when both records come from the same issuance."""
        return self.otp == other.otp and self.created_at == other.created_at

    # ── serialization (used by the Redis adapter) ─────────

    def to_dict(self) -> dict:
        data = asdict(self)
        for name in _DATETIME_FIELDS:
            data[name] = data[name].isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict):
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        for name in _DATETIME_FIELDS:
            if isinstance(values.get(name), str):
                values[name] = datetime.fromisoformat(values[name])
        return cls(**values)


@dataclass(frozen=True)
class PendingSignup(PendingVerification):
    """Signup awaiting OTP confirmation: code plus the profile to create."""
    name: str
    password_hash: str

    @staticmethod
    def issue(email: str, otp: str, name: str, password_hash: str, ttl: timedelta) -> 'PendingSignup':
        now = datetime.now(timezone.utc)
        return PendingSignup(
            email=email,
            otp=otp,
            created_at=now,
            expires_at=now + ttl,
            name=name,
            password_hash=password_hash,
        )

    def reissue(self, otp: str, ttl: timedelta) -> 'PendingSignup':
        """Same profile payload under a fresh code and expiry."""
        return PendingSignup.issue(self.email, otp, self.name, self.password_hash, ttl)


@dataclass(frozen=True)
class PendingPasswordReset(PendingVerification):
    """Password reset awaiting OTP confirmation."""

    @staticmethod
    def issue(email: str, otp: str, ttl: timedelta) -> 'PendingPasswordReset':
        now = datetime.now(timezone.utc)
        return PendingPasswordReset(email=email, otp=otp, created_at=now, expires_at=now + ttl)


PendingT = TypeVar('PendingT', bound=PendingVerification)
