import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class Role(str, Enum):
    """Authorization tier embedded in issued access tokens."""
    USER = 'USER'
    ADMIN = 'ADMIN'


# bcrypt rejects longer secrets
MAX_PASSWORD_BYTES = 72


def normalize_email(email: str) -> str:
    """Canonical form used as the unique user key."""
    return (email or '').strip().lower()


def password_too_long(password: str) -> bool:
    return len(password.encode('utf-8')) > MAX_PASSWORD_BYTES


@dataclass
class User:
    """Domain model representing a registered account."""
    id: str
    name: str
    email: str
    password_hash: str
    role: Role
    created_at: datetime
    updated_at: datetime
    last_login: datetime | None = None

    # ── factory ───────────────────────────────────────────

    @staticmethod
    def create(name: str, email: str, password_hash: str, role: Role = Role.USER) -> 'User':
        """Create a new User with a generated ID."""
        now = datetime.now(timezone.utc)
        return User(
            id=uuid.uuid4().hex,
            name=name,
            email=normalize_email(email),
            password_hash=password_hash,
            role=role,
            created_at=now,
            updated_at=now,
        )

    # ── queries ───────────────────────────────────────────

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def public_dict(self) -> dict:
        """Profile fields safe to return to clients (no password hash)."""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role.value,
            'created_at': self.created_at,
            'last_login': self.last_login,
        }
