"""In-memory implementation of UserRepository for testing."""

from dataclasses import replace
from datetime import datetime, timezone
from domain.model.errors import RepositoryError
from domain.model.user import User


class FakeUserRepository:
    def __init__(self):
        self.store: dict[str, User] = {}
        self.fail_writes = False
        self.fail_reads = False

    # ── write operations ─────────────────────────────────────

    def save(self, user: User) -> User | None:
        if self.fail_writes:
            return None
        if any(u.email == user.email for u in self.store.values()):
            return None
        self.store[user.id] = replace(user)
        return user

    def update_last_login(self, user_id: str) -> bool:
        user = self.store.get(user_id)
        if not user:
            return False

        now = datetime.now(timezone.utc)
        user.last_login = now
        user.updated_at = now
        return True

    def update_password(self, user_id: str, password_hash: str) -> bool:
        if self.fail_writes:
            return False
        user = self.store.get(user_id)
        if not user:
            return False

        user.password_hash = password_hash
        user.updated_at = datetime.now(timezone.utc)
        return True

    # ── read operations ──────────────────────────────────────

    def get_by_email(self, email: str) -> User | None:
        if self.fail_reads:
            raise RepositoryError("User lookup failed")
        for user in self.store.values():
            if user.email == email:
                return user
        return None

    def list_all(self, limit: int = 100) -> list[User]:
        users = sorted(self.store.values(), key=lambda u: u.created_at, reverse=True)
        return users[:limit]
