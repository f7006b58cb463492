from typing import Protocol
from domain.model.user import User


class UserRepository(Protocol):
    """Protocol defining the interface for user data access."""
    def save(self, user: User) -> User | None:
        """Persist a new user. Return the User or None if the write failed."""
        ...

    def get_by_email(self, email: str) -> User | None:
        """Find a user by email. Return User or None if not found.

        Raises:
            RepositoryError: the database could not be queried
        """
        ...

    def list_all(self, limit: int = 100) -> list[User]:
        """Return users, newest first."""
        ...

    def update_last_login(self, user_id: str) -> bool:
        """Update the last login timestamp for a user. Return True if successful."""
        ...

    def update_password(self, user_id: str, password_hash: str) -> bool:
        """Replace the stored password hash. Return True if successful."""
        ...
