"""MongoDB implementation of UserRepository."""

from datetime import datetime, timezone
from logging import getLogger
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError
from adapter.mongodb.connection import USERS_COLLECTION_NAME
from domain.model.errors import RepositoryError
from domain.model.user import Role, User

logger = getLogger(__name__)

_INDEXES = [
    ([('email', 1)], {'name': 'idx_users_email', 'unique': True}),
    ([('created_at', -1)], {'name': 'idx_users_created_at'}),
]


class MongoUserRepository:
    def __init__(self, db: Database):
        self.collection = db[USERS_COLLECTION_NAME]

    def ensure_indexes(self) -> bool:
        """Create indexes for users collection, replacing a same-named index with other keys."""
        try:
            existing = self.collection.index_information()
            for keys, options in _INDEXES:
                current = existing.get(options['name'])
                if current and [tuple(k) for k in current.get('key', [])] != keys:
                    logger.warning("Dropping stale index", extra={"index": options['name']})
                    self.collection.drop_index(options['name'])
                self.collection.create_index(keys, **options)
            return True
        except PyMongoError as e:
            logger.error("Failed to create users indexes", extra={"error": str(e)})
            return False

    def _to_domain(self, doc: dict) -> User:
        """Convert MongoDB document to User domain model."""
        return User(
            id=doc['_id'],
            name=doc['name'],
            email=doc['email'],
            password_hash=doc['password_hash'],
            role=Role(doc.get('role', Role.USER.value)),
            created_at=doc['created_at'],
            updated_at=doc['updated_at'],
            last_login=doc.get('last_login'),
        )

    def _to_document(self, user: User) -> dict:
        return {
            '_id': user.id,
            'name': user.name,
            'email': user.email,
            'password_hash': user.password_hash,
            'role': user.role.value,
            'created_at': user.created_at,
            'updated_at': user.updated_at,
            'last_login': user.last_login,
        }

    # ── write operations ─────────────────────────────────────

    def save(self, user: User) -> User | None:
        """Insert a new user. Return the User, or None on duplicate email or DB error."""
        try:
            self.collection.insert_one(self._to_document(user))
            logger.info("User created", extra={"userId": user.id, "email": user.email, "role": user.role.value})
            return user
        except DuplicateKeyError:
            logger.warning("User creation failed: email already exists", extra={"email": user.email})
            return None
        except PyMongoError as e:
            logger.error("Failed to create user", extra={"email": user.email, "error": str(e)})
            return None

    def update_last_login(self, user_id: str) -> bool:
        """Update the last login timestamp for a user. Return True if successful."""
        try:
            now = datetime.now(timezone.utc)
            result = self.collection.update_one(
                {'_id': user_id},
                {'$set': {'last_login': now, 'updated_at': now}}
            )
            if result.modified_count > 0:
                logger.debug("Updated last_login", extra={"userId": user_id})
                return True
            return False
        except PyMongoError as e:
            logger.error("Failed to update last_login", extra={"userId": user_id, "error": str(e)})
            return False

    def update_password(self, user_id: str, password_hash: str) -> bool:
        """Replace the stored password hash. Return True if successful."""
        try:
            result = self.collection.update_one(
                {'_id': user_id},
                {'$set': {'password_hash': password_hash, 'updated_at': datetime.now(timezone.utc)}}
            )
            return result.modified_count > 0
        except PyMongoError as e:
            logger.error("Failed to update password", extra={"userId": user_id, "error": str(e)})
            return False

    # ── read operations ──────────────────────────────────────

    def get_by_email(self, email: str) -> User | None:
        """Find a user by email. Return None if not found; raise RepositoryError on DB failure."""
        try:
            doc = self.collection.find_one({'email': email})
        except PyMongoError as e:
            logger.error("Failed to get user by email", extra={"email": email, "error": str(e)})
            raise RepositoryError("User lookup failed") from e
        return self._to_domain(doc) if doc else None

    def list_all(self, limit: int = 100) -> list[User]:
        """Return users, newest first."""
        try:
            cursor = self.collection.find({}).sort('created_at', DESCENDING).limit(limit)
            return [self._to_domain(doc) for doc in cursor]
        except PyMongoError as e:
            logger.error("Failed to list users", extra={"error": str(e)})
            return []
