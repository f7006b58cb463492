"""MongoDB connection for the users collection."""

import os
import logging
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from adapter.client_cache import CachedClient

# Keep driver-level logs out of the structured application log
logging.getLogger('pymongo').setLevel(logging.WARNING)

MONGO_URL = os.getenv('MONGO_URL', '')
DATABASE_NAME = os.getenv('MONGODB_DATABASE', 'college_resources')
USERS_COLLECTION_NAME = 'users'


def _connect(url: str) -> MongoClient:
    return MongoClient(
        url,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=5000,
        socketTimeoutMS=10000,
        maxPoolSize=10,
        retryWrites=True,
        retryReads=True,
    )


_mongo = CachedClient(
    "MONGODB",
    MONGO_URL,
    connect=_connect,
    ping=lambda client: client.admin.command('ping'),
    errors=(PyMongoError,),
)


def get_mongodb_client() -> MongoClient | None:
    """Return a live MongoClient, or None when MongoDB is unreachable or not configured."""
    return _mongo.get()
