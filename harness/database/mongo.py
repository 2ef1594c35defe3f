from pymongo import MongoClient

from harness.config import settings


def connect(uri: str) -> MongoClient:
    """Open a client for *uri* using the configured selection timeout."""
    return MongoClient(
        uri,
        serverSelectionTimeoutMS=settings.mongo_server_selection_timeout_ms,
    )
