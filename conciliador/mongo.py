"""MongoDB client creation."""

from __future__ import annotations

from pymongo import MongoClient

CONNECT_TIMEOUT_MS = 10_000


def new_mongo_client(uri: str) -> MongoClient:
    """Create a MongoDB client for ``uri`` with a ten second connection timeout."""
    return MongoClient(
        uri,
        connectTimeoutMS=CONNECT_TIMEOUT_MS,
        serverSelectionTimeoutMS=CONNECT_TIMEOUT_MS,
    )