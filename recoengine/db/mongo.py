# recoengine/db/mongo.py
import logging
from typing import Optional

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from recoengine.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


def client_options(uri: str) -> dict:
    """
    Keyword arguments for AsyncIOMotorClient.
    Atlas (mongodb+srv) needs the certifi CA bundle inside slim containers;
    plain mongodb:// URIs (local, CI) connect without TLS.
    """
    options = {
        "tz_aware": True,  # created_at comparisons run against aware UTC datetimes
        "uuidRepresentation": "standard",
        "serverSelectionTimeoutMS": 6000,
        "connectTimeoutMS": 6000,
    }
    if uri.startswith("mongodb+srv://"):
        options.update(tls=True, tlsCAFile=certifi.where())
    return options


def get_db() -> AsyncIOMotorDatabase:
    assert _db is not None, "Mongo DB not initialized"
    return _db


async def ensure_indexes(db: AsyncIOMotorDatabase, settings: Settings) -> None:
    """Indexes backing the scorer queries (per-user history, co-interaction, trending window)."""
    interactions = db[settings.interactions_collection]
    await interactions.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await interactions.create_index([("product_id", ASCENDING), ("interaction_type", ASCENDING)])
    await interactions.create_index([("created_at", DESCENDING)])
    await db[settings.products_collection].create_index([("id", ASCENDING)], unique=True)


async def connect(settings: Optional[Settings] = None) -> None:
    """
    Open the Motor client and ping once.
    A failed ping does not abort startup: Motor connects lazily, and every scorer
    degrades to an empty list until the store answers.
    """
    global _client, _db
    settings = settings or get_settings()

    try:
        _client = AsyncIOMotorClient(settings.MONGO_URI, **client_options(settings.MONGO_URI))
        _db = _client[settings.MONGO_DB]
    except Exception as e:
        _client = None
        _db = None
        logger.error("Mongo client init failed: %s", e)
        return

    try:
        await _client.admin.command("ping")
        await ensure_indexes(_db, settings)
        logger.info("Mongo connected (ping ok) db=%s", settings.MONGO_DB)
    except Exception as e:
        logger.warning("Mongo ping at startup failed, first query will retry: %s", e)


async def disconnect() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None
