"""
MongoDB connection and small document helpers.

Configured from the environment (a local .env file is honoured):
  DATABASE_URL   mongodb connection string
  DATABASE_NAME  database to use
"""
import os
import logging
from datetime import datetime
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

load_dotenv()

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
db: Optional[Database] = None

database_url = os.getenv("DATABASE_URL")
database_name = os.getenv("DATABASE_NAME")

if database_url and database_name:
    try:
        _client = MongoClient(database_url)
        db = _client[database_name]
    except Exception as e:
        logger.error(f"Could not connect to MongoDB: {e}")
        db = None


def get_db() -> Optional[Database]:
    """FastAPI dependency returning the configured database (or None)."""
    return db


def ensure_indexes(database: Database) -> None:
    """Create the indexes the progression core relies on. Safe to call repeatedly."""
    database["achievement"].create_index([("child_id", ASCENDING), ("key", ASCENDING)], unique=True)
    database["game_session"].create_index([("child_id", ASCENDING), ("completed_at", DESCENDING)])
    database["game_session"].create_index([("child_id", ASCENDING), ("game_key", ASCENDING)])
    database["emotion_record"].create_index([("child_id", ASCENDING), ("timestamp", DESCENDING)])
    database["child"].create_index([("parent_id", ASCENDING)])


def create_document(collection_name: str, data: Union[BaseModel, dict], database: Optional[Database] = None) -> str:
    """Insert a single document with created/updated timestamps and return its id."""
    target = database if database is not None else db
    if target is None:
        raise Exception("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")

    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = data.copy()

    now = datetime.utcnow()
    data_dict["created_at"] = now
    data_dict["updated_at"] = now

    result = target[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None,
                  database: Optional[Database] = None) -> list:
    """Get documents from a collection, newest first."""
    target = database if database is not None else db
    if target is None:
        raise Exception("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")

    cursor = target[collection_name].find(filter_dict or {}).sort("created_at", DESCENDING)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
