"""
pymongo-backed stores used by the progression engine.

Children live in "child", completed plays in "game_session" and unlocks in
"achievement". The unique (child_id, key) index on "achievement" is what keeps
an achievement from being awarded twice; see database.ensure_indexes.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from achievements import AchievementDefinition
from errors import NotFound, StorageFailure
from progression import level_for_points
from schemas import ChildProfile, GameResult, GameSession

logger = logging.getLogger(__name__)


def to_object_id(child_id: str) -> ObjectId:
    try:
        return ObjectId(child_id)
    except (InvalidId, TypeError):
        raise NotFound() from None


class _ChildLocks:
    """One reentrant lock per child id, shared by every store in the process.

    Entries are reference counted and dropped once no caller holds or waits
    on them, so the map only ever contains children in active use.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, list] = {}

    @contextmanager
    def hold(self, child_id: str):
        with self._guard:
            entry = self._locks.get(child_id)
            if entry is None:
                entry = self._locks[child_id] = [threading.RLock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[child_id]

    def __len__(self):
        with self._guard:
            return len(self._locks)


child_locks = _ChildLocks()


class ChildStore:
    def __init__(self, database: Database):
        self._collection = database["child"]

    def get(self, child_id: str) -> ChildProfile:
        oid = to_object_id(child_id)
        try:
            doc = self._collection.find_one({"_id": oid})
        except PyMongoError as e:
            logger.error(f"Loading child {child_id} failed: {e}")
            raise StorageFailure(f"Failed to load child: {e}") from e
        if doc is None:
            raise NotFound()
        return ChildProfile.from_document(doc)

    def increment_points(self, child_id: str, delta: int) -> ChildProfile:
        """Atomically add ``delta`` points and raise the stored level to match.

        ``$inc`` makes the add safe across processes; the per-child lock keeps
        the follow-up level write ordered within this process.
        """
        if delta < 0:
            raise ValueError("delta must be non-negative")
        oid = to_object_id(child_id)
        with child_locks.hold(child_id):
            try:
                doc = self._collection.find_one_and_update(
                    {"_id": oid},
                    {"$inc": {"total_points": delta}, "$set": {"updated_at": datetime.utcnow()}},
                    return_document=ReturnDocument.AFTER,
                )
                if doc is None:
                    raise NotFound()
                level = level_for_points(doc.get("total_points", 0))
                if level > doc.get("level", 1):
                    self._collection.update_one({"_id": oid}, {"$max": {"level": level}})
                    doc["level"] = level
            except PyMongoError as e:
                logger.error(f"Crediting {delta} points to child {child_id} failed: {e}")
                raise StorageFailure(f"Failed to update child points: {e}") from e
        return ChildProfile.from_document(doc)


class GameHistoryStore:
    def __init__(self, database: Database):
        self._collection = database["game_session"]

    def append(self, child_id: str, result: GameResult) -> str:
        session = GameSession(child_id=child_id, **result.model_dump())
        try:
            inserted = self._collection.insert_one(session.model_dump())
        except PyMongoError as e:
            logger.error(f"Saving game session for child {child_id} failed: {e}")
            raise StorageFailure(f"Failed to save game session: {e}") from e
        return str(inserted.inserted_id)

    def count_completed(self, child_id: str) -> int:
        try:
            return self._collection.count_documents({"child_id": child_id})
        except PyMongoError as e:
            raise StorageFailure(f"Failed to count game sessions: {e}") from e

    def list_sessions(self, child_id: str, limit: int = 20, offset: int = 0,
                      game_key: Optional[str] = None) -> tuple:
        """Return (sessions, total) newest first."""
        query = {"child_id": child_id}
        if game_key:
            query["game_key"] = game_key
        try:
            cursor = self._collection.find(query).sort("completed_at", DESCENDING).skip(offset).limit(limit)
            sessions = list(cursor)
            total = self._collection.count_documents(query)
        except PyMongoError as e:
            raise StorageFailure(f"Failed to list game sessions: {e}") from e
        return sessions, total


class InsertResult(str, Enum):
    INSERTED = "inserted"
    ALREADY_EXISTS = "already_exists"


class AchievementStore:
    def __init__(self, database: Database):
        self._collection = database["achievement"]

    def exists(self, child_id: str, key: str) -> bool:
        try:
            return self._collection.find_one({"child_id": child_id, "key": key}) is not None
        except PyMongoError as e:
            raise StorageFailure(f"Failed to look up achievement: {e}") from e

    def insert_unique(self, child_id: str, definition: AchievementDefinition,
                      unlocked_at: datetime) -> InsertResult:
        doc = {
            "child_id": child_id,
            "key": definition.key.value,
            "name": definition.name,
            "description": definition.description,
            "icon": definition.icon,
            "points_awarded": definition.points_awarded,
            "unlocked_at": unlocked_at,
        }
        try:
            self._collection.insert_one(doc)
        except DuplicateKeyError:
            return InsertResult.ALREADY_EXISTS
        except PyMongoError as e:
            logger.error(f"Saving achievement {definition.key.value} for child {child_id} failed: {e}")
            raise StorageFailure(f"Failed to save achievement: {e}") from e
        return InsertResult.INSERTED

    def list_for_child(self, child_id: str, limit: Optional[int] = None) -> List[dict]:
        try:
            cursor = self._collection.find({"child_id": child_id}).sort("unlocked_at", DESCENDING)
            if limit:
                cursor = cursor.limit(limit)
            return list(cursor)
        except PyMongoError as e:
            raise StorageFailure(f"Failed to list achievements: {e}") from e
