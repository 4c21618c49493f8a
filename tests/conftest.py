from datetime import datetime

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import ensure_indexes, get_db
from engine import ProgressionEngine


@pytest.fixture
def db():
    """Fresh in-memory MongoDB with the production indexes."""
    database = mongomock.MongoClient().get_database("kids_play_test")
    ensure_indexes(database)
    return database


@pytest.fixture
def engine(db) -> ProgressionEngine:
    return ProgressionEngine.for_database(db)


@pytest.fixture
def make_child(db):
    def _make_child(total_points: int = 0, level: int = 1, name: str = "Aru") -> str:
        now = datetime.utcnow()
        inserted = db["child"].insert_one({
            "parent_id": "parent-1",
            "name": name,
            "age": 6,
            "avatar": "default-avatar",
            "language": "ru",
            "total_points": total_points,
            "level": level,
            "created_at": now,
            "updated_at": now,
        })
        return str(inserted.inserted_id)

    return _make_child


@pytest.fixture
def seed_sessions(db):
    """Insert ``count`` past game sessions directly into the history."""
    def _seed(child_id: str, count: int, **overrides) -> None:
        base = {
            "child_id": child_id,
            "game_key": "memory-match",
            "score": 5,
            "max_score": 10,
            "difficulty": "easy",
            "correct_answers": 5,
            "total_questions": 10,
            "duration": 60,
            "emotion_during_game": None,
        }
        base.update(overrides)
        db["game_session"].insert_many(
            [dict(base, completed_at=datetime.utcnow()) for _ in range(count)]
        )

    return _seed


@pytest.fixture
def client(db):
    from main import app

    app.dependency_overrides[get_db] = lambda: db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
