import os
import logging
from typing import Optional, Literal
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pymongo.errors import PyMongoError

from database import get_db, create_document, get_documents, ensure_indexes
from schemas import Child, EmotionRecord, GameResult, ProgressionOutcome
from achievements import default_registry
from analytics import AnalyticsAggregator
from engine import ProgressionEngine
from errors import ProgressionError
from stores import AchievementStore, GameHistoryStore, to_object_id

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

app = FastAPI(title="Kids Play & Progress API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

registry = default_registry()
_indexed = set()


@app.exception_handler(ProgressionError)
async def progression_error_handler(request: Request, exc: ProgressionError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


def require_db(db=Depends(get_db)):
    if db is None:
        raise HTTPException(500, "Database not configured")
    if id(db) not in _indexed:
        ensure_indexes(db)
        _indexed.add(id(db))
    return db


def serialize(doc: dict) -> dict:
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


@app.get("/")
def read_root():
    return {"message": "Kids Play & Progress Backend Running"}

@app.get("/test")
def test_database(db=Depends(get_db)):
    """Report database reachability and whether the award index is in place."""
    response = {
        "backend": "Running",
        "connection_status": "Not Connected",
        "collections": [],
        "unique_award_index": False,
    }
    if db is None:
        return response

    try:
        response["collections"] = db.list_collection_names()[:10]
        indexes = db["achievement"].index_information()
    except PyMongoError as e:
        logger.warning(f"Database status check failed: {e}")
        response["connection_status"] = f"Connected but Error: {str(e)[:50]}"
        return response

    response["connection_status"] = "Connected"
    response["unique_award_index"] = any(
        info.get("unique") and list(info["key"]) == [("child_id", 1), ("key", 1)]
        for info in indexes.values()
    )
    return response

# Child profiles
class ChildCreate(BaseModel):
    parent_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=2)
    age: int = Field(..., ge=4, le=10)
    avatar: Optional[str] = "default-avatar"
    language: Optional[Literal["kz", "ru"]] = "ru"

class ChildUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2)
    age: Optional[int] = Field(None, ge=4, le=10)
    avatar: Optional[str] = None
    language: Optional[Literal["kz", "ru"]] = None

@app.post("/children", status_code=201)
def create_child(payload: ChildCreate, db=Depends(require_db)):
    child = Child(**payload.model_dump())
    child_id = create_document("child", child, database=db)
    return {"id": child_id, "child": child}

@app.get("/children")
def list_children(parent_id: Optional[str] = None, db=Depends(require_db)):
    filter_dict = {"parent_id": parent_id} if parent_id else None
    return [serialize(d) for d in get_documents("child", filter_dict, database=db)]

@app.get("/children/{child_id}")
def get_child(child_id: str, db=Depends(require_db)):
    doc = db["child"].find_one({"_id": to_object_id(child_id)})
    if not doc:
        raise HTTPException(404, "Child not found")
    return serialize(doc)

@app.patch("/children/{child_id}")
def update_child(child_id: str, payload: ChildUpdate, db=Depends(require_db)):
    changes = payload.model_dump(exclude_none=True)
    cid = to_object_id(child_id)
    if changes:
        db["child"].update_one({"_id": cid}, {"$set": changes})
    doc = db["child"].find_one({"_id": cid})
    if not doc:
        raise HTTPException(404, "Child not found")
    return serialize(doc)

@app.delete("/children/{child_id}")
def delete_child(child_id: str, db=Depends(require_db)):
    doc = db["child"].find_one_and_delete({"_id": to_object_id(child_id)})
    if not doc:
        raise HTTPException(404, "Child not found")
    logger.info(f"Deleted child {child_id}")
    return {"message": "Child deleted", "id": child_id}

# Game sessions and progression
class GameSessionCreate(GameResult):
    child_id: str = Field(..., min_length=1)

@app.post("/games/sessions", status_code=201, response_model=ProgressionOutcome)
def save_game_session(payload: GameSessionCreate, db=Depends(require_db)):
    engine = ProgressionEngine.for_database(db, registry)
    result = GameResult(**payload.model_dump(exclude={"child_id"}))
    return engine.record_result(payload.child_id, result)

@app.get("/games/sessions/{child_id}")
def list_game_sessions(child_id: str, limit: int = 20, offset: int = 0, game_key: Optional[str] = None,
                       db=Depends(require_db)):
    sessions, total = GameHistoryStore(db).list_sessions(child_id, limit=limit, offset=offset, game_key=game_key)
    return {"sessions": [serialize(s) for s in sessions], "total": total, "limit": limit, "offset": offset}

@app.get("/games/achievements/{child_id}")
def list_child_achievements(child_id: str, db=Depends(require_db)):
    return {"achievements": [serialize(a) for a in AchievementStore(db).list_for_child(child_id)]}

@app.get("/achievements")
def list_achievement_catalog():
    return [d.model_dump(mode="json") for d in registry.definitions()]

# Emotions
class EmotionCreate(BaseModel):
    child_id: str = Field(..., min_length=1)
    emotion: Literal["happy", "sad", "angry", "surprised", "fearful", "disgusted", "neutral"]
    intensity: float = Field(..., ge=0, le=100)
    context: Optional[str] = None
    game_session_id: Optional[str] = None

@app.post("/emotions", status_code=201)
def save_emotion(payload: EmotionCreate, db=Depends(require_db)):
    if not db["child"].find_one({"_id": to_object_id(payload.child_id)}):
        raise HTTPException(404, "Child not found")
    record = EmotionRecord(**payload.model_dump())
    record_id = create_document("emotion_record", record, database=db)
    return {"id": record_id, "emotion": record}

@app.get("/emotions/{child_id}")
def list_emotions(child_id: str, days: int = 7, limit: int = 50, offset: int = 0, db=Depends(require_db)):
    aggregator = AnalyticsAggregator(db)
    query = {"child_id": child_id, "timestamp": {"$gte": aggregator.since(days)}}
    cursor = db["emotion_record"].find(query).sort("timestamp", -1).skip(offset).limit(limit)
    return {
        "emotions": [serialize(e) for e in cursor],
        "total": db["emotion_record"].count_documents(query),
        "limit": limit,
        "offset": offset,
    }

@app.get("/emotions/{child_id}/summary")
def get_emotion_summary(child_id: str, days: int = 7, db=Depends(require_db)):
    return AnalyticsAggregator(db).emotion_summary(child_id, days=days)

# Analytics
@app.get("/analytics/summary/{child_id}")
def get_analytics_summary(child_id: str, days: int = 30, db=Depends(require_db)):
    return AnalyticsAggregator(db).summary(child_id, days=days)

@app.get("/analytics/recommendations/{child_id}")
def get_recommendations(child_id: str, db=Depends(require_db)):
    recs = AnalyticsAggregator(db).recommendations(child_id)
    return {"child_id": child_id, "recommendations": [r.model_dump() for r in recs]}

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
