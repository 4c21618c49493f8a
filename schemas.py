"""
Database Schemas for the Kids Play & Progress API (Ages 4–10)

Each Pydantic model represents a MongoDB collection. The collection name is the
snake_cased class name (e.g., GameSession -> "game_session").
"""
from typing import List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

GameKey = Literal[
    "memory-match",
    "pattern-sequence",
    "math-adventure",
    "word-builder",
    "emotion-cards",
    "puzzle-solve",
]

GAME_KEYS: List[str] = [
    "memory-match",
    "pattern-sequence",
    "math-adventure",
    "word-builder",
    "emotion-cards",
    "puzzle-solve",
]

Difficulty = Literal["easy", "medium", "hard"]

Emotion = Literal["happy", "sad", "angry", "surprised", "fearful", "disgusted", "neutral"]

# Core profiles
class Child(BaseModel):
    parent_id: str = Field(..., min_length=1, description="Owning parent account")
    name: str = Field(..., min_length=2, description="Child's display name")
    age: int = Field(..., ge=4, le=10, description="Age in years")
    avatar: str = Field("default-avatar", description="Avatar image key")
    language: Literal["kz", "ru"] = Field("ru", description="Interface language")
    total_points: int = Field(0, ge=0)
    level: int = Field(1, ge=1)

class ChildProfile(BaseModel):
    """Progression view of a stored child document."""
    id: str
    parent_id: Optional[str] = None
    name: Optional[str] = None
    total_points: int = Field(0, ge=0)
    level: int = Field(1, ge=1)

    @classmethod
    def from_document(cls, doc: dict) -> "ChildProfile":
        return cls(
            id=str(doc["_id"]),
            parent_id=doc.get("parent_id"),
            name=doc.get("name"),
            total_points=doc.get("total_points", 0),
            level=doc.get("level", 1),
        )

# Play tracking
class GameResult(BaseModel):
    """One completed mini-game. Immutable once created.

    ``score <= max_score`` is deliberately not checked.
    """
    model_config = ConfigDict(frozen=True)

    game_key: GameKey
    score: int = Field(..., ge=0)
    max_score: int = Field(..., ge=0)
    difficulty: Difficulty = "easy"
    correct_answers: int = Field(0, ge=0)
    total_questions: int = Field(0, ge=0)
    duration: int = Field(..., ge=0, description="Seconds played")
    emotion_during_game: Optional[str] = None

class GameSession(GameResult):
    child_id: str
    completed_at: datetime = Field(default_factory=datetime.utcnow)

class Achievement(BaseModel):
    """One unlock record; unique per (child_id, key)."""
    child_id: str
    key: str
    name: str
    description: str
    icon: str = "🏆"
    points_awarded: int = Field(10, ge=0)
    unlocked_at: datetime = Field(default_factory=datetime.utcnow)

class EmotionRecord(BaseModel):
    child_id: str
    emotion: Emotion
    intensity: float = Field(..., ge=0, le=100)
    context: Optional[str] = None
    game_session_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)

# Engine output
class ProgressionOutcome(BaseModel):
    points_earned: int
    new_total_points: int
    new_level: int
    leveled_up: bool
    new_achievements: List[str] = Field(default_factory=list)
    total_points: int = Field(..., description="Stored total after every credit of this call")
    session_id: Optional[str] = None

class Recommendation(BaseModel):
    child_id: str
    code: str
    type: Literal["engagement", "skill", "emotional", "general"]
    priority: Literal["high", "medium", "low"]
    title: str
    ref: Optional[str] = None
    reason: str = ""
