"""
Achievement catalog.

The catalog is built once at startup and handed to whoever needs it; nothing
mutates it afterwards.
"""
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class AchievementKey(str, Enum):
    FIRST_GAME = "first-game"
    WEEK_STREAK = "week-streak"
    MEMORY_MASTER = "memory-master"
    MATH_WIZARD = "math-wizard"
    EMOTION_EXPERT = "emotion-expert"
    QUICK_LEARNER = "quick-learner"
    SUPER_PLAYER = "super-player"
    PERFECT_SCORE = "perfect-score"
    LEVEL_UP = "level-up"


class AchievementDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: AchievementKey
    name: str
    description: str
    icon: str = "🏆"
    points_awarded: int = Field(10, ge=0)


DEFAULT_DEFINITIONS = (
    AchievementDefinition(
        key=AchievementKey.FIRST_GAME,
        name="First Steps",
        description="Completed your first game!",
        icon="🎮",
        points_awarded=10,
    ),
    AchievementDefinition(
        key=AchievementKey.WEEK_STREAK,
        name="Week Warrior",
        description="Played for 7 days in a row!",
        icon="🔥",
        points_awarded=50,
    ),
    AchievementDefinition(
        key=AchievementKey.MEMORY_MASTER,
        name="Memory Master",
        description="Achieved a high score in the memory game!",
        icon="🧠",
        points_awarded=30,
    ),
    AchievementDefinition(
        key=AchievementKey.MATH_WIZARD,
        name="Math Wizard",
        description="Achieved a high score in the math game!",
        icon="🔢",
        points_awarded=30,
    ),
    AchievementDefinition(
        key=AchievementKey.EMOTION_EXPERT,
        name="Emotion Expert",
        description="Recognized all emotions correctly!",
        icon="😊",
        points_awarded=25,
    ),
    AchievementDefinition(
        key=AchievementKey.QUICK_LEARNER,
        name="Quick Learner",
        description="Completed 10 games!",
        icon="📚",
        points_awarded=20,
    ),
    AchievementDefinition(
        key=AchievementKey.SUPER_PLAYER,
        name="Super Player",
        description="Completed 50 games!",
        icon="⭐",
        points_awarded=100,
    ),
    AchievementDefinition(
        key=AchievementKey.PERFECT_SCORE,
        name="Perfectionist",
        description="Got 100% in a game!",
        icon="💯",
        points_awarded=40,
    ),
    AchievementDefinition(
        key=AchievementKey.LEVEL_UP,
        name="Level Up!",
        description="Reached a new level!",
        icon="🚀",
        points_awarded=15,
    ),
)


class AchievementRegistry:
    """Read-only lookup of achievement definitions by key."""

    def __init__(self, definitions: Iterable[AchievementDefinition]):
        catalog = {}
        for definition in definitions:
            if definition.key in catalog:
                raise ValueError(f"Duplicate achievement key: {definition.key.value}")
            catalog[definition.key] = definition
        self._catalog: Mapping[AchievementKey, AchievementDefinition] = MappingProxyType(catalog)

    def definition_for(self, key: Union[AchievementKey, str]) -> Optional[AchievementDefinition]:
        try:
            return self._catalog.get(AchievementKey(key))
        except ValueError:
            return None

    def keys(self) -> Iterator[AchievementKey]:
        return iter(self._catalog)

    def definitions(self) -> Iterator[AchievementDefinition]:
        return iter(self._catalog.values())

    def __iter__(self) -> Iterator[AchievementKey]:
        return self.keys()

    def __len__(self) -> int:
        return len(self._catalog)

    def __contains__(self, key) -> bool:
        return self.definition_for(key) is not None


def default_registry() -> AchievementRegistry:
    return AchievementRegistry(DEFAULT_DEFINITIONS)
