"""
Progression engine: turns one completed game into points, a level and
achievement unlocks.

Each step commits on its own. A failure part-way leaves earlier steps in place,
including the appended game session, so callers must not blindly resubmit a
result whose outcome is unknown.
"""
import logging
from typing import Any, Dict, List, Mapping, Union

import pydantic
from pymongo.database import Database

from achievements import AchievementKey, AchievementRegistry, default_registry
from errors import ValidationError
from ledger import AchievementLedger
from progression import is_perfect_score, level_for_points, points_for_result
from schemas import GameResult, ProgressionOutcome
from stores import AchievementStore, ChildStore, GameHistoryStore

logger = logging.getLogger(__name__)

# Awarded when the completed-game count is exactly this value
PLAY_COUNT_MILESTONES: Mapping[int, AchievementKey] = {
    1: AchievementKey.FIRST_GAME,
    10: AchievementKey.QUICK_LEARNER,
    50: AchievementKey.SUPER_PLAYER,
}


def coerce_result(payload: Union[GameResult, Dict[str, Any]]) -> GameResult:
    """Validate a raw payload into a GameResult."""
    if isinstance(payload, GameResult):
        return payload
    try:
        return GameResult.model_validate(payload)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "result"
        raise ValidationError(f"{field}: {first.get('msg', 'invalid value')}") from e


class ProgressionEngine:
    def __init__(self, children: ChildStore, history: GameHistoryStore, ledger: AchievementLedger):
        self.children = children
        self.history = history
        self.ledger = ledger

    @classmethod
    def for_database(cls, database: Database, registry: AchievementRegistry = None) -> "ProgressionEngine":
        registry = registry or default_registry()
        children = ChildStore(database)
        ledger = AchievementLedger(registry, AchievementStore(database), children)
        return cls(children, GameHistoryStore(database), ledger)

    def record_result(self, child_id: str, result: Union[GameResult, Dict[str, Any]]) -> ProgressionOutcome:
        result = coerce_result(result)
        profile = self.children.get(child_id)

        session_id = self.history.append(child_id, result)
        points_earned = points_for_result(result.score, result.max_score, result.difficulty)

        unlocked: List[str] = []

        if is_perfect_score(result.score, result.max_score):
            award = self.ledger.try_award(child_id, AchievementKey.PERFECT_SCORE)
            if award.awarded:
                unlocked.append(award.key)

        # Level-up is judged on the game's own points only; achievement
        # bonuses never push a child over a threshold.
        previous_level = profile.level
        new_total_points = profile.total_points + points_earned
        new_level = level_for_points(new_total_points)
        leveled_up = new_level > previous_level

        updated = self.children.increment_points(child_id, points_earned)

        # Bonus points credited after the main increment
        bonus_after = 0

        if leveled_up:
            award = self.ledger.try_award(child_id, AchievementKey.LEVEL_UP)
            if award.awarded:
                unlocked.append(award.key)
                bonus_after += award.points_awarded

        completed = self.history.count_completed(child_id)
        milestone = PLAY_COUNT_MILESTONES.get(completed)
        if milestone is not None:
            award = self.ledger.try_award(child_id, milestone)
            if award.awarded:
                unlocked.append(award.key)
                bonus_after += award.points_awarded

        logger.info(
            f"Recorded {result.game_key} for child {child_id}: +{points_earned} points, "
            f"total {new_total_points}, level {new_level}, unlocked {unlocked or 'nothing'}"
        )

        return ProgressionOutcome(
            points_earned=points_earned,
            new_total_points=new_total_points,
            new_level=new_level,
            leveled_up=leveled_up,
            new_achievements=unlocked,
            total_points=updated.total_points + bonus_after,
            session_id=session_id,
        )
