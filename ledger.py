"""At-most-once achievement awards."""
import logging
from datetime import datetime
from typing import Union

from pydantic import BaseModel

from achievements import AchievementKey, AchievementRegistry
from stores import AchievementStore, ChildStore, InsertResult, child_locks

logger = logging.getLogger(__name__)


class AwardResult(BaseModel):
    awarded: bool
    key: str
    points_awarded: int = 0


class AchievementLedger:
    """Awards each achievement to a child at most once and credits its points.

    Within a process, awards for one child run under that child's lock. Across
    processes the store's unique index settles races: whoever loses the insert
    gets ``awarded=False`` and credits nothing.
    """

    def __init__(self, registry: AchievementRegistry, achievements: AchievementStore, children: ChildStore):
        self.registry = registry
        self.achievements = achievements
        self.children = children

    def try_award(self, child_id: str, key: Union[AchievementKey, str]) -> AwardResult:
        definition = self.registry.definition_for(key)
        key_value = key.value if isinstance(key, AchievementKey) else str(key)
        if definition is None:
            logger.warning(f"Unknown achievement key {key_value!r}; nothing awarded")
            return AwardResult(awarded=False, key=key_value)

        with child_locks.hold(child_id):
            if self.achievements.exists(child_id, key_value):
                return AwardResult(awarded=False, key=key_value)

            inserted = self.achievements.insert_unique(child_id, definition, datetime.utcnow())
            if inserted is InsertResult.ALREADY_EXISTS:
                logger.debug(f"Achievement {key_value} already unlocked for child {child_id}")
                return AwardResult(awarded=False, key=key_value)

            self.children.increment_points(child_id, definition.points_awarded)
        logger.info(f"Achievement {key_value} (+{definition.points_awarded}) awarded to child {child_id}")
        return AwardResult(awarded=True, key=key_value, points_awarded=definition.points_awarded)
