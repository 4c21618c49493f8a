"""
Read-only rollups for the parent dashboard and the recommendation heuristics.
Nothing here writes to the database.
"""
import logging
from collections import Counter, OrderedDict
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from errors import StorageFailure
from progression import score_percentage
from schemas import GAME_KEYS, Recommendation
from stores import ChildStore

logger = logging.getLogger(__name__)

NEGATIVE_EMOTIONS = ("sad", "angry", "fearful")
MAX_RECOMMENDATIONS = 5


def game_stats(sessions: List[dict]) -> List[dict]:
    """Per game key totals, in the order games were first seen."""
    per_game: Dict[str, dict] = OrderedDict()
    for session in sessions:
        stats = per_game.setdefault(session["game_key"], {
            "total_games": 0,
            "total_score": 0,
            "total_max_score": 0,
            "total_correct": 0,
            "total_questions": 0,
            "total_time": 0,
            "best_score": 0,
        })
        stats["total_games"] += 1
        stats["total_score"] += session.get("score", 0)
        stats["total_max_score"] += session.get("max_score", 0)
        stats["total_correct"] += session.get("correct_answers", 0)
        stats["total_questions"] += session.get("total_questions", 0)
        stats["total_time"] += session.get("duration", 0)
        stats["best_score"] = max(stats["best_score"], session.get("score", 0))

    return [
        {
            "game_key": game_key,
            "total_games": stats["total_games"],
            "average_score": score_percentage(stats["total_score"], stats["total_max_score"]),
            "average_accuracy": score_percentage(stats["total_correct"], stats["total_questions"]),
            "total_time": stats["total_time"],
            "best_score": stats["best_score"],
        }
        for game_key, stats in per_game.items()
    ]


def daily_activity(sessions: List[dict]) -> List[dict]:
    days: Dict[str, dict] = {}
    for session in sessions:
        day = session["completed_at"].strftime("%Y-%m-%d")
        bucket = days.setdefault(day, {"date": day, "games_played": 0, "total_duration": 0})
        bucket["games_played"] += 1
        bucket["total_duration"] += session.get("duration", 0)
    return [days[day] for day in sorted(days)]


def session_accuracy(session: dict) -> float:
    total = session.get("total_questions", 0)
    return session.get("correct_answers", 0) / total if total > 0 else 0.0


def overall_accuracy(sessions: List[dict]) -> int:
    if not sessions:
        return 0
    return round(sum(session_accuracy(s) for s in sessions) / len(sessions) * 100)


class AnalyticsAggregator:
    def __init__(self, database: Database):
        self.db = database
        self.children = ChildStore(database)

    def since(self, days: int) -> datetime:
        return datetime.utcnow() - timedelta(days=days)

    def _sessions(self, child_id: str, start: datetime) -> List[dict]:
        try:
            return list(self.db["game_session"].find({"child_id": child_id, "completed_at": {"$gte": start}}))
        except PyMongoError as e:
            raise StorageFailure(f"Failed to load game sessions: {e}") from e

    def _emotions(self, child_id: str, start: datetime) -> List[dict]:
        try:
            return list(self.db["emotion_record"].find({"child_id": child_id, "timestamp": {"$gte": start}}))
        except PyMongoError as e:
            raise StorageFailure(f"Failed to load emotion records: {e}") from e

    def emotion_stats(self, child_id: str, start: datetime) -> List[dict]:
        pipeline = [
            {"$match": {"child_id": child_id, "timestamp": {"$gte": start}}},
            {"$group": {"_id": "$emotion", "count": {"$sum": 1}, "average_intensity": {"$avg": "$intensity"}}},
            {"$sort": {"count": -1, "_id": 1}},
        ]
        try:
            rows = list(self.db["emotion_record"].aggregate(pipeline))
        except PyMongoError as e:
            raise StorageFailure(f"Failed to aggregate emotions: {e}") from e
        return [
            {"emotion": row["_id"], "count": row["count"], "average_intensity": round(row["average_intensity"])}
            for row in rows
        ]

    def summary(self, child_id: str, days: int = 30) -> dict:
        child = self.children.get(child_id)
        start = self.since(days)
        sessions = self._sessions(child_id, start)

        try:
            recent = list(
                self.db["achievement"].find({"child_id": child_id}).sort("unlocked_at", DESCENDING).limit(5)
            )
        except PyMongoError as e:
            raise StorageFailure(f"Failed to load achievements: {e}") from e

        return {
            "child": {
                "id": child.id,
                "name": child.name,
                "level": child.level,
                "total_points": child.total_points,
            },
            "period": {"days": days, "start_date": start, "end_date": datetime.utcnow()},
            "overview": {
                "total_games_played": len(sessions),
                "total_time_played": sum(s.get("duration", 0) for s in sessions),
                "overall_accuracy": overall_accuracy(sessions),
                "current_level": child.level,
                "total_points": child.total_points,
            },
            "game_stats": game_stats(sessions),
            "emotion_stats": self.emotion_stats(child_id, start),
            "daily_activity": daily_activity(sessions),
            "recent_achievements": [
                {"key": a["key"], "name": a["name"], "icon": a.get("icon"), "unlocked_at": a["unlocked_at"]}
                for a in recent
            ],
        }

    def emotion_summary(self, child_id: str, days: int = 7) -> dict:
        self.children.get(child_id)
        start = self.since(days)
        breakdown = self.emotion_stats(child_id, start)

        per_day = Counter()
        for record in self._emotions(child_id, start):
            per_day[(record["timestamp"].strftime("%Y-%m-%d"), record["emotion"])] += 1

        return {
            "child_id": child_id,
            "period": {"days": days, "start_date": start, "end_date": datetime.utcnow()},
            "dominant_emotion": breakdown[0]["emotion"] if breakdown else None,
            "emotion_breakdown": breakdown,
            "daily_emotions": [
                {"date": day, "emotion": emotion, "count": count}
                for (day, emotion), count in sorted(per_day.items())
            ],
        }

    def recommendations(self, child_id: str) -> List[Recommendation]:
        """Simple rule-based suggestions from the last 30 days of play."""
        child = self.children.get(child_id)
        start = self.since(30)
        sessions = self._sessions(child_id, start)
        emotions = self._emotions(child_id, start)

        recs: List[Recommendation] = []

        def add(code: str, type_: str, priority: str, title: str, reason: str = "", ref: Optional[str] = None):
            recs.append(Recommendation(child_id=child_id, code=code, type=type_, priority=priority,
                                       title=title, reason=reason, ref=ref))

        if not sessions:
            add("start-playing", "engagement", "high", "Start playing",
                "No games played yet; begin with an easy memory game.", ref="memory-match")
        else:
            accuracy: Dict[str, List[float]] = OrderedDict()
            for session in sessions:
                accuracy.setdefault(session["game_key"], []).append(session_accuracy(session))

            for game_key, values in accuracy.items():
                average = sum(values) / len(values)
                if average < 0.5 and len(values) >= 3:
                    add("practice-skill", "skill", "high", f"Practice {game_key}",
                        f"Accuracy is {round(average * 100)}%; try more rounds on easy.", ref=game_key)

            unplayed = [g for g in GAME_KEYS if g not in accuracy]
            if unplayed:
                add("try-new-games", "engagement", "medium", "Try new games",
                    f"{len(unplayed)} games not tried yet.", ref=unplayed[0])

        if emotions:
            counts = Counter(e["emotion"] for e in emotions)
            total = len(emotions)
            negative = sum(counts[name] for name in NEGATIVE_EMOTIONS)
            if negative / total > 0.3:
                add("check-in", "emotional", "high", "Check in on mood",
                    "Many negative emotions were recorded during play.")
            if counts["happy"] / total > 0.5:
                add("great-mood", "emotional", "low", "Great mood",
                    "Mostly happy while playing.")

        if 3 <= child.level < 5:
            add("raise-difficulty", "general", "medium", "Try medium difficulty",
                "Steady progress; medium games are a good next step.")

        return recs[:MAX_RECOMMENDATIONS]
