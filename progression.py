"""Pure progression rules: levels, points and perfect-score detection."""
from fractions import Fraction
from math import floor
from typing import Dict, List

# Minimum total points for levels 1..10
LEVEL_THRESHOLDS: List[int] = [0, 100, 300, 600, 1000, 1500, 2100, 2800, 3600, 4500]

POINTS_MULTIPLIER: Dict[str, Fraction] = {
    "easy": Fraction(1),
    "medium": Fraction(3, 2),
    "hard": Fraction(2),
}

BASE_POINTS = 10


def level_for_points(total_points: int) -> int:
    """Map cumulative points to a level. Level 10 has no ceiling."""
    if total_points < 0:
        raise ValueError("total_points must be non-negative")
    level = 1
    for index, threshold in enumerate(LEVEL_THRESHOLDS):
        if total_points >= threshold:
            level = index + 1
        else:
            break
    return level


def _round_half_up(value: Fraction) -> int:
    return floor(value + Fraction(1, 2))


def points_for_result(score: int, max_score: int, difficulty: str) -> int:
    """Points for one game: percentage of max score, times 10, times the tier multiplier."""
    try:
        multiplier = POINTS_MULTIPLIER[difficulty]
    except KeyError:
        raise ValueError(f"Unknown difficulty: {difficulty}") from None
    percentage = Fraction(score, max_score) if max_score > 0 else Fraction(0)
    return _round_half_up(percentage * BASE_POINTS * multiplier)


def is_perfect_score(score: int, max_score: int) -> bool:
    return max_score > 0 and score == max_score


def score_percentage(score: int, max_score: int) -> int:
    if max_score <= 0:
        return 0
    return _round_half_up(Fraction(score * 100, max_score))
