import pytest

from progression import (
    LEVEL_THRESHOLDS,
    is_perfect_score,
    level_for_points,
    points_for_result,
    score_percentage,
)


@pytest.mark.parametrize(
    "points, level",
    [
        (0, 1),
        (99, 1),
        (100, 2),
        (299, 2),
        (300, 3),
        (599, 3),
        (600, 4),
        (1000, 5),
        (1500, 6),
        (2100, 7),
        (2800, 8),
        (3600, 9),
        (4499, 9),
        (4500, 10),
        (1_000_000, 10),
    ],
)
def test_level_for_points_thresholds(points: int, level: int) -> None:
    assert level_for_points(points) == level


def test_level_for_points_is_monotonic() -> None:
    previous = level_for_points(0)
    for points in range(0, 5000, 7):
        current = level_for_points(points)
        assert current >= previous
        previous = current


def test_each_threshold_starts_its_level() -> None:
    for index, threshold in enumerate(LEVEL_THRESHOLDS):
        assert level_for_points(threshold) == index + 1


def test_level_for_points_rejects_negative() -> None:
    with pytest.raises(ValueError):
        level_for_points(-1)


def test_points_never_divide_by_zero() -> None:
    assert points_for_result(5, 0, "easy") == 0
    assert points_for_result(0, 0, "hard") == 0


def test_points_for_perfect_results_by_difficulty() -> None:
    assert points_for_result(10, 10, "easy") == 10
    assert points_for_result(10, 10, "medium") == 15
    assert points_for_result(10, 10, "hard") == 20


def test_points_round_half_up() -> None:
    # 0.25 * 10 * 1 = 2.5
    assert points_for_result(1, 4, "easy") == 3
    # 0.25 * 10 * 1.5 = 3.75
    assert points_for_result(1, 4, "medium") == 4
    # 0.05 * 10 * 1.5 = 0.75
    assert points_for_result(1, 20, "medium") == 1
    # 0.3 * 10 * 1.5 = 4.5
    assert points_for_result(3, 10, "medium") == 5


def test_points_are_exact_for_thirds() -> None:
    assert points_for_result(2, 3, "medium") == 10


def test_score_above_max_is_not_clamped() -> None:
    assert points_for_result(15, 10, "easy") == 15
    assert is_perfect_score(15, 10) is False


def test_points_reject_unknown_difficulty() -> None:
    with pytest.raises(ValueError):
        points_for_result(1, 1, "extreme")


def test_is_perfect_score() -> None:
    assert is_perfect_score(10, 10) is True
    assert is_perfect_score(9, 10) is False
    assert is_perfect_score(0, 0) is False


def test_score_percentage() -> None:
    assert score_percentage(14, 20) == 70
    assert score_percentage(1, 3) == 33
    assert score_percentage(5, 0) == 0
