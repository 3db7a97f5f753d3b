from datetime import datetime, timedelta

import pytest
import pytz

from vocab_progress.logics.achievements import (
    ACHIEVEMENT_DEFINITIONS, DEFINITIONS_BY_TYPE, calculate_xp, evaluate, newly_unlocked,
)
from vocab_progress.logics.errors import InvariantViolation
from vocab_progress.logics.records import (
    AchievementRecord, ActivityEntry, ActivityType, CompletedTest,
)

USER_ID = 1
DAY1 = pytz.utc.localize(datetime(2024, 1, 1, 9, 0))


def make_test(created_at, percentage=80, difficulty="beginner", duration=600):
    return ActivityEntry(
        user_id=USER_ID,
        activity_type=ActivityType.TEST_COMPLETED,
        created_at=created_at,
        difficulty=difficulty,
        score=percentage,
        total_questions=10,
        correct_answers=int(percentage / 10),
        percentage=percentage,
        duration=duration,
    )


def make_practice(created_at, correct=True):
    return ActivityEntry(
        user_id=USER_ID,
        activity_type=ActivityType.PRACTICE_ANSWER,
        created_at=created_at,
        game_type="review",
        item_id=1,
        score=1 if correct else 0,
        total_questions=1,
        correct_answers=1 if correct else 0,
        percentage=100 if correct else 0,
    )


def by_type(records):
    return {r.achievement_type: r for r in records}


def test_one_record_per_definition():
    results = evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, [], [], DAY1)
    assert [r.achievement_type for r in results] == [d.type for d in ACHIEVEMENT_DEFINITIONS]
    assert not any(r.is_unlocked for r in results)
    assert all(r.progress == 0 for r in results)

def test_first_test_unlocks():
    results = by_type(evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, [make_test(DAY1)], [], DAY1))
    first = results["first_test"]
    assert first.is_unlocked
    assert first.unlocked_at == DAY1
    assert first.progress == first.target == 1
    assert not results["perfect_score"].is_unlocked

def test_unlocked_achievement_is_never_revoked():
    now1 = DAY1
    first = evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, [make_test(now1)], [], now1)

    # 再次评估时传入更少的活动，已解锁成就也不会被撤销，解锁时间不变
    now2 = DAY1 + timedelta(days=1)
    second = by_type(evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, [], first, now2))
    assert second["first_test"].is_unlocked
    assert second["first_test"].unlocked_at == now1

def test_unlocked_at_is_stable_on_superset():
    activities = [make_test(DAY1)]
    first = evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, activities, [], DAY1)

    later = DAY1 + timedelta(days=3)
    activities = activities + [make_test(later, percentage=100)]
    second = by_type(evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, activities, first, later))
    assert second["first_test"].unlocked_at == DAY1
    assert second["perfect_score"].unlocked_at == later

def test_progress_never_decreases():
    existing = [AchievementRecord(USER_ID, "test_master", progress=7, target=10)]
    results = by_type(evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, [make_test(DAY1)], existing, DAY1))
    assert results["test_master"].progress == 7
    assert not results["test_master"].is_unlocked

def test_evaluation_is_deterministic():
    activities = [make_test(DAY1 + timedelta(days=i), percentage=90 + i) for i in range(5)]
    first = evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, activities, [], DAY1)
    second = evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, activities, [], DAY1)
    assert first == second

def test_practice_answers_count_toward_displayed_progress():
    activities = [make_practice(DAY1 + timedelta(minutes=i)) for i in range(3)]
    results = by_type(evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, activities, [], DAY1))

    # 类型名含 test 的成就用活动总数估算进度，但不会因此解锁
    assert results["test_master"].progress == 3
    assert not results["test_master"].is_unlocked
    assert results["first_test"].progress == 0
    assert not results["first_test"].is_unlocked
    assert results["hundred_tests"].progress == 3

def test_test_master_unlocks_at_ten_tests():
    activities = [make_test(DAY1 + timedelta(minutes=i)) for i in range(9)]
    results = by_type(evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, activities, [], DAY1))
    assert results["test_master"].progress == 9
    assert not results["test_master"].is_unlocked

    activities.append(make_test(DAY1 + timedelta(minutes=10)))
    results = by_type(evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, activities, [], DAY1))
    assert results["test_master"].is_unlocked
    assert results["test_master"].progress == 10

@pytest.mark.parametrize("difficulty,achievement_type", [
    ("beginner", "beginner_champion"),
    ("intermediate", "intermediate_champion"),
    ("advanced", "advanced_champion"),
    ("native", "native_champion"),
])
def test_difficulty_champions(difficulty, achievement_type):
    results = by_type(evaluate(
        USER_ID, ACHIEVEMENT_DEFINITIONS, [make_test(DAY1, percentage=90, difficulty=difficulty)], [], DAY1,
    ))
    assert results[achievement_type].is_unlocked
    unlocked_champions = [t for t, r in results.items() if t.endswith("_champion") and r.is_unlocked]
    assert unlocked_champions == [achievement_type]

def test_champion_requires_ninety_percent():
    results = by_type(evaluate(
        USER_ID, ACHIEVEMENT_DEFINITIONS, [make_test(DAY1, percentage=89, difficulty="native")], [], DAY1,
    ))
    assert not results["native_champion"].is_unlocked

def test_speed_runner():
    slow = by_type(evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, [make_test(DAY1, duration=300)], [], DAY1))
    assert not slow["speed_runner"].is_unlocked

    fast = by_type(evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, [make_test(DAY1, duration=299)], [], DAY1))
    assert fast["speed_runner"].is_unlocked

def test_streak_achievements_use_all_activity_days():
    activities = [make_practice(DAY1 + timedelta(days=i)) for i in range(3)]
    results = by_type(evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, activities, [], DAY1 + timedelta(days=2)))
    assert results["streak_3"].is_unlocked
    assert results["streak_7"].progress == 3
    assert not results["streak_7"].is_unlocked

def test_unlocked_without_timestamp_is_rejected():
    corrupt = [AchievementRecord(USER_ID, "first_test", progress=1, target=1, is_unlocked=True)]
    with pytest.raises(InvariantViolation):
        evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, [make_test(DAY1)], corrupt, DAY1)

def test_newly_unlocked():
    before = evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, [make_test(DAY1)], [], DAY1)
    activities = [make_test(DAY1), make_test(DAY1, percentage=100, difficulty=None)]
    after = evaluate(USER_ID, ACHIEVEMENT_DEFINITIONS, activities, before, DAY1)

    assert [r.achievement_type for r in newly_unlocked(before, after)] == ["perfect_score"]
    assert newly_unlocked(after, after) == []

def test_catalog_lookup():
    assert len(ACHIEVEMENT_DEFINITIONS) == len(DEFINITIONS_BY_TYPE) == 12
    assert DEFINITIONS_BY_TYPE["streak_30"].target == 30


class TestCalculateXp:
    def test_perfect_fast_native(self):
        test = CompletedTest(score=10, total_questions=10, correct_answers=10,
                             percentage=100, difficulty="native", duration=120)
        assert calculate_xp(test) == 1200

    def test_slow_beginner(self):
        test = CompletedTest(score=5, total_questions=10, correct_answers=5,
                             percentage=50, difficulty="beginner", duration=900)
        assert calculate_xp(test) == 150

    def test_intermediate_multiplier(self):
        test = CompletedTest(score=8, total_questions=10, correct_answers=8,
                             percentage=80, difficulty="intermediate", duration=900)
        assert calculate_xp(test) == 315

    def test_unknown_difficulty_uses_base_multiplier(self):
        test = CompletedTest(score=0, total_questions=10, correct_answers=0, percentage=0)
        assert calculate_xp(test) == 50
