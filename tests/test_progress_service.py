from datetime import datetime, timedelta

import pytest
import pytz

from vocab_progress.logics.errors import ConcurrentUpdate, InvalidInput, UpstreamUnavailable
from vocab_progress.logics.records import CompletedTest, ProgressRecord
from vocab_progress.models.activity import Activity
from vocab_progress.models.progress import UserProgress
from vocab_progress.repositories.activity_repository import ActivityRepository
from vocab_progress.repositories.progress_repository import ProgressRepository
from vocab_progress.repositories.streak_repository import StreakRepository
from vocab_progress.services.achievement_service import AchievementService
from vocab_progress.services.progress_service import ProgressService

USER_ID = 1
ITEM_ID = 7
DAY1 = pytz.utc.localize(datetime(2024, 1, 1, 10, 0))
DAY2 = DAY1 + timedelta(days=1)
DAY3 = DAY1 + timedelta(days=2)


@pytest.fixture
def progress_service(db_session):
    return ProgressService(db_session)

@pytest.fixture
def achievement_service(db_session):
    return AchievementService(db_session)


def test_answers_are_persisted(db_session, progress_service):
    progress_service.submit_answer(USER_ID, ITEM_ID, True, now=DAY1)
    progress_service.submit_answer(USER_ID, ITEM_ID, True, now=DAY2)
    outcome = progress_service.submit_answer(USER_ID, ITEM_ID, False, now=DAY3)

    assert outcome.progress.version == 3
    record = ProgressRepository(db_session).get_record(USER_ID, ITEM_ID)
    assert record.memory_level == 1
    assert record.review_count == 3
    assert record.correct_count == 2
    assert record.wrong_count == 1
    assert record.next_review_date == pytz.utc.localize(datetime(2024, 1, 4))
    assert record.last_studied_at == DAY3

    streak = StreakRepository(db_session).get_record(USER_ID)
    assert (streak.current, streak.longest) == (3, 3)
    assert streak.last_activity_date == DAY3.date()

    assert [r.achievement_type for r in outcome.newly_unlocked] == ["streak_3"]
    assert db_session.query(Activity).count() == 3

def test_due_for_review(progress_service):
    progress_service.submit_answer(USER_ID, 1, True, now=DAY1)
    progress_service.submit_answer(USER_ID, 2, True, now=DAY1)
    progress_service.submit_answer(USER_ID, 2, True, now=DAY2)

    # 词汇1在第二天零点到期，词汇2升到2级，第五天才到期
    due = progress_service.get_due_for_review(USER_ID, now=DAY2)
    assert [d["item_id"] for d in due] == [1]
    assert due[0]["interval_days"] == 1

    due = progress_service.get_due_for_review(USER_ID, now=DAY1 + timedelta(days=4))
    assert [d["item_id"] for d in due] == [1, 2]

    assert progress_service.get_due_for_review(USER_ID, limit=1, now=DAY1 + timedelta(days=4))[0]["item_id"] == 1
    assert progress_service.get_due_for_review(USER_ID + 1, now=DAY3) == []

def test_user_stats(progress_service):
    progress_service.submit_answer(USER_ID, 1, True, now=DAY1)
    progress_service.submit_answer(USER_ID, 2, False, now=DAY1)
    progress_service.submit_answer(USER_ID, 1, True, now=DAY2)

    stats = progress_service.get_user_stats(USER_ID, now=DAY2)
    assert stats["total_words"] == 2
    assert stats["by_level"] == {"1": 1, "2": 1, "3": 0, "4": 0, "5": 0}
    assert stats["mastered_words"] == 0
    assert stats["due_count"] == 1
    assert stats["total_reviews"] == 3
    assert stats["accuracy"] == 67
    assert stats["streak"]["current"] == 2
    assert stats["streak"]["is_active_today"] is True

    # 中断超过一天后，展示的连续天数为0
    later = progress_service.get_user_stats(USER_ID, now=DAY2 + timedelta(days=3))
    assert later["streak"]["current"] == 0
    assert later["streak"]["longest"] == 2

def test_get_user_progress(progress_service):
    progress_service.submit_answer(USER_ID, 1, True, now=DAY1)
    progress_service.submit_answer(USER_ID, 2, True, now=DAY2)

    items = progress_service.get_user_progress(USER_ID)
    assert [i["item_id"] for i in items] == [2, 1]
    assert progress_service.get_user_progress(USER_ID, item_id=1)[0]["review_count"] == 1

def test_failed_write_rolls_back(db_session, progress_service, monkeypatch):
    def broken_append(self, entry):
        raise UpstreamUnavailable("数据库不可用")

    monkeypatch.setattr(ActivityRepository, "append", broken_append)
    with pytest.raises(UpstreamUnavailable):
        progress_service.submit_answer(USER_ID, ITEM_ID, True, now=DAY1)

    assert db_session.query(UserProgress).count() == 0
    assert StreakRepository(db_session).get_record(USER_ID) is None

def test_stale_version_is_rejected(db_session, progress_service):
    progress_service.submit_answer(USER_ID, ITEM_ID, True, now=DAY1)

    stale = ProgressRecord(
        user_id=USER_ID, item_id=ITEM_ID, memory_level=2,
        next_review_date=DAY1 + timedelta(days=3), last_studied_at=DAY1,
        review_count=2, correct_count=2, version=0,
    )
    with pytest.raises(ConcurrentUpdate):
        ProgressRepository(db_session).save(stale)

def test_retry_after_failure(db_session, progress_service, monkeypatch):
    calls = {"count": 0}
    original_append = ActivityRepository.append

    def flaky_append(self, entry):
        calls["count"] += 1
        if calls["count"] == 1:
            raise UpstreamUnavailable("数据库不可用")
        return original_append(self, entry)

    monkeypatch.setattr(ActivityRepository, "append", flaky_append)
    with pytest.raises(UpstreamUnavailable):
        progress_service.submit_answer(USER_ID, ITEM_ID, True, now=DAY1)

    outcome = progress_service.submit_answer(USER_ID, ITEM_ID, True, now=DAY1)
    assert outcome.progress.review_count == 1
    assert outcome.streak.current == 1


def test_non_utc_caller_keeps_streak_and_achievements_in_step(db_session, progress_service):
    shanghai = pytz.timezone("Asia/Shanghai")
    progress_service.submit_answer(USER_ID, 1, True, now=shanghai.localize(datetime(2024, 1, 1, 23, 30)))
    progress_service.submit_answer(USER_ID, 2, True, now=shanghai.localize(datetime(2024, 1, 2, 0, 30)))
    outcome = progress_service.submit_answer(USER_ID, 3, True, now=shanghai.localize(datetime(2024, 1, 3, 0, 30)))

    assert outcome.streak.current == 3
    assert "streak_3" in [r.achievement_type for r in outcome.newly_unlocked]

def test_naive_time_is_rejected(db_session, progress_service):
    with pytest.raises(InvalidInput):
        progress_service.submit_answer(USER_ID, ITEM_ID, True, now=datetime(2024, 1, 1, 10))

    assert db_session.query(UserProgress).count() == 0


class TestAchievementService:
    def test_record_test_activity(self, achievement_service):
        test = CompletedTest(score=10, total_questions=10, correct_answers=10,
                             percentage=100, difficulty="native", duration=120)
        outcome = achievement_service.record_test_activity(USER_ID, test, now=DAY1)

        assert outcome.activity.xp_earned == 1200
        assert {r.achievement_type for r in outcome.newly_unlocked} == {
            "first_test", "perfect_score", "speed_runner", "native_champion",
        }

        notifications = achievement_service.get_notifications(USER_ID)
        assert len(notifications) == 4
        assert all(n["title"] == "成就解锁" for n in notifications)
        assert {n["payload"]["achievement_type"] for n in notifications} == {
            "first_test", "perfect_score", "speed_runner", "native_champion",
        }

    def test_achievement_listing(self, achievement_service):
        test = CompletedTest(score=5, total_questions=10, correct_answers=5, percentage=50)
        achievement_service.record_test_activity(USER_ID, test, now=DAY1)

        result = achievement_service.get_user_achievements(USER_ID)
        assert result["summary"] == {"total": 12, "unlocked": 1, "locked": 11}
        assert result["achievements"][0]["achievement_type"] == "first_test"
        assert result["achievements"][0]["title"] == "第一步"

        streaks = achievement_service.get_user_achievements(USER_ID, category="streak")
        assert {a["achievement_type"] for a in streaks["achievements"]} == {"streak_3", "streak_7", "streak_30"}

        unlocked = achievement_service.get_user_achievements(USER_ID, unlocked_only=True)
        assert [a["achievement_type"] for a in unlocked["achievements"]] == ["first_test"]

    def test_check_achievements_is_idempotent(self, achievement_service):
        test = CompletedTest(score=5, total_questions=10, correct_answers=5, percentage=50)
        achievement_service.record_test_activity(USER_ID, test, now=DAY1)

        outcome = achievement_service.check_and_update_achievements(USER_ID, now=DAY2)
        assert outcome.newly_unlocked == []
        assert len(achievement_service.get_notifications(USER_ID)) == 1

    def test_activity_pagination(self, achievement_service, progress_service):
        progress_service.submit_answer(USER_ID, 1, True, now=DAY1)
        progress_service.submit_answer(USER_ID, 2, True, now=DAY2)
        progress_service.submit_answer(USER_ID, 3, True, now=DAY3)

        result = achievement_service.get_user_activities(USER_ID, page=1, limit=2)
        assert result["pagination"] == {"page": 1, "limit": 2, "total_pages": 2, "total_count": 3}
        assert [a["item_id"] for a in result["activities"]] == [3, 2]

        result = achievement_service.get_user_activities(USER_ID, page=2, limit=2)
        assert [a["item_id"] for a in result["activities"]] == [1]

        result = achievement_service.get_user_activities(USER_ID, limit=2, descending=False)
        assert [a["item_id"] for a in result["activities"]] == [1, 2]

    def test_activity_stats(self, achievement_service, progress_service):
        progress_service.submit_answer(USER_ID, 1, True, now=DAY1)
        achievement_service.record_test_activity(
            USER_ID,
            CompletedTest(score=8, total_questions=10, correct_answers=8,
                          percentage=80, difficulty="intermediate", duration=900),
            now=DAY1,
        )
        achievement_service.record_test_activity(
            USER_ID,
            CompletedTest(score=6, total_questions=10, correct_answers=6,
                          percentage=60, difficulty="beginner", duration=900),
            now=DAY2,
        )

        stats = achievement_service.get_user_stats(USER_ID, now=DAY2)
        assert stats["total_tests"] == 2
        assert stats["total_activities"] == 3
        assert stats["total_xp"] == 10 + 315 + 170
        assert stats["average_score"] == 70.0
        assert stats["best_score"] == 80
        assert stats["current_streak"] == 2
        assert stats["by_difficulty"] == {"beginner": 1, "intermediate": 1, "advanced": 0, "native": 0}
        assert stats["achievements"]["total"] == 12
        assert stats["achievements"]["unlocked"] == 1
