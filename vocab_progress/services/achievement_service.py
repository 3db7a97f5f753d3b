import logging
import math
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from vocab_progress.logics.achievements import ACHIEVEMENT_DEFINITIONS, DEFINITIONS_BY_TYPE
from vocab_progress.logics.coordinator import ProgressOutcome
from vocab_progress.logics.records import ActivityEntry, ActivityType, CompletedTest, Difficulty
from vocab_progress.logics.streak import current_streak_from_dates
from vocab_progress.repositories.achievement_repository import AchievementRepository
from vocab_progress.repositories.activity_repository import ActivityRepository
from vocab_progress.repositories.notification_repository import NotificationRepository
from vocab_progress.services.progress_service import (
    achievement_to_dict, build_coordinator, persist_outcome,
)
from vocab_progress.utils.helpers import format_timestamp, local_now
from vocab_progress.utils.keyed_lock import user_locks

logger = logging.getLogger(__name__)


def activity_to_dict(entry: ActivityEntry) -> Dict[str, Any]:
    return {
        "activity_type": entry.activity_type.value,
        "game_type": entry.game_type,
        "category_id": entry.category_id,
        "item_id": entry.item_id,
        "difficulty": entry.difficulty,
        "score": entry.score,
        "total_questions": entry.total_questions,
        "correct_answers": entry.correct_answers,
        "percentage": entry.percentage,
        "duration": entry.duration,
        "xp_earned": entry.xp_earned,
        "created_at": format_timestamp(entry.created_at),
    }


class AchievementService:
    """活动与成就服务"""

    def __init__(self, db: Session):
        self.db = db
        self.activity_repo = ActivityRepository(db)
        self.achievement_repo = AchievementRepository(db)
        self.notification_repo = NotificationRepository(db)

    def record_test_activity(self, user_id: int, test: CompletedTest, now: datetime = None) -> ProgressOutcome:
        """
        记录一次测试完成并检查成就

        Args:
            user_id: 用户ID
            test: 测试结果
            now: 完成时间，默认为当前时间

        Returns:
            ProgressOutcome: 活动记录（含经验值）、连续天数和新解锁的成就
        """
        now = now or local_now()
        with user_locks.hold(user_id):
            try:
                outcome = build_coordinator(self.db).record_test_completion(user_id, test, now)
                persist_outcome(self.db, outcome)
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                logger.error(f"记录测试活动失败: 用户{user_id}: {e}")
                raise

        return outcome

    def check_and_update_achievements(self, user_id: int, now: datetime = None) -> ProgressOutcome:
        """按现有活动记录重新检查成就"""
        now = now or local_now()
        with user_locks.hold(user_id):
            try:
                outcome = build_coordinator(self.db).check_achievements(user_id, now)
                persist_outcome(self.db, outcome)
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                logger.error(f"检查成就失败: 用户{user_id}: {e}")
                raise

        logger.info(f"用户 {user_id} 成就检查完成，新解锁 {len(outcome.newly_unlocked)} 个")
        return outcome

    def get_user_activities(self, user_id: int, page: int = 1, limit: int = 20,
                            descending: bool = True) -> Dict[str, Any]:
        """
        分页获取用户活动

        Returns:
            Dict: activities 和 pagination 信息
        """
        entries, total = self.activity_repo.page(user_id, page, limit, descending)
        return {
            "activities": [activity_to_dict(e) for e in entries],
            "pagination": {
                "page": page,
                "limit": limit,
                "total_pages": math.ceil(total / limit) if limit else 0,
                "total_count": total,
            },
        }

    def get_user_achievements(self, user_id: int, category: str = None,
                              unlocked_only: bool = False) -> Dict[str, Any]:
        """
        获取用户成就

        已解锁的在前，其中最近解锁的在前；未解锁的按进度从高到低。
        """
        records = self.achievement_repo.list_for_user(user_id)
        if category:
            records = [
                r for r in records
                if r.achievement_type in DEFINITIONS_BY_TYPE
                and DEFINITIONS_BY_TYPE[r.achievement_type].category.value == category
            ]
        if unlocked_only:
            records = [r for r in records if r.is_unlocked]

        records.sort(key=lambda r: (
            not r.is_unlocked,
            -(r.unlocked_at.timestamp() if r.unlocked_at else 0),
            -r.progress,
        ))

        unlocked = sum(1 for r in records if r.is_unlocked)
        return {
            "achievements": [achievement_to_dict(r) for r in records],
            "summary": {
                "total": len(records),
                "unlocked": unlocked,
                "locked": len(records) - unlocked,
            },
        }

    def get_user_stats(self, user_id: int, now: datetime = None) -> Dict[str, Any]:
        """
        获取用户活动统计

        Returns:
            Dict: 测试次数、总经验、平均分、最高分、当前连续天数、各难度测试次数、成就概况
        """
        now = now or local_now()
        activities = self.activity_repo.list_for_user(user_id)
        tests = [a for a in activities if a.activity_type == ActivityType.TEST_COMPLETED]
        unlocked = sum(1 for r in self.achievement_repo.list_for_user(user_id) if r.is_unlocked)

        average = sum(a.percentage for a in tests) / len(tests) if tests else 0
        total_definitions = len(ACHIEVEMENT_DEFINITIONS)

        return {
            "total_tests": len(tests),
            "total_activities": len(activities),
            "total_xp": sum(a.xp_earned for a in activities),
            "average_score": round(average, 1),
            "best_score": max((a.percentage for a in tests), default=0),
            "current_streak": current_streak_from_dates((a.day for a in activities), now.date()),
            "by_difficulty": {
                d.value: sum(1 for a in tests if a.difficulty == d.value) for d in Difficulty
            },
            "achievements": {
                "total": total_definitions,
                "unlocked": unlocked,
                "percentage": round(unlocked / total_definitions * 100) if total_definitions else 0,
            },
        }

    def get_notifications(self, user_id: int, unread_only: bool = False) -> List[Dict[str, Any]]:
        """获取用户通知"""
        return [n.to_dict() for n in self.notification_repo.list_for_user(user_id, unread_only)]
