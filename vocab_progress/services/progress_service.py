import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from vocab_progress.config.settings import settings
from vocab_progress.logics.achievements import DEFINITIONS_BY_TYPE
from vocab_progress.logics.coordinator import ProgressCoordinator, ProgressOutcome
from vocab_progress.logics.records import AchievementRecord, ProgressRecord, StreakRecord, MAX_MEMORY_LEVEL, MIN_MEMORY_LEVEL
from vocab_progress.logics.scheduler import interval_days, is_due
from vocab_progress.repositories.achievement_repository import AchievementRepository
from vocab_progress.repositories.activity_repository import ActivityRepository
from vocab_progress.repositories.notification_repository import NotificationRepository
from vocab_progress.repositories.progress_repository import ProgressRepository
from vocab_progress.repositories.progress_store import SqlProgressStore
from vocab_progress.repositories.streak_repository import StreakRepository
from vocab_progress.utils.helpers import format_date, format_timestamp, local_now
from vocab_progress.utils.keyed_lock import user_locks

logger = logging.getLogger(__name__)


def build_coordinator(db: Session) -> ProgressCoordinator:
    return ProgressCoordinator(
        SqlProgressStore(db),
        practice_xp=settings.PRACTICE_XP_CORRECT,
        practice_game_type=settings.PRACTICE_GAME_TYPE,
    )


def persist_outcome(db: Session, outcome: ProgressOutcome) -> ProgressOutcome:
    """
    在当前事务中写入一次协调的全部结果（不提交）

    Returns:
        ProgressOutcome: 进度记录带上新的版本号
    """
    if outcome.progress is not None:
        outcome.progress = ProgressRepository(db).save(outcome.progress)
    if outcome.streak is not None:
        StreakRepository(db).save(outcome.user_id, outcome.streak)
    if outcome.activity is not None:
        ActivityRepository(db).append(outcome.activity)
    AchievementRepository(db).save_all(outcome.achievements)
    if outcome.notifications:
        NotificationRepository(db).add_all(outcome.notifications)
    return outcome


def progress_to_dict(record: ProgressRecord) -> Dict[str, Any]:
    return {
        "user_id": record.user_id,
        "item_id": record.item_id,
        "memory_level": record.memory_level,
        "interval_days": interval_days(record.memory_level),
        "next_review_date": format_timestamp(record.next_review_date),
        "last_studied_at": format_timestamp(record.last_studied_at),
        "review_count": record.review_count,
        "correct_count": record.correct_count,
        "wrong_count": record.wrong_count,
    }


def streak_to_dict(record: Optional[StreakRecord], today=None) -> Dict[str, Any]:
    if record is None:
        return {"current": 0, "longest": 0, "last_activity_date": None, "is_active_today": False}

    current = record.current
    if today is not None and (today - record.last_activity_date).days > 1:
        # 超过一天没有学习，连续记录已中断（下次学习时才会重置存储的值）
        current = 0
    return {
        "current": current,
        "longest": record.longest,
        "last_activity_date": format_date(record.last_activity_date),
        "is_active_today": today is not None and record.last_activity_date == today,
    }


def achievement_to_dict(record: AchievementRecord) -> Dict[str, Any]:
    definition = DEFINITIONS_BY_TYPE.get(record.achievement_type)
    return {
        "achievement_type": record.achievement_type,
        "title": definition.title if definition else record.achievement_type,
        "description": definition.description if definition else "",
        "icon": definition.icon if definition else "",
        "category": definition.category.value if definition else None,
        "progress": record.progress,
        "target": record.target,
        "is_unlocked": record.is_unlocked,
        "unlocked_at": format_timestamp(record.unlocked_at),
    }


class ProgressService:
    """学习进度服务：处理作答并提供复习查询"""

    def __init__(self, db: Session):
        self.db = db
        self.progress_repo = ProgressRepository(db)
        self.streak_repo = StreakRepository(db)

    def submit_answer(self, user_id: int, item_id: int, is_correct: bool,
                      now: datetime = None, **context) -> ProgressOutcome:
        """
        记录一次作答并写入进度、连续天数、活动、成就和通知

        同一用户的写操作串行执行；写入失败时整体回滚。

        Args:
            user_id: 用户ID
            item_id: 词汇ID
            is_correct: 是否答对
            now: 作答时间，默认为当前时间
            context: category_id / difficulty / duration / game_type

        Returns:
            ProgressOutcome: 协调结果
        """
        now = now or local_now()
        with user_locks.hold(user_id):
            try:
                outcome = build_coordinator(self.db).record_answer(
                    user_id, item_id, is_correct, now, **context
                )
                persist_outcome(self.db, outcome)
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                logger.error(f"记录作答失败: 用户{user_id}, 词汇{item_id}: {e}")
                raise

        logger.info(f"作答已保存: 用户{user_id}, 词汇{item_id}, 新解锁成就 {len(outcome.newly_unlocked)} 个")
        return outcome

    def get_user_progress(self, user_id: int, item_id: int = None) -> List[Dict[str, Any]]:
        """获取用户学习进度"""
        return [progress_to_dict(r) for r in self.progress_repo.list_records(user_id, item_id)]

    def get_due_for_review(self, user_id: int, limit: int = None, now: datetime = None) -> List[Dict[str, Any]]:
        """
        获取到期需要复习的词汇

        Args:
            user_id: 用户ID
            limit: 最大数量
            now: 当前时间

        Returns:
            List[Dict]: 到期词汇，最早到期的在前
        """
        now = now or local_now()
        records = self.progress_repo.get_due(user_id, now, limit or settings.DUE_REVIEW_LIMIT)
        return [progress_to_dict(r) for r in records if is_due(r, now)]

    def get_user_stats(self, user_id: int, now: datetime = None) -> Dict[str, Any]:
        """
        获取用户学习统计

        Returns:
            Dict: 词汇总数、各记忆等级数量、作答次数、正确率、连续天数
        """
        now = now or local_now()
        level_counts = self.progress_repo.level_counts(user_id)
        reviews, correct = self.progress_repo.answer_totals(user_id)
        due_count = self.progress_repo.count_due(user_id, now)

        return {
            "total_words": sum(level_counts.values()),
            "by_level": {
                str(level): level_counts.get(level, 0)
                for level in range(MIN_MEMORY_LEVEL, MAX_MEMORY_LEVEL + 1)
            },
            "mastered_words": level_counts.get(MAX_MEMORY_LEVEL, 0),
            "due_count": due_count,
            "total_reviews": reviews,
            "accuracy": round(correct / reviews * 100) if reviews else 0,
            "streak": streak_to_dict(self.streak_repo.get_record(user_id), now.date()),
        }
