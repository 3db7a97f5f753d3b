"""
学习进度协调器

处理一次"用户回答了某个词汇"或"用户完成了一次测试"事件：
更新复习进度 -> 更新连续天数 -> 生成活动记录 -> 重新评估成就 -> 生成解锁通知。

协调器本身不做任何持久化，只通过 store 读取已有状态，
把需要写入的记录整体返回给调用方，由调用方在一个事务中写入。
任何一步失败都会直接抛出异常，不产生部分结果，因此可以从头重试。
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
from typing import List, Optional

from vocab_progress.logics.achievements import (
    ACHIEVEMENT_DEFINITIONS, DEFINITIONS_BY_TYPE, calculate_xp, evaluate, newly_unlocked,
)
from vocab_progress.logics.errors import InvalidInput, InvariantViolation
from vocab_progress.logics.records import (
    AchievementDefinition, AchievementRecord, ActivityEntry, ActivityType, CompletedTest,
    Notification, ProgressRecord, StreakRecord,
)
from vocab_progress.logics.scheduler import schedule
from vocab_progress.logics.streak import update_streak

logger = logging.getLogger(__name__)


class ProgressStore(ABC):
    """
    协调器所需的读取接口，由持久化层实现

    活动记录需按 created_at 升序返回。
    """

    @abstractmethod
    def get_progress(self, user_id: int, item_id: int) -> Optional[ProgressRecord]:
        ...

    @abstractmethod
    def get_streak(self, user_id: int) -> Optional[StreakRecord]:
        ...

    @abstractmethod
    def get_activities(self, user_id: int) -> List[ActivityEntry]:
        ...

    @abstractmethod
    def get_achievements(self, user_id: int) -> List[AchievementRecord]:
        ...


@dataclass
class ProgressOutcome:
    """一次协调的结果，调用方负责持久化"""
    user_id: int
    achievements: List[AchievementRecord]
    newly_unlocked: List[AchievementRecord] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)
    progress: Optional[ProgressRecord] = None
    streak: Optional[StreakRecord] = None
    activity: Optional[ActivityEntry] = None


def build_notification(record: AchievementRecord) -> Notification:
    """为新解锁的成就生成通知"""
    definition = DEFINITIONS_BY_TYPE.get(record.achievement_type)
    title = definition.title if definition else record.achievement_type
    icon = definition.icon if definition else ""

    return Notification(
        user_id=record.user_id,
        title="成就解锁",
        message=f"{icon} 恭喜解锁成就「{title}」".strip(),
        payload={
            "achievement_type": record.achievement_type,
            "title": title,
            "icon": icon,
            "category": definition.category.value if definition else None,
            "unlocked_at": record.unlocked_at.isoformat() if record.unlocked_at else None,
        },
    )


def validate_progress(record: ProgressRecord):
    if record.correct_count + record.wrong_count != record.review_count:
        raise InvariantViolation(
            "进度记录计数不一致: correct + wrong != review",
            user_id=record.user_id, item_id=record.item_id,
            review_count=record.review_count,
            correct_count=record.correct_count,
            wrong_count=record.wrong_count,
        )
    if record.next_review_date < record.last_studied_at:
        raise InvariantViolation(
            "进度记录的下次复习时间早于最近学习时间",
            user_id=record.user_id, item_id=record.item_id,
        )


def validate_streak(record: StreakRecord):
    if record.current < 0 or record.longest < record.current:
        raise InvariantViolation(
            "连续天数记录不一致",
            current=record.current, longest=record.longest,
        )


def validate_test(test: CompletedTest):
    """校验测试提交数据"""
    if test.score < 0:
        raise InvalidInput("score 必须为非负数", score=test.score)
    if test.total_questions < 1:
        raise InvalidInput("total_questions 必须为正数", total_questions=test.total_questions)
    if test.correct_answers < 0:
        raise InvalidInput("correct_answers 必须为非负数", correct_answers=test.correct_answers)
    if not 0 <= test.percentage <= 100:
        raise InvalidInput("percentage 必须在0到100之间", percentage=test.percentage)


def validate_now(now: datetime):
    """事件时间必须带时区，日期边界按该时区划分"""
    if now.tzinfo is None or now.utcoffset() is None:
        raise InvalidInput("事件时间缺少时区信息", now=now.isoformat())


def in_timezone(activities: List[ActivityEntry], tz: tzinfo) -> List[ActivityEntry]:
    """把活动时间换算到指定时区，使历史活动与本次事件按同一日历划分日期"""
    return [replace(a, created_at=a.created_at.astimezone(tz)) for a in activities]


class ProgressCoordinator:
    """学习进度协调器"""

    def __init__(self, store: ProgressStore,
                 definitions: List[AchievementDefinition] = None,
                 practice_xp: int = 10,
                 practice_game_type: str = "review"):
        self.store = store
        self.definitions = definitions if definitions is not None else ACHIEVEMENT_DEFINITIONS
        self.practice_xp = practice_xp
        self.practice_game_type = practice_game_type

    def record_answer(self, user_id: int, item_id: int, was_correct: bool, now: datetime,
                      category_id: int = None, difficulty: str = None,
                      duration: float = None, game_type: str = None) -> ProgressOutcome:
        """
        处理一次词汇作答

        Args:
            user_id: 用户ID
            item_id: 词汇ID
            was_correct: 是否答对
            now: 作答时间（带时区，按该时区划分日期）

        Returns:
            ProgressOutcome: 新的进度、连续天数、活动记录、成就和通知
        """
        validate_now(now)
        prior = self.store.get_progress(user_id, item_id)
        streak = self.store.get_streak(user_id)
        history = self.store.get_activities(user_id)
        existing = self.store.get_achievements(user_id)

        if prior is not None:
            validate_progress(prior)
            if now < prior.last_studied_at:
                raise InvalidInput(
                    "作答时间早于最近一次学习时间",
                    user_id=user_id, item_id=item_id,
                    now=now.isoformat(), last_studied_at=prior.last_studied_at.isoformat(),
                )
        if streak is not None:
            validate_streak(streak)

        level, next_review = schedule(prior.memory_level if prior else None, was_correct, now)
        progress = ProgressRecord(
            user_id=user_id,
            item_id=item_id,
            memory_level=level,
            next_review_date=next_review,
            last_studied_at=now,
            review_count=(prior.review_count if prior else 0) + 1,
            correct_count=(prior.correct_count if prior else 0) + (1 if was_correct else 0),
            wrong_count=(prior.wrong_count if prior else 0) + (0 if was_correct else 1),
            version=prior.version if prior else 0,
        )

        activity = ActivityEntry(
            user_id=user_id,
            activity_type=ActivityType.PRACTICE_ANSWER,
            created_at=now,
            game_type=game_type or self.practice_game_type,
            category_id=category_id,
            item_id=item_id,
            difficulty=difficulty,
            score=1 if was_correct else 0,
            total_questions=1,
            correct_answers=1 if was_correct else 0,
            percentage=100 if was_correct else 0,
            duration=duration,
            xp_earned=self.practice_xp if was_correct else 0,
        )

        outcome = self._settle(user_id, streak, history, existing, activity, now)
        outcome.progress = progress

        logger.info(
            f"用户 {user_id} 作答词汇 {item_id}: {'正确' if was_correct else '错误'}，"
            f"记忆等级 {prior.memory_level if prior else 0} -> {level}，"
            f"下次复习 {next_review.date().isoformat()}"
        )
        return outcome

    def record_test_completion(self, user_id: int, test: CompletedTest, now: datetime) -> ProgressOutcome:
        """
        处理一次测试完成事件

        不涉及单个词汇的复习进度，只更新连续天数、活动记录和成就。
        """
        validate_now(now)
        validate_test(test)

        streak = self.store.get_streak(user_id)
        history = self.store.get_activities(user_id)
        existing = self.store.get_achievements(user_id)
        if streak is not None:
            validate_streak(streak)

        activity = ActivityEntry(
            user_id=user_id,
            activity_type=ActivityType.TEST_COMPLETED,
            created_at=now,
            game_type=test.game_type,
            category_id=test.category_id,
            difficulty=test.difficulty,
            score=test.score,
            total_questions=test.total_questions,
            correct_answers=test.correct_answers,
            percentage=test.percentage,
            duration=test.duration,
            xp_earned=calculate_xp(test),
        )

        outcome = self._settle(user_id, streak, history, existing, activity, now)
        logger.info(f"用户 {user_id} 完成测试: {test.percentage}%，获得经验 {activity.xp_earned}")
        return outcome

    def check_achievements(self, user_id: int, now: datetime) -> ProgressOutcome:
        """不产生新活动，仅按现有活动记录重新评估成就"""
        validate_now(now)
        history = in_timezone(self.store.get_activities(user_id), now.tzinfo)
        existing = self.store.get_achievements(user_id)

        achievements = evaluate(user_id, self.definitions, history, existing, now)
        unlocked = newly_unlocked(existing, achievements)
        return ProgressOutcome(
            user_id=user_id,
            achievements=achievements,
            newly_unlocked=unlocked,
            notifications=[build_notification(r) for r in unlocked],
        )

    def _settle(self, user_id: int, streak: Optional[StreakRecord], history: List[ActivityEntry],
                existing: List[AchievementRecord], activity: ActivityEntry, now: datetime) -> ProgressOutcome:
        new_streak = update_streak(streak, now.date())

        history = in_timezone(history, now.tzinfo)
        achievements = evaluate(user_id, self.definitions, history + [activity], existing, now)
        unlocked = newly_unlocked(existing, achievements)
        for record in unlocked:
            logger.info(f"用户 {user_id} 解锁成就: {record.achievement_type}")

        return ProgressOutcome(
            user_id=user_id,
            achievements=achievements,
            newly_unlocked=unlocked,
            notifications=[build_notification(r) for r in unlocked],
            streak=new_streak,
            activity=activity,
        )
