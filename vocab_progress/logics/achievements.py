"""
成就引擎

成就定义是一张固定的表，每个成就的解锁条件是一个小的规则对象（按 RuleKind 标记），
每种规则对应一个判定函数和一个进度度量函数。评估是纯函数：相同的活动记录、
已有成就和时间，总是得到相同的结果，可安全重试。
"""
import math
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from vocab_progress.logics.errors import InvariantViolation
from vocab_progress.logics.records import (
    AchievementCategory, AchievementDefinition, AchievementRecord, ActivityEntry,
    ActivityType, CompletedTest, Difficulty,
)
from vocab_progress.logics.streak import longest_run

# 快速完成的时间上限（秒）
FAST_FINISH_SECONDS = 300
# 难度冠军所需的最低正确率
CHAMPION_PERCENTAGE = 90

# 按成就类型名估算进度的成就族
_COUNT_FAMILIES = ("test", "champion")


class RuleKind(str, Enum):
    ACTIVITY_COUNT = "activity_count"
    PERFECT_SCORE = "perfect_score"
    FAST_FINISH = "fast_finish"
    DIFFICULTY_SCORE = "difficulty_score"
    DAILY_STREAK = "daily_streak"


@dataclass(frozen=True)
class AchievementRule:
    """成就解锁条件"""
    kind: RuleKind
    threshold: float = 1
    difficulty: Optional[str] = None

    def is_met(self, activities: List[ActivityEntry]) -> bool:
        return _CHECKS[self.kind](self, activities)

    def measure(self, activities: List[ActivityEntry]) -> int:
        """满足条件的数量，用于展示进度"""
        return _MEASURES[self.kind](self, activities)


def _tests(activities: List[ActivityEntry]) -> List[ActivityEntry]:
    return [a for a in activities if a.activity_type == ActivityType.TEST_COMPLETED]


def _perfect(activities):
    return [a for a in _tests(activities) if a.percentage == 100]


def _fast(rule, activities):
    return [a for a in _tests(activities) if a.duration and a.duration < rule.threshold]


def _champion(rule, activities):
    return [
        a for a in _tests(activities)
        if a.difficulty == rule.difficulty and a.percentage >= rule.threshold
    ]


def _longest_daily_run(activities):
    return longest_run(a.day for a in activities)


_CHECKS: Dict[RuleKind, Callable[[AchievementRule, List[ActivityEntry]], bool]] = {
    RuleKind.ACTIVITY_COUNT: lambda r, acts: len(_tests(acts)) >= r.threshold,
    RuleKind.PERFECT_SCORE: lambda r, acts: len(_perfect(acts)) >= r.threshold,
    RuleKind.FAST_FINISH: lambda r, acts: len(_fast(r, acts)) >= 1,
    RuleKind.DIFFICULTY_SCORE: lambda r, acts: len(_champion(r, acts)) >= 1,
    RuleKind.DAILY_STREAK: lambda r, acts: _longest_daily_run(acts) >= r.threshold,
}

_MEASURES: Dict[RuleKind, Callable[[AchievementRule, List[ActivityEntry]], int]] = {
    RuleKind.ACTIVITY_COUNT: lambda r, acts: len(_tests(acts)),
    RuleKind.PERFECT_SCORE: lambda r, acts: len(_perfect(acts)),
    RuleKind.FAST_FINISH: lambda r, acts: len(_fast(r, acts)),
    RuleKind.DIFFICULTY_SCORE: lambda r, acts: len(_champion(r, acts)),
    RuleKind.DAILY_STREAK: lambda r, acts: _longest_daily_run(acts),
}


def _champion_def(type_, title, difficulty, icon):
    return AchievementDefinition(
        type=type_,
        title=title,
        description=f"{difficulty.value}难度测试正确率达到{CHAMPION_PERCENTAGE}%以上",
        icon=icon,
        category=AchievementCategory.DIFFICULTY,
        target=1,
        requirement=AchievementRule(RuleKind.DIFFICULTY_SCORE, CHAMPION_PERCENTAGE, difficulty.value),
    )


def _streak_def(days, icon):
    return AchievementDefinition(
        type=f"streak_{days}",
        title=f"连续{days}天",
        description=f"连续{days}天完成学习",
        icon=icon,
        category=AchievementCategory.STREAK,
        target=days,
        requirement=AchievementRule(RuleKind.DAILY_STREAK, days),
    )


ACHIEVEMENT_DEFINITIONS: List[AchievementDefinition] = [
    # 测试类
    AchievementDefinition(
        type="first_test", title="第一步", description="完成第一次测试", icon="🎯",
        category=AchievementCategory.TEST, target=1,
        requirement=AchievementRule(RuleKind.ACTIVITY_COUNT, 1),
    ),
    AchievementDefinition(
        type="perfect_score", title="完美", description="在一次测试中获得100%", icon="💯",
        category=AchievementCategory.TEST, target=1,
        requirement=AchievementRule(RuleKind.PERFECT_SCORE, 1),
    ),
    AchievementDefinition(
        type="test_master", title="测试大师", description="完成10次测试", icon="🏆",
        category=AchievementCategory.MILESTONE, target=10,
        requirement=AchievementRule(RuleKind.ACTIVITY_COUNT, 10),
    ),
    AchievementDefinition(
        type="speed_runner", title="光速", description="在5分钟内完成一次测试", icon="⚡",
        category=AchievementCategory.TEST, target=1,
        requirement=AchievementRule(RuleKind.FAST_FINISH, FAST_FINISH_SECONDS),
    ),
    # 难度类
    _champion_def("beginner_champion", "初级冠军", Difficulty.BEGINNER, "🌱"),
    _champion_def("intermediate_champion", "中级冠军", Difficulty.INTERMEDIATE, "🌿"),
    _champion_def("advanced_champion", "高级冠军", Difficulty.ADVANCED, "🌳"),
    _champion_def("native_champion", "母语冠军", Difficulty.NATIVE, "🎓"),
    # 连续学习类
    _streak_def(3, "🔥"),
    _streak_def(7, "🔥🔥"),
    _streak_def(30, "🔥🔥🔥"),
    # 里程碑
    AchievementDefinition(
        type="hundred_tests", title="纪录保持者", description="完成100次测试", icon="🎖️",
        category=AchievementCategory.MILESTONE, target=100,
        requirement=AchievementRule(RuleKind.ACTIVITY_COUNT, 100),
    ),
]

DEFINITIONS_BY_TYPE: Dict[str, AchievementDefinition] = {d.type: d for d in ACHIEVEMENT_DEFINITIONS}


def display_progress(definition: AchievementDefinition, activities: List[ActivityEntry]) -> int:
    """
    未解锁成就的展示进度，上限为 target - 1

    类型名包含 test / champion 的成就直接使用活动总数估算，
    不区分活动是否满足解锁条件。
    """
    if any(family in definition.type for family in _COUNT_FAMILIES):
        measured = len(activities)
    else:
        measured = definition.requirement.measure(activities)
    return max(0, min(measured, definition.target - 1))


def evaluate(
    user_id: int,
    definitions: List[AchievementDefinition],
    activities: List[ActivityEntry],
    existing: List[AchievementRecord],
    now: datetime,
) -> List[AchievementRecord]:
    """
    根据完整活动记录评估所有成就

    Args:
        user_id: 用户ID
        definitions: 成就定义表
        activities: 用户全部活动（含本次新活动）
        existing: 用户已有的成就记录
        now: 评估时间，作为新解锁成就的解锁时间

    Returns:
        List[AchievementRecord]: 每个成就定义对应一条记录，顺序与定义表一致
    """
    by_type = {r.achievement_type: r for r in existing}
    results = []

    for definition in definitions:
        current = by_type.get(definition.type)

        if current is not None and current.is_unlocked:
            if current.unlocked_at is None:
                raise InvariantViolation(
                    f"成就已解锁但缺少解锁时间: {definition.type}",
                    user_id=user_id, achievement_type=definition.type,
                )
            # 已解锁成就保持不变
            results.append(current)
            continue

        if definition.is_met(activities):
            results.append(AchievementRecord(
                user_id=user_id,
                achievement_type=definition.type,
                progress=definition.target,
                target=definition.target,
                is_unlocked=True,
                unlocked_at=now,
            ))
            continue

        progress = display_progress(definition, activities)
        if current is not None:
            # 进度只增不减
            results.append(replace(
                current, progress=max(current.progress, progress), target=definition.target,
            ))
        else:
            results.append(AchievementRecord(
                user_id=user_id,
                achievement_type=definition.type,
                progress=progress,
                target=definition.target,
            ))

    return results


def newly_unlocked(before: List[AchievementRecord], after: List[AchievementRecord]) -> List[AchievementRecord]:
    """找出本次从未解锁变为已解锁的成就"""
    was_unlocked = {r.achievement_type for r in before if r.is_unlocked}
    return [r for r in after if r.is_unlocked and r.achievement_type not in was_unlocked]


_DIFFICULTY_MULTIPLIERS = {
    Difficulty.BEGINNER.value: 1,
    Difficulty.INTERMEDIATE.value: 1.5,
    Difficulty.ADVANCED.value: 2,
    Difficulty.NATIVE.value: 3,
}


def calculate_xp(test: CompletedTest) -> int:
    """
    计算一次测试获得的经验值

    基础50 + 正确率×2 + 满分奖励100 + 5分钟内完成奖励50，再乘以难度系数。
    """
    base_xp = 50
    percentage_bonus = math.floor(test.percentage * 2)
    perfect_bonus = 100 if test.percentage == 100 else 0
    speed_bonus = 50 if test.duration and test.duration < FAST_FINISH_SECONDS else 0
    multiplier = _DIFFICULTY_MULTIPLIERS.get(test.difficulty, 1)

    return math.floor((base_xp + percentage_bonus + perfect_bonus + speed_bonus) * multiplier)
