"""
核心记录类型

这些值对象在核心逻辑与持久化层之间传递，核心逻辑从不修改传入的对象，
只返回新的对象（使用 dataclasses.replace）。
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, date
from typing import Any, Dict, List, Optional


class ActivityType(str, Enum):
    """学习活动类型"""
    TEST_COMPLETED = "test_completed"
    PRACTICE_ANSWER = "practice_answer"


class Difficulty(str, Enum):
    """难度等级"""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    NATIVE = "native"


class AchievementCategory(str, Enum):
    """成就分类"""
    TEST = "test"
    DIFFICULTY = "difficulty"
    STREAK = "streak"
    MILESTONE = "milestone"


MIN_MEMORY_LEVEL = 1
MAX_MEMORY_LEVEL = 5


@dataclass(frozen=True)
class ProgressRecord:
    """用户对单个词汇的学习进度"""
    user_id: int
    item_id: int
    memory_level: int
    next_review_date: datetime
    last_studied_at: datetime
    review_count: int = 0
    correct_count: int = 0
    wrong_count: int = 0
    version: int = 0             # 乐观锁版本号，由持久化层维护


@dataclass(frozen=True)
class StreakRecord:
    """用户连续学习天数"""
    current: int
    longest: int
    last_activity_date: date


@dataclass(frozen=True)
class ActivityEntry:
    """一次学习活动，写入后不可修改"""
    user_id: int
    activity_type: ActivityType
    created_at: datetime
    game_type: str = "test"
    category_id: Optional[int] = None
    item_id: Optional[int] = None
    difficulty: Optional[str] = None
    score: float = 0
    total_questions: int = 0
    correct_answers: int = 0
    percentage: float = 0
    duration: Optional[float] = None  # 秒
    xp_earned: int = 0

    @property
    def day(self) -> date:
        return self.created_at.date()


@dataclass(frozen=True)
class AchievementDefinition:
    """成就定义（静态配置）"""
    type: str
    title: str
    description: str
    icon: str
    category: AchievementCategory
    target: int
    requirement: Any  # AchievementRule，见 achievements 模块

    def is_met(self, activities: List[ActivityEntry]) -> bool:
        return self.requirement.is_met(activities)


@dataclass(frozen=True)
class AchievementRecord:
    """用户的成就进度"""
    user_id: int
    achievement_type: str
    progress: int
    target: int
    is_unlocked: bool = False
    unlocked_at: Optional[datetime] = None


@dataclass(frozen=True)
class Notification:
    """成就解锁通知"""
    user_id: int
    title: str
    message: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CompletedTest:
    """一次测试的提交结果"""
    score: float
    total_questions: int
    correct_answers: int
    percentage: float
    difficulty: Optional[str] = None
    category_id: Optional[int] = None
    duration: Optional[float] = None
    game_type: str = "test"
