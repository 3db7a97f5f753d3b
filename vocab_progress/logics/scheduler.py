"""
复习调度（间隔重复）

规则：
- 答对：记忆等级 +1，最高5级
- 答错：无论原等级多少，一律重置为1级
- 下次复习日期 = 今天 + 等级对应的间隔天数，落在当天零点
"""
from datetime import datetime, timedelta, time
from typing import Dict, Optional, Tuple

from vocab_progress.logics.errors import InvalidInput
from vocab_progress.logics.records import MIN_MEMORY_LEVEL, MAX_MEMORY_LEVEL, ProgressRecord

# 记忆等级 -> 间隔天数
REVIEW_INTERVALS: Dict[int, int] = {1: 1, 2: 3, 3: 7, 4: 14, 5: 30}


def interval_days(level: int) -> int:
    """获取记忆等级对应的复习间隔天数"""
    if level not in REVIEW_INTERVALS:
        raise InvalidInput(f"记忆等级超出范围: {level}", level=level)
    return REVIEW_INTERVALS[level]


def next_level(prior_level: Optional[int], was_correct: bool) -> int:
    """
    计算新的记忆等级

    Args:
        prior_level: 原记忆等级，首次学习时为None（视为0级）
        was_correct: 本次是否答对

    Returns:
        int: 新的记忆等级
    """
    if prior_level is not None and not MIN_MEMORY_LEVEL <= prior_level <= MAX_MEMORY_LEVEL:
        raise InvalidInput(f"记忆等级超出范围: {prior_level}", level=prior_level)

    if not was_correct:
        return MIN_MEMORY_LEVEL
    return min((prior_level or 0) + 1, MAX_MEMORY_LEVEL)


def _start_of_day(day, tz) -> datetime:
    midnight = datetime.combine(day, time.min)
    if tz is None:
        return midnight
    if hasattr(tz, "localize"):
        # pytz时区需要localize才能得到当天正确的偏移量
        return tz.localize(midnight)
    return midnight.replace(tzinfo=tz)


def schedule(prior_level: Optional[int], was_correct: bool, now: datetime) -> Tuple[int, datetime]:
    """
    计算新的记忆等级和下次复习时间

    按日历天计算，与复习发生在一天中的哪个时刻无关。

    Args:
        prior_level: 原记忆等级，None表示尚无进度记录
        was_correct: 本次是否答对
        now: 当前时间（调用方所在时区）

    Returns:
        (新记忆等级, 下次复习时间)
    """
    level = next_level(prior_level, was_correct)
    due_day = now.date() + timedelta(days=interval_days(level))
    return level, _start_of_day(due_day, now.tzinfo)


def is_due(record: ProgressRecord, now: datetime) -> bool:
    """判断词汇是否到了复习时间"""
    return record.next_review_date <= now
