"""
连续学习天数计算

纯函数，不依赖数据库；"今天"由调用方传入。
"""
import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Iterable, Optional

from vocab_progress.logics.records import StreakRecord

logger = logging.getLogger(__name__)


def update_streak(record: Optional[StreakRecord], now: date) -> StreakRecord:
    """
    根据最近一次学习日期更新连续天数

    Args:
        record: 现有记录，首次学习时为None
        now: 本次学习发生的日期

    Returns:
        StreakRecord: 更新后的记录（同一天内重复调用结果不变）
    """
    if record is None:
        return StreakRecord(current=1, longest=1, last_activity_date=now)

    gap = (now - record.last_activity_date).days

    if gap < 0:
        # 乱序事件：保持原状，不破坏已有连续记录
        logger.warning(f"学习日期早于最近记录: {now} < {record.last_activity_date}，忽略")
        return record

    if gap == 0:
        return record

    if gap == 1:
        current = record.current + 1
        return replace(
            record,
            current=current,
            longest=max(record.longest, current),
            last_activity_date=now,
        )

    return replace(record, current=1, last_activity_date=now)


def current_streak_from_dates(days: Iterable[date], today: date) -> int:
    """
    从学习日期集合计算当前连续天数

    今天和昨天都没有学习时，连续记录已中断，返回0。
    """
    learned = set(days)
    if today in learned:
        cursor = today
    elif today - timedelta(days=1) in learned:
        cursor = today - timedelta(days=1)
    else:
        return 0

    streak = 0
    while cursor in learned:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def longest_run(days: Iterable[date]) -> int:
    """计算历史上最长的连续学习天数"""
    ordered = sorted(set(days))
    if not ordered:
        return 0

    best = run = 1
    for prev, curr in zip(ordered, ordered[1:]):
        if (curr - prev).days == 1:
            run += 1
            best = max(best, run)
        else:
            run = 1
    return best
