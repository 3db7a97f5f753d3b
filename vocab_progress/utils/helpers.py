from datetime import datetime, date
from typing import Optional

import pytz

from vocab_progress.config.settings import settings


def local_now(tz_name: str = None) -> datetime:
    """按配置时区获取当前时间（带时区信息）"""
    tz = pytz.timezone(tz_name or settings.TIMEZONE)
    return datetime.now(pytz.utc).astimezone(tz)


def as_local(dt: datetime, tz_name: str = None) -> datetime:
    """
    将数据库读出的时间转换到配置时区

    SQLite不保存时区信息，读出的naive时间按UTC处理
    """
    tz = pytz.timezone(tz_name or settings.TIMEZONE)
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(tz)


def to_utc(dt: datetime) -> datetime:
    """转换为UTC时间用于存储"""
    if dt.tzinfo is None:
        return pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc)


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """格式化时间戳"""
    if dt is None:
        return None
    return dt.isoformat()


def format_date(d: Optional[date]) -> Optional[str]:
    if d is None:
        return None
    return d.isoformat()
