from typing import Optional

from sqlalchemy.orm import Session

from vocab_progress.logics.records import StreakRecord
from vocab_progress.models.streak import UserStreak
from vocab_progress.repositories.base import BaseRepository, db_errors


class StreakRepository(BaseRepository[UserStreak]):
    def __init__(self, db: Session):
        super().__init__(db, UserStreak)

    @db_errors
    def get_record(self, user_id: int) -> Optional[StreakRecord]:
        """获取用户连续天数记录，从未学习过时返回None"""
        row = self.get_first_by(user_id=user_id)
        if row is None or row.last_activity_date is None:
            return None
        return StreakRecord(
            current=row.current,
            longest=row.longest,
            last_activity_date=row.last_activity_date,
        )

    @db_errors
    def save(self, user_id: int, record: StreakRecord) -> StreakRecord:
        """写入连续天数记录（不存在则创建）"""
        row = self.get_first_by(user_id=user_id)
        if row is None:
            row = UserStreak(user_id=user_id)
            self.db.add(row)
        row.current = record.current
        row.longest = record.longest
        row.last_activity_date = record.last_activity_date
        self.db.flush()
        return record
