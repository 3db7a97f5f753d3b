from typing import List

from sqlalchemy.orm import Session

from vocab_progress.logics.records import AchievementRecord
from vocab_progress.models.achievement import UserAchievement
from vocab_progress.repositories.base import BaseRepository, db_errors
from vocab_progress.utils.helpers import as_local, to_utc


def to_record(row: UserAchievement) -> AchievementRecord:
    return AchievementRecord(
        user_id=row.user_id,
        achievement_type=row.achievement_type,
        progress=row.progress,
        target=row.target,
        is_unlocked=row.is_unlocked,
        unlocked_at=as_local(row.unlocked_at) if row.unlocked_at else None,
    )


class AchievementRepository(BaseRepository[UserAchievement]):
    def __init__(self, db: Session):
        super().__init__(db, UserAchievement)

    @db_errors
    def list_for_user(self, user_id: int) -> List[AchievementRecord]:
        """获取用户全部成就记录"""
        rows = self.db.query(UserAchievement).filter(
            UserAchievement.user_id == user_id
        ).all()
        return [to_record(row) for row in rows]

    @db_errors
    def save_all(self, records: List[AchievementRecord]) -> int:
        """
        批量写入成就记录（按 user_id + achievement_type 更新或创建）

        已解锁的记录不会被改写。

        Returns:
            int: 实际变更的记录数
        """
        if not records:
            return 0

        user_ids = {r.user_id for r in records}
        rows = self.db.query(UserAchievement).filter(
            UserAchievement.user_id.in_(user_ids)
        ).all()
        by_key = {(row.user_id, row.achievement_type): row for row in rows}

        changed = 0
        for record in records:
            row = by_key.get((record.user_id, record.achievement_type))
            if row is None:
                row = UserAchievement(user_id=record.user_id, achievement_type=record.achievement_type)
                self.db.add(row)
            elif row.is_unlocked:
                continue
            elif (row.progress, row.target, row.is_unlocked) == (record.progress, record.target, record.is_unlocked):
                continue

            row.progress = record.progress
            row.target = record.target
            row.is_unlocked = record.is_unlocked
            row.unlocked_at = to_utc(record.unlocked_at) if record.unlocked_at else None
            changed += 1

        self.db.flush()
        return changed
