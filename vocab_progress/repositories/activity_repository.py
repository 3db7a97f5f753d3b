from typing import List, Tuple

from sqlalchemy import asc, desc
from sqlalchemy.orm import Session

from vocab_progress.logics.records import ActivityEntry, ActivityType
from vocab_progress.models.activity import Activity
from vocab_progress.repositories.base import BaseRepository, db_errors
from vocab_progress.utils.helpers import as_local, to_utc


def to_entry(row: Activity) -> ActivityEntry:
    return ActivityEntry(
        user_id=row.user_id,
        activity_type=ActivityType(row.activity_type),
        created_at=as_local(row.created_at),
        game_type=row.game_type,
        category_id=row.category_id,
        item_id=row.item_id,
        difficulty=row.difficulty,
        score=row.score,
        total_questions=row.total_questions,
        correct_answers=row.correct_answers,
        percentage=row.percentage,
        duration=row.duration,
        xp_earned=row.xp_earned,
    )


class ActivityRepository(BaseRepository[Activity]):
    def __init__(self, db: Session):
        super().__init__(db, Activity)

    @db_errors
    def list_for_user(self, user_id: int) -> List[ActivityEntry]:
        """获取用户全部活动，按时间升序"""
        rows = self.db.query(Activity).filter(
            Activity.user_id == user_id
        ).order_by(Activity.created_at.asc(), Activity.id.asc()).all()
        return [to_entry(row) for row in rows]

    @db_errors
    def page(self, user_id: int, page: int = 1, limit: int = 20,
             descending: bool = True) -> Tuple[List[ActivityEntry], int]:
        """分页获取用户活动"""
        query = self.db.query(Activity).filter(Activity.user_id == user_id)
        total = query.count()

        order = desc if descending else asc
        rows = query.order_by(order(Activity.created_at), order(Activity.id)) \
            .offset((page - 1) * limit).limit(limit).all()
        return [to_entry(row) for row in rows], total

    @db_errors
    def append(self, entry: ActivityEntry) -> ActivityEntry:
        """追加一条活动记录"""
        row = Activity(
            user_id=entry.user_id,
            activity_type=entry.activity_type.value,
            game_type=entry.game_type,
            category_id=entry.category_id,
            item_id=entry.item_id,
            difficulty=entry.difficulty,
            score=entry.score,
            total_questions=entry.total_questions,
            correct_answers=entry.correct_answers,
            percentage=entry.percentage,
            duration=entry.duration,
            xp_earned=entry.xp_earned,
            created_at=to_utc(entry.created_at),
        )
        self.add(row)
        return entry
