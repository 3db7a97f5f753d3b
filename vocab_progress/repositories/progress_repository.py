from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from vocab_progress.logics.errors import ConcurrentUpdate
from vocab_progress.logics.records import ProgressRecord
from vocab_progress.models.progress import UserProgress
from vocab_progress.repositories.base import BaseRepository, db_errors
from vocab_progress.utils.helpers import as_local, to_utc


def to_record(row: UserProgress) -> ProgressRecord:
    return ProgressRecord(
        user_id=row.user_id,
        item_id=row.item_id,
        memory_level=row.memory_level,
        next_review_date=as_local(row.next_review_date),
        last_studied_at=as_local(row.last_studied_at),
        review_count=row.review_count,
        correct_count=row.correct_count,
        wrong_count=row.wrong_count,
        version=row.version,
    )


class ProgressRepository(BaseRepository[UserProgress]):
    def __init__(self, db: Session):
        super().__init__(db, UserProgress)

    @db_errors
    def get_record(self, user_id: int, item_id: int) -> Optional[ProgressRecord]:
        """获取用户对某个词汇的进度"""
        row = self.db.query(UserProgress).filter(
            UserProgress.user_id == user_id,
            UserProgress.item_id == item_id
        ).first()
        return to_record(row) if row else None

    @db_errors
    def list_records(self, user_id: int, item_id: int = None) -> List[ProgressRecord]:
        """获取用户的进度列表，最近学习的在前"""
        query = self.db.query(UserProgress).filter(UserProgress.user_id == user_id)
        if item_id is not None:
            query = query.filter(UserProgress.item_id == item_id)
        rows = query.order_by(UserProgress.last_studied_at.desc()).all()
        return [to_record(row) for row in rows]

    @db_errors
    def get_due(self, user_id: int, now: datetime, limit: int = 20) -> List[ProgressRecord]:
        """获取到期需要复习的词汇，最早到期的在前"""
        rows = self.db.query(UserProgress).filter(
            UserProgress.user_id == user_id,
            UserProgress.next_review_date <= to_utc(now)
        ).order_by(
            UserProgress.next_review_date.asc(),
            UserProgress.memory_level.asc()
        ).limit(limit).all()
        return [to_record(row) for row in rows]

    @db_errors
    def level_counts(self, user_id: int) -> Dict[int, int]:
        """按记忆等级统计词汇数量"""
        rows = self.db.query(
            UserProgress.memory_level, func.count(UserProgress.id)
        ).filter(
            UserProgress.user_id == user_id
        ).group_by(UserProgress.memory_level).all()
        return {level: count for level, count in rows}

    @db_errors
    def answer_totals(self, user_id: int) -> Tuple[int, int]:
        """统计总作答次数和答对次数"""
        reviews, correct = self.db.query(
            func.coalesce(func.sum(UserProgress.review_count), 0),
            func.coalesce(func.sum(UserProgress.correct_count), 0)
        ).filter(UserProgress.user_id == user_id).one()
        return int(reviews), int(correct)

    @db_errors
    def save(self, record: ProgressRecord) -> ProgressRecord:
        """
        写入进度记录

        record.version 为读取时的版本号（新记录为0）。版本号不一致说明记录已被
        其他请求修改，抛出 ConcurrentUpdate；跨进程的并发修改由 version_id_col
        在 flush 时检测。
        """
        row = self.db.query(UserProgress).filter(
            UserProgress.user_id == record.user_id,
            UserProgress.item_id == record.item_id
        ).first()

        current_version = row.version if row else 0
        if current_version != record.version:
            raise ConcurrentUpdate(
                "进度记录已被其他请求修改",
                user_id=record.user_id, item_id=record.item_id,
                expected_version=record.version, actual_version=current_version,
            )

        if row is None:
            row = UserProgress(user_id=record.user_id, item_id=record.item_id)
            self.db.add(row)

        row.memory_level = record.memory_level
        row.next_review_date = to_utc(record.next_review_date)
        row.last_studied_at = to_utc(record.last_studied_at)
        row.review_count = record.review_count
        row.correct_count = record.correct_count
        row.wrong_count = record.wrong_count
        self.db.flush()

        return replace(record, version=row.version)

    @db_errors
    def count_due(self, user_id: int, now: datetime) -> int:
        """统计到期需要复习的词汇数量"""
        return self.db.query(UserProgress).filter(
            UserProgress.user_id == user_id,
            UserProgress.next_review_date <= to_utc(now)
        ).count()
