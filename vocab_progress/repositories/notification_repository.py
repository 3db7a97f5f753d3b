from typing import List

from sqlalchemy import desc
from sqlalchemy.orm import Session

from vocab_progress.logics.records import Notification as NotificationRecord
from vocab_progress.models.notification import Notification
from vocab_progress.repositories.base import BaseRepository, db_errors


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self, db: Session):
        super().__init__(db, Notification)

    @db_errors
    def add_all(self, notifications: List[NotificationRecord]) -> List[Notification]:
        """保存通知"""
        rows = [
            Notification(user_id=n.user_id, title=n.title, message=n.message, payload=n.payload)
            for n in notifications
        ]
        self.db.add_all(rows)
        self.db.flush()
        return rows

    @db_errors
    def list_for_user(self, user_id: int, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        """获取用户通知，最新的在前"""
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read == False)
        return query.order_by(desc(Notification.created_at), desc(Notification.id)).limit(limit).all()
