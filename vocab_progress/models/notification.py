from sqlalchemy import Column, String, Integer, Boolean, JSON

from vocab_progress.models.base import BaseModel


"""
通知模型
成就解锁时生成，包含标题、内容和附加数据。
"""

class Notification(BaseModel):
    __tablename__ = "notifications"

    user_id = Column(Integer, nullable=False, index=True)
    title = Column(String(100), nullable=False)
    message = Column(String(255), nullable=False)
    payload = Column(JSON, default=dict)
    is_read = Column(Boolean, nullable=False, default=False)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "message": self.message,
            "payload": self.payload or {},
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
