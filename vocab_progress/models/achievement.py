from sqlalchemy import Column, String, Integer, Boolean, DateTime, UniqueConstraint

from vocab_progress.models.base import BaseModel


"""
用户成就模型
每个用户×成就定义一条记录：进度、目标、是否解锁、解锁时间（解锁后不再改变）。
"""

class UserAchievement(BaseModel):
    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_type", name="uq_user_achievements_user_type"),
    )

    user_id = Column(Integer, nullable=False, index=True)
    achievement_type = Column(String(50), nullable=False)
    progress = Column(Integer, nullable=False, default=0)
    target = Column(Integer, nullable=False)
    is_unlocked = Column(Boolean, nullable=False, default=False)
    unlocked_at = Column(DateTime(timezone=True))
