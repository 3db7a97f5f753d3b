from sqlalchemy import Column, Integer, Date

from vocab_progress.models.base import BaseModel


"""
连续学习天数模型
每个用户一条记录：当前连续天数、最长连续天数、最近学习日期。
"""

class UserStreak(BaseModel):
    __tablename__ = "user_streaks"

    user_id = Column(Integer, nullable=False, unique=True, index=True)
    current = Column(Integer, nullable=False, default=0)
    longest = Column(Integer, nullable=False, default=0)
    last_activity_date = Column(Date)
