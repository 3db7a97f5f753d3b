from sqlalchemy import Column, String, Integer, Float, Index

from vocab_progress.models.base import BaseModel


"""
学习活动模型（只追加，不修改）
记录测试完成和练习作答：类型、游戏类型、分类、难度、得分、题数、正确数、正确率、用时、经验值。
created_at 即活动发生时间。
"""

class Activity(BaseModel):
    __tablename__ = "activities"
    __table_args__ = (
        Index("ix_activities_user_created", "user_id", "created_at"),
        Index("ix_activities_user_type", "user_id", "activity_type"),
    )

    user_id = Column(Integer, nullable=False, index=True)
    activity_type = Column(String(30), nullable=False)  # test_completed, practice_answer
    game_type = Column(String(50), nullable=False)
    category_id = Column(Integer)
    item_id = Column(Integer)
    difficulty = Column(String(20))
    score = Column(Float, nullable=False, default=0)
    total_questions = Column(Integer, nullable=False, default=0)
    correct_answers = Column(Integer, nullable=False, default=0)
    percentage = Column(Float, nullable=False, default=0)
    duration = Column(Float)  # 秒
    xp_earned = Column(Integer, nullable=False, default=0)
