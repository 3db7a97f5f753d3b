from sqlalchemy import Column, Integer, DateTime, UniqueConstraint, Index

from vocab_progress.models.base import BaseModel


"""
学习进度模型
每个用户×词汇一条记录：记忆等级(1~5)、下次复习时间、最近学习时间、复习/答对/答错次数。
version 用于条件更新（乐观锁）。
"""

class UserProgress(BaseModel):
    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "item_id", name="uq_user_progress_user_item"),
        Index("ix_user_progress_user_next_review", "user_id", "next_review_date"),
    )

    user_id = Column(Integer, nullable=False, index=True)
    item_id = Column(Integer, nullable=False)
    memory_level = Column(Integer, nullable=False, default=1)
    next_review_date = Column(DateTime(timezone=True), nullable=False)
    last_studied_at = Column(DateTime(timezone=True), nullable=False)
    review_count = Column(Integer, nullable=False, default=0)
    correct_count = Column(Integer, nullable=False, default=0)
    wrong_count = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
