from typing import List, Optional

from sqlalchemy.orm import Session

from vocab_progress.logics.coordinator import ProgressStore
from vocab_progress.logics.records import AchievementRecord, ActivityEntry, ProgressRecord, StreakRecord
from vocab_progress.repositories.achievement_repository import AchievementRepository
from vocab_progress.repositories.activity_repository import ActivityRepository
from vocab_progress.repositories.progress_repository import ProgressRepository
from vocab_progress.repositories.streak_repository import StreakRepository


class SqlProgressStore(ProgressStore):
    """基于数据库会话的协调器读取接口"""

    def __init__(self, db: Session):
        self.progress_repo = ProgressRepository(db)
        self.streak_repo = StreakRepository(db)
        self.activity_repo = ActivityRepository(db)
        self.achievement_repo = AchievementRepository(db)

    def get_progress(self, user_id: int, item_id: int) -> Optional[ProgressRecord]:
        return self.progress_repo.get_record(user_id, item_id)

    def get_streak(self, user_id: int) -> Optional[StreakRecord]:
        return self.streak_repo.get_record(user_id)

    def get_activities(self, user_id: int) -> List[ActivityEntry]:
        return self.activity_repo.list_for_user(user_id)

    def get_achievements(self, user_id: int) -> List[AchievementRecord]:
        return self.achievement_repo.list_for_user(user_id)
