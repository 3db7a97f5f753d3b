from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from vocab_progress.api.schemas.progress_schemas import UnlockedAchievement


class AchievementSummary(BaseModel):
    total: int
    unlocked: int
    locked: int

class AchievementListResponse(BaseModel):
    achievements: List[UnlockedAchievement]
    summary: AchievementSummary

class AchievementCheckResponse(BaseModel):
    newly_unlocked: List[UnlockedAchievement]
    count: int

class NotificationResponse(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    payload: Dict[str, Any]
    is_read: bool
    created_at: Optional[str] = None
