from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from vocab_progress.api.schemas.progress_schemas import StreakResponse, UnlockedAchievement


class TestCompletionRequest(BaseModel):
    score: float = Field(..., ge=0)
    total_questions: int = Field(..., ge=1)
    correct_answers: int = Field(..., ge=0)
    percentage: float = Field(..., ge=0, le=100)
    difficulty: Optional[str] = None
    category_id: Optional[int] = None
    duration: Optional[float] = Field(default=None, ge=0)

class TestCompletionResponse(BaseModel):
    xp_earned: int
    streak: StreakResponse
    new_achievements: List[UnlockedAchievement]

class ActivityItem(BaseModel):
    activity_type: str
    game_type: str
    category_id: Optional[int] = None
    item_id: Optional[int] = None
    difficulty: Optional[str] = None
    score: float
    total_questions: int
    correct_answers: int
    percentage: float
    duration: Optional[float] = None
    xp_earned: int
    created_at: str

class Pagination(BaseModel):
    page: int
    limit: int
    total_pages: int
    total_count: int

class ActivityListResponse(BaseModel):
    activities: List[ActivityItem]
    pagination: Pagination

class ActivityStatsResponse(BaseModel):
    total_tests: int
    total_activities: int
    total_xp: int
    average_score: float
    best_score: float
    current_streak: int
    by_difficulty: Dict[str, int]
    achievements: Dict[str, Any]
