from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class AnswerRequest(BaseModel):
    item_id: int
    is_correct: bool
    category_id: Optional[int] = None
    difficulty: Optional[str] = None
    duration: Optional[float] = Field(default=None, ge=0)
    game_type: Optional[str] = None

class ProgressResponse(BaseModel):
    user_id: int
    item_id: int
    memory_level: int
    interval_days: int
    next_review_date: str
    last_studied_at: str
    review_count: int
    correct_count: int
    wrong_count: int

class StreakResponse(BaseModel):
    current: int
    longest: int
    last_activity_date: Optional[str] = None
    is_active_today: bool = False

class UnlockedAchievement(BaseModel):
    achievement_type: str
    title: str
    description: str
    icon: str
    category: Optional[str] = None
    progress: int
    target: int
    is_unlocked: bool
    unlocked_at: Optional[str] = None

class AnswerResponse(BaseModel):
    progress: ProgressResponse
    streak: StreakResponse
    xp_earned: int
    new_achievements: List[UnlockedAchievement]

class ProgressStatsResponse(BaseModel):
    total_words: int
    by_level: Dict[str, int]
    mastered_words: int
    due_count: int
    total_reviews: int
    accuracy: int
    streak: StreakResponse
