import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from vocab_progress.api.errors import to_http_exception
from vocab_progress.api.schemas.activity_schemas import (
    ActivityListResponse, ActivityStatsResponse, TestCompletionRequest, TestCompletionResponse
)
from vocab_progress.config.settings import settings
from vocab_progress.logics.errors import ProgressError
from vocab_progress.logics.records import CompletedTest
from vocab_progress.services.achievement_service import AchievementService
from vocab_progress.services.progress_service import achievement_to_dict, streak_to_dict
from vocab_progress.utils.database import get_db

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/{user_id}/tests", response_model=TestCompletionResponse, status_code=status.HTTP_201_CREATED)
def record_test_completion(user_id: int, test_data: TestCompletionRequest, db: Session = Depends(get_db)):
    """
    记录一次测试完成
    """
    try:
        achievement_service = AchievementService(db)
        outcome = achievement_service.record_test_activity(
            user_id, CompletedTest(**test_data.model_dump())
        )
        return {
            "xp_earned": outcome.activity.xp_earned,
            "streak": streak_to_dict(outcome.streak, outcome.activity.day),
            "new_achievements": [achievement_to_dict(r) for r in outcome.newly_unlocked],
        }
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"记录测试失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="记录测试失败"
        )

@router.get("/{user_id}", response_model=ActivityListResponse)
def get_activities(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.ACTIVITY_PAGE_SIZE, ge=1, le=100),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db)
):
    """
    分页获取用户活动
    """
    try:
        return AchievementService(db).get_user_activities(
            user_id, page, limit, descending=sort_order == "desc"
        )
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"获取活动列表失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="获取活动列表失败"
        )

@router.get("/{user_id}/stats", response_model=ActivityStatsResponse)
def get_activity_stats(user_id: int, db: Session = Depends(get_db)):
    """
    获取用户活动统计
    """
    try:
        return AchievementService(db).get_user_stats(user_id)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"获取活动统计失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="获取活动统计失败"
        )
