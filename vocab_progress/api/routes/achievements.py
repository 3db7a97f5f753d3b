import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from vocab_progress.api.errors import to_http_exception
from vocab_progress.api.schemas.achievement_schemas import (
    AchievementCheckResponse, AchievementListResponse, NotificationResponse
)
from vocab_progress.logics.errors import ProgressError
from vocab_progress.services.achievement_service import AchievementService
from vocab_progress.services.progress_service import achievement_to_dict
from vocab_progress.utils.database import get_db

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/{user_id}", response_model=AchievementListResponse)
def get_achievements(
    user_id: int,
    category: Optional[str] = Query(None, description="成就分类"),
    unlocked_only: bool = Query(False, description="只返回已解锁成就"),
    db: Session = Depends(get_db)
):
    """
    获取用户成就
    """
    try:
        return AchievementService(db).get_user_achievements(user_id, category, unlocked_only)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"获取成就失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="获取成就失败"
        )

@router.post("/{user_id}/check", response_model=AchievementCheckResponse)
def check_achievements(user_id: int, db: Session = Depends(get_db)):
    """
    手动触发成就检查
    """
    try:
        outcome = AchievementService(db).check_and_update_achievements(user_id)
        return {
            "newly_unlocked": [achievement_to_dict(r) for r in outcome.newly_unlocked],
            "count": len(outcome.newly_unlocked),
        }
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"检查成就失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="检查成就失败"
        )

@router.get("/{user_id}/notifications", response_model=List[NotificationResponse])
def get_notifications(
    user_id: int,
    unread_only: bool = Query(False, description="只返回未读通知"),
    db: Session = Depends(get_db)
):
    """
    获取用户通知
    """
    try:
        return AchievementService(db).get_notifications(user_id, unread_only)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"获取通知失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="获取通知失败"
        )
