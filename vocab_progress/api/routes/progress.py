import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from vocab_progress.api.errors import to_http_exception
from vocab_progress.api.schemas.progress_schemas import (
    AnswerRequest, AnswerResponse, ProgressResponse, ProgressStatsResponse
)
from vocab_progress.logics.errors import ProgressError
from vocab_progress.services.progress_service import (
    ProgressService, achievement_to_dict, progress_to_dict, streak_to_dict
)
from vocab_progress.utils.database import get_db

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/{user_id}/answers", response_model=AnswerResponse, status_code=status.HTTP_201_CREATED)
def submit_answer(user_id: int, answer: AnswerRequest, db: Session = Depends(get_db)):
    """
    提交一次词汇作答
    """
    try:
        progress_service = ProgressService(db)
        outcome = progress_service.submit_answer(
            user_id,
            answer.item_id,
            answer.is_correct,
            category_id=answer.category_id,
            difficulty=answer.difficulty,
            duration=answer.duration,
            game_type=answer.game_type,
        )
        return {
            "progress": progress_to_dict(outcome.progress),
            "streak": streak_to_dict(outcome.streak, outcome.activity.day),
            "xp_earned": outcome.activity.xp_earned,
            "new_achievements": [achievement_to_dict(r) for r in outcome.newly_unlocked],
        }
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"提交作答失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="提交作答失败"
        )

@router.get("/{user_id}", response_model=List[ProgressResponse])
def get_user_progress(
    user_id: int,
    item_id: Optional[int] = Query(None, description="词汇ID"),
    db: Session = Depends(get_db)
):
    """
    获取用户学习进度
    """
    try:
        return ProgressService(db).get_user_progress(user_id, item_id)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"获取学习进度失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="获取学习进度失败"
        )

@router.get("/{user_id}/due", response_model=List[ProgressResponse])
def get_due_for_review(
    user_id: int,
    limit: Optional[int] = Query(None, ge=1, le=200, description="最大数量"),
    db: Session = Depends(get_db)
):
    """
    获取到期需要复习的词汇
    """
    try:
        return ProgressService(db).get_due_for_review(user_id, limit)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"获取复习列表失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="获取复习列表失败"
        )

@router.get("/{user_id}/stats", response_model=ProgressStatsResponse)
def get_progress_stats(user_id: int, db: Session = Depends(get_db)):
    """
    获取用户学习统计
    """
    try:
        return ProgressService(db).get_user_stats(user_id)
    except ProgressError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"获取学习统计失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="获取学习统计失败"
        )
