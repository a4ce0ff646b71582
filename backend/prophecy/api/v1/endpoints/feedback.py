from fastapi import APIRouter, Depends, status

from prophecy.api.deps import get_prophecy_engine
from prophecy.schemas.feedback import FeedbackCreate, FeedbackRecord, FeedbackSummary
from prophecy.schemas.prophecy import AdjustmentFactors
from prophecy.services.analytics.prophecy_engine import ProphecyEngine

router = APIRouter()


@router.post("", response_model=FeedbackRecord, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    feedback: FeedbackCreate,
    engine: ProphecyEngine = Depends(get_prophecy_engine),
):
    return await engine.submit_feedback(feedback)


@router.get("/{user_id}/summary", response_model=FeedbackSummary)
async def get_feedback_summary(
    user_id: str,
    engine: ProphecyEngine = Depends(get_prophecy_engine),
):
    return await engine.get_feedback_summary(user_id)


@router.post("/{user_id}/recalibrate", response_model=AdjustmentFactors)
async def recalibrate_predictions(
    user_id: str,
    engine: ProphecyEngine = Depends(get_prophecy_engine),
):
    """Recompute the user's adjustment factors from recent feedback"""
    return await engine.recalibrate(user_id)
