from typing import Dict, Optional
from fastapi import APIRouter, Depends, Query

from prophecy.api.deps import get_prophecy_engine
from prophecy.schemas.prophecy import PredictionResult
from prophecy.services.analytics.prophecy_engine import ProphecyEngine

router = APIRouter()


@router.get("/{user_id}", response_model=PredictionResult)
async def get_prophecy(
    user_id: str,
    clip_id: Optional[str] = Query(None),
    variant: Optional[str] = Query(None, description="linear, random_forest or ensemble"),
    engine: ProphecyEngine = Depends(get_prophecy_engine),
):
    """Predict engagement for the user's next clip"""
    return await engine.predict(user_id, clip_id=clip_id, variant=variant)


@router.get("/{user_id}/variants", response_model=Dict[str, PredictionResult])
async def compare_model_variants(
    user_id: str,
    clip_id: Optional[str] = Query(None),
    engine: ProphecyEngine = Depends(get_prophecy_engine),
):
    """Predict with every model variant for side-by-side comparison"""
    results = await engine.predict_all_variants(user_id, clip_id=clip_id)
    return {variant.value: result for variant, result in results.items()}
