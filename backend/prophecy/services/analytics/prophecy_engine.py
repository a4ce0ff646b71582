"""
Prophecy Engine

Assembles engagement predictions for a creator from their posting history
and serves the feedback loop that recalibrates future predictions.

Prediction pipeline: fetch history -> baseline -> trend regression (falling
back to the baseline with a fixed growth factor) -> posting window ->
recommendations and insights -> cache.

Repository calls are blocking and are awaited through worker threads.
Upstream failures propagate as UpstreamUnavailableError; the engine never
returns a fabricated prediction in their place.
"""

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import sessionmaker

from prophecy.core.config import settings
from prophecy.core.exceptions import InsufficientDataError, UnknownVariantError
from prophecy.schemas.feedback import FeedbackCreate, FeedbackRecord, FeedbackSummary
from prophecy.schemas.prophecy import (
    AdjustmentFactors, ModelVariant, PerformanceRecord, PredictionInterval, PredictionResult
)
from prophecy.services.feedback.calibrator import ModelCalibrator
from prophecy.services.feedback.feedback_service import FeedbackService
from prophecy.services.feedback.repositories import (
    CalibrationRepository, FeedbackRepository,
    SqlCalibrationRepository, SqlFeedbackRepository
)
from .baseline import calculate_baseline_metrics, forecast_from_baseline
from .prediction_cache import Clock, PredictionCache, build_prediction_cache, utc_now
from .recommendations import generate_insights, generate_recommendations, trending_hashtags
from .repositories import AnalyticsRepository, SqlAnalyticsRepository
from .timing import determine_optimal_day, determine_optimal_time
from .trend_predictor import TrendPredictor

logger = logging.getLogger(__name__)


def resolve_variant(variant: Union[ModelVariant, str, None]) -> ModelVariant:
    if variant is None:
        variant = settings.DEFAULT_MODEL_VARIANT
    try:
        return ModelVariant(variant)
    except ValueError:
        raise UnknownVariantError(f"Model {variant} not found")


class ProphecyEngine:
    """Predictive analytics engine for clip performance"""

    def __init__(
        self,
        analytics_repository: AnalyticsRepository,
        feedback_repository: FeedbackRepository,
        calibration_repository: CalibrationRepository,
        cache: Optional[PredictionCache] = None,
        clock: Optional[Clock] = None,
    ):
        self.clock = clock or utc_now
        self.analytics_repository = analytics_repository
        self.calibration_repository = calibration_repository
        self.cache = cache or PredictionCache(clock=self.clock)
        self.feedback_service = FeedbackService(feedback_repository, clock=self.clock)
        self.calibrator = ModelCalibrator(feedback_repository, calibration_repository)

    async def _fetch_records(self, user_id: str) -> List[PerformanceRecord]:
        return await asyncio.to_thread(self.analytics_repository.fetch_records, user_id)

    async def _load_factors(self, user_id: str) -> AdjustmentFactors:
        factors = await asyncio.to_thread(self.calibration_repository.load_factors, user_id)
        return factors or AdjustmentFactors()

    async def _generate(
        self,
        user_id: str,
        clip_id: Optional[str],
        variant: ModelVariant,
        records: List[PerformanceRecord],
    ) -> PredictionResult:
        factors = await self._load_factors(user_id)
        now = self.clock()

        baseline = calculate_baseline_metrics(records)
        forecast = TrendPredictor(variant).predict(records, now, factors)
        if forecast is None:
            logger.info(
                f"Using baseline fallback for user {user_id}: {len(records)} records "
                f"(need {settings.TREND_MIN_RECORDS})"
            )
            forecast = forecast_from_baseline(baseline, factors)

        best_time = determine_optimal_time(records)
        best_day = determine_optimal_day(records)

        result = PredictionResult(
            prophecy_id=str(uuid.uuid4()),
            user_id=user_id,
            clip_id=clip_id,
            variant=variant,
            predicted_views=forecast.views,
            predicted_likes=forecast.likes,
            predicted_comments=forecast.comments,
            confidence=forecast.confidence,
            views_interval=(
                PredictionInterval(lower=forecast.views_interval[0], upper=forecast.views_interval[1])
                if forecast.views_interval else None
            ),
            best_time=best_time,
            best_day=best_day,
            recommended_duration=settings.RECOMMENDED_DURATION_SECONDS,
            trending_hashtags=trending_hashtags(),
            recommendations=generate_recommendations(baseline),
            insights=generate_insights(baseline, forecast, best_time, best_day, len(records)),
            generated_at=now,
        )

        logger.info(
            f"Generated {variant.value} prophecy {result.prophecy_id} for user {user_id}: "
            f"views={result.predicted_views} confidence={result.confidence}"
        )
        return result

    async def predict(
        self,
        user_id: str,
        clip_id: Optional[str] = None,
        variant: Union[ModelVariant, str, None] = None,
    ) -> PredictionResult:
        """
        Predict engagement for a user's next clip.

        Repeated calls for the same (user, clip, variant) inside the cache
        TTL return the cached result unchanged.
        """
        variant = resolve_variant(variant)

        cached = await self.cache.get(user_id, clip_id, variant)
        if cached is not None:
            return cached

        records = await self._fetch_records(user_id)
        result = await self._generate(user_id, clip_id, variant, records)
        await self.cache.put(user_id, clip_id, variant, result)
        return result

    async def predict_all_variants(
        self,
        user_id: str,
        clip_id: Optional[str] = None,
    ) -> Dict[ModelVariant, PredictionResult]:
        """
        Predict with every model variant for side-by-side comparison.

        Raises:
            InsufficientDataError: fewer than MULTI_VARIANT_MIN_RECORDS records
        """
        records = await self._fetch_records(user_id)
        required = settings.MULTI_VARIANT_MIN_RECORDS
        if len(records) < required:
            logger.warning(
                f"Multi-variant prediction refused for user {user_id}: {len(records)} records, need {required}"
            )
            raise InsufficientDataError(
                f"At least {required} posted clips are needed to compare models, found {len(records)}",
                required=required,
                available=len(records),
            )

        results: Dict[ModelVariant, PredictionResult] = {}
        for variant in ModelVariant:
            result = await self.cache.get(user_id, clip_id, variant)
            if result is None:
                result = await self._generate(user_id, clip_id, variant, records)
                await self.cache.put(user_id, clip_id, variant, result)
            results[variant] = result
        return results

    async def submit_feedback(self, payload: Union[FeedbackCreate, Dict[str, Any]]) -> FeedbackRecord:
        return await asyncio.to_thread(self.feedback_service.submit_feedback, payload)

    async def get_feedback_summary(self, user_id: str) -> FeedbackSummary:
        return await asyncio.to_thread(self.feedback_service.summarize, user_id)

    async def recalibrate(self, user_id: str) -> AdjustmentFactors:
        """Recompute and persist adjustment factors, then drop stale cached predictions"""
        factors = await asyncio.to_thread(self.calibrator.recalibrate, user_id)
        await self.cache.invalidate_user(user_id)
        return factors


def build_prophecy_engine(
    session_factory: sessionmaker,
    cache: Optional[PredictionCache] = None,
    clock: Optional[Clock] = None,
) -> ProphecyEngine:
    """Wire the engine to the SQL repositories"""
    return ProphecyEngine(
        analytics_repository=SqlAnalyticsRepository(session_factory),
        feedback_repository=SqlFeedbackRepository(session_factory),
        calibration_repository=SqlCalibrationRepository(session_factory),
        cache=cache or build_prediction_cache(clock=clock),
        clock=clock,
    )
