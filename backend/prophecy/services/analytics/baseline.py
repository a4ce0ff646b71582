"""
Baseline metrics and the shared forecast finalisation used by every
prediction path.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from prophecy.core.config import settings
from prophecy.schemas.prophecy import AdjustmentFactors, PerformanceRecord

# Lower bounds applied to every forecast
MIN_VIEWS = 100
MIN_LIKES = 10
MIN_COMMENTS = 1


@dataclass(frozen=True)
class BaselineMetrics:
    """Aggregate means over a user's history"""
    avg_views: float
    avg_likes: float
    avg_comments: float
    avg_engagement: float
    avg_watch_time: float


@dataclass(frozen=True)
class MetricForecast:
    """Point forecast for the three engagement metrics"""
    views: int
    likes: int
    comments: int
    confidence: int
    used_regression: bool = False
    views_interval: Optional[Tuple[int, int]] = None


DEFAULT_BASELINE = BaselineMetrics(
    avg_views=1000.0,
    avg_likes=100.0,
    avg_comments=10.0,
    avg_engagement=0.1,
    avg_watch_time=30.0,
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def calculate_baseline_metrics(records: Sequence[PerformanceRecord]) -> BaselineMetrics:
    """
    Compute mean views, likes, comments and watch time plus the overall
    engagement ratio.

    New users with no history get DEFAULT_BASELINE.
    """
    if not records:
        return DEFAULT_BASELINE

    count = len(records)
    total_views = sum(r.views for r in records)
    total_likes = sum(r.likes for r in records)
    total_comments = sum(r.comments for r in records)
    total_watch_time = sum(r.watch_time for r in records)

    if total_views > 0:
        engagement = (total_likes + total_comments) / total_views
    else:
        engagement = DEFAULT_BASELINE.avg_engagement

    return BaselineMetrics(
        avg_views=total_views / count,
        avg_likes=total_likes / count,
        avg_comments=total_comments / count,
        avg_engagement=engagement,
        avg_watch_time=total_watch_time / count,
    )


def finalize_forecast(
    views: float,
    likes: float,
    comments: float,
    confidence: float,
    factors: Optional[AdjustmentFactors] = None,
    used_regression: bool = False,
) -> MetricForecast:
    """
    Apply floors, calibration multipliers and the confidence offset.

    Floors are applied to the raw estimate and again after the multipliers,
    so a calibrated forecast never drops below them.
    """
    factors = factors or AdjustmentFactors()

    adjusted = []
    for value, floor, multiplier in (
        (views, MIN_VIEWS, factors.view_multiplier),
        (likes, MIN_LIKES, factors.like_multiplier),
        (comments, MIN_COMMENTS, factors.comment_multiplier),
    ):
        if not math.isfinite(value):
            value = floor
        value = max(floor, value) * multiplier
        adjusted.append(max(floor, round_half_up(value)))

    final_confidence = round_half_up(clamp(confidence + factors.confidence_adjustment, 0, 100))

    return MetricForecast(
        views=adjusted[0],
        likes=adjusted[1],
        comments=adjusted[2],
        confidence=int(clamp(final_confidence, 0, 100)),
        used_regression=used_regression,
    )


def forecast_from_baseline(
    baseline: BaselineMetrics,
    factors: Optional[AdjustmentFactors] = None,
) -> MetricForecast:
    """Fallback forecast when there is too little history for regression"""
    growth = settings.FALLBACK_GROWTH_FACTOR
    return finalize_forecast(
        baseline.avg_views * growth,
        baseline.avg_likes * growth,
        baseline.avg_comments * growth,
        settings.FALLBACK_CONFIDENCE,
        factors,
    )
