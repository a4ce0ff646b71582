import logging
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Sequence, Tuple

import numpy as np
from sklearn.ensemble import RandomForestRegressor, VotingRegressor
from sklearn.linear_model import LinearRegression
from sklearn.metrics import r2_score

from prophecy.core.config import settings
from prophecy.schemas.prophecy import AdjustmentFactors, ModelVariant, PerformanceRecord
from .baseline import MIN_VIEWS, MetricForecast, clamp, finalize_forecast, round_half_up

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TrendPredictor:
    """Per-metric regression of engagement against publish time"""

    METRICS = ("views", "likes", "comments")

    def __init__(self, variant: ModelVariant = ModelVariant.LINEAR, min_records: Optional[int] = None):
        self.variant = ModelVariant(variant)
        self.min_records = min_records if min_records is not None else settings.TREND_MIN_RECORDS

    def _build_model(self):
        if self.variant == ModelVariant.LINEAR:
            return LinearRegression()

        forest = RandomForestRegressor(
            n_estimators=settings.RANDOM_FOREST_ESTIMATORS,
            random_state=settings.RANDOM_SEED,
        )
        if self.variant == ModelVariant.RANDOM_FOREST:
            return forest

        return VotingRegressor([("linear", LinearRegression()), ("forest", forest)])

    def _feature_matrix(self, records: Sequence[PerformanceRecord], origin: float) -> np.ndarray:
        # Days since the first record keeps the design matrix well conditioned
        return np.array(
            [[(as_utc(r.posted_at).timestamp() - origin) / SECONDS_PER_DAY] for r in records],
            dtype=float,
        )

    @staticmethod
    def _residual_standard_error(y: np.ndarray, fitted: np.ndarray) -> float:
        # two fitted parameters for the straight-line case
        dof = max(len(y) - 2, 1)
        se = float(np.sqrt(np.sum((y - fitted) ** 2) / dof))
        return se if math.isfinite(se) else 0.0

    @staticmethod
    def _views_interval(
        views: int,
        residual_se: float,
        factors: Optional[AdjustmentFactors],
    ) -> Tuple[int, int]:
        """Normal-approximation interval around the calibrated views forecast"""
        multiplier = factors.view_multiplier if factors else 1.0
        half_width = settings.PREDICTION_INTERVAL_Z * residual_se * multiplier
        lower = max(MIN_VIEWS, min(views, round_half_up(views - half_width)))
        upper = max(views, round_half_up(views + half_width))
        return lower, upper

    def can_predict(self, records: Sequence[PerformanceRecord]) -> bool:
        if len(records) < self.min_records:
            return False
        distinct = {as_utc(r.posted_at).timestamp() for r in records}
        return len(distinct) >= 2

    def predict(
        self,
        records: Sequence[PerformanceRecord],
        now: datetime,
        factors: Optional[AdjustmentFactors] = None,
    ) -> Optional[MetricForecast]:
        """
        Fit one regression per metric and evaluate it at `now`.

        Args:
            records: History ordered by publish time
            now: Point in time to forecast for
            factors: Calibration factors from recent feedback

        Returns:
            A forecast, or None when there are fewer than `min_records`
            records or fewer than two distinct publish times.
        """
        if not self.can_predict(records):
            logger.debug(
                f"Trend prediction unavailable ({len(records)} records, variant {self.variant.value})"
            )
            return None

        origin = as_utc(records[0].posted_at).timestamp()
        x = self._feature_matrix(records, origin)
        target = np.array([[(as_utc(now).timestamp() - origin) / SECONDS_PER_DAY]])

        predictions = {}
        views_r2 = 0.0
        views_residual_se = 0.0
        for metric in self.METRICS:
            y = np.array([getattr(r, metric) for r in records], dtype=float)
            model = self._build_model()
            model.fit(x, y)
            predictions[metric] = float(model.predict(target)[0])

            if metric == "views":
                fitted = model.predict(x)
                views_r2 = float(r2_score(y, fitted))
                views_residual_se = self._residual_standard_error(y, fitted)

        if not math.isfinite(views_r2):
            views_r2 = 0.0
        confidence = round_half_up(clamp(views_r2 * 100, 0, 100))

        forecast = finalize_forecast(
            predictions["views"],
            predictions["likes"],
            predictions["comments"],
            confidence,
            factors,
            used_regression=True,
        )
        return replace(forecast, views_interval=self._views_interval(forecast.views, views_residual_se, factors))
