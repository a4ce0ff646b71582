import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from prophecy.core.config import settings
from prophecy.schemas.feedback import FeedbackRecord
from prophecy.schemas.prophecy import AdjustmentFactors
from .repositories import CalibrationRepository, FeedbackRepository

logger = logging.getLogger(__name__)

MIN_MULTIPLIER = 0.5
MAX_MULTIPLIER = 1.5
NEUTRAL_RATING = 3
CONFIDENCE_PER_RATING_POINT = 5


def average_adjustment(ratios: Sequence[float]) -> float:
    """Mean actual/predicted ratio, limited to prevent extreme changes"""
    return float(max(MIN_MULTIPLIER, min(MAX_MULTIPLIER, np.mean(ratios))))


def calculate_adjustment_factors(
    feedback: Sequence[FeedbackRecord],
    window: Optional[int] = None,
) -> AdjustmentFactors:
    """
    Derive per-metric multipliers and a confidence offset from feedback.

    Args:
        feedback: Records ordered most recent first
        window: Number of most recent records to use

    Returns:
        AdjustmentFactors; defaults when there is no feedback or no
        predicted/actual pair for a metric
    """
    window = window if window is not None else settings.CALIBRATION_WINDOW
    recent = list(feedback[:window])

    if not recent:
        return AdjustmentFactors()

    ratios: Dict[str, List[float]] = {"views": [], "likes": [], "comments": []}
    for record in recent:
        if record.metadata is None:
            continue
        for metric, values in ratios.items():
            actual = getattr(record.metadata, f"actual_{metric}")
            predicted = getattr(record.metadata, f"predicted_{metric}")
            # zero or missing outcomes carry no calibration signal
            if not actual or not predicted:
                continue
            values.append(actual / predicted)

    average_rating = float(np.mean([record.rating for record in recent]))

    return AdjustmentFactors(
        view_multiplier=average_adjustment(ratios["views"]) if ratios["views"] else 1.0,
        like_multiplier=average_adjustment(ratios["likes"]) if ratios["likes"] else 1.0,
        comment_multiplier=average_adjustment(ratios["comments"]) if ratios["comments"] else 1.0,
        confidence_adjustment=(average_rating - NEUTRAL_RATING) * CONFIDENCE_PER_RATING_POINT,
    )


class ModelCalibrator:
    """Recomputes and stores a user's adjustment factors from recent feedback"""

    def __init__(self, feedback_repository: FeedbackRepository, calibration_repository: CalibrationRepository):
        self.feedback_repository = feedback_repository
        self.calibration_repository = calibration_repository

    def recalibrate(self, user_id: str) -> AdjustmentFactors:
        feedback = self.feedback_repository.query_by_user(
            user_id, limit=settings.FEEDBACK_QUERY_LIMIT, order_desc=True
        )

        if not feedback:
            logger.info(f"No feedback for user {user_id}, keeping default prediction parameters")
            return AdjustmentFactors()

        factors = calculate_adjustment_factors(feedback)
        sample_size = min(len(feedback), settings.CALIBRATION_WINDOW)
        self.calibration_repository.save_factors(user_id, factors, sample_size=sample_size)

        logger.info(
            f"Recalibrated user {user_id} from {sample_size} feedback records: "
            f"views x{factors.view_multiplier:.2f}, likes x{factors.like_multiplier:.2f}, "
            f"comments x{factors.comment_multiplier:.2f}, confidence {factors.confidence_adjustment:+.1f}"
        )
        return factors
