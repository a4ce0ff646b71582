"""
Feedback store and accuracy calculations.

Feedback is append-only: records are validated here, stamped with an id and
creation time, and handed to the repository. Summaries are recomputed from the
stored records on every call.
"""

import logging
import uuid
from typing import Any, Dict, Optional, Union

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from prophecy.core.exceptions import ValidationError
from prophecy.schemas.feedback import (
    AccuracyPoint, FeedbackCreate, FeedbackRecord, FeedbackSummary
)
from prophecy.services.analytics.prediction_cache import Clock, utc_now
from prophecy.services.analytics.trend_predictor import as_utc
from .repositories import FeedbackRepository

logger = logging.getLogger(__name__)

# (metric, weight) pairs used by calculate_accuracy; weights are not
# renormalised when a metric is missing
ACCURACY_WEIGHTS = (
    ("views", 0.4),
    ("likes", 0.3),
    ("comments", 0.3),
)

MIN_RATING = 1
MAX_RATING = 5


def validate_feedback(payload: Union[FeedbackCreate, Dict[str, Any]]) -> FeedbackCreate:
    """Parse and check a feedback submission, raising ValidationError on bad input"""
    if not isinstance(payload, FeedbackCreate):
        try:
            payload = FeedbackCreate.model_validate(payload)
        except PydanticValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise ValidationError(f"Invalid feedback fields: {fields}") from e

    if not MIN_RATING <= payload.rating <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

    if not isinstance(payload.was_helpful, bool):
        raise ValidationError("was_helpful is required")

    return payload


def metric_accuracy(actual: Optional[float], predicted: Optional[float]) -> Optional[float]:
    """1 - relative error, or None when either value is missing"""
    if actual is None or predicted is None or predicted <= 0:
        return None
    return 1 - abs(actual - predicted) / predicted


def calculate_accuracy(record: FeedbackRecord) -> float:
    """
    Weighted prediction accuracy of a feedback record as a percentage.

    Only metrics carrying both a predicted and an actual value contribute.
    Returns 0 when no metric can be scored.
    """
    metadata = record.metadata
    if metadata is None:
        return 0.0

    total = 0.0
    for metric, weight in ACCURACY_WEIGHTS:
        accuracy = metric_accuracy(
            getattr(metadata, f"actual_{metric}"),
            getattr(metadata, f"predicted_{metric}"),
        )
        if accuracy is not None:
            total += accuracy * weight

    return total * 100


class FeedbackService:
    """Submits feedback and summarises a user's feedback history"""

    def __init__(self, repository: FeedbackRepository, clock: Optional[Clock] = None):
        self.repository = repository
        self.clock = clock or utc_now

    def submit_feedback(self, payload: Union[FeedbackCreate, Dict[str, Any]]) -> FeedbackRecord:
        feedback = validate_feedback(payload)

        record = FeedbackRecord(
            id=str(uuid.uuid4()),
            user_id=feedback.user_id,
            prophecy_id=feedback.prophecy_id,
            rating=feedback.rating,
            was_helpful=feedback.was_helpful,
            comment=feedback.comment,
            metadata=feedback.metadata,
            created_at=self.clock(),
        )
        stored = self.repository.append(record)
        logger.info(f"Stored feedback {stored.id} for prophecy {stored.prophecy_id} (rating {stored.rating})")
        return stored

    def summarize(self, user_id: str) -> FeedbackSummary:
        records = self.repository.query_by_user(user_id, order_desc=False)

        if not records:
            return FeedbackSummary()

        total = len(records)
        frame = pd.DataFrame(
            {
                "rating": [r.rating for r in records],
                "helpful": [r.was_helpful for r in records],
                "followed": [bool(r.metadata and r.metadata.followed_recommendations) for r in records],
                "date": [as_utc(r.created_at).date().isoformat() for r in records],
                "accuracy": [calculate_accuracy(r) for r in records],
            }
        )

        trend = frame.groupby("date", sort=True)["accuracy"].mean()

        return FeedbackSummary(
            average_rating=float(frame["rating"].mean()),
            total_feedback=total,
            helpful_percentage=float(frame["helpful"].sum()) / total * 100,
            recommendation_follow_rate=float(frame["followed"].sum()) / total * 100,
            accuracy_trend=[
                AccuracyPoint(date=date, accuracy=float(accuracy))
                for date, accuracy in trend.items()
            ],
        )
