import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from prophecy.core.exceptions import UpstreamUnavailableError
from prophecy.models.feedback import PredictionParameters, UserFeedback
from prophecy.schemas.feedback import FeedbackMetadata, FeedbackRecord
from prophecy.schemas.prophecy import AdjustmentFactors

logger = logging.getLogger(__name__)


class FeedbackRepository(ABC):
    """Append-only persistence for feedback records"""

    @abstractmethod
    def append(self, record: FeedbackRecord) -> FeedbackRecord:
        ...

    @abstractmethod
    def query_by_user(self, user_id: str, limit: Optional[int] = None, order_desc: bool = True) -> List[FeedbackRecord]:
        ...

    @abstractmethod
    def user_ids(self) -> List[str]:
        """Users that have submitted at least one feedback record"""


class CalibrationRepository(ABC):
    """Per-user storage of adjustment factors"""

    @abstractmethod
    def load_factors(self, user_id: str) -> Optional[AdjustmentFactors]:
        ...

    @abstractmethod
    def save_factors(self, user_id: str, factors: AdjustmentFactors, sample_size: int = 0) -> None:
        ...


def _to_record(row: UserFeedback) -> FeedbackRecord:
    metadata = None
    if row.feedback_metadata:
        metadata = FeedbackMetadata.model_validate(row.feedback_metadata)
    return FeedbackRecord(
        id=row.id,
        user_id=row.user_id,
        prophecy_id=row.prophecy_id,
        rating=row.rating,
        was_helpful=row.was_helpful,
        comment=row.comment,
        metadata=metadata,
        created_at=row.created_at,
    )


class SqlFeedbackRepository(FeedbackRepository):

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def append(self, record: FeedbackRecord) -> FeedbackRecord:
        db = self.session_factory()
        try:
            row = UserFeedback(
                id=record.id,
                user_id=record.user_id,
                prophecy_id=record.prophecy_id,
                rating=record.rating,
                was_helpful=record.was_helpful,
                comment=record.comment,
                feedback_metadata=record.metadata.model_dump() if record.metadata else None,
                created_at=record.created_at,
            )
            db.add(row)
            db.commit()
            return record
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to store feedback for user {record.user_id}: {e}")
            raise UpstreamUnavailableError("Feedback store unavailable", source="feedback") from e
        finally:
            db.close()

    def query_by_user(self, user_id: str, limit: Optional[int] = None, order_desc: bool = True) -> List[FeedbackRecord]:
        db = self.session_factory()
        try:
            query = db.query(UserFeedback).filter(UserFeedback.user_id == user_id)
            if order_desc:
                query = query.order_by(UserFeedback.created_at.desc(), UserFeedback.id.desc())
            else:
                query = query.order_by(UserFeedback.created_at.asc(), UserFeedback.id.asc())
            if limit is not None:
                query = query.limit(limit)
            return [_to_record(row) for row in query.all()]
        except SQLAlchemyError as e:
            logger.error(f"Failed to load feedback for user {user_id}: {e}")
            raise UpstreamUnavailableError("Feedback store unavailable", source="feedback") from e
        finally:
            db.close()

    def user_ids(self) -> List[str]:
        db = self.session_factory()
        try:
            rows = db.query(UserFeedback.user_id).distinct().order_by(UserFeedback.user_id).all()
            return [row[0] for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Failed to list feedback users: {e}")
            raise UpstreamUnavailableError("Feedback store unavailable", source="feedback") from e
        finally:
            db.close()


class SqlCalibrationRepository(CalibrationRepository):

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def load_factors(self, user_id: str) -> Optional[AdjustmentFactors]:
        db = self.session_factory()
        try:
            row = db.get(PredictionParameters, user_id)
            if row is None:
                return None
            return AdjustmentFactors(
                view_multiplier=row.view_multiplier,
                like_multiplier=row.like_multiplier,
                comment_multiplier=row.comment_multiplier,
                confidence_adjustment=row.confidence_adjustment,
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load prediction parameters for user {user_id}: {e}")
            raise UpstreamUnavailableError("Calibration store unavailable", source="calibration") from e
        finally:
            db.close()

    def save_factors(self, user_id: str, factors: AdjustmentFactors, sample_size: int = 0) -> None:
        db = self.session_factory()
        try:
            row = db.get(PredictionParameters, user_id)
            if row is None:
                row = PredictionParameters(user_id=user_id)
                db.add(row)
            row.view_multiplier = factors.view_multiplier
            row.like_multiplier = factors.like_multiplier
            row.comment_multiplier = factors.comment_multiplier
            row.confidence_adjustment = factors.confidence_adjustment
            row.sample_size = sample_size
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to save prediction parameters for user {user_id}: {e}")
            raise UpstreamUnavailableError("Calibration store unavailable", source="calibration") from e
        finally:
            db.close()
