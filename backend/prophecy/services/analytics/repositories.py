import logging
from abc import ABC, abstractmethod
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from prophecy.core.exceptions import UpstreamUnavailableError
from prophecy.models.analytics import AnalyticsEvent
from prophecy.schemas.prophecy import PerformanceRecord

logger = logging.getLogger(__name__)


class AnalyticsRepository(ABC):
    """Read-only source of a user's historical performance records"""

    @abstractmethod
    def fetch_records(self, user_id: str) -> List[PerformanceRecord]:
        """Records ordered by publish time; empty when the user has no history"""


class SqlAnalyticsRepository(AnalyticsRepository):
    """Reads the analytics_events table written by the ingestion pipeline"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def fetch_records(self, user_id: str) -> List[PerformanceRecord]:
        db = self.session_factory()
        try:
            events = (
                db.query(AnalyticsEvent)
                .filter(AnalyticsEvent.user_id == user_id)
                .order_by(AnalyticsEvent.posted_at.asc(), AnalyticsEvent.id.asc())
                .all()
            )
            return [PerformanceRecord.model_validate(event) for event in events]
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch analytics for user {user_id}: {e}")
            raise UpstreamUnavailableError("Analytics source unavailable", source="analytics") from e
        finally:
            db.close()
