import logging

from prophecy.db.session import engine, Base

logger = logging.getLogger(__name__)


def init_db(bind=None):
    """Initialize database tables"""
    # Import models so they are registered with the metadata
    from prophecy.models.analytics import AnalyticsEvent  # noqa: F401
    from prophecy.models.feedback import UserFeedback, PredictionParameters  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables created successfully")


if __name__ == "__main__":
    init_db()
