import asyncio
import logging
from typing import Any, Dict, Optional

from prophecy.core.celery_app import celery_app
from prophecy.core.config import settings
from prophecy.core.exceptions import UpstreamUnavailableError
from prophecy.db.session import SessionLocal
from prophecy.services.analytics.prophecy_engine import ProphecyEngine, build_prophecy_engine
from prophecy.services.feedback.repositories import SqlFeedbackRepository

logger = logging.getLogger(__name__)

_engine: Optional[ProphecyEngine] = None


def get_task_engine() -> ProphecyEngine:
    """
    Engine used by worker processes.

    Cache invalidation after recalibration only reaches the API processes
    when PREDICTION_CACHE_BACKEND is "redis".
    """
    global _engine
    if _engine is None:
        _engine = build_prophecy_engine(SessionLocal)
    return _engine


@celery_app.task(bind=True, max_retries=settings.RECALIBRATION_MAX_RETRIES, name="analytics.recalibrate_user")
def recalibrate_prediction_model_task(self, user_id: str) -> Dict[str, Any]:
    """
    Background task to refresh a user's prediction parameters from feedback
    """
    try:
        logger.info(f"Starting recalibration for user {user_id}")
        engine = get_task_engine()

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            factors = loop.run_until_complete(engine.recalibrate(user_id))
        finally:
            loop.close()

        return {
            "status": "completed",
            "user_id": user_id,
            "adjustment_factors": factors.model_dump(),
        }

    except UpstreamUnavailableError as exc:
        logger.warning(f"Recalibration for user {user_id} failed ({exc.source}), retrying")
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))


@celery_app.task(name="analytics.recalibrate_active_users")
def recalibrate_active_users_task() -> Dict[str, Any]:
    """
    Periodic task queueing a recalibration for every user with feedback
    """
    user_ids = SqlFeedbackRepository(SessionLocal).user_ids()
    for user_id in user_ids:
        recalibrate_prediction_model_task.delay(user_id)

    logger.info(f"Queued recalibration for {len(user_ids)} users")
    return {"status": "queued", "users": len(user_ids)}
