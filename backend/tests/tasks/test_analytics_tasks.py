"""
Tests for the recalibration Celery tasks, run eagerly against the test database.
"""

import pytest
from celery.exceptions import Retry

from prophecy.core.exceptions import UpstreamUnavailableError
from prophecy.services.feedback.repositories import SqlFeedbackRepository
from prophecy.tasks.analytics_tasks import recalibrate_active_users_task, recalibrate_prediction_model_task
from tests.factories import FeedbackMetadataFactory, FeedbackRecordFactory


@pytest.fixture
def task_engine(mocker, prophecy_engine):
    mocker.patch("prophecy.tasks.analytics_tasks.get_task_engine", return_value=prophecy_engine)
    return prophecy_engine


@pytest.mark.celery
@pytest.mark.db
class TestRecalibrationTasks:

    def test_recalibrate_user(self, task_engine, session_factory):
        SqlFeedbackRepository(session_factory).append(FeedbackRecordFactory(
            rating=1,
            metadata=FeedbackMetadataFactory(predicted_views=1000.0, actual_views=700.0),
        ))

        result = recalibrate_prediction_model_task.apply(args=["user-1"]).get()

        assert result["status"] == "completed"
        assert result["user_id"] == "user-1"
        assert result["adjustment_factors"]["view_multiplier"] == pytest.approx(0.7)
        assert result["adjustment_factors"]["confidence_adjustment"] == pytest.approx(-10.0)
        assert task_engine.calibration_repository.load_factors("user-1").view_multiplier == pytest.approx(0.7)

    def test_upstream_failure_is_retried(self, mocker, task_engine):
        mocker.patch.object(
            task_engine.calibrator, "recalibrate",
            side_effect=UpstreamUnavailableError("Feedback store unavailable", source="feedback"),
        )
        retry = mocker.patch.object(recalibrate_prediction_model_task, "retry", side_effect=Retry())

        with pytest.raises(Retry):
            recalibrate_prediction_model_task.run("user-1")

        assert retry.call_args.kwargs["countdown"] == 60
        assert isinstance(retry.call_args.kwargs["exc"], UpstreamUnavailableError)

    def test_active_users_fan_out(self, mocker, session_factory):
        repository = SqlFeedbackRepository(session_factory)
        for user_id in ("user-2", "user-1", "user-2"):
            repository.append(FeedbackRecordFactory(user_id=user_id))
        mocker.patch("prophecy.tasks.analytics_tasks.SessionLocal", session_factory)
        delay = mocker.patch.object(recalibrate_prediction_model_task, "delay")

        result = recalibrate_active_users_task.apply().get()

        assert result == {"status": "queued", "users": 2}
        assert [call.args for call in delay.call_args_list] == [("user-1",), ("user-2",)]
