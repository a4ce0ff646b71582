from datetime import datetime, timezone

import pytest

from prophecy.core.exceptions import ValidationError
from prophecy.schemas.feedback import FeedbackCreate, FeedbackSummary
from prophecy.services.feedback.feedback_service import (
    FeedbackService, calculate_accuracy, metric_accuracy, validate_feedback
)
from tests.factories import FeedbackMetadataFactory, FeedbackRecordFactory
from tests.fakes import FakeFeedbackRepository


def views_only(actual, predicted=1000.0, **kwargs):
    return FeedbackMetadataFactory(
        predicted_views=predicted, actual_views=actual,
        predicted_likes=None, actual_likes=None,
        predicted_comments=None, actual_comments=None,
        **kwargs,
    )


@pytest.fixture
def repository():
    return FakeFeedbackRepository()


@pytest.fixture
def service(repository, clock):
    return FeedbackService(repository, clock=clock)


def valid_payload(**overrides):
    payload = {
        "user_id": "user-1",
        "prophecy_id": "prophecy-1",
        "rating": 4,
        "was_helpful": True,
        "comment": "Spot on",
        "metadata": {
            "followed_recommendations": True,
            "predicted_views": 1000,
            "actual_views": 1200,
        },
    }
    payload.update(overrides)
    return payload


class TestAccuracy:

    def test_single_metric_scenario(self):
        record = FeedbackRecordFactory(rating=5, metadata=views_only(actual=1200.0))

        assert calculate_accuracy(record) == pytest.approx(32.0)

    def test_perfect_prediction(self):
        record = FeedbackRecordFactory(metadata=FeedbackMetadataFactory())

        assert calculate_accuracy(record) == pytest.approx(100.0)

    def test_no_metadata_scores_zero(self):
        assert calculate_accuracy(FeedbackRecordFactory(metadata=None)) == 0.0

    def test_missing_metrics_are_excluded_not_renormalised(self):
        metadata = FeedbackMetadataFactory(actual_likes=None, predicted_comments=None)

        assert calculate_accuracy(FeedbackRecordFactory(metadata=metadata)) == pytest.approx(40.0)

    def test_zero_prediction_is_excluded(self):
        assert metric_accuracy(50.0, 0.0) is None
        record = FeedbackRecordFactory(metadata=views_only(actual=50.0, predicted=0.0))

        assert calculate_accuracy(record) == 0.0

    def test_large_miss_goes_negative(self):
        assert metric_accuracy(3000.0, 1000.0) == pytest.approx(-1.0)


class TestValidateFeedback:

    def test_accepts_dict_payload(self):
        feedback = validate_feedback(valid_payload())

        assert isinstance(feedback, FeedbackCreate)
        assert feedback.metadata.actual_views == 1200

    @pytest.mark.parametrize("rating", [0, 6, -1])
    def test_rating_out_of_range(self, rating):
        with pytest.raises(ValidationError) as exc_info:
            validate_feedback(valid_payload(rating=rating))

        assert exc_info.value.status_code == 400
        assert "between 1 and 5" in exc_info.value.message

    def test_missing_was_helpful(self):
        payload = valid_payload()
        del payload["was_helpful"]

        with pytest.raises(ValidationError, match="was_helpful"):
            validate_feedback(payload)

    @pytest.mark.parametrize("field,value", [
        ("rating", "five"),
        ("was_helpful", "yes"),
        ("user_id", ""),
    ])
    def test_malformed_fields(self, field, value):
        with pytest.raises(ValidationError, match=field):
            validate_feedback(valid_payload(**{field: value}))

    def test_negative_metric_rejected(self):
        payload = valid_payload(metadata={"predicted_views": -5})

        with pytest.raises(ValidationError, match="metadata"):
            validate_feedback(payload)


class TestFeedbackService:

    def test_submit_stamps_id_and_time(self, service, repository, clock):
        record = service.submit_feedback(valid_payload())

        assert record.id
        assert record.created_at == clock.now
        assert record.rating == 4
        assert repository.records == [record]

    def test_invalid_feedback_is_not_stored(self, service, repository):
        with pytest.raises(ValidationError):
            service.submit_feedback(valid_payload(rating=9))

        assert repository.records == []

    def test_records_are_never_overwritten(self, service, repository):
        first = service.submit_feedback(valid_payload())
        second = service.submit_feedback(valid_payload())

        assert first.id != second.id
        assert len(repository.records) == 2

    def test_empty_summary(self, service):
        summary = service.summarize("nobody")

        assert summary == FeedbackSummary()
        assert summary.model_dump() == {
            "average_rating": 0,
            "total_feedback": 0,
            "helpful_percentage": 0,
            "recommendation_follow_rate": 0,
            "accuracy_trend": [],
        }

    def test_summary_aggregates(self, repository, service):
        repository.records = [
            FeedbackRecordFactory(
                rating=4, was_helpful=True,
                metadata=views_only(actual=1200.0, followed_recommendations=True),
                created_at=datetime(2025, 6, 30, 9, 0, tzinfo=timezone.utc),
            ),
            FeedbackRecordFactory(
                rating=5, was_helpful=True, metadata=FeedbackMetadataFactory(),
                created_at=datetime(2025, 6, 29, 10, 0, tzinfo=timezone.utc),
            ),
            FeedbackRecordFactory(
                rating=3, was_helpful=False, metadata=None,
                created_at=datetime(2025, 6, 29, 18, 0, tzinfo=timezone.utc),
            ),
            FeedbackRecordFactory(user_id="someone-else", rating=1),
        ]

        summary = service.summarize("user-1")

        assert summary.total_feedback == 3
        assert summary.average_rating == pytest.approx(4.0)
        assert summary.helpful_percentage == pytest.approx(200 / 3)
        assert summary.recommendation_follow_rate == pytest.approx(100 / 3)
        assert [point.date for point in summary.accuracy_trend] == ["2025-06-29", "2025-06-30"]
        assert summary.accuracy_trend[0].accuracy == pytest.approx(50.0)
        assert summary.accuracy_trend[1].accuracy == pytest.approx(32.0)
