import pytest

from prophecy.core.config import settings

API = settings.API_V1_STR


def feedback_payload(**overrides):
    payload = {
        "user_id": "user-1",
        "prophecy_id": "prophecy-1",
        "rating": 5,
        "was_helpful": True,
        "metadata": {"followed_recommendations": True, "predicted_views": 1000, "actual_views": 1200},
    }
    payload.update(overrides)
    return payload


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.db
class TestProphecyEndpoints:

    def test_cold_start_prophecy(self, client):
        response = client.get(f"{API}/prophecy/new-user")

        assert response.status_code == 200
        data = response.json()
        assert data["predicted_views"] == 1100
        assert data["confidence"] == 70
        assert data["best_day"] == "Monday"
        assert data["variant"] == "linear"
        assert data["clip_id"] is None

    def test_prophecy_is_cached(self, client):
        first = client.get(f"{API}/prophecy/user-1", params={"clip_id": "clip-9"}).json()
        second = client.get(f"{API}/prophecy/user-1", params={"clip_id": "clip-9"}).json()

        assert first == second
        assert first["clip_id"] == "clip-9"

    def test_unknown_variant(self, client):
        response = client.get(f"{API}/prophecy/user-1", params={"variant": "deep"})

        assert response.status_code == 404
        assert "deep" in response.json()["detail"]

    def test_variants_need_history(self, client, add_history):
        add_history(views=[1000, 1100, 1200])

        response = client.get(f"{API}/prophecy/user-1/variants")

        assert response.status_code == 422
        assert "5" in response.json()["detail"]

    def test_variants_comparison(self, client, add_history):
        add_history(views=[1000, 1150, 1300, 1250, 1500])

        response = client.get(f"{API}/prophecy/user-1/variants")

        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"linear", "random_forest", "ensemble"}
        assert data["random_forest"]["variant"] == "random_forest"


@pytest.mark.db
class TestFeedbackEndpoints:

    def test_submit_feedback(self, client):
        response = client.post(f"{API}/feedback", json=feedback_payload())

        assert response.status_code == 201
        data = response.json()
        assert data["id"]
        assert data["rating"] == 5
        assert data["metadata"]["actual_views"] == 1200

    def test_rating_out_of_range(self, client):
        response = client.post(f"{API}/feedback", json=feedback_payload(rating=7))

        assert response.status_code == 400
        assert "Rating" in response.json()["detail"]

    def test_missing_was_helpful(self, client):
        payload = feedback_payload()
        del payload["was_helpful"]

        response = client.post(f"{API}/feedback", json=payload)

        assert response.status_code == 400

    def test_empty_summary(self, client):
        response = client.get(f"{API}/feedback/nobody/summary")

        assert response.status_code == 200
        assert response.json() == {
            "average_rating": 0,
            "total_feedback": 0,
            "helpful_percentage": 0,
            "recommendation_follow_rate": 0,
            "accuracy_trend": [],
        }

    def test_summary_after_feedback(self, client):
        client.post(f"{API}/feedback", json=feedback_payload())
        client.post(f"{API}/feedback", json=feedback_payload(rating=3, was_helpful=False, metadata=None))

        data = client.get(f"{API}/feedback/user-1/summary").json()

        assert data["total_feedback"] == 2
        assert data["average_rating"] == 4
        assert data["helpful_percentage"] == 50
        assert data["recommendation_follow_rate"] == 50
        assert data["accuracy_trend"] == [{"date": "2025-06-30", "accuracy": pytest.approx(16.0)}]

    def test_recalibrate(self, client):
        client.post(f"{API}/feedback", json=feedback_payload())

        response = client.post(f"{API}/feedback/user-1/recalibrate")

        assert response.status_code == 200
        data = response.json()
        assert data["view_multiplier"] == pytest.approx(1.2)
        assert data["like_multiplier"] == 1.0
        assert data["confidence_adjustment"] == pytest.approx(10.0)

        prophecy = client.get(f"{API}/prophecy/user-1").json()
        assert prophecy["predicted_views"] == 1320
        assert prophecy["confidence"] == 80
