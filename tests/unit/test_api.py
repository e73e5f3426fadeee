"""
Unit tests for the operator API
"""

import pytest
from fastapi.testclient import TestClient

from recursive_cognition.api import create_app
from recursive_cognition.engine import RecursiveCognitionEngine
from recursive_cognition.registry import FrameworkRegistry


@pytest.fixture
def engine(make_registry, config):
    return RecursiveCognitionEngine(make_registry(a=(0.5, 0.4), b=(0.3, -0.6), c=(0.2, 0.1)), config=config)


@pytest.fixture
def client(engine):
    return TestClient(create_app(engine))


class TestCycleEndpoint:
    """POST /cycles"""

    def test_cycle_runs_to_accept(self, client):
        """Valid stimulus → outcome with verdict and final report."""
        response = client.post("/cycles", json={"id": "s1", "content": "draft", "stakeholders": ["public"]})

        assert response.status_code == 200
        outcome = response.json()["outcome"]
        assert outcome["verdict"]["type"] == "accept"
        assert outcome["final_report"]["composite"] == pytest.approx(0.19)
        assert outcome["initial_composite"] == pytest.approx(0.04)

    def test_missing_id_rejected(self, client):
        """Empty id → 422."""
        response = client.post("/cycles", json={"id": "", "content": "draft"})

        assert response.status_code == 422

    def test_image_content_not_base64_rejected(self, client):
        """Image kind with non-base64 text → 422."""
        response = client.post("/cycles", json={"id": "s1", "content": "abc", "content_kind": "image"})

        assert response.status_code == 422
        assert response.json()["detail"]["error"]["code"] == "InvalidStimulus"

    def test_base64_image_reaches_engine(self, client, engine):
        """Base64 image content → decoded bytes, cycle runs."""
        response = client.post(
            "/cycles",
            json={"id": "img-1", "content": "aGVsbG8=", "content_kind": "image", "response": "caption"},
        )

        assert response.status_code == 200
        assert engine.state.current_stimulus.content == b"hello"
        assert response.json()["outcome"]["verdict"]["type"] == "accept"

    def test_empty_registry_is_503(self, config):
        """RegistryUnavailable → 503 with structured error."""
        client = TestClient(create_app(RecursiveCognitionEngine(FrameworkRegistry(), config=config)))

        response = client.post("/cycles", json={"id": "s1", "content": "draft"})

        assert response.status_code == 503
        assert response.json()["detail"]["error"]["code"] == "RegistryUnavailable"


class TestFeedbackAndState:
    """POST /feedback and GET /state"""

    def test_feedback_queued_then_applied(self, client, engine):
        """Feedback waits for the next cycle, then shows in the state."""
        response = client.post("/feedback", json={"stimulus_id": "s1", "score_deltas": {"a": 0.2}})

        assert response.status_code == 202
        assert response.json()["pending"] == 1

        client.post("/cycles", json={"id": "s2", "content": "draft"})
        state = client.get("/state").json()

        assert state["weight_adjustments"] == {"a": 0.2}
        assert state["last_feedback_id"] == response.json()["feedback_id"]
        assert state["cycles_committed"] == 1
        assert len(state["history"]) == 1

    def test_invalid_feedback_rejected(self, client):
        """Delta out of range → 422."""
        response = client.post("/feedback", json={"stimulus_id": "s1", "score_deltas": {"a": 3.0}})

        assert response.status_code == 422

    def test_empty_state(self, client):
        state = client.get("/state").json()

        assert state["system_alignment"] is None
        assert state["history"] == []

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["frameworks"] == ["a", "b", "c"]
