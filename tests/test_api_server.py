"""
Tests for the respondent-facing FastAPI app.

Uses FastAPI's TestClient over an in-memory store; the action
dispatcher is mocked.
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from formflow.actions.dispatcher import ActionOutbox
from formflow.api.server import create_api_app
from formflow.flow_service import FlowService
from formflow.models import FormSettings
from formflow.store.memory import InMemoryStore


@pytest.fixture
def dispatcher():
    mock = MagicMock()
    mock.dispatch = AsyncMock(return_value=[])
    return mock


@pytest.fixture
def client(service, dispatcher):
    return TestClient(create_api_app(service, dispatcher))


def _start(client, url="contact", **body):
    return client.post(f"/api/chat/{url}/session", json=body or None)


# ─── Health ───────────────────────────────────────────────────────────


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# ─── Session ──────────────────────────────────────────────────────────


class TestSessionEndpoint:

    def test_new_session_is_201(self, client):
        response = _start(client)
        assert response.status_code == 201
        body = response.json()
        assert body["sessionId"]
        assert body["currentStepIndex"] == 0
        assert body["collectedData"] == {}
        assert body["step"]["id"] == "name"
        assert body["step"]["renderedMessages"][0]["text"] == "What's your name?"
        assert body["form"]["publicUrl"] == "contact"

    def test_resumed_session_is_200(self, client):
        session_id = _start(client).json()["sessionId"]
        client.post("/api/chat/contact/answer", json={
            "sessionId": session_id, "stepId": "name", "answer": "ann",
        })

        response = _start(client, sessionId=session_id)
        assert response.status_code == 200
        body = response.json()
        assert body["sessionId"] == session_id
        assert body["currentStepIndex"] == 1
        assert body["collectedData"] == {"name": "Ann"}

    def test_unknown_form_is_404(self, client):
        response = _start(client, url="nope")
        assert response.status_code == 404
        assert response.json()["error"] == "Form not found or not published"

    def test_owner_address_is_not_exposed(self, contact_form, dispatcher):
        form = contact_form.model_copy(update={
            "settings": FormSettings(notification_email="owner@example.com"),
        })
        client = TestClient(create_api_app(FlowService(InMemoryStore([form])), dispatcher))
        body = _start(client).json()
        assert "notificationEmail" not in body["form"]["settings"]


# ─── Answer ───────────────────────────────────────────────────────────


class TestAnswerEndpoint:

    def test_missing_ids_is_400(self, client):
        response = client.post("/api/chat/contact/answer", json={"answer": "x"})
        assert response.status_code == 400
        assert response.json()["error"] == "Session ID and step ID are required"

    def test_accepted_answer(self, client):
        session_id = _start(client).json()["sessionId"]
        response = client.post("/api/chat/contact/answer", json={
            "sessionId": session_id, "stepId": "name", "answer": "ann lee",
            "timeSpentSeconds": 2,
        })
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["isComplete"] is False
        assert body["nextStep"]["id"] == "country"
        assert body["messages"][0]["text"] == "Hi Ann Lee, where are you?"
        assert body["collectedData"] == {"name": "Ann Lee"}

    def test_validation_failure_is_400(self, client):
        session_id = _start(client).json()["sessionId"]
        response = client.post("/api/chat/contact/answer", json={
            "sessionId": session_id, "stepId": "email", "answer": "nope",
        })
        assert response.status_code == 400
        body = response.json()
        assert body["validationError"] is True
        assert "valid email" in body["error"]

    def test_unknown_step_is_404(self, client):
        session_id = _start(client).json()["sessionId"]
        response = client.post("/api/chat/contact/answer", json={
            "sessionId": session_id, "stepId": "ghost", "answer": "x",
        })
        assert response.status_code == 404
        assert response.json()["error"] == "Step not found"

    def test_negative_time_spent_is_rejected(self, client):
        response = client.post("/api/chat/contact/answer", json={
            "sessionId": "s", "stepId": "name", "answer": "x", "timeSpentSeconds": -1,
        })
        assert response.status_code == 422


# ─── Completion ───────────────────────────────────────────────────────


class TestCompletionOverHttp:

    @pytest.fixture
    def short_client(self, contact_form, dispatcher):
        form = contact_form.model_copy(update={"steps": contact_form.steps[:1]})
        outbox = ActionOutbox()
        service = FlowService(InMemoryStore([form]), outbox)
        return TestClient(create_api_app(service, dispatcher)), outbox

    def test_completion_flushes_outbox(self, short_client, dispatcher):
        client, outbox = short_client
        session_id = _start(client).json()["sessionId"]

        response = client.post("/api/chat/contact/answer", json={
            "sessionId": session_id, "stepId": "name", "answer": "ann",
        })

        body = response.json()
        assert body["isComplete"] is True
        assert body["nextStep"] is None
        dispatcher.dispatch.assert_awaited_once()
        assert outbox.pending() == []

    def test_answer_after_completion_is_409(self, short_client):
        client, _ = short_client
        session_id = _start(client).json()["sessionId"]
        payload = {"sessionId": session_id, "stepId": "name", "answer": "ann"}
        client.post("/api/chat/contact/answer", json=payload)

        response = client.post("/api/chat/contact/answer", json=payload)
        assert response.status_code == 409
        assert response.json() == {"error": "Session is closed", "status": "completed"}
