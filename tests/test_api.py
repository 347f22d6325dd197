"""Tests for the FastAPI API endpoints."""

import pytest
from fastapi.testclient import TestClient

from content_builder.api.app import create_app
from content_builder.collaborators import InMemoryDigestCreator, StaticIdentityProvider
from content_builder.config import BuilderSettings
from content_builder.store.repository import InMemoryRecordStore, SessionRepository

READY_FIELDS = {
    "selectedContent": ["c1", "c2", "c3", "c4", "c5"],
    "contentOrder": ["c1", "c2", "c3", "c4", "c5"],
    "layoutConfig": {"templateId": "modern"},
    "validationResults": {"valid": True, "errors": [], "warnings": []},
    "publishReadiness": "ready",
}


class FailingStore(InMemoryRecordStore):
    def update(self, record_id: str, fields: dict) -> None:
        raise ConnectionError("primary unavailable")


@pytest.fixture
def digests():
    return InMemoryDigestCreator()


@pytest.fixture
def client(digests):
    """Create a test client with fresh components and a signed-in user."""
    app = create_app(
        repository=SessionRepository(),
        identity=StaticIdentityProvider({"id": "user_1"}),
        digest_creator=digests,
        settings=BuilderSettings(),
    )
    return TestClient(app)


@pytest.fixture
def anonymous_client():
    app = create_app(
        repository=SessionRepository(),
        identity=StaticIdentityProvider(None),
        settings=BuilderSettings(),
    )
    return TestClient(app)


def _create(client) -> str:
    response = client.post("/sessions", json={"fields": {}})
    assert response.status_code == 200
    return response.json()["session"]["id"]


class TestSessionEndpoints:
    def test_create_session(self, client):
        response = client.post("/sessions", json={"fields": {"templateData": {"title": "Weekly"}}})
        assert response.status_code == 200
        data = response.json()
        assert data["session"]["currentState"] == "selecting"
        assert data["session"]["userId"] == "user_1"
        assert data["session"]["templateData"] == {"title": "Weekly"}
        assert data["derived"]["state_progress"] == 1
        assert "record" not in data["derived"]

    def test_create_requires_user(self, anonymous_client):
        response = anonymous_client.post("/sessions", json={"fields": {}})
        assert response.status_code == 401

    def test_get_session(self, client):
        session_id = _create(client)
        response = client.get(f"/sessions/{session_id}")
        assert response.status_code == 200
        assert response.json()["session"]["id"] == session_id

    def test_get_missing_session(self, client):
        assert client.get("/sessions/nope").status_code == 404

    def test_list_sessions(self, client):
        _create(client)
        _create(client)
        response = client.get("/sessions")
        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_list_sessions_anonymous(self, anonymous_client):
        assert anonymous_client.get("/sessions").json() == []

    def test_update_session(self, client):
        session_id = _create(client)
        response = client.patch(
            f"/sessions/{session_id}",
            json={"fields": {"selectedContent": ["a", "b"], "contentOrder": ["a"]}},
        )
        assert response.status_code == 200
        derived = response.json()["derived"]
        assert derived["selected_content_count"] == 2
        assert derived["missing_content_count"] == 1

    def test_update_missing_session(self, client):
        response = client.patch("/sessions/nope", json={"fields": {"currentState": "arranging"}})
        assert response.status_code == 404

    def test_update_store_failure(self):
        app = create_app(
            repository=SessionRepository(primary=FailingStore()),
            identity=StaticIdentityProvider({"id": "user_1"}),
            settings=BuilderSettings(),
        )
        client = TestClient(app)
        session_id = _create(client)
        response = client.patch(f"/sessions/{session_id}", json={"fields": {"metadata": {"a": 1}}})
        assert response.status_code == 502

    def test_autosave(self, client):
        session_id = _create(client)
        response = client.post(
            f"/sessions/{session_id}/autosave",
            json={"fields": {"selectedContent": ["a"]}},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["session"]["lastSavedAt"] is not None
        assert data["derived"]["needs_save"] is False


class TestWorkflowEndpoints:
    def test_transition_table(self, client):
        response = client.get("/workflow/transitions")
        assert response.status_code == 200
        assert response.json() == {
            "selecting": ["arranging"],
            "arranging": ["selecting", "previewing"],
            "previewing": ["arranging", "publishing"],
            "publishing": ["previewing"],
        }

    def test_legal_transition(self, client):
        session_id = _create(client)
        response = client.post(
            f"/sessions/{session_id}/transition", json={"target_state": "arranging"}
        )
        assert response.status_code == 200
        assert response.json()["session"]["currentState"] == "arranging"

    def test_illegal_transition(self, client):
        session_id = _create(client)
        response = client.post(
            f"/sessions/{session_id}/transition", json={"target_state": "publishing"}
        )
        assert response.status_code == 409
        assert response.json()["legal_targets"] == ["arranging"]

    def test_unknown_target_state(self, client):
        session_id = _create(client)
        response = client.post(
            f"/sessions/{session_id}/transition", json={"target_state": "drafting"}
        )
        assert response.status_code == 422


class TestQualityEndpoints:
    def test_quality_of_new_session(self, client):
        session_id = _create(client)
        response = client.get(f"/sessions/{session_id}/quality")
        assert response.status_code == 200
        data = response.json()
        assert 0 <= data["score"] <= 100
        assert data["is_ready_to_publish"] is False
        assert {b["code"] for b in data["blockers"]} >= {"no_content", "not_validated"}

    def test_quality_missing_session(self, client):
        assert client.get("/sessions/nope/quality").status_code == 404


class TestFinalizeEndpoint:
    def test_finalize_not_ready(self, client, digests):
        session_id = _create(client)
        response = client.post(f"/sessions/{session_id}/finalize")
        assert response.status_code == 409
        codes = [b["code"] for b in response.json()["blockers"]]
        assert "not_validated" in codes
        assert digests.calls == []

    def test_finalize_ready_session(self, client, digests):
        session_id = _create(client)
        client.patch(f"/sessions/{session_id}", json={"fields": READY_FIELDS})

        response = client.post(f"/sessions/{session_id}/finalize")
        assert response.status_code == 200
        digest = response.json()["digest"]
        assert digest["title"] == "Untitled Digest"
        assert len(digests.calls) == 1

        session = client.get(f"/sessions/{session_id}").json()["session"]
        assert session["currentState"] == "publishing"
        assert session["digestId"] == digest["id"]

    def test_finalize_missing_session(self, client):
        assert client.post("/sessions/nope/finalize").status_code == 404

    def test_finalize_link_failure_reports_digest(self, digests):
        primary = InMemoryRecordStore()
        app = create_app(
            repository=SessionRepository(primary=primary),
            identity=StaticIdentityProvider({"id": "user_1"}),
            digest_creator=digests,
            settings=BuilderSettings(),
        )
        client = TestClient(app)
        session_id = _create(client)
        client.patch(f"/sessions/{session_id}", json={"fields": READY_FIELDS})

        primary.update = FailingStore().update
        response = client.post(f"/sessions/{session_id}/finalize")
        assert response.status_code == 502
        assert response.json()["digest_id"].startswith("digest_")
        assert len(digests.calls) == 1
