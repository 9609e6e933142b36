import inspect
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from app.core.auth import create_access_token, get_current_actor
from app.main import app, health_check
from app.utils.clock import today


@pytest.fixture
def client(engine, actor):
    app.dependency_overrides[get_current_actor] = lambda: actor
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create(client, name="Priya Sharma", job_id=1):
    response = client.post("/api/candidates", json={"job_id": job_id, "full_name": name})
    assert response.status_code == 201
    return response.json()["candidate_id"]


def _move(client, candidate_id, stage, **extra):
    return client.post(
        f"/api/candidates/{candidate_id}/transition",
        json={"target_stage": stage, **extra},
    )


def _place(client, name="Priya Sharma", joining_date=None):
    candidate_id = _create(client, name)
    for stage in ("screening", "interview_scheduled", "interview_completed"):
        assert _move(client, candidate_id, stage).status_code == 200
    assert _move(client, candidate_id, "offer_made", offer={"fixed_ctc": 12}).status_code == 200
    assert _move(client, candidate_id, "offer_accepted").status_code == 200
    joining_date = joining_date or today() - timedelta(days=80)
    response = _move(client, candidate_id, "joined", joining_date=joining_date.isoformat())
    assert response.status_code == 200
    return candidate_id


class TestCandidateRoutes:
    def test_create_and_get(self, client):
        candidate_id = _create(client)
        body = client.get(f"/api/candidates/{candidate_id}").json()
        assert body["current_stage"] == "sourced"
        assert body["assigned_to"] == 1
        assert body["version"] == 0

    def test_unknown_job(self, client):
        response = client.post("/api/candidates", json={"job_id": 99, "full_name": "Nobody Here"})
        assert response.status_code == 422
        assert response.json()["error"] == "DataIntegrityError"

    def test_unknown_candidate(self, client):
        response = client.get("/api/candidates/404")
        assert response.status_code == 404
        assert response.json()["error"] == "CandidateNotFound"

    def test_invalid_transition(self, client):
        candidate_id = _create(client)
        response = _move(client, candidate_id, "joined")
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidTransition"
        assert response.json()["candidate_id"] == candidate_id

    def test_offer_without_terms(self, client):
        candidate_id = _create(client)
        for stage in ("screening", "interview_scheduled", "interview_completed"):
            _move(client, candidate_id, stage)
        response = _move(client, candidate_id, "offer_made")
        assert response.status_code == 422

    def test_join_reports_revenue(self, client):
        candidate_id = _place(client, joining_date=date(2026, 1, 1))
        body = client.get(f"/api/candidates/{candidate_id}").json()
        assert body["current_stage"] == "joined"
        assert float(body["revenue_earned"]) == 1.0
        assert body["guarantee_period_ends"] == "2026-04-01"

    def test_timeline(self, client):
        candidate_id = _place(client)
        body = client.get(f"/api/candidates/{candidate_id}/timeline").json()
        assert body["total"] == 7
        assert body["entries"][0]["activity_type"] == "candidate_created"
        assert body["entries"][-1]["activity_type"] == "candidate_joined"

    def test_timeline_unknown_candidate(self, client):
        assert client.get("/api/candidates/404/timeline").status_code == 404

    def test_renege_twice(self, client):
        candidate_id = _place(client)
        first = client.post(f"/api/candidates/{candidate_id}/renege", json={"renege_reason": "Relocated"})
        assert first.status_code == 200
        assert first.json()["is_renege"] is True
        assert float(first.json()["revenue_earned"]) == 0

        second = client.post(f"/api/candidates/{candidate_id}/renege", json={"renege_reason": "Relocated"})
        assert second.status_code == 409
        assert second.json()["error"] == "AlreadyReneged"

    def test_renege_without_placement(self, client):
        candidate_id = _create(client)
        response = client.post(f"/api/candidates/{candidate_id}/renege", json={"renege_reason": "Changed mind"})
        assert response.status_code == 400
        assert response.json()["error"] == "NoActivePlacement"

    def test_renege_needs_reason(self, client):
        candidate_id = _place(client)
        response = client.post(f"/api/candidates/{candidate_id}/renege", json={"renege_reason": "  "})
        assert response.status_code == 422


class TestPlacementRoutes:
    def test_at_risk_dashboard(self, client):
        _place(client, "Later Joiner", joining_date=today() - timedelta(days=10))
        soon = _place(client, "Early Joiner", joining_date=today() - timedelta(days=85))

        body = client.get("/api/placements/at-risk", params={"scope": "individual"}).json()

        assert [p["candidate_id"] for p in body["placements"]][0] == soon
        assert body["placements"][0]["days_remaining"] == 5
        assert body["placements"][0]["risk_band"] == "critical"
        assert body["summary"]["total"] == 2
        assert float(body["revenue"]["critical"]) == 1.0
        assert float(body["revenue"]["at_stake"]) == 2.0
        assert float(body["revenue"]["secured"]) == 0
        assert body["as_of"] == today().isoformat()

    def test_flag_and_followup(self, client):
        candidate_id = _place(client)
        flagged = client.post(f"/api/placements/{candidate_id}/flag-risk", json={"risk_notes": "Unhappy"})
        assert flagged.status_code == 200
        assert flagged.json()["safety_status"] == "at_risk"

        resolved = client.post(
            f"/api/placements/{candidate_id}/followup",
            json={"notes": "Sorted out", "resolved": True},
        )
        assert resolved.status_code == 200
        assert resolved.json()["safety_status"] == "monitoring"
        assert resolved.json()["last_followup_date"] == today().isoformat()

    def test_followup_without_placement(self, client):
        candidate_id = _create(client)
        response = client.post(f"/api/placements/{candidate_id}/followup", json={"notes": "Hi"})
        assert response.status_code == 400

    def test_manual_expiry(self, client):
        candidate_id = _place(client, joining_date=today() - timedelta(days=120))
        body = client.post("/api/placements/expire").json()
        assert body["expired"] == [candidate_id]
        assert client.post("/api/placements/expire").json()["expired"] == []


class TestAuth:
    def test_bearer_token_identifies_actor(self, engine):
        token = create_access_token({"sub": "2", "role": "recruiter", "team_id": 10})
        client = TestClient(app)
        response = client.post(
            "/api/candidates",
            json={"job_id": 1, "full_name": "Token Candidate"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 201
        assert response.json()["assigned_to"] == 2

    def test_bad_token(self, engine):
        client = TestClient(app)
        response = client.get("/api/candidates/1", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_missing_token(self, engine):
        client = TestClient(app)
        assert client.get("/api/candidates/1").status_code in (401, 403)


class TestHealth:
    def test_health(self, client, monkeypatch):
        monkeypatch.setattr("app.db.mongodb.test_mongo_connection", lambda: False)
        body = client.get("/health").json()
        assert body["postgres"] == "connected"
        assert body["mongodb"] == "disconnected"
        assert body["guarantee_sweep"]["running"] is False

    def test_health_runs_in_threadpool(self):
        # Blocking store pings must not run on the event loop
        assert not inspect.iscoroutinefunction(health_check)
