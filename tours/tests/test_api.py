"""
HTTP Tests for the Tour API

Tests cover:
1. Request/response shapes for each route
2. Mapping of service errors to status codes
3. Identity and stake headers
"""

import pytest
from fastapi.testclient import TestClient

from tours import api
from tours.config import Settings
from tours.service import TourService


ADMIN = "admin"
OWNER = "alice"


def as_user(identity, stake=None):
    headers = {"X-Participant-Id": identity}
    if stake is not None:
        headers["X-Participant-Stake"] = str(stake)
    return headers


@pytest.fixture
def service(monkeypatch):
    service = TourService(settings=Settings(VOTE_THRESHOLD=2, ADMINISTRATORS=ADMIN))
    monkeypatch.setattr(api, "tour_service", service)
    return service


@pytest.fixture
def client(service):
    return TestClient(api.app)


def create_tour(client, location="Paris"):
    response = client.post("/tours", json={"image_ref": "Qm1", "location": location}, headers=as_user(OWNER))
    assert response.status_code == 201
    return response.json()["id"]


def verify(client, tour_id):
    for voter in ["bob", "carol"]:
        response = client.post(f"/tours/{tour_id}/upvote", headers=as_user(voter, 1))
        assert response.status_code == 200
    return tour_id


class TestTourRoutes:
    """Tests for tour registry routes."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_create_and_get_tour(self, client):
        tour_id = create_tour(client)

        response = client.get(f"/tours/{tour_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["owner"] == OWNER
        assert body["location"] == "Paris"
        assert body["verified"] is False
        assert body["active"] is True

    def test_create_requires_identity_header(self, client):
        response = client.post("/tours", json={"image_ref": "Qm1", "location": "Paris"})
        assert response.status_code == 422

    def test_create_with_empty_location_is_rejected(self, client):
        response = client.post("/tours", json={"image_ref": "Qm1", "location": ""}, headers=as_user(OWNER))
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidParametersError"

    def test_unknown_tour_is_404(self, client):
        response = client.get("/tours/42")
        assert response.status_code == 404
        assert response.json()["error"] == "TourNotFoundError"

    def test_update_by_non_owner_is_403(self, client):
        tour_id = create_tour(client)
        response = client.put(f"/tours/{tour_id}", json={"image_ref": "Qm2", "location": "Lyon"},
                              headers=as_user("bob"))
        assert response.status_code == 403

    def test_update_and_deactivate(self, client):
        tour_id = create_tour(client)

        response = client.put(f"/tours/{tour_id}", json={"image_ref": "Qm2", "location": "Lyon"},
                              headers=as_user(OWNER))
        assert response.status_code == 200
        assert response.json()["location"] == "Lyon"

        response = client.post(f"/tours/{tour_id}/deactivate", headers=as_user(OWNER))
        assert response.status_code == 200
        assert response.json()["active"] is False


class TestVoteRoutes:
    """Tests for upvote routes."""

    def test_upvote_verifies_at_threshold(self, client):
        tour_id = verify(client, create_tour(client))
        body = client.get(f"/tours/{tour_id}").json()
        assert body["upvotes"] == 2
        assert body["verified"] is True

    def test_upvote_without_stake_is_rejected(self, client):
        tour_id = create_tour(client)
        response = client.post(f"/tours/{tour_id}/upvote", headers=as_user("bob"))
        assert response.status_code == 400
        assert response.json()["error"] == "InsufficientStakeError"

    def test_double_vote_is_409(self, client):
        tour_id = create_tour(client)
        client.post(f"/tours/{tour_id}/upvote", headers=as_user("bob", 1))
        response = client.post(f"/tours/{tour_id}/upvote", headers=as_user("bob", 1))
        assert response.status_code == 409
        assert response.json()["error"] == "AlreadyVotedError"

    def test_self_vote_is_403(self, client):
        tour_id = create_tour(client)
        response = client.post(f"/tours/{tour_id}/upvote", headers=as_user(OWNER, 5))
        assert response.status_code == 403


class TestCheckInRoutes:
    """Tests for check-in and balance routes."""

    def test_check_in_flow(self, client):
        tour_id = verify(client, create_tour(client))

        response = client.post(f"/tours/{tour_id}/check-ins", json={"image_ref": "QmX", "location": "Paris"},
                               headers=as_user("dave"))
        assert response.status_code == 201
        assert response.json()["status"] == "CONFIRMED"

        listing = client.get(f"/tours/{tour_id}/check-ins").json()
        assert [c["participant"] for c in listing] == ["dave"]

        assert client.get(f"/participants/{OWNER}/balance").json()["points"] == 10
        assert client.get("/participants/dave/balance").json()["points"] == 5

        again = client.post(f"/tours/{tour_id}/check-ins", json={"image_ref": "QmX", "location": "Paris"},
                            headers=as_user("dave"))
        assert again.status_code == 409

    def test_location_mismatch(self, client):
        tour_id = verify(client, create_tour(client))
        response = client.post(f"/tours/{tour_id}/check-ins", json={"image_ref": "QmX", "location": "paris"},
                               headers=as_user("dave"))
        assert response.status_code == 400
        assert response.json()["error"] == "LocationMismatchError"
        assert client.get("/participants/dave/balance").json()["points"] == 0

    def test_check_in_unverified(self, client):
        tour_id = create_tour(client)
        response = client.post(f"/tours/{tour_id}/check-ins", json={"image_ref": "QmX", "location": "Paris"},
                               headers=as_user("dave"))
        assert response.status_code == 400
        assert response.json()["error"] == "TourNotVerifiedError"


class TestAdminRoutes:
    """Tests for administrative routes."""

    def test_pause_and_resume(self, client):
        tour_id = create_tour(client)

        response = client.post("/admin/pause", headers=as_user(ADMIN))
        assert response.status_code == 200
        assert response.json()["operations_enabled"] is False

        paused = client.post("/tours", json={"image_ref": "Qm2", "location": "Rome"}, headers=as_user(OWNER))
        assert paused.status_code == 503
        assert client.get(f"/tours/{tour_id}").status_code == 200
        assert client.get(f"/participants/{OWNER}/balance").status_code == 200

        assert client.post("/admin/resume", headers=as_user(ADMIN)).status_code == 200
        assert create_tour(client, "Rome") == 1

    def test_non_admin_pause_is_403(self, client):
        response = client.post("/admin/pause", headers=as_user(OWNER))
        assert response.status_code == 403
        assert response.json()["error"] == "NotAdministratorError"

    def test_set_vote_threshold(self, client):
        response = client.put("/admin/vote-threshold", json={"threshold": 4}, headers=as_user(ADMIN))
        assert response.status_code == 200
        assert response.json()["vote_threshold"] == 4
        assert client.get("/admin/config").json()["vote_threshold"] == 4

    def test_zero_threshold_fails_validation(self, client):
        response = client.put("/admin/vote-threshold", json={"threshold": 0}, headers=as_user(ADMIN))
        assert response.status_code == 422


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
