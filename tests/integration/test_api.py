"""
Integration tests for the HTTP API over the in-memory store.
"""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.dependencies import (
    get_dispatch_policy,
    get_dispatch_repositories,
    get_health_checker,
    get_notification_sender,
)
from src.application.services.assignment_state_machine import ASSIGNMENT_LOST
from src.domain.entities.intervention import Intervention
from src.infrastructure.dispatch_factory import DispatchRepositories
from src.infrastructure.monitoring.health_checks import HealthChecker

PREFIX = "/api/v1"


async def _healthy():
    return {"status": "healthy"}


async def _down():
    return {"status": "unhealthy", "error": "connection refused"}


@pytest.fixture
def app(store, policy, mock_sender):
    application = create_app()

    async def repositories_override():
        yield DispatchRepositories.in_memory(store)

    async def policy_override():
        return policy

    async def sender_override():
        return mock_sender

    async def health_override():
        return HealthChecker(checks={"database": _healthy})

    application.dependency_overrides[get_dispatch_repositories] = repositories_override
    application.dependency_overrides[get_dispatch_policy] = policy_override
    application.dependency_overrides[get_notification_sender] = sender_override
    application.dependency_overrides[get_health_checker] = health_override
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


class TestHealthEndpoints:
    """Test health and metrics endpoints."""

    def test_health(self, client):
        response = client.get(f"{PREFIX}/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["components"]["database"]["status"] == "healthy"

    def test_live(self, client):
        response = client.get(f"{PREFIX}/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_ready(self, client):
        assert client.get(f"{PREFIX}/health/ready").status_code == 200

    def test_not_ready(self, app, client):
        async def down_override():
            return HealthChecker(checks={"database": _down})

        app.dependency_overrides[get_health_checker] = down_override

        assert client.get(f"{PREFIX}/health/ready").status_code == 503

    def test_metrics(self, client):
        client.get(f"{PREFIX}/health/live")

        response = client.get(f"{PREFIX}/health/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "api_requests_total" in response.text

    def test_request_id_is_echoed(self, client):
        response = client.get(
            f"{PREFIX}/health/live", headers={"X-Request-ID": "req-123"}
        )

        assert response.headers["X-Request-ID"] == "req-123"
        assert "X-Process-Time" in response.headers


class TestInterventionEndpoints:
    """Test dispatch and action endpoints."""

    def test_unknown_intervention(self, client):
        missing = uuid4()

        for path in ("", "/attempts", "/exclusions"):
            response = client.get(f"{PREFIX}/interventions/{missing}{path}")
            assert response.status_code == 404
            assert response.json()["type"] == "not_found"

        response = client.post(f"{PREFIX}/interventions/{missing}/dispatch")
        assert response.status_code == 404

    def test_invalid_action_body(self, client, five_plumbers):
        intervention, _ = five_plumbers
        url = f"{PREFIX}/interventions/{intervention.id}/actions"

        assert client.post(url, json={"action": "teleport"}).status_code == 422
        assert client.post(url, json={"action": "accept"}).status_code == 422
        assert (
            client.post(
                url, json={"action": "accept", "technician_id": "not-a-uuid"}
            ).status_code
            == 422
        )

    def test_missing_location_is_bad_request(self, client, store):
        intervention = Intervention(category="plumbing")
        store.interventions[intervention.id] = intervention

        response = client.post(f"{PREFIX}/interventions/{intervention.id}/dispatch")

        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"

    def test_dispatch_and_accept_flow(self, client, five_plumbers):
        intervention, technicians = five_plumbers
        base = f"{PREFIX}/interventions/{intervention.id}"

        response = client.post(f"{base}/dispatch")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Intervention dispatched to top 3 technicians"
        assert [candidate["technician_id"] for candidate in body["notified"]] == [
            str(technician.id) for technician in technicians[:3]
        ]

        response = client.post(
            f"{base}/actions",
            json={"action": "accept", "technician_id": str(technicians[1].id)},
        )
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["message"] == "Assignment accepted"

        # Conflicts are reported in the body, not the status code
        response = client.post(
            f"{base}/actions",
            json={"action": "accept", "technician_id": str(technicians[0].id)},
        )
        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["message"] == ASSIGNMENT_LOST

        current = client.get(base).json()
        assert current["status"] == "on_route"
        assert current["technician_id"] == str(technicians[1].id)

        attempts = client.get(f"{base}/attempts").json()
        assert [attempt["status"] for attempt in attempts].count("accepted") == 1

    def test_decline_is_listed_in_exclusions(self, client, five_plumbers):
        intervention, technicians = five_plumbers
        base = f"{PREFIX}/interventions/{intervention.id}"
        client.post(f"{base}/dispatch")

        response = client.post(
            f"{base}/actions",
            json={
                "action": "decline",
                "technician_id": str(technicians[0].id),
                "reason": "Not my speciality",
            },
        )
        assert response.json()["message"] == "Intervention declined"

        exclusions = client.get(f"{base}/exclusions").json()
        assert len(exclusions) == 1
        assert exclusions[0]["technician_id"] == str(technicians[0].id)
        assert exclusions[0]["kind"] == "declined"
        assert exclusions[0]["reason"] == "Not my speciality"

    def test_check_timeout_without_expiry(self, client, five_plumbers):
        intervention, _ = five_plumbers
        base = f"{PREFIX}/interventions/{intervention.id}"
        client.post(f"{base}/dispatch")

        response = client.post(f"{base}/actions", json={"action": "check_timeout"})

        assert response.json()["success"] is True
        assert response.json()["message"] == "No timeouts to process"
