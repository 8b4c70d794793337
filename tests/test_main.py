from __future__ import annotations

from fastapi.testclient import TestClient

from account_service.main import app


def test_lifespan_builds_seeded_service():
    with TestClient(app) as client:
        assert client.get("/healthz").json() == {"status": "ok"}

        users = client.get("/v1/users").json()
        assert [user["name"] for user in users][0] == "Neo"
        assert len(users) == 6

        link = client.post("/v1/users/1/reset-link")
        assert link.status_code == 200

        metrics = client.get("/metrics")
        assert metrics.status_code == 200
        assert "account_tokens_issued_total" in metrics.text
