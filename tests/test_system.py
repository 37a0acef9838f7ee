from fastapi.testclient import TestClient

from treasury.main import app


def test_health_reports_version():
    client = TestClient(app)

    response = client.get("/system/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert "version" in body
    assert "gitSha" in body
