from fastapi.testclient import TestClient

from sannu.main import app


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_metrics_endpoint(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "sannu_login_attempts_total" in response.text


def test_security_headers(client):
    response = client.get("/health")

    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "Content-Security-Policy" not in response.headers
    assert "Strict-Transport-Security" not in response.headers


def test_auth_pages_get_content_security_policy(client):
    response = client.post("/login", json={"email": "nobody@acme.io", "password": "x"})

    assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]


def test_hsts_only_in_production_over_https(client, monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    secure = TestClient(app, base_url="https://testserver")

    assert secure.get("/health").headers["Strict-Transport-Security"] == "max-age=31536000; includeSubDomains"
    assert "Strict-Transport-Security" not in client.get("/health").headers


def test_unknown_tenant_path_returns_json_404(client):
    response = client.get("/nowhere/dashboard", headers={"Accept": "application/json"})

    assert response.status_code == 404
    assert response.json() == {"message": "Tenant not found"}
