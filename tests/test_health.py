def test_health_reports_database(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["services"]["database"]["status"] == "healthy"


def test_responses_carry_request_id(client):
    response = client.get("/api/v1/health")
    assert response.headers["X-Request-ID"].startswith("req_")


def test_errors_include_request_id(client):
    response = client.get("/api/v1/exams")
    assert response.status_code == 401
    assert response.json()["request_id"] == response.headers["X-Request-ID"]


def test_metrics_endpoint(client):
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "exam_attempts_started_total" in response.text
