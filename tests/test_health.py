from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from pagewise.main import app


client = TestClient(app)


def test_root_health_status():
    response = client.get("/")
    assert response.status_code == 200
    payload = response.json()
    assert payload == {
        "status": "ok",
        "service": app.title,
        "version": app.version,
    }


def test_health_reports_disabled_cache_without_redis():
    response = client.get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["session_cache"] == "disabled"


def test_health_reports_connected_cache():
    redis = MagicMock()
    redis.health_check = AsyncMock(return_value=True)
    app.state.redis = redis
    try:
        response = client.get("/health")
    finally:
        del app.state.redis

    assert response.json()["session_cache"] == "connected"
