"""Integration tests for health endpoints."""

from __future__ import annotations

from carehome.core.redis import get_redis_optional


async def test_liveness(client):
    response = await client.get("/health")
    assert response.json() == {"status": "alive"}


async def test_readiness_healthy(client):
    response = await client.get("/api/system/health")
    body = response.json()
    assert response.status_code == 200
    assert body["status"] == "healthy"
    assert body["services"]["database"]["status"] == "healthy"


async def test_readiness_degraded_without_redis(app, client):
    async def no_redis():
        yield None

    app.dependency_overrides[get_redis_optional] = no_redis

    response = await client.get("/api/system/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"


async def test_root(client):
    response = await client.get("/")
    assert response.json()["status"] == "ok"


async def test_request_id_header(client):
    response = await client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers.get("X-Request-ID") == "abc123"
