import pytest
from httpx import ASGITransport, AsyncClient

from provider_admin.core.middleware import _hash_admin_id
from provider_admin.core.rate_limit import _SlidingWindow
from provider_admin.main import app


@pytest.mark.asyncio
async def test_request_id_in_response():
    """All responses include X-Request-ID header."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")
    assert response.status_code == 200
    # UUID format: 8-4-4-4-12
    assert len(response.headers["X-Request-ID"]) == 36


@pytest.mark.asyncio
async def test_404_returns_structured_json():
    """Non-existent endpoint returns structured JSON error with request_id."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/nonexistent")
    assert response.status_code == 404
    data = response.json()
    assert data["error"] is True
    assert data["status_code"] == 404
    assert data["request_id"] == response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_access_log_line(client: AsyncClient, caplog):
    with caplog.at_level("INFO", logger="provider_admin.access"):
        await client.get("/health")
    lines = [r.getMessage() for r in caplog.records if r.name == "provider_admin.access"]
    assert any("path=/health status=200" in line and "admin=-" in line for line in lines)


@pytest.mark.asyncio
async def test_access_log_records_dashboard_action(client: AsyncClient, admin_headers: dict, caplog):
    with caplog.at_level("INFO", logger="provider_admin.access"):
        await client.post("/dashboard/filter", json={"filter_key": "pending"}, headers=admin_headers)
        await client.post(
            "/dashboard/selection", json={"provider_id": "p1", "checked": True}, headers=admin_headers
        )
    lines = [r.getMessage() for r in caplog.records if r.name == "provider_admin.access"]

    assert any(
        "path=/dashboard/filter" in line and "view=pending action=filter:pending selected=0" in line
        for line in lines
    )
    assert any("view=pending action=select selected=1" in line for line in lines)
    assert all("admin=-" not in line for line in lines if "/dashboard/" in line)


def test_admin_id_hashed():
    hashed = _hash_admin_id("5d2f4b0a-aaaa-bbbb-cccc-000000000000")
    assert len(hashed) == 12
    assert "5d2f4b0a" not in hashed


def test_sliding_window_blocks_after_limit():
    window = _SlidingWindow()
    assert all(window.is_allowed("ip:1.2.3.4", 3, 60) for _ in range(3))
    assert window.is_allowed("ip:1.2.3.4", 3, 60) is False
    assert window.is_allowed("ip:5.6.7.8", 3, 60) is True
