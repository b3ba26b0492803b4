"""Tests for manual block and channel import endpoints."""

import uuid

import httpx
from httpx import AsyncClient

from stayengine.api.deps import get_http_client
from stayengine.main import app

FEED = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Vrbo//EN
BEGIN:VEVENT
DTSTART;VALUE=DATE:20250710
DTEND;VALUE=DATE:20250712
UID:vrbo-1
SUMMARY:Blocked
END:VEVENT
END:VCALENDAR
"""


async def _create_block(client: AsyncClient, unit_id, headers, **body) -> httpx.Response:
    payload = {"start_date": "2025-07-10", "end_date": "2025-07-12"}
    payload.update(body)
    return await client.post(f"/api/v1/units/{unit_id}/blocks", json=payload, headers=headers)


# ---------------------------------------------------------------------------
# POST /api/v1/units/{unit_id}/blocks
# ---------------------------------------------------------------------------


class TestCreateBlock:
    async def test_create_date_block(self, client: AsyncClient, test_unit, manager_headers) -> None:
        response = await _create_block(client, test_unit.id, manager_headers, notes="  Decorating  ")
        assert response.status_code == 201
        data = response.json()
        assert data["unit_id"] == str(test_unit.id)
        assert data["source"] == "manual"
        assert data["label"] == "Manual block"
        assert data["notes"] == "Decorating"
        assert data["start_date"] == "2025-07-10"
        assert data["end_date"] == "2025-07-12"

        occupancy = await client.get(
            f"/api/v1/units/{test_unit.id}/occupancy", params={"from": "2025-07-01", "to": "2025-07-20"}
        )
        assert occupancy.json()["blocked_days"] == ["2025-07-10", "2025-07-11", "2025-07-12"]

    async def test_create_instant_block(self, client: AsyncClient, test_unit, manager_headers) -> None:
        response = await client.post(
            f"/api/v1/units/{test_unit.id}/blocks",
            json={"start_at": "2025-07-10T09:00:00Z", "end_at": "2025-07-10T17:00:00Z", "label": "Viewing"},
            headers=manager_headers,
        )
        assert response.status_code == 201
        assert response.json()["label"] == "Viewing"

    async def test_requires_permission(self, client: AsyncClient, test_unit) -> None:
        response = await _create_block(client, test_unit.id, {})
        assert response.status_code == 403
        assert response.json()["code"] == "permission_denied"

    async def test_false_permission_header(self, client: AsyncClient, test_unit) -> None:
        response = await _create_block(client, test_unit.id, {"X-Can-Manage-Blocks": "no"})
        assert response.status_code == 403

    async def test_reversed_range(self, client: AsyncClient, test_unit, manager_headers) -> None:
        response = await _create_block(client, test_unit.id, manager_headers, start_date="2025-07-12", end_date="2025-07-10")
        assert response.status_code == 400
        assert response.json()["code"] == "reversed_range"

    async def test_both_range_forms_rejected(self, client: AsyncClient, test_unit, manager_headers) -> None:
        response = await _create_block(
            client,
            test_unit.id,
            manager_headers,
            start_at="2025-07-10T09:00:00Z",
            end_at="2025-07-10T17:00:00Z",
        )
        assert response.status_code == 422

    async def test_unknown_unit(self, client: AsyncClient, manager_headers) -> None:
        response = await _create_block(client, uuid.uuid4(), manager_headers)
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# PATCH / DELETE /api/v1/blocks/{block_id}
# ---------------------------------------------------------------------------


class TestUpdateDeleteBlock:
    async def test_update_notes(self, client: AsyncClient, test_unit, manager_headers) -> None:
        block = (await _create_block(client, test_unit.id, manager_headers)).json()
        response = await client.patch(
            f"/api/v1/blocks/{block['id']}", json={"notes": "Boiler service", "color": "#336699"}, headers=manager_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["notes"] == "Boiler service"
        assert data["color"] == "#336699"
        assert data["label"] == "Manual block"

    async def test_empty_update(self, client: AsyncClient, test_unit, manager_headers) -> None:
        block = (await _create_block(client, test_unit.id, manager_headers)).json()
        response = await client.patch(f"/api/v1/blocks/{block['id']}", json={}, headers=manager_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "no_updates"

    async def test_update_missing_block(self, client: AsyncClient, manager_headers) -> None:
        response = await client.patch(f"/api/v1/blocks/{uuid.uuid4()}", json={"notes": "x"}, headers=manager_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "block_not_found"

    async def test_delete(self, client: AsyncClient, test_unit, manager_headers) -> None:
        block = (await _create_block(client, test_unit.id, manager_headers)).json()
        response = await client.delete(f"/api/v1/blocks/{block['id']}", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Block deleted"

        again = await client.delete(f"/api/v1/blocks/{block['id']}", headers=manager_headers)
        assert again.status_code == 404

    async def test_delete_requires_permission(self, client: AsyncClient, test_unit, manager_headers) -> None:
        block = (await _create_block(client, test_unit.id, manager_headers)).json()
        response = await client.delete(f"/api/v1/blocks/{block['id']}")
        assert response.status_code == 403


# ---------------------------------------------------------------------------
# POST /api/v1/units/{unit_id}/channel-imports
# ---------------------------------------------------------------------------


class TestChannelImport:
    async def test_import(self, client: AsyncClient, test_unit, manager_headers) -> None:
        async def override_client():
            transport = httpx.MockTransport(lambda request: httpx.Response(200, text=FEED))
            async with httpx.AsyncClient(transport=transport) as mock_client:
                yield mock_client

        app.dependency_overrides[get_http_client] = override_client
        response = await client.post(
            f"/api/v1/units/{test_unit.id}/channel-imports",
            json={"url": "https://www.vrbo.com/icalendar/abc.ics", "source": "vrbo"},
            headers=manager_headers,
        )
        assert response.status_code == 200
        assert response.json() == {"unit_id": str(test_unit.id), "source": "vrbo", "imported": 1}

        occupancy = await client.get(
            f"/api/v1/units/{test_unit.id}/occupancy", params={"from": "2025-07-01", "to": "2025-07-20"}
        )
        assert occupancy.json()["blocked_days"] == ["2025-07-10", "2025-07-11"]

    async def test_upstream_failure(self, client: AsyncClient, test_unit, manager_headers) -> None:
        async def override_client():
            transport = httpx.MockTransport(lambda request: httpx.Response(500))
            async with httpx.AsyncClient(transport=transport) as mock_client:
                yield mock_client

        app.dependency_overrides[get_http_client] = override_client
        response = await client.post(
            f"/api/v1/units/{test_unit.id}/channel-imports",
            json={"url": "https://www.vrbo.com/icalendar/abc.ics", "source": "vrbo"},
            headers=manager_headers,
        )
        assert response.status_code == 503

    async def test_invalid_source(self, client: AsyncClient, test_unit, manager_headers) -> None:
        response = await client.post(
            f"/api/v1/units/{test_unit.id}/channel-imports",
            json={"url": "https://example.com/feed.ics", "source": "manual"},
            headers=manager_headers,
        )
        assert response.status_code == 422
