import pytest
from httpx import AsyncClient

from tests.conftest import create_office


@pytest.fixture
def office_data():
    return {
        "name": "Gondar Civil Registry",
        "room_number": "12",
        "address": "Piazza, Gondar",
        "subdomain": "Gondar",
        "phone_number": "0581110000",
        "logo": "/api/upload/logo/gondar.png",
    }


@pytest.mark.asyncio
async def test_create_office(client: AsyncClient, admin_headers, office_data):
    response = await client.post("/api/office", headers=admin_headers, json=office_data)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["subdomain"] == "gondar"
    assert data["status"] is True
    assert data["started_at"] is not None


@pytest.mark.asyncio
async def test_create_office_duplicate_subdomain(client: AsyncClient, admin_headers, office, office_data):
    response = await client.post(
        "/api/office",
        headers=admin_headers,
        json={**office_data, "subdomain": office.subdomain},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Subdomain already exists. Please choose a different one."


@pytest.mark.asyncio
@pytest.mark.parametrize("field,value", [
    ("subdomain", "bad domain!"),
    ("logo", "logo.png"),
])
async def test_create_office_invalid_fields(client: AsyncClient, admin_headers, office_data, field, value):
    response = await client.post("/api/office", headers=admin_headers, json={**office_data, field: value})

    assert response.status_code == 400
    assert response.json()["details"][0]["path"] == field


@pytest.mark.asyncio
async def test_create_office_requires_permission(client: AsyncClient, manager_headers, office_data):
    response = await client.post("/api/office", headers=manager_headers, json=office_data)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_offices_public_with_search(client: AsyncClient, db_session, office, other_office):
    await create_office(db_session, name="Hawassa Office", subdomain="hawassa", status=False)

    response = await client.get("/api/office")
    assert response.status_code == 200
    body = response.json()
    assert body["pagination"] == {"page": 1, "limit": 10, "total": 3, "total_pages": 1}

    response = await client.get("/api/office", params={"search": "BAHIR"})
    names = [item["name"] for item in response.json()["data"]]
    assert names == ["Bahir Dar Branch"]

    response = await client.get("/api/office", params={"status": "false"})
    assert [item["subdomain"] for item in response.json()["data"]] == ["hawassa"]


@pytest.mark.asyncio
@pytest.mark.parametrize("term", ["_", "%", "Bahir%Branch"])
async def test_search_wildcards_match_literally(client: AsyncClient, db_session, office, other_office, term):
    response = await client.get("/api/office", params={"search": term})

    assert response.status_code == 200
    assert response.json()["data"] == []


@pytest.mark.asyncio
async def test_search_literal_underscore(client: AsyncClient, db_session, office):
    await create_office(db_session, name="Registry_North", subdomain="registry-north")

    response = await client.get("/api/office", params={"search": "y_n"})

    assert [item["name"] for item in response.json()["data"]] == ["Registry_North"]


@pytest.mark.asyncio
async def test_list_offices_paginates(client: AsyncClient, db_session):
    for _ in range(3):
        await create_office(db_session)

    response = await client.get("/api/office", params={"page": 2, "limit": 2})

    body = response.json()
    assert len(body["data"]) == 1
    assert body["pagination"]["total_pages"] == 2


@pytest.mark.asyncio
async def test_get_office_not_found(client: AsyncClient, db_session):
    response = await client.get("/api/office/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Office not found"}


class TestUpdateOffice:

    @pytest.mark.asyncio
    async def test_manager_updates_own_office(self, client: AsyncClient, manager_headers, office):
        response = await client.patch(
            f"/api/office/{office.id}",
            headers=manager_headers,
            json={"slogan": "Serving you better"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["slogan"] == "Serving you better"

    @pytest.mark.asyncio
    async def test_manager_cannot_change_subdomain(self, client: AsyncClient, manager_headers, office):
        response = await client.patch(
            f"/api/office/{office.id}",
            headers=manager_headers,
            json={"subdomain": "elsewhere"},
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_manager_cannot_update_other_office(self, client: AsyncClient, manager_headers, other_office):
        response = await client.patch(
            f"/api/office/{other_office.id}",
            headers=manager_headers,
            json={"name": "Mine now"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "You can only update your own office"

    @pytest.mark.asyncio
    async def test_admin_subdomain_conflict(self, client: AsyncClient, admin_headers, office, other_office):
        response = await client.patch(
            f"/api/office/{office.id}",
            headers=admin_headers,
            json={"subdomain": other_office.subdomain},
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_admin_deactivates_office(self, client: AsyncClient, admin_headers, office):
        response = await client.patch(f"/api/office/{office.id}", headers=admin_headers, json={"status": False})

        assert response.status_code == 200
        assert response.json()["data"]["status"] is False


@pytest.mark.asyncio
async def test_delete_office(client: AsyncClient, admin_headers, other_office):
    response = await client.delete(f"/api/office/{other_office.id}", headers=admin_headers)
    assert response.status_code == 200

    response = await client.get(f"/api/office/{other_office.id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_office_stats_and_manager(client: AsyncClient, office, manager_user, service):
    response = await client.get(f"/api/office/{office.id}/stats")
    assert response.json()["data"] == {
        "total_requests": 0,
        "total_appointments": 0,
        "total_staff": 2,
        "total_services": 1,
    }

    response = await client.get(f"/api/office/{office.id}/manager")
    assert response.json()["data"]["user_id"] == manager_user.id


@pytest.mark.asyncio
async def test_office_without_manager(client: AsyncClient, other_office):
    response = await client.get(f"/api/office/{other_office.id}/manager")

    assert response.status_code == 200
    assert response.json()["data"] is None
