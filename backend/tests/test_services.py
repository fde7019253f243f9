import pytest
from httpx import AsyncClient

from eservice.models.service import Service
from eservice.models.user import RoleName

from tests.conftest import create_user, create_office, auth_headers_for


@pytest.fixture
def service_data(office):
    return {
        "name": "Marriage Certificate",
        "description": "Register a marriage",
        "time_to_take": "1 day",
        "office_id": office.id,
        "requirements": ["Kebele ID", {"name": "Two witnesses"}],
        "service_fors": ["Residents"],
    }


@pytest.mark.asyncio
async def test_manager_creates_service(client: AsyncClient, manager_headers, service_data):
    response = await client.post("/api/service", headers=manager_headers, json=service_data)

    assert response.status_code == 201
    data = response.json()["data"]
    assert sorted(item["name"] for item in data["requirements"]) == ["Kebele ID", "Two witnesses"]
    assert [item["name"] for item in data["service_fors"]] == ["Residents"]
    assert data["staff_assignments"] == []


@pytest.mark.asyncio
async def test_manager_cannot_create_for_other_office(client: AsyncClient, manager_headers, other_office, service_data):
    response = await client.post(
        "/api/service",
        headers=manager_headers,
        json={**service_data, "office_id": other_office.id},
    )

    assert response.status_code == 403
    assert response.json()["error"] == "You can only create services for your own office"


@pytest.mark.asyncio
async def test_create_service_unknown_office(client: AsyncClient, admin_headers, service_data):
    response = await client.post("/api/service", headers=admin_headers, json={**service_data, "office_id": "nope"})

    assert response.status_code == 404


class TestListServices:

    @pytest.mark.asyncio
    async def test_public_hides_inactive_offices(self, client: AsyncClient, db_session, service):
        closed = await create_office(db_session, status=False)
        db_session.add(Service(
            name="Closed Service", description="x", time_to_take="1 day", office=closed,
            requirements=[], service_fors=[], staff_assignments=[],
        ))
        await db_session.commit()

        response = await client.get("/api/service")

        names = [item["name"] for item in response.json()["data"]]
        assert names == ["Birth Certificate"]

    @pytest.mark.asyncio
    async def test_staff_see_only_their_office(self, client: AsyncClient, db_session, service, other_office, staff_headers):
        db_session.add(Service(
            name="Elsewhere", description="x", time_to_take="1 day", office=other_office,
            requirements=[], service_fors=[], staff_assignments=[],
        ))
        await db_session.commit()

        response = await client.get("/api/service", headers=staff_headers)
        assert [item["name"] for item in response.json()["data"]] == ["Birth Certificate"]

        response = await client.get("/api/service")
        assert len(response.json()["data"]) == 2

    @pytest.mark.asyncio
    async def test_search_and_office_filter(self, client: AsyncClient, service, office, other_office):
        response = await client.get("/api/service", params={"search": "birth"})
        assert len(response.json()["data"]) == 1

        response = await client.get("/api/service", params={"office_id": other_office.id})
        assert response.json()["data"] == []


@pytest.mark.asyncio
async def test_update_service_replaces_requirements(client: AsyncClient, manager_headers, service):
    response = await client.patch(
        f"/api/service/{service.id}",
        headers=manager_headers,
        json={"time_to_take": "5 days", "requirements": ["Hospital letter"]},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["time_to_take"] == "5 days"
    assert data["name"] == "Birth Certificate"
    assert [item["name"] for item in data["requirements"]] == ["Hospital letter"]


@pytest.mark.asyncio
async def test_delete_service(client: AsyncClient, manager_headers, service):
    response = await client.delete(f"/api/service/{service.id}", headers=manager_headers)
    assert response.status_code == 200

    response = await client.get(f"/api/service/{service.id}")
    assert response.status_code == 404


class TestStaffAssignment:

    @pytest.mark.asyncio
    async def test_replace_assignments(self, client: AsyncClient, db_session, office, service, staff_user, manager_headers):
        second = await create_user(db_session, RoleName.STAFF, office=office)
        second_staff_id = second.staff_records[0].id

        response = await client.post(
            f"/api/service/{service.id}/staff",
            headers=manager_headers,
            json={"staff_ids": [second_staff_id, second_staff_id]},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Successfully assigned service to 1 staff member(s)"
        assigned = [a["staff_id"] for a in response.json()["data"]["staff_assignments"]]
        assert assigned == [second_staff_id]

    @pytest.mark.asyncio
    async def test_staff_ids_required(self, client: AsyncClient, service, manager_headers):
        response = await client.post(f"/api/service/{service.id}/staff", headers=manager_headers, json={})

        assert response.status_code == 400
        assert response.json()["error"] == "staff_ids array is required"

    @pytest.mark.asyncio
    async def test_staff_from_other_office_rejected(self, client: AsyncClient, db_session, other_office, service, admin_headers):
        outsider = await create_user(db_session, RoleName.STAFF, office=other_office)

        response = await client.post(
            f"/api/service/{service.id}/staff",
            headers=admin_headers,
            json={"staff_ids": [outsider.staff_records[0].id]},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "All staff members must belong to the same office as the service"

    @pytest.mark.asyncio
    async def test_list_and_remove(self, client: AsyncClient, service, staff_user, manager_headers):
        staff_id = staff_user.staff_records[0].id

        response = await client.get(f"/api/service/{service.id}/staff", headers=manager_headers)
        assert [item["id"] for item in response.json()["data"]] == [staff_id]

        response = await client.delete(
            f"/api/service/{service.id}/staff",
            headers=manager_headers,
            params={"staff_id": staff_id},
        )
        assert response.status_code == 200

        response = await client.delete(
            f"/api/service/{service.id}/staff",
            headers=manager_headers,
            params={"staff_id": staff_id},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_manager_of_other_office_forbidden(self, client: AsyncClient, db_session, other_office, service):
        other_manager = await create_user(db_session, RoleName.MANAGER, office=other_office)

        response = await client.post(
            f"/api/service/{service.id}/staff",
            headers=auth_headers_for(other_manager),
            json={"staff_ids": []},
        )

        assert response.status_code == 403
