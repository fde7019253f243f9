from datetime import datetime

import pytest
from httpx import AsyncClient

from eservice.models.request import ServiceRequest, Appointment
from eservice.models.service import Service
from eservice.models.user import RoleName

from tests.conftest import create_user, create_office, auth_headers_for


@pytest.fixture
async def activity(db_session, customer_user, service):
    """Three requests in `service`: undecided, approved and rejected; one appointment"""
    def make(staff_status, manager_status, overall):
        return ServiceRequest(
            user=customer_user,
            service=service,
            current_address="Bole",
            date=datetime(2026, 11, 2, 9, 0),
            status=overall,
            status_by_staff=staff_status,
            status_by_manager=manager_status,
            files=[],
        )

    undecided = make("approved", "pending", "pending")
    approved = make("approved", "approved", "approved")
    rejected = make("rejected", "rejected", "rejected")
    db_session.add_all([undecided, approved, rejected])
    await db_session.flush()
    db_session.add(Appointment(
        request_id=approved.id, user_id=customer_user.id, date=datetime(2026, 11, 10), status="pending",
    ))
    await db_session.commit()
    return {"undecided": undecided, "approved": approved, "rejected": rejected}


@pytest.mark.asyncio
async def test_admin_overview(client: AsyncClient, activity, admin_headers):
    response = await client.get("/api/admin/overview", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    # admin, customer and staff users from the fixtures
    assert data["total_users"] == 3
    assert data["pending_applications"] == 1
    assert data["scheduled_appointments"] == 1
    assert data["system_growth"] == 100
    statuses = sorted(item["status"] for item in data["recent_applications"])
    assert statuses == ["approved", "pending", "rejected"]
    assert data["recent_applications"][0]["service"] == "Birth Certificate"


@pytest.mark.asyncio
async def test_manager_overview(client: AsyncClient, activity, office, manager_user, manager_headers):
    response = await client.get("/api/manager/overview", headers=manager_headers)

    data = response.json()["data"]
    assert data["total_staff"] == 2
    assert data["pending_requests"] == 1
    assert data["scheduled_appointments"] == 1
    assert data["total_services"] == 1
    assert len(data["recent_requests"]) == 3
    assert data["office"]["id"] == office.id
    assert data["username"] == manager_user.username
    assert data["role"] == "manager"


@pytest.mark.asyncio
async def test_manager_without_office(client: AsyncClient, db_session):
    loose_manager = await create_user(db_session, RoleName.MANAGER)

    response = await client.get("/api/manager/overview", headers=auth_headers_for(loose_manager))

    assert response.status_code == 403
    assert response.json()["error"] == "Manager office not found"


@pytest.mark.asyncio
async def test_staff_overview_counts_assigned_services(client: AsyncClient, db_session, activity, office, staff_headers):
    db_session.add(Service(
        name="Unassigned", description="x", time_to_take="1 day", office=office,
        requirements=[], service_fors=[], staff_assignments=[],
    ))
    await db_session.commit()

    response = await client.get("/api/staff/overview", headers=staff_headers)

    data = response.json()["data"]
    assert data["my_pending_requests"] == 1
    assert data["my_assigned_requests"] == 3
    assert data["scheduled_appointments"] == 1
    assert data["total_services"] == 1
    assert data["office"]["subdomain"] == "addis"


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/api/admin/overview", "/api/manager/overview", "/api/staff/overview"])
async def test_overviews_need_role(client: AsyncClient, customer_headers, path):
    response = await client.get(path, headers=customer_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_guest_data(client: AsyncClient, db_session, office, service):
    await create_office(db_session, name="Closed Office", status=False)
    await create_office(db_session, name="Adama Office", subdomain="adama")

    response = await client.get("/api/guest/data")

    body = response.json()
    assert body["success"] is True
    assert [o["office_name"] for o in body["data"]] == ["Adama Office", "Addis Kifle Ketema"]
    assert body["meta"] == {"total_offices": 2, "total_services": 1}
    addis = body["data"][1]
    assert addis["office_id"] == office.id
    assert addis["services"][0]["name"] == "Birth Certificate"
    assert body["data"][0]["services"] == []
