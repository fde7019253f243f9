import pytest
from httpx import AsyncClient

from eservice.models.report import Report
from eservice.models.user import RoleName

from tests.conftest import create_user, auth_headers_for


async def send_staff_report(client: AsyncClient, headers: dict, recipient_id: str, **overrides) -> dict:
    payload = {
        "name": "Weekly summary",
        "description": "Processed 14 birth certificate requests",
        "report_sent_to": recipient_id,
        "files": [{"name": "summary.pdf", "filepath": "/filedata/summary.pdf"}],
        **overrides,
    }
    response = await client.post("/api/staff/report", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestStaffReports:

    @pytest.mark.asyncio
    async def test_send_to_office_manager(self, client: AsyncClient, staff_user, manager_user, staff_headers):
        data = await send_staff_report(client, staff_headers, manager_user.id)

        assert data["sent_by_id"] == staff_user.id
        assert data["sent_to_id"] == manager_user.id
        assert data["receiver_status"] == "pending"
        assert data["files"][0]["name"] == "summary.pdf"

    @pytest.mark.asyncio
    async def test_required_fields(self, client: AsyncClient, manager_user, staff_headers):
        response = await client.post(
            "/api/staff/report",
            headers=staff_headers,
            json={"name": "No body", "report_sent_to": manager_user.id},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Name, description, and recipient are required"

    @pytest.mark.asyncio
    async def test_recipient_must_be_manager(self, client: AsyncClient, admin_user, staff_headers):
        response = await client.post("/api/staff/report", headers=staff_headers, json={
            "name": "x", "description": "y", "report_sent_to": admin_user.id,
        })

        assert response.status_code == 400
        assert response.json()["error"] == "Reports can only be sent to managers"

    @pytest.mark.asyncio
    async def test_manager_must_share_office(self, client: AsyncClient, db_session, other_office, staff_headers):
        other_manager = await create_user(db_session, RoleName.MANAGER, office=other_office)

        response = await client.post("/api/staff/report", headers=staff_headers, json={
            "name": "x", "description": "y", "report_sent_to": other_manager.id,
        })

        assert response.status_code == 400
        assert response.json()["error"] == "Manager must be from the same office as staff"

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, client: AsyncClient, staff_headers):
        response = await client.post("/api/staff/report", headers=staff_headers, json={
            "name": "x", "description": "y", "report_sent_to": "missing",
        })

        assert response.status_code == 404
        assert response.json()["error"] == "Recipient not found"

    @pytest.mark.asyncio
    async def test_role_required(self, client: AsyncClient, manager_headers):
        response = await client.get("/api/staff/report", headers=manager_headers)

        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden - Staff access required"

    @pytest.mark.asyncio
    async def test_mailboxes(self, client: AsyncClient, manager_user, staff_headers, manager_headers):
        await send_staff_report(client, staff_headers, manager_user.id)

        response = await client.get("/api/staff/report", headers=staff_headers)
        assert response.json()["pagination"]["total"] == 1

        response = await client.get("/api/staff/report", headers=staff_headers, params={"type": "received"})
        assert response.json()["data"] == []

        response = await client.get("/api/manager/report", headers=manager_headers)
        assert len(response.json()["data"]) == 1

        response = await client.get("/api/manager/report", headers=manager_headers, params={"search": "14 birth"})
        assert len(response.json()["data"]) == 1

        response = await client.get("/api/manager/report", headers=manager_headers, params={"status": "read"})
        assert response.json()["data"] == []


class TestManagerReports:

    @pytest.mark.asyncio
    async def test_decide_received_report(self, client: AsyncClient, manager_user, staff_headers, manager_headers):
        report = await send_staff_report(client, staff_headers, manager_user.id)

        response = await client.patch(f"/api/manager/report/{report['id']}/approve", headers=manager_headers, json={})
        assert response.status_code == 200
        assert response.json()["data"]["receiver_status"] == "read"

        response = await client.patch(
            f"/api/manager/report/{report['id']}/approve",
            headers=manager_headers,
            json={"action": "reject"},
        )
        assert response.json()["data"]["receiver_status"] == "archived"

    @pytest.mark.asyncio
    async def test_sender_cannot_decide(self, client: AsyncClient, db_session, office, manager_user, staff_headers):
        report = await send_staff_report(client, staff_headers, manager_user.id)
        second_manager = await create_user(db_session, RoleName.MANAGER, office=office)

        response = await client.patch(
            f"/api/manager/report/{report['id']}/approve",
            headers=auth_headers_for(second_manager),
            json={},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Report not found or access denied"

    @pytest.mark.asyncio
    async def test_send_to_several_admins(self, client: AsyncClient, db_session, admin_user, customer_user, manager_headers):
        second_admin = await create_user(db_session, RoleName.ADMIN)

        response = await client.post("/api/manager/report", headers=manager_headers, json={
            "name": "Monthly office report",
            "description": "All targets met",
            "report_sent_to": [admin_user.id, second_admin.id, customer_user.id, "missing", admin_user.id],
        })

        assert response.status_code == 201
        body = response.json()
        assert sorted(r["sent_to_id"] for r in body["data"]) == sorted([admin_user.id, second_admin.id])
        assert body["warnings"] == [
            f"Recipient {customer_user.username} is not an admin",
            "Recipient missing not found",
        ]
        assert body["message"] == "Report sent to 2 recipient(s)"

    @pytest.mark.asyncio
    async def test_single_recipient_string(self, client: AsyncClient, admin_user, manager_headers):
        response = await client.post("/api/manager/report", headers=manager_headers, json={
            "name": "Report", "description": "Body", "report_sent_to": admin_user.id,
        })

        assert response.status_code == 201
        assert "warnings" not in response.json()

    @pytest.mark.asyncio
    async def test_no_valid_recipient(self, client: AsyncClient, customer_user, manager_headers):
        response = await client.post("/api/manager/report", headers=manager_headers, json={
            "name": "Report", "description": "Body", "report_sent_to": [customer_user.id],
        })

        assert response.status_code == 400
        assert response.json()["error"].startswith("Failed to send report to any recipient: ")

    @pytest.mark.asyncio
    async def test_received_limited_to_own_office_staff(self, client: AsyncClient, db_session, other_office, manager_user, manager_headers):
        # Sender is not on this manager's office staff
        outsider = await create_user(db_session, RoleName.STAFF, office=other_office)
        db_session.add(Report(
            name="Stale", description="From another office", sent_by=outsider, sent_to=manager_user, files=[],
        ))
        await db_session.commit()

        response = await client.get("/api/manager/report", headers=manager_headers)

        assert response.json()["data"] == []


class TestAdminReports:

    @pytest.mark.asyncio
    async def test_list_get_and_decide(self, client: AsyncClient, office, other_office, admin_user, admin_headers, manager_headers):
        sent = await client.post("/api/manager/report", headers=manager_headers, json={
            "name": "Quarterly", "description": "Numbers", "report_sent_to": [admin_user.id],
        })
        report_id = sent.json()["data"][0]["id"]

        response = await client.get("/api/report", headers=admin_headers)
        assert [r["id"] for r in response.json()["data"]] == [report_id]

        response = await client.get("/api/report", headers=admin_headers, params={"office_id": other_office.id})
        assert response.json()["data"] == []

        response = await client.get(f"/api/report/{report_id}", headers=admin_headers)
        assert response.json()["data"]["name"] == "Quarterly"

        response = await client.patch(f"/api/report/{report_id}/approve", headers=admin_headers, json={"action": "reject"})
        assert response.json()["data"]["receiver_status"] == "archived"

    @pytest.mark.asyncio
    async def test_admin_only(self, client: AsyncClient, manager_headers):
        response = await client.get("/api/report", headers=manager_headers)

        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden - Admin access required"


@pytest.mark.asyncio
async def test_only_sender_deletes(client: AsyncClient, manager_user, staff_headers, manager_headers):
    report = await send_staff_report(client, staff_headers, manager_user.id)

    response = await client.delete(f"/api/report/{report['id']}", headers=manager_headers)
    assert response.status_code == 404

    response = await client.delete(f"/api/report/{report['id']}", headers=staff_headers)
    assert response.status_code == 200

    response = await client.get(f"/api/manager/report/{report['id']}", headers=manager_headers)
    assert response.status_code == 404
