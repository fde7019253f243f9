import pytest
from httpx import AsyncClient
from sqlalchemy import select

from eservice.db.seed_data import PERMISSIONS
from eservice.models.user import Permission, Role


async def permission_ids(db, *names) -> list:
    result = await db.execute(select(Permission).where(Permission.name.in_(names)))
    return [p.id for p in result.scalars().all()]


async def role_id(db, name: str) -> str:
    result = await db.execute(select(Role.id).where(Role.name == name, Role.office_id.is_(None)))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_seeded_roles_and_permissions(client: AsyncClient, admin_headers):
    response = await client.get("/api/role", headers=admin_headers)
    assert [role["name"] for role in response.json()["data"]] == ["admin", "customer", "manager", "staff"]

    response = await client.get("/api/permission", headers=admin_headers)
    names = [p["name"] for p in response.json()["data"]]
    assert sorted(PERMISSIONS) == names


@pytest.mark.asyncio
async def test_roles_admin_only(client: AsyncClient, manager_headers):
    response = await client.get("/api/role", headers=manager_headers)

    assert response.status_code == 403


class TestCustomRoles:

    @pytest.mark.asyncio
    async def test_create_update_delete(self, client: AsyncClient, db_session, office, admin_headers):
        ids = await permission_ids(db_session, "request:read", "report:read")

        response = await client.post("/api/role", headers=admin_headers, json={
            "name": "Auditor", "office_id": office.id, "permission_ids": ids,
        })
        assert response.status_code == 201
        role = response.json()["data"]
        assert sorted(p["name"] for p in role["permissions"]) == ["report:read", "request:read"]

        response = await client.get("/api/role", headers=admin_headers, params={"office_id": office.id})
        assert [r["name"] for r in response.json()["data"]] == ["Auditor"]

        response = await client.patch(f"/api/role/{role['id']}", headers=admin_headers, json={
            "name": "Senior Auditor", "description": "Read-only access",
        })
        assert response.json()["data"]["name"] == "Senior Auditor"

        response = await client.delete(f"/api/role/{role['id']}", headers=admin_headers)
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_duplicate_name_case_insensitive(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/role", headers=admin_headers, json={"name": "STAFF"})

        assert response.status_code == 400
        assert response.json()["error"] == "Role already exists"

    @pytest.mark.asyncio
    async def test_same_name_in_office_scope_allowed(self, client: AsyncClient, office, admin_headers):
        response = await client.post("/api/role", headers=admin_headers, json={"name": "staff", "office_id": office.id})

        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_unknown_permission(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/role", headers=admin_headers, json={
            "name": "Broken", "permission_ids": ["missing"],
        })

        assert response.status_code == 400
        assert response.json()["error"] == "One or more permissions not found"


class TestBuiltInRoles:

    @pytest.mark.asyncio
    async def test_cannot_rename_or_delete(self, client: AsyncClient, db_session, admin_headers):
        staff_role_id = await role_id(db_session, "staff")

        response = await client.patch(f"/api/role/{staff_role_id}", headers=admin_headers, json={"name": "clerk"})
        assert response.status_code == 400
        assert response.json()["error"] == "Built-in roles cannot be renamed"

        response = await client.delete(f"/api/role/{staff_role_id}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Built-in roles cannot be deleted"

    @pytest.mark.asyncio
    async def test_description_can_change(self, client: AsyncClient, db_session, admin_headers):
        staff_role_id = await role_id(db_session, "staff")

        response = await client.patch(f"/api/role/{staff_role_id}", headers=admin_headers, json={
            "name": "Staff", "description": "Front desk",
        })

        assert response.status_code == 200
        assert response.json()["data"]["description"] == "Front desk"


class TestRolePermissions:

    @pytest.mark.asyncio
    async def test_assigned_flags(self, client: AsyncClient, db_session, admin_headers):
        customer_role_id = await role_id(db_session, "customer")

        response = await client.get(f"/api/role/{customer_role_id}/permissions", headers=admin_headers)

        flags = {p["name"]: p["assigned"] for p in response.json()["data"]["permissions"]}
        assert flags["request:create"] is True
        assert flags["office:delete"] is False
        assert len(flags) == len(PERMISSIONS)

    @pytest.mark.asyncio
    async def test_replace_permissions(self, client: AsyncClient, db_session, admin_headers, customer_headers):
        customer_role_id = await role_id(db_session, "customer")
        ids = await permission_ids(db_session, "request:read")

        response = await client.post(
            f"/api/role/{customer_role_id}/permissions",
            headers=admin_headers,
            json={"permission_ids": ids},
        )
        assert [p["name"] for p in response.json()["data"]["permissions"]] == ["request:read"]

        response = await client.get("/api/auth/me", headers=customer_headers)
        assert response.json()["data"]["permissions"] == ["request:read"]

    @pytest.mark.asyncio
    async def test_admin_role_keeps_everything(self, client: AsyncClient, db_session, admin_headers):
        admin_role_id = await role_id(db_session, "admin")

        response = await client.post(
            f"/api/role/{admin_role_id}/permissions",
            headers=admin_headers,
            json={"permission_ids": []},
        )

        assert len(response.json()["data"]["permissions"]) == len(PERMISSIONS)

    @pytest.mark.asyncio
    async def test_permission_ids_must_be_list(self, client: AsyncClient, db_session, admin_headers):
        customer_role_id = await role_id(db_session, "customer")

        response = await client.post(
            f"/api/role/{customer_role_id}/permissions",
            headers=admin_headers,
            json={"permission_ids": "request:read"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "permission_ids must be an array"

    @pytest.mark.asyncio
    async def test_unknown_role(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/role/missing/permissions", headers=admin_headers, json={"permission_ids": []})

        assert response.status_code == 404
        assert response.json()["error"] == "Role not found"
