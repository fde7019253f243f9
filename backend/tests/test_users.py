import pytest
from httpx import AsyncClient
from sqlalchemy import select

from eservice.models.user import Role, RoleName, User

from tests.conftest import TEST_PASSWORD, create_user, unique_phone


async def global_role(db, role_name: RoleName) -> Role:
    result = await db.execute(select(Role).where(Role.name == role_name.value, Role.office_id.is_(None)))
    return result.scalar_one()


@pytest.fixture
async def staff_role(db_session) -> Role:
    return await global_role(db_session, RoleName.STAFF)


class TestListUsers:

    @pytest.mark.asyncio
    async def test_admin_lists_everyone(self, client: AsyncClient, admin_user, manager_user, staff_user, customer_user, admin_headers):
        response = await client.get("/api/user", headers=admin_headers, params={"limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 2
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 4, "total_pages": 2}

    @pytest.mark.asyncio
    async def test_search_by_role_office_and_phone(self, client: AsyncClient, db_session, other_office, staff_user, customer_user, admin_headers):
        outsider = await create_user(db_session, RoleName.MANAGER, office=other_office)

        response = await client.get("/api/user", headers=admin_headers, params={"search": "bahir dar"})
        assert [item["id"] for item in response.json()["data"]] == [outsider.id]
        assert response.json()["data"][0]["office"]["name"] == "Bahir Dar Branch"

        response = await client.get("/api/user", headers=admin_headers, params={"search": "CUSTOMER"})
        assert [item["id"] for item in response.json()["data"]] == [customer_user.id]

        local = "0" + staff_user.phone_number[4:]
        response = await client.get("/api/user", headers=admin_headers, params={"search": local})
        assert [item["id"] for item in response.json()["data"]] == [staff_user.id]

    @pytest.mark.asyncio
    async def test_filters(self, client: AsyncClient, db_session, office, staff_user, customer_user, admin_headers):
        blocked = await create_user(db_session, RoleName.CUSTOMER, is_active=False)

        response = await client.get("/api/user", headers=admin_headers, params={"office_id": office.id})
        assert [item["id"] for item in response.json()["data"]] == [staff_user.id]

        response = await client.get("/api/user", headers=admin_headers, params={"is_active": "false"})
        assert [item["id"] for item in response.json()["data"]] == [blocked.id]

    @pytest.mark.asyncio
    async def test_manager_cannot_list(self, client: AsyncClient, manager_headers):
        response = await client.get("/api/user", headers=manager_headers)

        assert response.status_code == 403


class TestCreateUser:

    @pytest.mark.asyncio
    async def test_create_with_generated_username(self, client: AsyncClient, office, staff_role, admin_headers):
        response = await client.post("/api/user", headers=admin_headers, json={
            "name": "Abebe Kebede",
            "phone_number": "0911223344",
            "password": "Secret123",
            "role_id": staff_role.id,
            "office_id": office.id,
        })

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["username"] == "abebe_kebede_3344"
        assert data["phone_number"] == "+251911223344"
        assert data["role"]["name"] == "staff"
        assert data["office_id"] == office.id
        assert data["phone_verified"] is False

        response = await client.post("/api/auth/login", json={"phone_number": "0911223344", "password": "Secret123"})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_duplicate_phone(self, client: AsyncClient, customer_user, staff_role, admin_headers):
        response = await client.post("/api/user", headers=admin_headers, json={
            "name": "Someone Else",
            "phone_number": customer_user.phone_number,
            "password": "Secret123",
            "role_id": staff_role.id,
        })

        assert response.status_code == 400
        assert response.json()["error"] == "User with this phone number or username already exists"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field,value", [
        ("password", "alllowercase1"),
        ("password", "Short1"),
        ("username", "has space"),
        ("phone_number", "12345"),
    ])
    async def test_invalid_fields(self, client: AsyncClient, staff_role, admin_headers, field, value):
        payload = {
            "name": "Tigist Alemu",
            "phone_number": unique_phone(),
            "password": "Secret123",
            "role_id": staff_role.id,
            field: value,
        }

        response = await client.post("/api/user", headers=admin_headers, json=payload)

        assert response.status_code == 400
        assert response.json()["details"][0]["path"] == field

    @pytest.mark.asyncio
    async def test_unknown_role(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/user", headers=admin_headers, json={
            "name": "Tigist Alemu",
            "phone_number": unique_phone(),
            "password": "Secret123",
            "role_id": "missing",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid role"


class TestUpdateUser:

    @pytest.mark.asyncio
    async def test_change_role_and_office(self, client: AsyncClient, office, other_office, customer_user, staff_role, admin_headers):
        url = f"/api/user/{customer_user.id}"

        response = await client.patch(url, headers=admin_headers, json={"role_id": staff_role.id, "office_id": office.id})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["role"]["name"] == "staff"
        assert data["office"]["id"] == office.id

        response = await client.patch(url, headers=admin_headers, json={"office_id": other_office.id})
        assert response.json()["data"]["office_id"] == other_office.id

        response = await client.patch(url, headers=admin_headers, json={"office_id": ""})
        assert response.json()["data"]["office_id"] is None
        assert response.json()["data"]["role"]["name"] == "staff"

    @pytest.mark.asyncio
    async def test_new_password(self, client: AsyncClient, customer_user, admin_headers):
        response = await client.patch(f"/api/user/{customer_user.id}", headers=admin_headers, json={"password": "Changed123"})
        assert response.status_code == 200

        response = await client.post(
            "/api/auth/login",
            json={"phone_number": customer_user.phone_number, "password": TEST_PASSWORD},
        )
        assert response.status_code == 401

        response = await client.post(
            "/api/auth/login",
            json={"phone_number": customer_user.phone_number, "password": "Changed123"},
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_username_taken(self, client: AsyncClient, staff_user, customer_user, admin_headers):
        response = await client.patch(f"/api/user/{staff_user.id}", headers=admin_headers, json={"username": "desk_officer"})
        assert response.json()["data"]["username"] == "desk_officer"

        response = await client.patch(f"/api/user/{customer_user.id}", headers=admin_headers, json={"username": "desk_officer"})

        assert response.status_code == 400
        assert response.json()["error"] == "User with this phone number or username already exists"

    @pytest.mark.asyncio
    async def test_empty_update(self, client: AsyncClient, customer_user, admin_headers):
        response = await client.patch(f"/api/user/{customer_user.id}", headers=admin_headers, json={})

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    @pytest.mark.asyncio
    async def test_cannot_block_self(self, client: AsyncClient, admin_user, admin_headers):
        response = await client.patch(f"/api/user/{admin_user.id}", headers=admin_headers, json={"is_active": False})

        assert response.status_code == 400
        assert response.json()["error"] == "Cannot block yourself"

    @pytest.mark.asyncio
    async def test_unknown_user(self, client: AsyncClient, admin_headers):
        response = await client.patch("/api/user/missing", headers=admin_headers, json={"is_active": True})

        assert response.status_code == 404
        assert response.json()["error"] == "User not found"


class TestBlockAndDelete:

    @pytest.mark.asyncio
    async def test_block_and_unblock(self, client: AsyncClient, customer_user, customer_headers, admin_headers):
        response = await client.post(f"/api/user/{customer_user.id}/block", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["is_active"] is False

        response = await client.get("/api/auth/me", headers=customer_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "User account is inactive"

        response = await client.post(f"/api/user/{customer_user.id}/unblock", headers=admin_headers)
        assert response.json()["data"]["is_active"] is True

        response = await client.get("/api/auth/me", headers=customer_headers)
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_delete_user(self, client: AsyncClient, staff_user, admin_headers):
        response = await client.delete(f"/api/user/{staff_user.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "User deleted successfully"

        response = await client.get(f"/api/user/{staff_user.id}", headers=admin_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_admins_are_protected(self, client: AsyncClient, db_session, admin_user, admin_headers):
        other_admin = await create_user(db_session, RoleName.ADMIN)

        response = await client.delete(f"/api/user/{other_admin.id}", headers=admin_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "Cannot delete admin users. Admin accounts are protected."

        response = await client.delete(f"/api/user/{admin_user.id}", headers=admin_headers)
        assert response.status_code == 400


class TestProfile:

    @pytest.mark.asyncio
    async def test_read_profile(self, client: AsyncClient, staff_user, staff_headers):
        response = await client.get("/api/user/profile", headers=staff_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == staff_user.id
        assert data["role"]["name"] == "staff"
        assert "profile:update" in data["permissions"]

    @pytest.mark.asyncio
    async def test_update_profile(self, client: AsyncClient, db_session, customer_user, customer_headers):
        response = await client.put(
            "/api/user/profile",
            headers=customer_headers,
            json={"username": "selam_g", "phone_number": "0922334455"},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Profile updated successfully"
        assert response.json()["data"]["phone_number"] == "+251922334455"

        user_id = customer_user.id
        db_session.expire_all()
        user = await db_session.get(User, user_id)
        assert user.username == "selam_g"

    @pytest.mark.asyncio
    async def test_profile_conflicts(self, client: AsyncClient, staff_user, customer_headers):
        response = await client.put("/api/user/profile", headers=customer_headers, json={"username": staff_user.username})
        assert response.status_code == 400
        assert response.json()["error"] == "Username already exists"

        response = await client.put(
            "/api/user/profile",
            headers=customer_headers,
            json={"phone_number": staff_user.phone_number},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Phone number already exists"


class TestAdminList:

    @pytest.mark.asyncio
    async def test_active_admins_only(self, client: AsyncClient, db_session, admin_user, manager_headers):
        await create_user(db_session, RoleName.ADMIN, is_active=False)
        second = await create_user(db_session, RoleName.ADMIN)

        response = await client.get("/api/admin/list", headers=manager_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert [item["id"] for item in data] == [
            user.id for user in sorted((admin_user, second), key=lambda u: u.username)
        ]
        assert set(data[0]) == {"id", "username", "phone_number"}

    @pytest.mark.asyncio
    async def test_requires_login(self, client: AsyncClient):
        response = await client.get("/api/admin/list")

        assert response.status_code == 401
