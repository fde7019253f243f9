import pytest
from httpx import AsyncClient


class TestGallery:

    @pytest.mark.asyncio
    async def test_create_keeps_image_order(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/gallery", headers=admin_headers, json={
            "name": "Opening day",
            "images": ["c.jpg", " a.jpg ", "", "b.jpg"],
        })

        assert response.status_code == 201
        images = response.json()["data"]["images"]
        assert [(i["filename"], i["order"]) for i in images] == [("c.jpg", 0), ("a.jpg", 1), ("b.jpg", 2)]

    @pytest.mark.asyncio
    async def test_images_required(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/gallery", headers=admin_headers, json={"name": "Empty", "images": [" "]})

        assert response.status_code == 400
        assert response.json()["details"][0]["message"] == "At least one image is required"

    @pytest.mark.asyncio
    async def test_update_replaces_images(self, client: AsyncClient, admin_headers):
        created = await client.post("/api/gallery", headers=admin_headers, json={
            "name": "Renovation", "description": "Before", "images": ["1.jpg", "2.jpg"],
        })
        gallery_id = created.json()["data"]["id"]

        response = await client.patch(f"/api/gallery/{gallery_id}", headers=admin_headers, json={
            "description": None, "images": ["3.jpg"],
        })

        data = response.json()["data"]
        assert data["name"] == "Renovation"
        assert data["description"] is None
        assert [i["filename"] for i in data["images"]] == ["3.jpg"]

    @pytest.mark.asyncio
    async def test_public_read_and_delete(self, client: AsyncClient, admin_headers):
        created = await client.post("/api/gallery", headers=admin_headers, json={"name": "G", "images": ["x.jpg"]})
        gallery_id = created.json()["data"]["id"]

        response = await client.get("/api/gallery")
        assert [g["id"] for g in response.json()["data"]] == [gallery_id]

        response = await client.delete(f"/api/gallery/{gallery_id}", headers=admin_headers)
        assert response.status_code == 200

        response = await client.get(f"/api/gallery/{gallery_id}")
        assert response.status_code == 404
        assert response.json()["error"] == "Gallery not found"

    @pytest.mark.asyncio
    async def test_writes_need_permission(self, client: AsyncClient, manager_headers):
        response = await client.post("/api/gallery", headers=manager_headers, json={"name": "G", "images": ["x.jpg"]})

        assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize("resource,not_found", [
    ("about", "About section not found"),
    ("administration", "Administration not found"),
])
async def test_section_crud(client: AsyncClient, admin_headers, resource, not_found):
    response = await client.post(f"/api/{resource}", headers=admin_headers, json={
        "name": "Our mission",
        "description": "Fast and transparent public services",
        "image": "/api/upload/logo/mission.png",
    })
    assert response.status_code == 201
    item_id = response.json()["data"]["id"]

    response = await client.patch(f"/api/{resource}/{item_id}", headers=admin_headers, json={"name": "Mission", "image": ""})
    data = response.json()["data"]
    assert data["name"] == "Mission"
    assert data["image"] == "/api/upload/logo/mission.png"

    response = await client.get(f"/api/{resource}")
    assert len(response.json()["data"]) == 1

    response = await client.delete(f"/api/{resource}/{item_id}", headers=admin_headers)
    assert response.status_code == 200

    response = await client.get(f"/api/{resource}/{item_id}")
    assert response.status_code == 404
    assert response.json()["error"] == not_found


@pytest.mark.asyncio
async def test_section_writes_need_permission(client: AsyncClient, customer_headers):
    response = await client.post("/api/about", headers=customer_headers, json={
        "name": "x", "description": "y", "image": "z",
    })

    assert response.status_code == 403
    assert response.json()["details"] == {"required": ["about:manage", "about:update"]}
