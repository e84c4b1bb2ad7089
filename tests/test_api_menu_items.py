"""
HTTP tests for the menu item endpoints.
"""
BASE = "/api/v1/menu_items"

SALAD = {
    "name": "Caesar Salad",
    "description": "Crisp romaine with parmesan and croutons",
    "price": "11.5",
    "category": "Appetizers",
}


class TestMenuItemsApi:
    """CRUD over HTTP."""

    async def test_create(self, client):
        response = await client.post(BASE, json={"menu_item": SALAD})

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["price"] == 11.5
        assert data["formatted_price"] == "$11.50"
        assert data["available"] is True

    async def test_create_invalid(self, client):
        response = await client.post(BASE, json={"menu_item": {**SALAD, "description": "short"}})
        assert response.status_code == 422
        assert response.json()["errors"] == ["Description is too short (minimum is 10 characters)"]

    async def test_update_and_delete(self, client):
        item_id = (await client.post(BASE, json=SALAD)).json()["data"]["id"]

        updated = await client.put(f"{BASE}/{item_id}", json={"menu_item": {"available": False}})
        assert updated.status_code == 200
        assert updated.json()["data"]["available"] is False

        deleted = await client.delete(f"{BASE}/{item_id}")
        assert deleted.json() == {"message": "Menu item deleted successfully"}
        assert (await client.get(f"{BASE}/{item_id}")).status_code == 404

    async def test_list(self, client):
        await client.post(BASE, json=SALAD)
        await client.post(BASE, json={**SALAD, "name": "Tiramisu", "category": "Desserts"})

        response = await client.get(BASE, params={"category": "Desserts"})

        body = response.json()
        assert [item["name"] for item in body["data"]] == ["Tiramisu"]
        assert body["meta"]["total_count"] == 1
        assert body["meta"]["categories"] == ["Appetizers", "Main Courses", "Desserts", "Beverages"]
