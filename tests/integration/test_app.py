"""Integration tests for app-level routes and the error envelope."""


class TestApp:
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["message"] == "MedicAI API"

    async def test_unknown_route_uses_error_envelope(self, client):
        response = await client.get("/api/v1/nothing-here")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["errors"] == []

    async def test_stack_included_outside_production(self, client):
        response = await client.get("/api/v1/users/me")

        assert response.status_code == 401
        assert "stack" in response.json()

    async def test_wrong_method(self, client):
        response = await client.put("/api/v1/shared-predictions/share")

        assert response.status_code == 405
