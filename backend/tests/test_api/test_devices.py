"""
Tests for the APNs device registration API.

Covers registration (upsert), listing and removal under /api/v1/devices.
"""

from app.models.device import ApnDevice

TOKEN = "a591bde2720d89d4086beaa843f9b061a18b36b48cd0008a1f347a5ad844be95"
HEADERS = {"x-user-id": "user-1"}


class TestRegisterDevice:
    """Tests for POST /api/v1/devices."""

    def test_register_device_success(self, api_client):
        response = api_client.post(
            "/api/v1/devices",
            json={"token": TOKEN, "name": "iPhone 15 Pro"},
            headers=HEADERS,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["token"] == TOKEN
        assert data["is_new"] is True
        assert "id" in data

    def test_register_normalizes_token(self, api_client):
        response = api_client.post(
            "/api/v1/devices",
            json={"token": "<" + TOKEN.upper()[:32] + " " + TOKEN.upper()[32:] + ">"},
            headers=HEADERS,
        )

        assert response.status_code == 201
        assert response.json()["token"] == TOKEN

    def test_register_twice_is_upsert(self, api_client, db_session):
        api_client.post("/api/v1/devices", json={"token": TOKEN}, headers=HEADERS)
        response = api_client.post("/api/v1/devices", json={"token": TOKEN}, headers={"x-user-id": "user-2"})

        assert response.status_code == 201
        assert response.json()["is_new"] is False
        devices = db_session.query(ApnDevice).all()
        assert len(devices) == 1
        assert devices[0].user_id == "user-2"

    def test_register_requires_user_header(self, api_client):
        response = api_client.post("/api/v1/devices", json={"token": TOKEN})

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing 'x-user-id' header"

    def test_register_invalid_token(self, api_client):
        response = api_client.post("/api/v1/devices", json={"token": "not-hex"}, headers=HEADERS)

        assert response.status_code == 400
        assert "Invalid device token" in response.json()["detail"]

    def test_register_blank_token(self, api_client):
        response = api_client.post("/api/v1/devices", json={"token": "   "}, headers=HEADERS)

        assert response.status_code == 422


class TestListDevices:
    """Tests for GET /api/v1/devices."""

    def test_list_only_own_devices(self, api_client):
        api_client.post("/api/v1/devices", json={"token": "aa" * 32}, headers=HEADERS)
        api_client.post("/api/v1/devices", json={"token": "bb" * 32}, headers=HEADERS)
        api_client.post("/api/v1/devices", json={"token": "cc" * 32}, headers={"x-user-id": "other"})

        response = api_client.get("/api/v1/devices", headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert sorted(d["token"] for d in data["devices"]) == ["aa" * 32, "bb" * 32]
        assert all(d["user_id"] == "user-1" for d in data["devices"])

    def test_list_empty(self, api_client):
        response = api_client.get("/api/v1/devices", headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {"devices": [], "total": 0}

    def test_list_requires_user_header(self, api_client):
        assert api_client.get("/api/v1/devices").status_code == 400


class TestDeleteDevice:
    """Tests for DELETE /api/v1/devices/{token}."""

    def test_delete_success(self, api_client):
        api_client.post("/api/v1/devices", json={"token": TOKEN}, headers=HEADERS)

        response = api_client.delete(f"/api/v1/devices/{TOKEN}", headers=HEADERS)

        assert response.status_code == 204
        assert api_client.get("/api/v1/devices", headers=HEADERS).json()["total"] == 0

    def test_delete_not_found(self, api_client):
        response = api_client.delete(f"/api/v1/devices/{TOKEN}", headers=HEADERS)

        assert response.status_code == 404
        assert response.json()["detail"] == "Device not found"

    def test_delete_other_users_device(self, api_client):
        api_client.post("/api/v1/devices", json={"token": TOKEN}, headers={"x-user-id": "owner"})

        response = api_client.delete(f"/api/v1/devices/{TOKEN}", headers=HEADERS)

        assert response.status_code == 404
