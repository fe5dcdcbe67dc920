# tests/test_routes.py
"""
HTTP contract tests.

Every failure renders as {"error": message} with the status from the
error table; success bodies carry the documented messages.

Run with: pytest tests/test_routes.py -v -m integration
"""

import pytest

pytestmark = pytest.mark.integration


def register(client, form, files=None):
    return client.post("/register", data=form, files=files)


def login(client, email, password):
    return client.post("/login", json={"email": email, "password": password})


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def account(client, gateway, registration_form):
    """Register over HTTP; returns (retailer_id, password, token)."""
    resp = register(client, registration_form)
    assert resp.status_code == 201
    password = gateway.last_password()
    token = login(client, "alice@x.com", password).json()["token"]
    return resp.json()["retailerId"], password, token


# ============================================================
# /register
# ============================================================

class TestRegisterEndpoint:

    def test_created(self, client, gateway, registration_form):
        resp = register(client, registration_form)
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Retailer registered successfully. Check your email for login details."
        assert body["retailerId"]
        assert len(gateway.sent) == 1

    def test_with_logo(self, client, registration_form):
        files = {"companyLogo": ("logo.png", b"\x89PNG fake", "image/png")}
        resp = register(client, registration_form, files=files)
        assert resp.status_code == 201

    def test_duplicate(self, client, registration_form):
        register(client, registration_form)
        resp = register(client, registration_form)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Email already registered"}

    def test_bad_phone(self, client, gateway, registration_form):
        registration_form["phone"] = "12345"
        resp = register(client, registration_form)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Phone must contain only numbers (minimum 10 digits)"}
        assert gateway.attempts == []

    def test_missing_field(self, client, registration_form):
        del registration_form["lastName"]
        resp = register(client, registration_form)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Last name is required"}

    def test_delivery_failure_then_retry(self, client, gateway, table, registration_form):
        """No record after a failed delivery; the retry yields one account that logs in."""
        gateway.fail = True
        resp = register(client, registration_form)
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to send email. Please check your email configuration."}
        assert not any(r.email == "alice@x.com" for r in table.rows.values())

        gateway.fail = False
        resp = register(client, registration_form)
        assert resp.status_code == 201
        assert len(table) == 1

        login_resp = login(client, "alice@x.com", gateway.last_password())
        assert login_resp.status_code == 200
        assert login_resp.json()["retailer"]["id"] == resp.json()["retailerId"]


# ============================================================
# /login
# ============================================================

class TestLoginEndpoint:

    def test_success(self, client, account):
        retailer_id, password, _ = account
        resp = login(client, "alice@x.com", password)
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Login successful"
        assert body["token"]
        assert body["retailer"]["id"] == retailer_id
        assert body["retailer"]["companyName"] == "Ng Traders"
        assert "password" not in str(body["retailer"]).lower()

    def test_failures_are_byte_identical(self, client, account):
        unknown = login(client, "nobody@x.com", "whatever")
        wrong = login(client, "alice@x.com", "whatever")
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.content == wrong.content
        assert unknown.json() == {"error": "Invalid email or password"}

    def test_invalid_email(self, client):
        resp = login(client, "not-an-email", "x")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Valid email is required"}

    def test_missing_password(self, client):
        resp = client.post("/login", json={"email": "alice@x.com"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Password is required"}


# ============================================================
# /profile
# ============================================================

class TestProfileEndpoint:

    def test_requires_token(self, client):
        resp = client.put("/profile", data={"firstName": "Ann"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Access token required"}

    def test_rejects_bad_token(self, client):
        resp = client.put("/profile", data={"firstName": "Ann"}, headers=auth_header("garbage"))
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid or expired token"}

    def test_partial_update_with_image(self, client, account):
        _, _, token = account
        resp = client.put(
            "/profile",
            data={"firstName": "Ann", "lastName": ""},
            files={"profileImage": ("me.jpg", b"\xff\xd8 fake", "image/jpeg")},
            headers=auth_header(token),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Profile updated successfully"
        assert body["retailer"]["firstName"] == "Ann"
        assert body["retailer"]["lastName"] == "Ng"
        assert body["retailer"]["profileImage"].startswith("profileImage-")

    def test_retailer_gone(self, client, account, table):
        retailer_id, _, token = account
        del table.rows[retailer_id]
        resp = client.put("/profile", data={"firstName": "Ann"}, headers=auth_header(token))
        assert resp.status_code == 404
        assert resp.json() == {"error": "Retailer not found"}


# ============================================================
# /forgot-password
# ============================================================

class TestForgotPasswordEndpoint:

    def test_missing_email(self, client):
        resp = client.post("/forgot-password", json={})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Email is required"}

    def test_no_body(self, client):
        resp = client.post("/forgot-password")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Email is required"}

    def test_unknown_email(self, client):
        resp = client.post("/forgot-password", json={"email": "nobody@x.com"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "No retailer found with this email"}

    def test_reset(self, client, gateway, account):
        _, old_password, _ = account
        resp = client.post("/forgot-password", json={"email": "alice@x.com"})
        assert resp.status_code == 200
        assert resp.json() == {"message": "A new password has been sent to your email address"}

        assert login(client, "alice@x.com", old_password).status_code == 401
        assert login(client, "alice@x.com", gateway.last_password()).status_code == 200

    def test_delivery_failure(self, client, gateway, account):
        gateway.fail = True
        resp = client.post("/forgot-password", json={"email": "alice@x.com"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to reset password"}


# ============================================================
# /change-password
# ============================================================

class TestChangePasswordEndpoint:

    def test_requires_token(self, client):
        resp = client.post("/change-password", json={"currentPassword": "a", "newPassword": "Valid1Pass!"})
        assert resp.status_code == 401

    def test_change(self, client, account):
        _, password, token = account
        resp = client.post(
            "/change-password",
            json={"currentPassword": password, "newPassword": "Valid1Pass!"},
            headers=auth_header(token),
        )
        assert resp.status_code == 200
        assert resp.json() == {"message": "Password updated successfully"}
        assert login(client, "alice@x.com", "Valid1Pass!").status_code == 200

    def test_weak(self, client, account):
        _, password, token = account
        resp = client.post(
            "/change-password",
            json={"currentPassword": password, "newPassword": "short1!"},
            headers=auth_header(token),
        )
        assert resp.status_code == 400
        assert "at least 8 characters" in resp.json()["error"]

    def test_wrong_current(self, client, account):
        _, _, token = account
        resp = client.post(
            "/change-password",
            json={"currentPassword": "nope", "newPassword": "Valid1Pass!"},
            headers=auth_header(token),
        )
        assert resp.status_code == 401
        assert resp.json() == {"error": "Current password is incorrect"}

    def test_missing_fields(self, client, account):
        _, _, token = account
        resp = client.post("/change-password", json={}, headers=auth_header(token))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Current password and new password are required"}

    def test_no_body(self, client, account):
        _, _, token = account
        resp = client.post("/change-password", headers=auth_header(token))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Current password and new password are required"}


# ============================================================
# /health
# ============================================================

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["database"] == "ok"


def test_module_entry_point_serves_app(monkeypatch):
    """python -m retailer_api hands the app import path to uvicorn."""
    from unittest.mock import patch

    from retailer_api import __main__ as entry

    monkeypatch.delenv("HOST", raising=False)
    monkeypatch.setenv("PORT", "9000")
    with patch.object(entry.uvicorn, "run") as run_server:
        entry.main()
    run_server.assert_called_once_with("retailer_api.main:app", host="0.0.0.0", port=9000)
