"""
Tests for the auth blueprint — sign-in, sign-up and sign-out.
"""

from sqlalchemy.exc import OperationalError

from tech_inventory.models.audit import AuditLog
from tech_inventory.services import audit_service, user_service


class TestLogin:
    def test_login_page_renders(self, client):
        response = client.get("/auth/login")
        assert response.status_code == 200
        assert b"Sign in" in response.data

    def test_valid_login_redirects_to_next(self, app, client):
        with app.app_context():
            user_service.create_user("kim@example.com", "Kim", "kim-pass-123")

        response = client.post(
            "/auth/login?next=/admin/users",
            data={"email": "kim@example.com", "password": "kim-pass-123"},
        )
        assert response.status_code == 302
        assert response.headers["Location"].endswith("/admin/users")

    def test_external_next_ignored(self, app, client):
        with app.app_context():
            user_service.create_user("kim@example.com", "Kim", "kim-pass-123")

        response = client.post(
            "/auth/login?next=//evil.example.com/",
            data={"email": "kim@example.com", "password": "kim-pass-123"},
        )
        assert response.headers["Location"] == "/"

    def test_bad_password_is_401(self, app, client):
        with app.app_context():
            user_service.create_user("kim@example.com", "Kim", "kim-pass-123")

        response = client.post(
            "/auth/login", data={"email": "kim@example.com", "password": "wrong-pass"}
        )
        assert response.status_code == 401
        assert b"Invalid email or password" in response.data

    def test_login_proceeds_when_audit_write_fails(self, app, client, monkeypatch):
        with app.app_context():
            user_service.create_user("kim@example.com", "Kim", "kim-pass-123")

        def _fail(user_id, action_type):
            raise OperationalError("INSERT INTO audit_log", {}, Exception("locked"))

        monkeypatch.setattr(audit_service, "log_session_event", _fail)
        response = client.post(
            "/auth/login",
            data={"email": "kim@example.com", "password": "kim-pass-123"},
        )

        assert response.status_code == 302
        assert client.get("/").status_code == 200
        with app.app_context():
            assert AuditLog.query.filter_by(action_type="LOGIN").count() == 0


class TestRegister:
    def test_register_creates_regular_user_and_signs_in(self, app, client):
        response = client.post(
            "/auth/register",
            data={
                "display_name": "New Person",
                "email": "new@example.com",
                "employee_number": "1001",
                "password": "long-enough",
                "confirm_password": "long-enough",
            },
        )
        assert response.status_code == 302

        with app.app_context():
            user = user_service.get_user_by_email("new@example.com")
            assert user.role == "user"
            assert user.employee_number == "1001"

        assert client.get("/").status_code == 200

    def test_password_mismatch(self, app, client):
        response = client.post(
            "/auth/register",
            data={
                "display_name": "New Person",
                "email": "new@example.com",
                "password": "long-enough",
                "confirm_password": "different-1",
            },
        )
        assert response.status_code == 200
        assert b"Passwords do not match" in response.data
        with app.app_context():
            assert user_service.get_user_by_email("new@example.com") is None


class TestLogout:
    def test_logout_audited_and_signs_out(self, app, user_client):
        response = user_client.post("/auth/logout")
        assert response.status_code == 302

        assert user_client.get("/").status_code == 302
        with app.app_context():
            assert AuditLog.query.filter_by(action_type="LOGOUT").count() == 1

    def test_logout_requires_post(self, user_client):
        assert user_client.get("/auth/logout").status_code == 405
