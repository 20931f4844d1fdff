"""
Tests for the custom Flask CLI commands (``flask create-admin``,
``flask db-check``).
"""

from tech_inventory.models.audit import AuditLog
from tech_inventory.models.user import ROLE_USER
from tech_inventory.services import user_service


def _user(app, email):
    with app.app_context():
        user = user_service.get_user_by_email(email)
        return None if user is None else user.to_dict()


class TestCreateAdmin:
    def test_creates_admin_and_exits_zero(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(
            args=["create-admin", "--email", "boss@example.com",
                  "--password", "boss-pass-123", "--name", "The Boss"]
        )

        assert result.exit_code == 0, result.output
        user = _user(app, "boss@example.com")
        assert user["role"] == "admin"
        assert user["display_name"] == "The Boss"

    def test_reads_environment_config(self, app):
        app.config.update(
            ADMIN_EMAIL="env-admin@example.com", ADMIN_PASSWORD="env-pass-123"
        )
        result = app.test_cli_runner().invoke(args=["create-admin"])

        assert result.exit_code == 0, result.output
        assert _user(app, "env-admin@example.com")["role"] == "admin"

    def test_existing_user_promoted_and_reactivated(self, app):
        with app.app_context():
            user = user_service.create_user(
                email="staff@example.com",
                display_name="Staff",
                password="old-pass-123",
                role=ROLE_USER,
            )
            user_service.deactivate_user(user.id)

        result = app.test_cli_runner().invoke(
            args=["create-admin", "--email", "staff@example.com",
                  "--password", "new-pass-123"]
        )

        assert result.exit_code == 0, result.output
        with app.app_context():
            user = user_service.get_user_by_email("staff@example.com")
            assert user.is_admin
            assert user.is_active
            assert user.check_password("new-pass-123")
            assert AuditLog.query.filter_by(
                entity_type="user", entity_id=user.id, action_type="UPDATE"
            ).count() == 2

    def test_running_twice_is_fine(self, app):
        runner = app.test_cli_runner()
        args = ["create-admin", "--email", "boss@example.com", "--password", "boss-pass-123"]
        assert runner.invoke(args=args).exit_code == 0
        assert runner.invoke(args=args).exit_code == 0

    def test_missing_email_exits_one(self, app):
        app.config["ADMIN_EMAIL"] = ""
        result = app.test_cli_runner().invoke(args=["create-admin"])
        assert result.exit_code == 1

    def test_missing_password_for_new_user_exits_one(self, app):
        app.config["ADMIN_PASSWORD"] = ""
        result = app.test_cli_runner().invoke(
            args=["create-admin", "--email", "nopass@example.com"]
        )
        assert result.exit_code == 1
        assert _user(app, "nopass@example.com") is None

    def test_database_failure_exits_one(self, app, monkeypatch):
        def _boom(**kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(user_service, "create_user", _boom)
        result = app.test_cli_runner().invoke(
            args=["create-admin", "--email", "x@example.com", "--password", "x-pass-1234"]
        )
        assert result.exit_code == 1
        assert "database unavailable" in result.output


class TestDbCheck:
    def test_passes_with_schema(self, app):
        result = app.test_cli_runner().invoke(args=["db-check"])
        assert result.exit_code == 0, result.output
        assert "All checks passed" in result.output
