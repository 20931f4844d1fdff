"""
Tests for auth_service and user_service — sign-up, sign-in, user admin.
"""

import logging

import pytest
from sqlalchemy.exc import OperationalError

from tech_inventory.models.audit import AuditLog
from tech_inventory.services import audit_service, auth_service, user_service


class TestRegistration:
    """Tests for self-service sign-up."""

    def test_validate_registration(self):
        assert auth_service.validate_registration(
            "new@example.com", "long-enough", "New Person"
        ) == []
        errors = auth_service.validate_registration("not-an-email", "short", "")
        assert len(errors) == 3

    def test_register_always_grants_user_role(self, db_session):
        user = auth_service.register(
            email="New@Example.com",
            password="long-enough",
            display_name="New Person",
            employee_number="4711",
        )
        assert user.role == "user"
        assert user.email == "new@example.com"
        assert user.employee_number == "4711"
        assert user.password_hash != "long-enough"

    def test_duplicate_email_rejected(self, db_session, regular_user):
        with pytest.raises(ValueError, match="already exists"):
            auth_service.register(
                email="USER@example.com", password="long-enough", display_name="Dup"
            )

    def test_underscore_email_is_not_a_wildcard(self, db_session):
        user_service.create_user("jxdoe@example.com", "J X Doe", "long-enough")
        user = user_service.create_user("j_doe@example.com", "J Doe", "long-enough")

        assert user_service.get_user_by_email("J_DOE@example.com") == user
        assert user_service.get_user_by_email("j%@example.com") is None


class TestAuthenticate:
    """Tests for auth_service.authenticate()."""

    def test_valid_credentials(self, db_session, regular_user):
        assert auth_service.authenticate("user@example.com", "user-pass-123") == regular_user

    def test_wrong_password(self, db_session, regular_user):
        with pytest.raises(ValueError, match="Invalid email or password"):
            auth_service.authenticate("user@example.com", "nope-nope")

    def test_unknown_email_same_message(self, db_session):
        with pytest.raises(ValueError, match="Invalid email or password"):
            auth_service.authenticate("ghost@example.com", "whatever1")

    def test_deactivated_account(self, db_session, admin_user, regular_user):
        user_service.deactivate_user(regular_user.id, changed_by=admin_user.id)
        with pytest.raises(ValueError, match="deactivated"):
            auth_service.authenticate("user@example.com", "user-pass-123")

    def test_wildcard_email_matches_nobody(self, db_session, regular_user):
        with pytest.raises(ValueError, match="Invalid email or password"):
            auth_service.authenticate("%", "user-pass-123")
        with pytest.raises(ValueError, match="Invalid email or password"):
            auth_service.authenticate("user_example.com", "user-pass-123")


class TestLoginLogout:
    """Tests for process_login() / process_logout() session handling."""

    def test_login_and_logout_audited(self, app, regular_user):
        with app.test_request_context("/auth/login", method="POST"):
            from flask import session  # pylint: disable=import-outside-toplevel

            assert auth_service.process_login(regular_user) is True
            assert "user_role" not in session
            session["advisor_suggestion"] = [1]

            assert auth_service.process_logout(regular_user.id) is True
            assert "advisor_suggestion" not in session

        actions = [
            log.action_type
            for log in AuditLog.query.filter_by(user_id=regular_user.id).all()
        ]
        assert "LOGIN" in actions
        assert "LOGOUT" in actions
        assert regular_user.last_login is not None


class TestUserService:
    """Tests for the admin-facing user_service functions."""

    def test_update_role(self, db_session, admin_user, regular_user):
        user_service.update_user(regular_user.id, role="admin", changed_by=admin_user.id)
        assert regular_user.is_admin

    def test_update_unknown_role(self, db_session, regular_user):
        with pytest.raises(ValueError, match="Role"):
            user_service.update_user(regular_user.id, role="superuser")

    def test_cannot_deactivate_self(self, db_session, admin_user):
        with pytest.raises(ValueError, match="own account"):
            user_service.deactivate_user(admin_user.id, changed_by=admin_user.id)

    def test_inactive_users_hidden_by_default(self, db_session, admin_user, regular_user):
        user_service.deactivate_user(regular_user.id, changed_by=admin_user.id)
        active = user_service.get_all_users().items
        everyone = user_service.get_all_users(include_inactive=True).items
        assert regular_user not in active
        assert regular_user in everyone


class TestBestEffortSessionAudit:
    """A failing LOGIN/LOGOUT audit write is logged, not raised."""

    def test_login_survives_audit_failure(self, app, regular_user, monkeypatch, caplog):
        def _fail(user_id, action_type):
            raise OperationalError("INSERT INTO audit_log", {}, Exception("disk full"))

        monkeypatch.setattr(audit_service, "log_session_event", _fail)
        with app.test_request_context("/auth/login", method="POST"):
            with caplog.at_level(logging.ERROR):
                assert auth_service.process_login(regular_user) is False

        assert "Audit write failed for LOGIN" in caplog.text
        assert AuditLog.query.filter_by(action_type="LOGIN").count() == 0
