"""
Database connectivity and schema verification tests.

These tests confirm that:
  - The application can connect to its configured database.
  - The tables the models declare are all created.

Run from your project root with::

    pytest tests/test_services/test_db_connection.py -v
"""

from sqlalchemy import inspect

from tech_inventory.extensions import db


class TestDatabaseConnectivity:
    """Verify that the app can talk to the database."""

    def test_basic_connection(self, app):
        """
        Execute a simple SELECT 1 query to confirm the database
        is reachable and the connection string is correct.
        """
        with app.app_context():
            result = db.session.execute(db.text("SELECT 1 AS connected"))
            row = result.fetchone()
            assert row is not None
            assert row[0] == 1


class TestTablesExist:
    """Verify that every application table was created."""

    def test_application_tables_exist(self, app):
        """The user, asset and audit_log tables should all be present."""
        with app.app_context():
            tables = set(inspect(db.engine).get_table_names())
        assert {"user", "asset", "audit_log"} <= tables
