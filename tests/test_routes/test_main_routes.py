"""
Smoke tests for the main blueprint routes.

These verify that the application starts up correctly and the
dashboard and health check endpoints respond.
"""

from datetime import date


class TestDashboard:
    """Tests for the inventory dashboard landing page."""

    def test_anonymous_redirected_to_login(self, client):
        """The dashboard requires a signed-in user."""
        response = client.get("/")
        assert response.status_code == 302
        assert "/auth/login" in response.headers["Location"]

    def test_dashboard_returns_200(self, user_client):
        response = user_client.get("/")
        assert response.status_code == 200
        assert b"Tech Inventory" in response.data

    def test_lists_assets_newest_first(self, user_client, make_asset):
        make_asset(name="Old Monitor", product_type="Monitor", purchase_date=date(2016, 1, 1))
        make_asset(name="Fresh Laptop", purchase_date=date(2025, 1, 1))

        html = user_client.get("/").get_data(as_text=True)
        assert html.index("Fresh Laptop") < html.index("Old Monitor")

    def test_search_and_status_filter(self, user_client, make_asset):
        make_asset(name="Reception Printer", product_type="Printer", serial_number="PR-11111")
        make_asset(name="Dev Laptop", serial_number="LP-22222")

        html = user_client.get("/?q=printer").get_data(as_text=True)
        assert "Reception Printer" in html
        assert "Dev Laptop" not in html

        html = user_client.get("/?status=disposed").get_data(as_text=True)
        assert "No assets match" in html

    def test_regular_user_sees_no_admin_actions(self, user_client, make_asset):
        make_asset()
        html = user_client.get("/").get_data(as_text=True)
        assert "AI evaluate" not in html
        assert "Add asset" not in html

    def test_admin_sees_actions(self, admin_client, make_asset):
        make_asset()
        html = admin_client.get("/").get_data(as_text=True)
        assert "Dispose" in html
        assert "Delete" in html

    def test_suggestion_highlighted(self, admin_client, make_asset):
        asset_id = make_asset()
        with admin_client.session_transaction() as sess:
            sess["advisor_suggestion"] = [asset_id, 9999]

        html = admin_client.get("/").get_data(as_text=True)
        assert "table-suggested" in html
        assert "1 asset(s) highlighted" in html


class TestHealthCheck:
    """Tests for the health check endpoint."""

    def test_health_check_returns_200(self, client):
        """The health check should return HTTP 200 and report the database."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "healthy", "database": "connected"}
