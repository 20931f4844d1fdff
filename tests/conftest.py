"""
Pytest configuration and shared fixtures.

Provides a test application, database session, test client and signed-in
clients that all test modules can use.  Uses the ``testing`` configuration,
which points at an in-memory SQLite database; each test gets a fresh app
and therefore a fresh, empty schema.

Route tests must not hold an application context open while they make
requests (the request would reuse it, and with it Flask-Login's cached
user), so the client fixtures create their data in short-lived contexts.
"""

from datetime import date

import pytest

from tech_inventory import create_app
from tech_inventory.extensions import db as _db
from tech_inventory.models.user import ROLE_ADMIN, ROLE_USER
from tech_inventory.services import asset_service, user_service

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-pass-123"
USER_EMAIL = "user@example.com"
USER_PASSWORD = "user-pass-123"


@pytest.fixture(scope="function")
def app(tmp_path):
    """
    Create a Flask application configured for testing.

    Uploads go to a per-test temporary folder.
    """
    app = create_app("testing")
    app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")

    with app.app_context():
        _db.create_all()

    yield app

    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="function")
def db_session(app):  # pylint: disable=redefined-outer-name
    """
    Provide the database session inside an application context.

    For service-level tests only; route tests use ``client``.
    """
    with app.app_context():
        yield _db.session


@pytest.fixture(scope="function")
def client(app):  # pylint: disable=redefined-outer-name
    """
    Provide a Flask test client for making HTTP requests.

    Usage in tests::

        def test_dashboard(client):
            response = client.get("/")
            assert response.status_code == 302
    """
    return app.test_client()


# -- Users -----------------------------------------------------------------


@pytest.fixture(scope="function")
def admin_user(db_session):  # pylint: disable=redefined-outer-name,unused-argument
    """An admin account, for service tests."""
    return user_service.create_user(
        email=ADMIN_EMAIL,
        display_name="Ada Admin",
        password=ADMIN_PASSWORD,
        role=ROLE_ADMIN,
    )


@pytest.fixture(scope="function")
def regular_user(db_session):  # pylint: disable=redefined-outer-name,unused-argument
    """A non-admin account, for service tests."""
    return user_service.create_user(
        email=USER_EMAIL,
        display_name="Uma User",
        password=USER_PASSWORD,
        role=ROLE_USER,
    )


def login(client, email, password):  # pylint: disable=redefined-outer-name
    """Sign in through the real login form."""
    return client.post(
        "/auth/login",
        data={"email": email, "password": password},
        follow_redirects=False,
    )


def _create_account(app, email, password, role):  # pylint: disable=redefined-outer-name
    with app.app_context():
        user = user_service.create_user(
            email=email,
            display_name=email.split("@")[0].title(),
            password=password,
            role=role,
        )
        return user.id


@pytest.fixture(scope="function")
def admin_client(app, client):  # pylint: disable=redefined-outer-name
    """A test client signed in as an admin."""
    _create_account(app, ADMIN_EMAIL, ADMIN_PASSWORD, ROLE_ADMIN)
    login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    return client


@pytest.fixture(scope="function")
def user_client(app, client):  # pylint: disable=redefined-outer-name
    """A test client signed in as a regular user."""
    _create_account(app, USER_EMAIL, USER_PASSWORD, ROLE_USER)
    login(client, USER_EMAIL, USER_PASSWORD)
    return client


# -- Assets ----------------------------------------------------------------


@pytest.fixture(scope="function")
def make_asset(app):  # pylint: disable=redefined-outer-name
    """
    Factory that stores an asset in its own app context and returns its id.

    Usage in route tests::

        asset_id = make_asset(name="Old Monitor", product_type="Monitor")
    """

    def _make(
        name="Dell Laptop",
        product_type="Laptop",
        model="Latitude 5420",
        serial_number="SN-00001",
        purchase_date=date(2020, 1, 15),
    ):
        with app.app_context():
            asset = asset_service.create_asset(
                name=name,
                product_type=product_type,
                model=model,
                serial_number=serial_number,
                purchase_date=purchase_date,
                user_id=None,
            )
            return asset.id

    return _make
