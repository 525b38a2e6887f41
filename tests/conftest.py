"""
Shared pytest fixtures for the AssetVerse test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - auth_headers: factory → Authorization header for an email
    - make_hr / make_employee / make_asset: row factories
"""

import pytest

from assetverse import create_app
from assetverse.models import db as _db
from assetverse.models.account import ROLE_EMPLOYEE, ROLE_HR, Account
from assetverse.models.asset import RETURNABLE, Asset
from assetverse.services.identity_service import issue_dev_token


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Auth helpers ─────────────────────────────────────────────────────────


@pytest.fixture()
def auth_headers():
    """Return a function building a Bearer header for the given email."""

    def _headers(email):
        return {"Authorization": f"Bearer {issue_dev_token(email)}"}

    return _headers


# ── Row factories ────────────────────────────────────────────────────────


@pytest.fixture()
def make_hr():
    def _make(email="hr@acme.test", company_name="Acme", package_limit=5, name="Hannah HR"):
        hr = Account(
            email=email,
            role=ROLE_HR,
            name=name,
            company_name=company_name,
            company_logo=f"https://logo.test/{company_name.lower()}.png",
            package_limit=package_limit,
            current_employees=0,
        )
        _db.session.add(hr)
        _db.session.commit()
        return hr

    return _make


@pytest.fixture()
def make_employee():
    def _make(email="emp@acme.test", name="Eli Employee", date_of_birth=None):
        emp = Account(
            email=email,
            role=ROLE_EMPLOYEE,
            name=name,
            date_of_birth=date_of_birth,
            package_limit=0,
            current_employees=0,
        )
        _db.session.add(emp)
        _db.session.commit()
        return emp

    return _make


@pytest.fixture()
def make_asset():
    def _make(hr, product_name="Laptop", quantity=3, product_type=RETURNABLE):
        asset = Asset(
            hr_email=hr.email,
            company_name=hr.company_name,
            product_name=product_name,
            product_type=product_type,
            product_image="https://img.test/asset.png",
            product_quantity=quantity,
            available_quantity=quantity,
        )
        _db.session.add(asset)
        _db.session.commit()
        return asset

    return _make
