"""Concurrency tests for the seat accounting in workflow_service.

Runs approvals and direct assignments from parallel threads against a
file-backed SQLite database (the in-memory one is a single shared
connection).  A threading.Barrier releases every worker at once so they
all race for the same HR's package_limit.
"""

import threading

import pytest
from sqlalchemy import func, select

from assetverse import create_app
from assetverse.config import TestingConfig
from assetverse.core.exceptions import AssetVerseError
from assetverse.models import db
from assetverse.models.account import ROLE_EMPLOYEE, ROLE_HR, Account
from assetverse.models.affiliation import Affiliation
from assetverse.models.asset import RETURNABLE, Asset
from assetverse.models.assignment import Assignment
from assetverse.services import workflow_service as wf

HR_EMAIL = "hr@acme.test"


@pytest.fixture()
def file_app(tmp_path, monkeypatch):
    """A second app bound to a SQLite file so threads get real connections."""
    monkeypatch.setattr(TestingConfig, "SQLALCHEMY_DATABASE_URI",
                        f"sqlite:///{tmp_path / 'concurrency.db'}")
    application = create_app("testing")
    with application.app_context():
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _seed(app, package_limit, employees, assets=1, quantity=100):
    """Create one HR, the given employees and assets; return asset ids."""
    with app.app_context():
        db.session.add(Account(email=HR_EMAIL, role=ROLE_HR, name="Hannah HR", company_name="Acme",
                               package_limit=package_limit, current_employees=0))
        for email in employees:
            db.session.add(Account(email=email, role=ROLE_EMPLOYEE, name=email.split("@")[0],
                                   package_limit=0, current_employees=0))
        rows = [
            Asset(hr_email=HR_EMAIL, company_name="Acme", product_name=f"Asset {i}",
                  product_type=RETURNABLE, product_quantity=quantity, available_quantity=quantity)
            for i in range(assets)
        ]
        db.session.add_all(rows)
        db.session.commit()
        return [a.id for a in rows]


def _race(app, calls):
    """Run each (fn, args) in its own thread, released together.  Returns outcomes."""
    barrier = threading.Barrier(len(calls))
    outcomes = []
    outcomes_lock = threading.Lock()

    def worker(fn, args):
        with app.app_context():
            barrier.wait()
            try:
                fn(*args)
                outcome = "ok"
            except AssetVerseError as exc:
                outcome = exc.code
            except Exception as exc:  # surfaced through the outcome list
                outcome = repr(exc)
            with outcomes_lock:
                outcomes.append(outcome)

    threads = [threading.Thread(target=worker, args=call) for call in calls]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return outcomes


def _totals(app):
    with app.app_context():
        hr = db.session.execute(select(Account).where(Account.email == HR_EMAIL)).scalar_one()
        return {
            "package_limit": hr.package_limit,
            "current_employees": hr.current_employees,
            "affiliations": db.session.execute(select(func.count(Affiliation.id))).scalar_one(),
            "assignments": db.session.execute(select(func.count(Assignment.id))).scalar_one(),
        }


def test_parallel_direct_assignments_never_overdraw_seats(file_app):
    employees = [f"emp{i}@acme.test" for i in range(10)]
    (asset_id,) = _seed(file_app, package_limit=2, employees=employees)

    outcomes = _race(file_app, [(wf.assign_directly, (HR_EMAIL, email, asset_id)) for email in employees])

    assert sorted(outcomes) == ["LIMIT_REACHED"] * 8 + ["ok"] * 2
    assert _totals(file_app) == {
        "package_limit": 0,
        "current_employees": 2,
        "affiliations": 2,
        "assignments": 2,
    }
    with file_app.app_context():
        assert db.session.get(Asset, asset_id).available_quantity == 98


def test_parallel_approvals_for_one_employee_count_them_once(file_app):
    employee = "emp@acme.test"
    asset_ids = _seed(file_app, package_limit=10, employees=[employee], assets=6)
    with file_app.app_context():
        requester = db.session.execute(select(Account).where(Account.email == employee)).scalar_one()
        request_ids = [wf.submit_asset_request(requester, asset_id)["id"] for asset_id in asset_ids]

    outcomes = _race(file_app, [(wf.approve_request, (rid, HR_EMAIL)) for rid in request_ids])

    assert outcomes == ["ok"] * 6
    assert _totals(file_app) == {
        "package_limit": 4,
        "current_employees": 1,
        "affiliations": 1,
        "assignments": 6,
    }
