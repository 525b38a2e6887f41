"""Tests for the operator CLI commands registered by create_app."""

from sqlalchemy import func, select

from assetverse.models import db
from assetverse.models.account import Account
from assetverse.models.package import Package
from assetverse.services import workflow_service


def test_seed_packages(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["seed-packages"])
    assert result.exit_code == 0
    assert "Seeded 3 new packages." in result.output
    db.session.expire_all()
    assert db.session.execute(select(func.count(Package.id))).scalar_one() == 3


def test_revert_approval_unknown_request(app):
    result = app.test_cli_runner().invoke(args=["revert-approval", "999"])
    assert result.exit_code != 0
    assert "REQUEST_NOT_FOUND" in result.output


def test_revert_assignment(app, make_hr, make_employee, make_asset):
    hr = make_hr()
    emp = make_employee()
    assignment = workflow_service.assign_directly(hr.email, emp.email, make_asset(hr).id)
    hr_id = hr.id
    db.session.close()

    result = app.test_cli_runner().invoke(args=["revert-assignment", str(assignment["id"])])

    assert result.exit_code == 0, result.output
    assert db.session.get(Account, hr_id).package_limit == 5


def test_issue_dev_token(app):
    result = app.test_cli_runner().invoke(args=["issue-dev-token", "dev@acme.test"])
    assert result.exit_code == 0
    assert result.output.count(".") == 2
