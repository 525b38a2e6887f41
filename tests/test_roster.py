"""Tests for assetverse.services.roster_service."""

from datetime import date

from assetverse.services import roster_service, workflow_service


def test_employee_with_two_companies(make_hr, make_employee, make_asset):
    acme = make_hr()
    globex = make_hr(email="hr@globex.test", company_name="Globex")
    emp = make_employee()
    workflow_service.assign_directly(acme.email, emp.email, make_asset(acme).id)
    workflow_service.assign_directly(globex.email, emp.email, make_asset(globex, "Phone").id)

    companies = roster_service.companies_of_employee(emp.email)

    assert [c["company_name"] for c in companies] == ["Acme", "Globex"]
    assert companies[1]["hr_email"] == "hr@globex.test"
    assert companies[0]["company_logo"] == "https://logo.test/acme.png"


def test_asset_count_includes_returned_history(make_hr, make_employee, make_asset):
    hr = make_hr()
    emp = make_employee()
    first = workflow_service.assign_directly(hr.email, emp.email, make_asset(hr, "Laptop").id)
    workflow_service.assign_directly(hr.email, emp.email, make_asset(hr, "Monitor").id)
    workflow_service.return_assignment(emp.email, first["id"])

    roster = roster_service.employees_of_hr(hr.email)

    assert roster == [{"name": "Eli Employee", "email": emp.email, "image": None, "asset_count": 2}]


def test_team_carries_birthdays_and_positions(make_hr, make_employee, make_asset):
    hr = make_hr()
    emp = make_employee(date_of_birth=date(1990, 7, 4))
    make_employee(email="outsider@acme.test", name="Outsider")
    workflow_service.assign_directly(hr.email, emp.email, make_asset(hr).id)

    team = roster_service.team_of_company("Acme")

    by_email = {m["email"]: m for m in team}
    assert set(by_email) == {"emp@acme.test", "hr@acme.test"}
    assert by_email["emp@acme.test"]["upcoming_birthday"] == "1990-07-04"
    assert by_email["hr@acme.test"]["position"] == "hr"


def test_unknown_company_is_empty():
    assert roster_service.team_of_company("Nope") == []
    assert roster_service.employees_of_hr("nobody@x.test") == []
