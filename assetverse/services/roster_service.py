"""
Roster queries — read-only views over affiliations.

    employees_of_hr(hr_email)        affiliated employees + assignment count
    team_of_company(company_name)    employees of a company plus its HR
    companies_of_employee(email)     companies an employee belongs to

No matches is an empty list, never an error.
"""

from sqlalchemy import func, select

from assetverse.models import db, iso
from assetverse.models.account import Account
from assetverse.models.affiliation import Affiliation
from assetverse.models.assignment import Assignment


def employees_of_hr(hr_email: str) -> list[dict]:
    hr_email = hr_email.lower()
    emails = db.session.execute(
        select(Affiliation.employee_email).where(Affiliation.hr_email == hr_email).distinct()
    ).scalars().all()
    if not emails:
        return []

    counts = dict(db.session.execute(
        select(Assignment.employee_email, func.count(Assignment.id))
        .where(Assignment.hr_email == hr_email, Assignment.employee_email.in_(emails))
        .group_by(Assignment.employee_email)
    ).all())
    employees = db.session.execute(
        select(Account).where(Account.email.in_(emails)).order_by(Account.name.asc())
    ).scalars().all()
    return [
        {
            "name": emp.name,
            "email": emp.email,
            "image": emp.profile_image,
            "asset_count": counts.get(emp.email, 0),
        }
        for emp in employees
    ]


def team_of_company(company_name: str) -> list[dict]:
    affiliations = db.session.execute(
        select(Affiliation).where(Affiliation.company_name == company_name)
    ).scalars().all()
    if not affiliations:
        return []

    member_emails = {a.employee_email for a in affiliations}
    member_emails.update(a.hr_email for a in affiliations)
    members = db.session.execute(
        select(Account).where(Account.email.in_(member_emails)).order_by(Account.name.asc())
    ).scalars().all()
    return [
        {
            "name": m.name,
            "email": m.email,
            "photo": m.profile_image,
            "position": m.role,
            "upcoming_birthday": iso(m.date_of_birth),
        }
        for m in members
    ]


def companies_of_employee(employee_email: str) -> list[dict]:
    rows = db.session.execute(
        select(Affiliation)
        .where(Affiliation.employee_email == employee_email.lower())
        .order_by(Affiliation.affiliation_date.asc(), Affiliation.id.asc())
    ).scalars().all()
    return [
        {
            "company_name": a.company_name,
            "company_logo": a.company_logo,
            "hr_email": a.hr_email,
            "affiliation_date": iso(a.affiliation_date),
        }
        for a in rows
    ]
