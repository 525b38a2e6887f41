"""
Account Service — registration, profiles, role lookup and seat counters.

Role Guard:
    authorize(email, required_role) is the single role check used by the
    require_role decorator.  A missing account or a role mismatch is an
    AuthorizationError (403); a store failure is an InfrastructureError
    (500) so the two are never confused.

Seat counters:
    package_limit and current_employees are only changed through the
    helpers below.  They do NOT commit; the calling workflow operation owns
    the transaction and commits once all of its writes are staged.  The
    seat decrement is a conditional UPDATE (``WHERE package_limit > 0``) so
    two concurrent approvals can never push the limit below zero even if
    both passed validation.

Per-HR serialisation:
    hr_lock(hr_email) is an in-process mutex per HR account.  Workflow
    operations hold it for their whole read-validate-write-commit sequence.
"""

import logging
import threading
from contextlib import contextmanager

from flask import current_app
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from assetverse.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from assetverse.models import db
from assetverse.models.account import ROLE_HR, VALID_ROLES, Account
from assetverse.utils.helpers import parse_date_input

logger = logging.getLogger(__name__)

_ROLE_DENIED_MESSAGE = {
    "hr": "Only HR actions",
    "employee": "Only employee actions",
}

_PROFILE_FIELDS = ("name", "profile_image")
_HR_PROFILE_FIELDS = ("company_logo",)

# One lock per HR email, never evicted; bounded by the number of HR accounts
_hr_locks: dict[str, threading.Lock] = {}
_hr_locks_guard = threading.Lock()


# ── Per-HR mutual exclusion ────────────────────────────────────────────────


@contextmanager
def hr_lock(hr_email: str):
    """Serialise workflow operations touching one HR account's counters."""
    key = (hr_email or "").lower()
    with _hr_locks_guard:
        lock = _hr_locks.setdefault(key, threading.Lock())
    with lock:
        yield


# ── Lookups ────────────────────────────────────────────────────────────────


def find_account(email: str) -> Account | None:
    if not email:
        return None
    return db.session.execute(
        select(Account).where(Account.email == email.lower())
    ).scalar_one_or_none()


def get_account(email: str) -> Account:
    account = find_account(email)
    if account is None:
        raise NotFoundError("User", email, code="USER_NOT_FOUND")
    return account


def get_role(email: str) -> str | None:
    """Return the stored role for email, or None for an unregistered user."""
    account = find_account(email)
    return account.role if account else None


def authorize(email: str, required_role: str) -> Account:
    """Role Guard: permit only an existing account holding required_role.

    Raises:
        AuthorizationError: no account, or role differs.
        InfrastructureError: the account store could not be queried.
    """
    try:
        account = find_account(email)
    except SQLAlchemyError as exc:
        logger.exception("Role lookup failed for %s", email)
        raise InfrastructureError("Account store unavailable") from exc

    if account is None or account.role != required_role:
        logger.warning(
            "Role guard denied %s: required=%s actual=%s",
            email, required_role, account.role if account else None,
            extra={"principal": email, "event_type": "role_denied"},
        )
        raise AuthorizationError(
            _ROLE_DENIED_MESSAGE.get(required_role, "Forbidden"),
            code="FORBIDDEN",
        )
    return account


# ── Registration & profile ─────────────────────────────────────────────────


def create_account(email: str, data: dict) -> dict:
    """Register an account on first sign-in.

    The email always comes from the verified identity token.  Seat counters
    are server-controlled: HR accounts start with DEFAULT_HR_PACKAGE_LIMIT.
    """
    email = (email or "").strip().lower()
    role = (data.get("role") or "").strip().lower()
    if role not in VALID_ROLES:
        raise ValidationError(
            f"Invalid role '{role}'. Must be one of: {', '.join(sorted(VALID_ROLES))}",
            details={"role": "hr | employee"},
        )
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})

    if find_account(email) is not None:
        raise ConflictError("USER_EXISTS", "User already exists")

    account = Account(
        email=email,
        role=role,
        name=name,
        profile_image=data.get("profile_image"),
        date_of_birth=parse_date_input(data.get("date_of_birth"), "date_of_birth"),
        package_limit=0,
        current_employees=0,
    )
    if role == ROLE_HR:
        company_name = (data.get("company_name") or "").strip()
        if not company_name:
            raise ValidationError("company_name is required for HR accounts",
                                  details={"company_name": "required"})
        account.company_name = company_name
        account.company_logo = data.get("company_logo")
        account.package_limit = current_app.config.get("DEFAULT_HR_PACKAGE_LIMIT", 5)

    db.session.add(account)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("USER_EXISTS", "User already exists") from exc

    logger.info("Account registered: %s (%s)", email, role,
                extra={"principal": email, "event_type": "account_created"})
    return account.to_dict()


def update_profile(email: str, data: dict) -> dict:
    """Edit profile fields.  Role, email and seat counters are not editable."""
    account = get_account(email)

    for field in _PROFILE_FIELDS:
        if field in data:
            setattr(account, field, data[field])
    if "date_of_birth" in data:
        account.date_of_birth = parse_date_input(data["date_of_birth"], "date_of_birth")
    if account.is_hr:
        for field in _HR_PROFILE_FIELDS:
            if field in data:
                setattr(account, field, data[field])

    if not (account.name or "").strip():
        raise ValidationError("name cannot be empty", details={"name": "required"})

    db.session.commit()
    return account.to_dict()


# ── Seat counters (no commit, caller owns the transaction) ─────────────────


def try_consume_seat(hr_email: str, is_new_employee: bool) -> bool:
    """Decrement package_limit by one if a seat is left.

    Also bumps current_employees when this is the first link between the
    HR and the employee.  Returns False (and changes nothing) when the
    limit is already exhausted.
    """
    values = {"package_limit": Account.package_limit - 1}
    if is_new_employee:
        values["current_employees"] = Account.current_employees + 1
    result = db.session.execute(
        update(Account)
        .where(Account.email == hr_email, Account.package_limit > 0)
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount == 1


def release_seat(hr_email: str, drop_employee: bool) -> None:
    """Compensation for try_consume_seat: give the seat back."""
    values = {"package_limit": Account.package_limit + 1}
    if drop_employee:
        values["current_employees"] = Account.current_employees - 1
    db.session.execute(
        update(Account)
        .where(Account.email == hr_email)
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )


def credit_seats(hr_email: str, seats: int) -> None:
    """Top up package_limit after a confirmed payment."""
    result = db.session.execute(
        update(Account)
        .where(Account.email == hr_email)
        .values(package_limit=Account.package_limit + seats)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        raise NotFoundError("HR", hr_email, code="HR_NOT_FOUND")
