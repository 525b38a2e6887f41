"""
Asset Workflow Engine — requests, approvals, direct assignments, returns.

Operations:
    submit_asset_request   employee asks for one unit of an asset
    assign_directly        HR hands an asset to an employee without a request
    approve_request        HR approves a pending request
    reject_request         HR rejects a pending request
    return_assignment      a held asset comes back to inventory

Every mutating operation follows the same shape:

    with hr_lock(hr_email), transaction("<operation>"):
        <all validation reads>     -> raise before anything is written
        <all writes>               -> conditional UPDATEs + inserts
                                   -> single commit on exit

hr_lock serialises operations on one HR's counters inside this process;
the HR row is additionally loaded ``FOR UPDATE`` so PostgreSQL serialises
across workers.  A failure after the first write rolls the whole
transaction back, so callers never observe a half-applied approval.

Compensating actions (revert_approval / revert_direct_assignment) undo a
completed approval or direct assignment step by step.  They are not run
automatically; operators invoke them through the ``flask revert-*`` CLI
commands when reconciling data.

Error codes raised (ConflictError unless noted):
    DUPLICATE_REQUEST, ALREADY_ASSIGNED, ALREADY_APPROVED, NOT_PENDING,
    LIMIT_REACHED, ASSET_UNAVAILABLE, ALREADY_RETURNED, NOT_RETURNABLE,
    NOT_APPROVED, CONCURRENT_UPDATE;
    REQUEST_NOT_FOUND, ASSET_NOT_FOUND, HR_NOT_FOUND, EMPLOYEE_NOT_FOUND,
    ASSIGNMENT_NOT_FOUND (NotFoundError).
"""

from __future__ import annotations

import logging

from flask import g, has_request_context
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from assetverse.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from assetverse.models import db, utcnow
from assetverse.models.account import ROLE_EMPLOYEE, Account
from assetverse.models.affiliation import STATUS_ACTIVE, Affiliation
from assetverse.models.asset import NON_RETURNABLE, Asset
from assetverse.models.asset_request import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    AssetRequest,
)
from assetverse.models.assignment import (
    SOURCE_DIRECT,
    SOURCE_REQUEST,
    STATUS_ASSIGNED,
    STATUS_RETURNED,
    Assignment,
)
from assetverse.services.account_service import (
    hr_lock,
    release_seat,
    try_consume_seat,
)
from assetverse.services.helpers.transactions import transaction

logger = logging.getLogger(__name__)

LIMIT_REACHED_MESSAGE = "Your Package has been Finished, Buy Package for Approve Assignment"


# ── Context helpers ───────────────────────────────────────────────────────────────────────────────────────────────────


def _log_extra(event_type: str, **fields) -> dict:
    extra = {"event_type": event_type, **fields}
    if has_request_context():
        extra["request_id"] = getattr(g, "request_id", None)
    return extra


# ── Reads used by validation ───────────────────────────────────────────────


def _load_hr(hr_email: str) -> Account:
    """Fresh, row-locked read of the HR account inside the current transaction."""
    hr = db.session.execute(
        select(Account)
        .where(Account.email == hr_email)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if hr is None:
        raise NotFoundError("HR", hr_email, code="HR_NOT_FOUND")
    return hr


def _load_asset(asset_id: int) -> Asset | None:
    return db.session.execute(
        select(Asset)
        .where(Asset.id == asset_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def _load_request(request_id: int) -> AssetRequest:
    req = db.session.execute(
        select(AssetRequest)
        .where(AssetRequest.id == request_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if req is None:
        raise NotFoundError("Request", request_id, code="REQUEST_NOT_FOUND")
    return req


def _held_assignment(asset_id: int, employee_email: str) -> Assignment | None:
    return db.session.execute(
        select(Assignment).where(
            Assignment.asset_id == asset_id,
            Assignment.employee_email == employee_email,
            Assignment.status == STATUS_ASSIGNED,
        ).limit(1)
    ).scalar_one_or_none()


def _find_affiliation(employee_email: str, hr_email: str) -> Affiliation | None:
    return db.session.execute(
        select(Affiliation).where(
            Affiliation.employee_email == employee_email,
            Affiliation.hr_email == hr_email,
        )
    ).scalar_one_or_none()


# ── Writes ─────────────────────────────────────────────────────────────────


def _take_one_unit(asset_id: int) -> bool:
    """Conditional decrement: never lets available_quantity go below zero."""
    result = db.session.execute(
        update(Asset)
        .where(Asset.id == asset_id, Asset.available_quantity > 0)
        .values(available_quantity=Asset.available_quantity - 1)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount == 1


def _put_back_one_unit(asset_id: int) -> None:
    db.session.execute(
        update(Asset)
        .where(Asset.id == asset_id)
        .values(available_quantity=Asset.available_quantity + 1)
        .execution_options(synchronize_session="fetch")
    )


def _consume_seat_or_refuse(hr_email: str, is_new_employee: bool) -> None:
    if not try_consume_seat(hr_email, is_new_employee):
        raise ConflictError("LIMIT_REACHED", LIMIT_REACHED_MESSAGE)


def _take_unit_or_refuse(asset_id: int) -> None:
    if not _take_one_unit(asset_id):
        raise ConflictError("ASSET_UNAVAILABLE", "Asset Not Available")


def _snapshot_assignment(asset: Asset, employee_email: str, employee_name: str | None,
                         hr: Account, source: str, request_id: int | None = None) -> Assignment:
    return Assignment(
        asset_id=asset.id,
        asset_name=asset.product_name,
        asset_image=asset.product_image,
        asset_type=asset.product_type,
        employee_email=employee_email,
        employee_name=employee_name,
        hr_email=hr.email,
        company_name=hr.company_name,
        status=STATUS_ASSIGNED,
        source=source,
        request_id=request_id,
        assignment_date=utcnow(),
    )


def _link_affiliation(employee_email: str, employee_name: str | None, hr: Account) -> Affiliation:
    affiliation = Affiliation(
        employee_email=employee_email,
        employee_name=employee_name,
        hr_email=hr.email,
        company_name=hr.company_name,
        company_logo=hr.company_logo,
        status=STATUS_ACTIVE,
        affiliation_date=utcnow(),
    )
    db.session.add(affiliation)
    return affiliation


# ═══════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════


def submit_asset_request(requester: Account, asset_id: int, hr_email: str | None = None,
                         note: str | None = None) -> dict:
    """Record a pending request for one unit of an asset.

    Any earlier request for the same (asset, requester), whether pending, approved
    or rejected, blocks a new one with DUPLICATE_REQUEST.
    """
    asset = db.session.get(Asset, asset_id)
    if asset is None:
        raise NotFoundError("Asset", asset_id)
    if hr_email is not None and not isinstance(hr_email, str):
        raise ValidationError("hr_email must be a string", details={"hr_email": "string expected"})
    if hr_email and hr_email.lower() != asset.hr_email:
        raise ValidationError(
            "hr_email does not own this asset",
            details={"hr_email": "must match the asset owner"},
        )

    existing = db.session.execute(
        select(AssetRequest.id).where(
            AssetRequest.asset_id == asset.id,
            AssetRequest.requester_email == requester.email,
        )
    ).first()
    if existing is not None:
        raise ConflictError("DUPLICATE_REQUEST", "Already Requested")

    req = AssetRequest(
        asset_id=asset.id,
        asset_name=asset.product_name,
        asset_type=asset.product_type,
        requester_email=requester.email,
        requester_name=requester.name,
        hr_email=asset.hr_email,
        company_name=asset.company_name,
        note=(note or "").strip() or None,
        request_status=STATUS_PENDING,
        request_date=utcnow(),
        approval_date=None,
    )
    db.session.add(req)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("DUPLICATE_REQUEST", "Already Requested") from exc

    logger.info("Asset request submitted id=%s asset=%s by %s", req.id, asset.id, requester.email,
                extra=_log_extra("request_submitted", hr_email=asset.hr_email,
                                 employee_email=requester.email, asset_id=asset.id, request_ref=req.id))
    return req.to_dict()


def list_hr_requests(hr_email: str, limit: int = 0, skip: int = 0) -> dict:
    """Requests addressed to one HR, newest first, with the unpaged total."""
    hr_email = hr_email.lower()
    stmt = (
        select(AssetRequest)
        .where(AssetRequest.hr_email == hr_email)
        .order_by(AssetRequest.request_date.desc(), AssetRequest.id.desc())
        .offset(skip)
    )
    if limit:
        stmt = stmt.limit(limit)
    rows = db.session.execute(stmt).scalars().all()
    total = db.session.execute(
        select(func.count(AssetRequest.id)).where(AssetRequest.hr_email == hr_email)
    ).scalar_one()
    return {"requests": [r.to_dict() for r in rows], "total": total}


def approve_request(request_id: int, approver_email: str) -> dict:
    """Approve a pending request and hand the asset over.

    Validation (in order): request exists, not already approved, still
    pending, asset exists, pair not already holding it, HR exists, seat
    left, unit left.  Then: seat consumed (+ employee counted when new),
    unit taken, assignment recorded, affiliation linked when new, request
    marked approved, all in one commit.

    The approving caller is not required to be the request's HR; the
    request's recorded hr_email is the account that pays the seat.
    """
    req = db.session.get(AssetRequest, request_id)
    if req is None:
        raise NotFoundError("Request", request_id, code="REQUEST_NOT_FOUND")
    hr_email = req.hr_email

    with hr_lock(hr_email), transaction("approve_request"):
        req = _load_request(request_id)
        if req.request_status == STATUS_APPROVED:
            raise ConflictError("ALREADY_APPROVED", "Request Already Approved")
        if req.request_status != STATUS_PENDING:
            raise ConflictError("NOT_PENDING", "Already Processed")

        asset = _load_asset(req.asset_id)
        if asset is None:
            raise NotFoundError("Asset", req.asset_id)
        if _held_assignment(asset.id, req.requester_email) is not None:
            raise ConflictError("ALREADY_ASSIGNED", "Already Assigned")
        hr = _load_hr(hr_email)
        if hr.package_limit <= 0:
            raise ConflictError("LIMIT_REACHED", LIMIT_REACHED_MESSAGE)
        if asset.available_quantity <= 0:
            raise ConflictError("ASSET_UNAVAILABLE", "Asset Not Available")
        is_new_employee = _find_affiliation(req.requester_email, hr_email) is None

        if approver_email != hr_email:
            logger.warning("Request %s approved by %s on behalf of %s", request_id, approver_email, hr_email,
                           extra=_log_extra("cross_hr_approval", hr_email=hr_email, request_ref=request_id))

        _consume_seat_or_refuse(hr_email, is_new_employee)
        _take_unit_or_refuse(asset.id)
        assignment = _snapshot_assignment(asset, req.requester_email, req.requester_name, hr,
                                          SOURCE_REQUEST, request_id=req.id)
        db.session.add(assignment)
        if is_new_employee:
            _link_affiliation(req.requester_email, req.requester_name, hr)
        req.request_status = STATUS_APPROVED
        req.approval_date = utcnow()
        req.processed_by = approver_email

    logger.info("Request %s approved: asset=%s employee=%s new_employee=%s",
                request_id, req.asset_id, req.requester_email, is_new_employee,
                extra=_log_extra("request_approved", hr_email=hr_email, asset_id=req.asset_id,
                                 employee_email=req.requester_email, request_ref=request_id))
    result = req.to_dict()
    result["assignment_id"] = assignment.id
    return result


def reject_request(request_id: int, approver_email: str) -> dict:
    """Reject a pending request.  No inventory, seat or affiliation effects."""
    req = db.session.get(AssetRequest, request_id)
    if req is None:
        raise NotFoundError("Request", request_id, code="REQUEST_NOT_FOUND")

    with hr_lock(req.hr_email), transaction("reject_request"):
        req = _load_request(request_id)
        if req.request_status != STATUS_PENDING:
            raise ConflictError("NOT_PENDING", "Already Processed")
        req.request_status = STATUS_REJECTED
        req.processed_by = approver_email

    logger.info("Request %s rejected by %s", request_id, approver_email,
                extra=_log_extra("request_rejected", hr_email=req.hr_email, request_ref=request_id))
    return req.to_dict()


# ═══════════════════════════════════════════════════════════════
# Direct assignment & returns
# ═══════════════════════════════════════════════════════════════


def assign_directly(hr_email: str, employee_email: str, asset_id: int) -> dict:
    """HR assigns one unit of its own asset to an employee without a request."""
    employee_email = (employee_email or "").strip().lower()
    if not employee_email:
        raise ValidationError("employee_email is required", details={"employee_email": "required"})

    with hr_lock(hr_email), transaction("assign_directly"):
        if _held_assignment(asset_id, employee_email) is not None:
            raise ConflictError("ALREADY_ASSIGNED", "Asset Already Assigned")
        hr = _load_hr(hr_email)
        if hr.package_limit <= 0:
            raise ConflictError("LIMIT_REACHED", LIMIT_REACHED_MESSAGE)

        asset = _load_asset(asset_id)
        if asset is None or asset.hr_email != hr_email:
            raise NotFoundError("Asset", asset_id)
        if asset.available_quantity <= 0:
            raise ConflictError("ASSET_UNAVAILABLE", "Asset Not Available")

        employee = db.session.execute(
            select(Account).where(Account.email == employee_email)
        ).scalar_one_or_none()
        if employee is None or employee.role != ROLE_EMPLOYEE:
            raise NotFoundError("Employee", employee_email, code="EMPLOYEE_NOT_FOUND")
        is_new_employee = _find_affiliation(employee_email, hr_email) is None

        _consume_seat_or_refuse(hr_email, is_new_employee)
        _take_unit_or_refuse(asset.id)
        assignment = _snapshot_assignment(asset, employee_email, employee.name, hr, SOURCE_DIRECT)
        db.session.add(assignment)
        if is_new_employee:
            _link_affiliation(employee_email, employee.name, hr)

    logger.info("Asset %s assigned directly to %s (new_employee=%s)", asset_id, employee_email, is_new_employee,
                extra=_log_extra("asset_assigned", hr_email=hr_email, asset_id=asset_id,
                                 employee_email=employee_email, assignment_id=assignment.id))
    return assignment.to_dict()


def return_assignment(caller_email: str, assignment_id: int) -> dict:
    """Mark a held assignment returned and put the unit back in stock.

    Only the holding employee or the owning HR may return it.  Assets
    registered as Non-returnable stay with the employee.
    """
    assignment = db.session.get(Assignment, assignment_id)
    if assignment is None:
        raise NotFoundError("Assignment", assignment_id)
    if caller_email not in (assignment.employee_email, assignment.hr_email):
        raise AuthorizationError("Not allowed to return this asset")

    with hr_lock(assignment.hr_email), transaction("return_assignment"):
        assignment = db.session.execute(
            select(Assignment)
            .where(Assignment.id == assignment_id)
            .execution_options(populate_existing=True)
        ).scalar_one()
        if assignment.status == STATUS_RETURNED:
            raise ConflictError("ALREADY_RETURNED", "Asset already returned")

        asset = _load_asset(assignment.asset_id)
        product_type = asset.product_type if asset is not None else assignment.asset_type
        if product_type == NON_RETURNABLE:
            raise ConflictError("NOT_RETURNABLE", "This asset is not returnable")

        assignment.status = STATUS_RETURNED
        assignment.return_date = utcnow()
        if asset is not None:
            _put_back_one_unit(asset.id)

    logger.info("Assignment %s returned by %s", assignment_id, caller_email,
                extra=_log_extra("asset_returned", hr_email=assignment.hr_email,
                                 asset_id=assignment.asset_id, assignment_id=assignment_id))
    return assignment.to_dict()


# ═══════════════════════════════════════════════════════════════
# Compensating actions
# ═══════════════════════════════════════════════════════════════


def _unwind_assignment(assignment: Assignment) -> dict:
    """Undo the writes of one approval / direct assignment, in reverse order.

    1. delete the affiliation if this was the pair's only assignment
    2. delete the assignment record
    3. give the unit back (only if still held; a return already did it)
    4. give the seat back (and uncount the employee if step 1 ran)
    """
    others = db.session.execute(
        select(func.count(Assignment.id)).where(
            Assignment.employee_email == assignment.employee_email,
            Assignment.hr_email == assignment.hr_email,
            Assignment.id != assignment.id,
        )
    ).scalar_one()
    affiliation = _find_affiliation(assignment.employee_email, assignment.hr_email)
    drop_employee = others == 0 and affiliation is not None
    if drop_employee:
        db.session.delete(affiliation)

    asset_id, hr_email = assignment.asset_id, assignment.hr_email
    restock = assignment.status == STATUS_ASSIGNED and _load_asset(asset_id) is not None
    db.session.delete(assignment)
    if restock:
        _put_back_one_unit(asset_id)
    release_seat(hr_email, drop_employee)
    return {"affiliation_removed": drop_employee, "unit_restocked": restock, "seat_released": True}


def revert_approval(request_id: int, operator: str = "operator") -> dict:
    """Compensate a completed approval.

    The request stays terminal: it is marked rejected, with operator recorded
    in processed_by, so it cannot be approved a second time.
    """
    req = db.session.get(AssetRequest, request_id)
    if req is None:
        raise NotFoundError("Request", request_id, code="REQUEST_NOT_FOUND")

    with hr_lock(req.hr_email), transaction("revert_approval"):
        req = _load_request(request_id)
        if req.request_status != STATUS_APPROVED:
            raise ConflictError("NOT_APPROVED", "Only approved requests can be reverted")
        assignment = db.session.execute(
            select(Assignment).where(
                Assignment.request_id == req.id,
                Assignment.source == SOURCE_REQUEST,
            )
        ).scalar_one_or_none()
        if assignment is None:
            raise NotFoundError("Assignment", f"for request {request_id}")
        summary = _unwind_assignment(assignment)
        req.request_status = STATUS_REJECTED
        req.approval_date = None
        req.processed_by = operator

    logger.warning("Approval of request %s reverted", request_id,
                   extra=_log_extra("approval_reverted", hr_email=req.hr_email, request_ref=request_id))
    return {"request": req.to_dict(), **summary}


def revert_direct_assignment(assignment_id: int) -> dict:
    """Compensate a completed direct assignment."""
    assignment = db.session.get(Assignment, assignment_id)
    if assignment is None:
        raise NotFoundError("Assignment", assignment_id)
    if assignment.source != SOURCE_DIRECT:
        raise ValidationError("Assignment was created by a request approval; revert the approval instead")
    hr_email = assignment.hr_email

    with hr_lock(hr_email), transaction("revert_direct_assignment"):
        summary = _unwind_assignment(assignment)

    logger.warning("Direct assignment %s reverted", assignment_id,
                   extra=_log_extra("assignment_reverted", hr_email=hr_email, assignment_id=assignment_id))
    return {"assignment_id": assignment_id, **summary}
