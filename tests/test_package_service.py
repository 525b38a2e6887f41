"""Tests for assetverse.services.package_service and the payment endpoints.

All provider traffic is mocked via patch.object on the module-level
``payment_gateway`` singleton.
"""

from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from assetverse.core.exceptions import NotFoundError, ValidationError
from assetverse.integrations.payment_gateway import CheckoutOutcome, PaymentSessionInvalid, payment_gateway
from assetverse.models import db
from assetverse.models.package import Package, Payment
from assetverse.services import package_service


@pytest.fixture()
def catalog():
    package_service.seed_default_packages()
    return {p.name: p for p in db.session.execute(select(Package)).scalars().all()}


def _outcome(package, email="hr@acme.test", status="paid", intent="pi_123"):
    return CheckoutOutcome(
        session_id="cs_test_1",
        payment_status=status,
        customer_email=email,
        amount_total=int(package.price * 100),
        payment_intent_id=intent,
        metadata={"packageId": str(package.id), "employeeLimit": str(package.employee_limit)},
    )


def _payments():
    return db.session.execute(select(func.count(Payment.id))).scalar_one()


class TestCatalog:
    def test_seed_is_idempotent(self):
        assert package_service.seed_default_packages() == 3
        assert package_service.seed_default_packages() == 0

    def test_list_sorted_by_price(self, catalog):
        names = [p["name"] for p in package_service.list_packages()]
        assert names == ["Basic", "Standard", "Premium"]

    def test_packages_endpoint_is_public(self, client, catalog):
        res = client.get("/packages")
        assert res.status_code == 200
        assert res.get_json()[1] == {
            "id": catalog["Standard"].id,
            "name": "Standard",
            "price": 8.0,
            "employee_limit": 10,
            "features": ["All Basic features", "Advanced Analytics", "Priority Support"],
        }


class TestCheckout:
    def test_checkout_urls_and_metadata(self, client, auth_headers, make_hr, catalog):
        hr = make_hr()
        with patch.object(payment_gateway, "create_checkout_session",
                          return_value={"id": "cs_1", "url": "https://checkout.test/cs_1"}) as mock_create:
            res = client.post("/create-checkout-session", json={"package_id": catalog["Premium"].id},
                              headers=auth_headers(hr.email))

        assert res.status_code == 200
        assert res.get_json() == {"url": "https://checkout.test/cs_1"}
        kwargs = mock_create.call_args.kwargs
        assert kwargs["unit_amount"] == 1500
        assert kwargs["customer_email"] == hr.email
        assert kwargs["metadata"] == {"packageId": catalog["Premium"].id, "employeeLimit": 20}
        assert kwargs["success_url"] == "http://localhost:5173/payment-success?session_id={CHECKOUT_SESSION_ID}"
        assert kwargs["cancel_url"] == "http://localhost:5173/upgrade-package"

    def test_unknown_package(self, client, auth_headers, make_hr, catalog):
        hr = make_hr()
        res = client.post("/create-checkout-session", json={"package_id": 999}, headers=auth_headers(hr.email))
        assert res.status_code == 404

    def test_employee_cannot_checkout(self, client, auth_headers, make_employee, catalog):
        emp = make_employee()
        res = client.post("/create-checkout-session", json={"package_id": 1}, headers=auth_headers(emp.email))
        assert res.status_code == 403


class TestReconcile:
    def test_credit_once(self, make_hr, catalog):
        make_hr()
        with patch.object(payment_gateway, "retrieve_session", return_value=_outcome(catalog["Standard"])):
            receipt = package_service.reconcile_payment("cs_test_1")

        assert receipt["status"] == "credited"
        assert receipt["package_limit"] == 15
        assert receipt["payment"]["transaction_id"] == "pi_123"
        assert receipt["payment"]["amount"] == 8.0
        assert _payments() == 1

    def test_replay_does_not_credit_again(self, make_hr, catalog):
        hr = make_hr()
        with patch.object(payment_gateway, "retrieve_session", return_value=_outcome(catalog["Basic"])):
            package_service.reconcile_payment("cs_test_1")
            replay = package_service.reconcile_payment("cs_test_1")

        assert replay["status"] == "already_processed"
        db.session.refresh(hr)
        assert hr.package_limit == 10
        assert _payments() == 1

    def test_unpaid_session_changes_nothing(self, make_hr, catalog):
        hr = make_hr()
        with patch.object(payment_gateway, "retrieve_session",
                          return_value=_outcome(catalog["Basic"], status="unpaid")):
            receipt = package_service.reconcile_payment("cs_test_1")

        assert receipt["status"] == "unpaid"
        assert receipt["payment_status"] == "unpaid"
        db.session.refresh(hr)
        assert hr.package_limit == 5
        assert _payments() == 0

    def test_unknown_hr_rolls_back_payment(self, catalog):
        with patch.object(payment_gateway, "retrieve_session",
                          return_value=_outcome(catalog["Basic"], email="ghost@acme.test")):
            with pytest.raises(NotFoundError) as exc:
                package_service.reconcile_payment("cs_test_1")
        assert exc.value.code == "HR_NOT_FOUND"
        assert _payments() == 0

    def test_missing_customer_email(self, catalog):
        with patch.object(payment_gateway, "retrieve_session",
                          return_value=_outcome(catalog["Basic"], email=None)):
            with pytest.raises(ValidationError) as exc:
                package_service.reconcile_payment("cs_test_1")
        assert exc.value.code == "SESSION_INVALID"

    def test_payment_success_endpoint(self, client, auth_headers, make_hr, catalog):
        hr = make_hr()
        headers = auth_headers(hr.email)
        with patch.object(payment_gateway, "retrieve_session", return_value=_outcome(catalog["Premium"])):
            first = client.post("/payment-success", json={"session_id": "cs_test_1"}, headers=headers)
            second = client.post("/payment-success", json={"session_id": "cs_test_1"}, headers=headers)

        assert first.status_code == 201
        assert first.get_json()["package_limit"] == 25
        assert second.status_code == 200
        assert second.get_json()["status"] == "already_processed"

        res = client.get(f"/payments/{hr.email}", headers=headers)
        assert [p["package_name"] for p in res.get_json()] == ["Premium"]

    def test_invalid_session_is_422(self, client, auth_headers, make_hr, catalog):
        hr = make_hr()
        with patch.object(payment_gateway, "retrieve_session", side_effect=PaymentSessionInvalid("cs_bad")):
            res = client.post("/payment-success", json={"session_id": "cs_bad"}, headers=auth_headers(hr.email))
        assert res.status_code == 422
        assert res.get_json()["code"] == "SESSION_INVALID"

    def test_session_id_required(self, client, auth_headers, make_hr):
        hr = make_hr()
        res = client.post("/payment-success", json={}, headers=auth_headers(hr.email))
        assert res.status_code == 422

    def test_cannot_list_someone_elses_payments(self, client, auth_headers, make_hr):
        make_hr()
        other = make_hr(email="hr@globex.test", company_name="Globex")
        res = client.get("/payments/hr@acme.test", headers=auth_headers(other.email))
        assert res.status_code == 403
