"""HTTP tests for account registration, profiles and the asset inventory."""

from assetverse.models import db
from assetverse.models.account import Account


# ── /users ───────────────────────────────────────────────────────────────


class TestRegistration:
    def test_register_hr_gets_default_seats(self, client, auth_headers):
        res = client.post(
            "/users",
            json={"role": "hr", "name": "Hannah", "company_name": "Acme",
                  "package_limit": 999, "current_employees": 7},
            headers=auth_headers("Hannah@Acme.test"),
        )
        assert res.status_code == 201
        body = res.get_json()
        assert body["email"] == "hannah@acme.test"
        assert body["role"] == "hr"
        assert body["package_limit"] == 5
        assert body["current_employees"] == 0

    def test_register_employee(self, client, auth_headers):
        res = client.post(
            "/users",
            json={"role": "employee", "name": "Eli", "date_of_birth": "1994-03-12"},
            headers=auth_headers("eli@acme.test"),
        )
        assert res.status_code == 201
        body = res.get_json()
        assert body["date_of_birth"] == "1994-03-12"
        assert "package_limit" not in body

    def test_register_twice_conflicts(self, client, auth_headers):
        headers = auth_headers("eli@acme.test")
        client.post("/users", json={"role": "employee", "name": "Eli"}, headers=headers)
        res = client.post("/users", json={"role": "employee", "name": "Eli"}, headers=headers)
        assert res.status_code == 409
        assert res.get_json()["code"] == "USER_EXISTS"

    def test_hr_requires_company(self, client, auth_headers):
        res = client.post("/users", json={"role": "hr", "name": "H"}, headers=auth_headers("h@x.test"))
        assert res.status_code == 422
        assert "company_name" in res.get_json()["details"]

    def test_invalid_role(self, client, auth_headers):
        res = client.post("/users", json={"role": "admin", "name": "A"}, headers=auth_headers("a@x.test"))
        assert res.status_code == 422

    def test_role_lookup_after_registration(self, client, auth_headers, make_hr):
        hr = make_hr()
        res = client.get("/user/role", headers=auth_headers(hr.email))
        assert res.get_json() == {"role": "hr"}


class TestProfile:
    def test_get_user(self, client, auth_headers, make_hr, make_employee):
        hr = make_hr()
        make_employee()
        res = client.get(f"/users/{hr.email}", headers=auth_headers("emp@acme.test"))
        assert res.status_code == 200
        assert res.get_json()["company_name"] == "Acme"

    def test_get_unknown_user(self, client, auth_headers):
        res = client.get("/users/nobody@x.test", headers=auth_headers("a@x.test"))
        assert res.status_code == 404
        assert res.get_json()["code"] == "USER_NOT_FOUND"

    def test_update_profile_ignores_counters(self, client, auth_headers, make_hr):
        hr = make_hr()
        res = client.patch(
            "/user",
            json={"name": "Hannah R.", "company_logo": "https://logo.test/new.png", "package_limit": 100},
            headers=auth_headers(hr.email),
        )
        assert res.status_code == 200
        body = res.get_json()
        assert body["name"] == "Hannah R."
        assert body["company_logo"] == "https://logo.test/new.png"
        assert body["package_limit"] == 5

    def test_bad_birth_date(self, client, auth_headers, make_employee):
        emp = make_employee()
        res = client.patch("/user", json={"date_of_birth": "not-a-date"}, headers=auth_headers(emp.email))
        assert res.status_code == 422


# ── /assets ──────────────────────────────────────────────────────────────


class TestAssets:
    def test_create_and_fetch(self, client, auth_headers, make_hr):
        hr = make_hr()
        headers = auth_headers(hr.email)
        res = client.post(
            "/assets",
            json={"product_name": "Laptop", "product_type": "Returnable", "product_quantity": 4},
            headers=headers,
        )
        assert res.status_code == 201
        asset = res.get_json()
        assert asset["available_quantity"] == 4
        assert asset["hr_email"] == hr.email
        assert asset["company_name"] == "Acme"

        res = client.get(f"/assets/{asset['id']}", headers=headers)
        assert res.status_code == 200
        assert res.get_json()["product_name"] == "Laptop"

    def test_create_validates(self, client, auth_headers, make_hr):
        hr = make_hr()
        headers = auth_headers(hr.email)
        assert client.post("/assets", json={"product_quantity": 1}, headers=headers).status_code == 422
        res = client.post("/assets", json={"product_name": "X", "product_quantity": -1}, headers=headers)
        assert res.status_code == 422
        res = client.post("/assets", json={"product_name": "X", "product_quantity": 1,
                                           "product_type": "Borrowable"}, headers=headers)
        assert res.status_code == 422

    def test_search_and_type_filter(self, client, auth_headers, make_hr, make_asset):
        hr = make_hr()
        make_asset(hr, "Laptop")
        make_asset(hr, "Pen", product_type="Non-returnable")
        headers = auth_headers(hr.email)

        res = client.get("/assets?search=lap", headers=headers)
        assert [a["product_name"] for a in res.get_json()] == ["Laptop"]
        res = client.get("/assets?type=Non-returnable", headers=headers)
        assert [a["product_name"] for a in res.get_json()] == ["Pen"]

    def test_update_own_asset(self, client, auth_headers, make_hr, make_asset):
        hr = make_hr()
        asset = make_asset(hr)
        res = client.patch(f"/assets/{asset.id}", json={"product_name": "MacBook", "available_quantity": 1},
                           headers=auth_headers(hr.email))
        assert res.status_code == 200
        assert res.get_json()["product_name"] == "MacBook"
        assert res.get_json()["available_quantity"] == 1

    def test_update_rejects_unknown_fields(self, client, auth_headers, make_hr, make_asset):
        hr = make_hr()
        asset = make_asset(hr)
        res = client.patch(f"/assets/{asset.id}", json={"hr_email": "evil@x.test"},
                           headers=auth_headers(hr.email))
        assert res.status_code == 422

    def test_foreign_hr_cannot_touch_asset(self, client, auth_headers, make_hr, make_asset):
        hr = make_hr()
        other = make_hr(email="hr@globex.test", company_name="Globex")
        asset = make_asset(hr)
        headers = auth_headers(other.email)
        assert client.patch(f"/assets/{asset.id}", json={"product_name": "Y"}, headers=headers).status_code == 404
        assert client.delete(f"/assets/{asset.id}", headers=headers).status_code == 404

    def test_delete(self, client, auth_headers, make_hr, make_asset):
        hr = make_hr()
        asset = make_asset(hr)
        headers = auth_headers(hr.email)
        res = client.delete(f"/assets/{asset.id}", headers=headers)
        assert res.status_code == 200
        assert client.get(f"/assets/{asset.id}", headers=headers).status_code == 404

    def test_company_assets(self, client, auth_headers, make_hr, make_asset):
        hr = make_hr()
        other = make_hr(email="hr@globex.test", company_name="Globex")
        make_asset(hr, "Laptop")
        make_asset(other, "Phone")
        res = client.get(f"/company-assets/{hr.email}", headers=auth_headers(hr.email))
        assert [a["product_name"] for a in res.get_json()] == ["Laptop"]


def test_unknown_route_is_json_404(client):
    res = client.get("/does-not-exist")
    assert res.status_code == 404
    assert res.get_json()["error"] == "Not found"


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.get_json()["checks"]["database"]["status"] == "ok"


def test_accounts_table_untouched_by_failed_registration(client, auth_headers):
    client.post("/users", json={"role": "hr", "name": "H"}, headers=auth_headers("h@x.test"))
    assert db.session.query(Account).count() == 0
