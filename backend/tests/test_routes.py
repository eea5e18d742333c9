# Overview: Pytest coverage for the JSON API surface.

"""
API Route Tests

Verifies:
- Requests without gateway identity headers return 401
- Management endpoints reject non-management roles (403)
- Domain errors map to their HTTP status with {"error", "details"}
- Happy paths for sales, loyalty, rates, discounts, employees and reports
"""

import pytest

from shopsettle.models import Sale


# =============================================================================
# IDENTITY: 401 / 403
# =============================================================================


class TestIdentity:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/sales/complete"),
            ("GET", "/api/sales/"),
            ("GET", "/api/loyalty/status?cid=A"),
            ("GET", "/api/reports/settlement"),
            ("POST", "/api/payouts/"),
        ],
    )
    def test_missing_headers_rejected(self, client, db_session, method, path):
        response = client.open(path, method=method, json={})
        assert response.status_code == 401

    def test_employee_from_other_tenant_rejected(self, client, db_session, org_a, owner_b):
        headers = {"X-Org-Id": str(org_a.id), "X-Employee-Id": str(owner_b.id)}
        response = client.get("/api/sales/", headers=headers)
        assert response.status_code == 401

    def test_inactive_employee_rejected(self, client, db_session, mechanic_a, headers_for):
        headers = headers_for(mechanic_a)
        mechanic_a.is_active = False
        db_session.commit()
        assert client.get("/api/sales/", headers=headers).status_code == 401

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/reports/settlement"),
            ("GET", "/api/reports/weekly"),
            ("POST", "/api/commission-rates/"),
            ("POST", "/api/discounts/"),
            ("POST", "/api/employees/"),
            ("POST", "/api/employee-sales/"),
            ("POST", "/api/payouts/"),
        ],
    )
    def test_mechanic_denied_management(self, client, db_session, mechanic_a, headers_for, method, path):
        response = client.open(path, method=method, json={}, headers=headers_for(mechanic_a))
        assert response.status_code == 403


# =============================================================================
# SALES
# =============================================================================


class TestSalesRoutes:
    def test_complete_sale(self, client, db_session, mechanic_a, rates_a, headers_for, make_cart):
        response = client.post("/api/sales/complete", headers=headers_for(mechanic_a), json={
            "invoice_number": "API-1",
            "items": make_cart(("Oil change", 4500, 1), ("Filter", 1250, 2)),
            "cid": "c-77",
            "loyalty_action": "double",
        })

        assert response.status_code == 201
        sale = response.json["sale"]
        assert sale["total_cents"] == 7000
        assert sale["cid"] == "C-77"
        assert len(sale["lines"]) == 2

        status = client.get("/api/loyalty/status?cid=c-77", headers=headers_for(mechanic_a))
        assert status.json == {"cid": "C-77", "stamp_count": 2, "ready": False}

        fetched = client.get(f"/api/sales/{sale['id']}", headers=headers_for(mechanic_a))
        assert fetched.status_code == 200
        assert fetched.json["sale"]["invoice_number"] == "API-1"

    def test_duplicate_invoice_is_409(self, client, db_session, mechanic_a, headers_for, make_cart):
        body = {"invoice_number": "API-2", "items": make_cart(("Wash", 1000, 1))}
        assert client.post("/api/sales/complete", headers=headers_for(mechanic_a), json=body).status_code == 201

        response = client.post("/api/sales/complete", headers=headers_for(mechanic_a), json=body)
        assert response.status_code == 409
        assert response.json["error"] == "Invoice number already exists"
        assert response.json["details"] == {"invoice_number": "API-2"}
        assert db_session.query(Sale).count() == 1

    def test_validation_error_is_400(self, client, db_session, mechanic_a, headers_for):
        response = client.post("/api/sales/complete", headers=headers_for(mechanic_a), json={"invoice_number": "API-3", "items": []})
        assert response.status_code == 400
        assert response.json["error"] == "Add at least one item"

    def test_unknown_discount_is_404(self, client, db_session, mechanic_a, headers_for, make_cart):
        response = client.post("/api/sales/complete", headers=headers_for(mechanic_a), json={
            "invoice_number": "API-4",
            "items": make_cart(("Wash", 1000, 1)),
            "discount_id": 12345,
        })
        assert response.status_code == 404

    def test_redeem_without_stamps_is_409(self, client, db_session, mechanic_a, headers_for, make_cart):
        response = client.post("/api/sales/complete", headers=headers_for(mechanic_a), json={
            "invoice_number": "API-5",
            "items": make_cart(("Wash", 1000, 1)),
            "cid": "C1",
            "loyalty_action": "redeem",
        })
        assert response.status_code == 409
        assert response.json["details"]["stamp_count"] == 0

    def test_sale_from_other_tenant_is_404(self, client, db_session, mechanic_a, owner_b, headers_for, make_cart):
        created = client.post("/api/sales/complete", headers=headers_for(mechanic_a), json={
            "invoice_number": "API-6",
            "items": make_cart(("Wash", 1000, 1)),
        })
        sale_id = created.json["sale"]["id"]
        assert client.get(f"/api/sales/{sale_id}", headers=headers_for(owner_b)).status_code == 404

    def test_list_sales(self, client, db_session, mechanic_a, headers_for, make_cart):
        for number in ("L-1", "L-2"):
            client.post("/api/sales/complete", headers=headers_for(mechanic_a), json={
                "invoice_number": number,
                "items": make_cart(("Wash", 1000, 1)),
            })
        response = client.get("/api/sales/", headers=headers_for(mechanic_a))
        assert [s["invoice_number"] for s in response.json["sales"]] == ["L-2", "L-1"]


# =============================================================================
# MANAGEMENT
# =============================================================================


class TestManagementRoutes:
    def test_rates_lifecycle(self, client, db_session, owner_a, headers_for):
        headers = headers_for(owner_a)
        created = client.post("/api/commission-rates/", headers=headers, json={"role": "Master Tech", "rate": 0.2})
        assert created.status_code == 200
        assert created.json["rate"]["role"] == "master_tech"
        assert created.json["rate"]["rate_bps"] == 2000

        bad = client.post("/api/commission-rates/", headers=headers, json={"role": "mechanic", "rate": 2})
        assert bad.status_code == 400
        assert bad.json["error"] == "Maximum 1.0"

        listed = client.get("/api/commission-rates/", headers=headers)
        assert [r["role"] for r in listed.json["rates"]] == ["master_tech"]

        rate_id = created.json["rate"]["id"]
        assert client.delete(f"/api/commission-rates/{rate_id}", headers=headers).status_code == 200
        assert client.delete(f"/api/commission-rates/{rate_id}", headers=headers).status_code == 404

    def test_discounts(self, client, db_session, owner_a, mechanic_a, headers_for):
        created = client.post("/api/discounts/", headers=headers_for(owner_a), json={"name": "Loyal", "percentage": 0.05})
        assert created.status_code == 201
        listed = client.get("/api/discounts/", headers=headers_for(mechanic_a))
        assert [d["percentage_bps"] for d in listed.json["discounts"]] == [500]

        discount_id = created.json["discount"]["id"]
        assert client.delete(f"/api/discounts/{discount_id}", headers=headers_for(owner_a)).status_code == 200

    def test_employees(self, client, db_session, owner_a, headers_for):
        created = client.post("/api/employees/", headers=headers_for(owner_a), json={
            "username": "fred",
            "role": "Shop Foreman",
            "full_name": "Fred Foreman",
        })
        assert created.status_code == 201
        assert created.json["employee"]["role"] == "shop_foreman"
        assert created.json["employee"]["role_label"] == "Shop Foreman"

        bad = client.post("/api/employees/", headers=headers_for(owner_a), json={"username": "x", "role": "painter"})
        assert bad.status_code == 400

        listed = client.get("/api/employees/", headers=headers_for(owner_a))
        assert [e["username"] for e in listed.json["employees"]] == ["fred", "olivia"]

    def test_employee_sale_and_reports(self, client, db_session, owner_a, mechanic_a, rates_a, headers_for):
        headers = headers_for(owner_a)
        recorded = client.post("/api/employee-sales/", headers=headers, json={
            "employee_id": mechanic_a.id,
            "invoice_number": "EMP-1",
            "amount_cents": 20000,
        })
        assert recorded.status_code == 201
        assert recorded.json["employee_sale"]["commission_total_cents"] == 2000

        settlement = client.get("/api/reports/settlement", headers=headers)
        assert settlement.status_code == 200
        mike = next(r for r in settlement.json["rows"] if r["employee_id"] == mechanic_a.id)
        assert mike["total_sales_cents"] == 20000
        assert mike["commission_total_cents"] == 2000

        weekly = client.get("/api/reports/weekly?weeks=2", headers=headers)
        assert weekly.status_code == 200
        assert len(weekly.json["buckets"]) == 2
        assert weekly.json["buckets"][-1]["rows"][0]["employee_id"] == mechanic_a.id

        assert client.get("/api/reports/weekly?weeks=abc", headers=headers).status_code == 400
        assert client.get("/api/reports/weekly?weeks=0", headers=headers).status_code == 400

        payout = client.post("/api/payouts/", headers=headers, json={
            "employee_id": mechanic_a.id,
            "bonus_cents": 1000,
            "salary_cents": 0,
        })
        assert payout.status_code == 201
        assert payout.json["payout"]["net_cents"] == 3000

        entries = client.get("/api/employee-sales/", headers=headers)
        assert [e["invoice_number"] for e in entries.json["employee_sales"]] == ["EMP-1"]

    def test_health(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json["checks"]["database"]["status"] == "healthy"
