# Overview: Pytest coverage for settlement totals, weekly buckets and payouts.

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event

from shopsettle.extensions import db
from shopsettle.errors import ReferenceNotFoundError, ValidationError
from shopsettle.models import Employee, EmployeeSale, Payout, Sale, SaleLine
from shopsettle.services import settlement_service
from shopsettle.services.settlement_service import SettlementAggregator, find_week_index
from shopsettle.services.tenant_service import load_tenant_config
from shopsettle.time_utils import week_ranges


# Wednesday; the current week runs Mon 16 Mar - Sun 22 Mar 2026
NOW = datetime(2026, 3, 18, 12, 0)


def add_sale(session, employee, total_cents, created_at, invoice, override=None):
    sale = Sale(
        org_id=employee.org_id,
        owner_id=employee.id,
        invoice_number=invoice,
        subtotal_cents=total_cents,
        discount_cents=0,
        total_cents=total_cents,
        profit_total_cents=0,
        created_at=created_at,
    )
    sale.lines.append(SaleLine(
        item_name="Labour",
        quantity=1,
        unit_price_cents=total_cents,
        line_total_cents=total_cents,
        commission_flat_override_cents=override,
    ))
    session.add(sale)
    session.commit()
    return sale


def add_manual(session, employee, amount_cents, created_at, invoice):
    entry = EmployeeSale(
        org_id=employee.org_id,
        employee_id=employee.id,
        invoice_number=invoice,
        amount_cents=amount_cents,
        created_at=created_at,
    )
    session.add(entry)
    session.commit()
    return entry


class TestWeekRanges:
    def test_ranges_are_consecutive_and_inclusive(self):
        ranges = week_ranges(3, now=NOW)
        assert [start.date().isoformat() for start, _ in ranges] == ["2026-03-02", "2026-03-09", "2026-03-16"]
        assert ranges[-1][1] == datetime(2026, 3, 22, 23, 59, 59, 999999)

    def test_find_week_index_edges(self):
        ranges = week_ranges(2, now=NOW)
        assert find_week_index(ranges, datetime(2026, 3, 9, 0, 0)) == 0
        assert find_week_index(ranges, datetime(2026, 3, 15, 23, 59, 59, 999999)) == 0
        assert find_week_index(ranges, datetime(2026, 3, 16, 0, 0)) == 1
        assert find_week_index(ranges, datetime(2026, 3, 8, 23, 59)) is None
        assert find_week_index(ranges, None) is None

    def test_aware_moment_converted_to_utc(self):
        ranges = week_ranges(2, now=NOW)
        plus_five = timezone(timedelta(hours=5))
        # 02:00 on Monday at +05:00 is still Sunday evening in UTC
        assert find_week_index(ranges, datetime(2026, 3, 16, 2, 0, tzinfo=plus_five)) == 0
        assert find_week_index(ranges, datetime(2026, 3, 16, 6, 0, tzinfo=plus_five)) == 1


class TestEmployeeTotals:
    def test_all_time_rows_ordered_by_username(self, db_session, org_a, owner_a, mechanic_a, apprentice_a, rates_a):
        add_sale(db_session, mechanic_a, 10000, datetime(2025, 1, 5), "T-1")
        add_sale(db_session, mechanic_a, 5000, datetime(2026, 3, 17), "T-2", override=1500)
        add_sale(db_session, owner_a, 4000, datetime(2026, 3, 17), "T-3")
        add_manual(db_session, apprentice_a, 2500, datetime(2026, 3, 17), "T-4")

        report = settlement_service.settlement_report(org_a.id)
        rows = {row["display_name"]: row for row in report["rows"]}

        assert [row["display_name"] for row in report["rows"]] == ["andy", "Mike Wrench", "Olivia Owner"]
        assert rows["Mike Wrench"]["total_sales_cents"] == 15000
        assert rows["Mike Wrench"]["commission_total_cents"] == 1000 + 1500
        assert rows["Olivia Owner"]["commission_total_cents"] == 200
        assert rows["andy"]["total_sales_cents"] == 2500
        assert rows["andy"]["commission_total_cents"] == 0
        assert report["grand_total_sales_cents"] == 21500
        assert report["grand_total_commission_cents"] == 2700

    def test_inactive_employees_hidden(self, db_session, org_a, mechanic_a, owner_a):
        mechanic_a.is_active = False
        db_session.commit()
        report = settlement_service.settlement_report(org_a.id)
        assert [row["employee_id"] for row in report["rows"]] == [owner_a.id]

    def test_query_count_independent_of_sale_count(self, db_session, org_a, owner_a, mechanic_a, rates_a):
        aggregator = SettlementAggregator(load_tenant_config(org_a.id))
        add_sale(db_session, mechanic_a, 1000, datetime(2026, 3, 10), "Q-1")
        single = count_queries(aggregator.sales_totals)

        add_sale(db_session, owner_a, 2000, datetime(2026, 3, 11), "Q-2")
        add_sale(db_session, mechanic_a, 3000, datetime(2026, 3, 12), "Q-3")
        db_session.expire_all()
        assert count_queries(aggregator.sales_totals) == single

    def test_other_tenant_sales_excluded(self, db_session, org_a, owner_a, owner_b):
        add_sale(db_session, owner_b, 9999, datetime(2026, 3, 17), "X-1")
        report = settlement_service.settlement_report(org_a.id)
        assert report["grand_total_sales_cents"] == 0


def count_queries(func):
    statements = []

    def before_execute(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(db.engine, "before_cursor_execute", before_execute)
    try:
        func()
    finally:
        event.remove(db.engine, "before_cursor_execute", before_execute)
    return len(statements)


class TestWeeklyBuckets:
    def test_bucket_windowing_and_sorting(self, db_session, org_a, owner_a, mechanic_a, apprentice_a, rates_a):
        add_sale(db_session, mechanic_a, 10000, datetime(2026, 3, 10, 9, 0), "W-1")
        add_manual(db_session, apprentice_a, 5000, datetime(2026, 3, 16, 8, 0), "W-2")
        add_sale(db_session, owner_a, 5000, datetime(2026, 3, 17, 9, 0), "W-3")
        add_sale(db_session, mechanic_a, 20000, datetime(2026, 3, 18, 9, 0), "W-4")
        add_sale(db_session, mechanic_a, 77700, datetime(2026, 3, 1, 9, 0), "W-OLD")

        db_session.add(Payout(
            org_id=org_a.id,
            employee_id=mechanic_a.id,
            commission_total_cents=0,
            bonus_cents=1000,
            salary_cents=2000,
            created_at=datetime(2026, 3, 18, 10, 0),
        ))
        db_session.commit()

        report = settlement_service.weekly_report(org_a.id, weeks=2, now=NOW)
        previous, current = report["buckets"]

        assert previous["week_label"] == "09/03/26 - 15/03/26"
        assert current["week_label"] == "16/03/26 - 22/03/26"
        assert current["week_start"] == "2026-03-16T00:00:00Z"

        assert [(r["employee_id"], r["total_sales_cents"]) for r in previous["rows"]] == [(mechanic_a.id, 10000)]

        # Equal sales keep discovery order: register sales before manual ones
        assert [r["employee_id"] for r in current["rows"]] == [mechanic_a.id, owner_a.id, apprentice_a.id]

        mechanic_row = current["rows"][0]
        assert mechanic_row["total_sales_cents"] == 20000
        assert mechanic_row["commission_total_cents"] == 2000
        assert mechanic_row["bonus_cents"] == 1000
        assert mechanic_row["salary_cents"] == 2000
        assert mechanic_row["net_cents"] == 5000
        assert mechanic_row["display_name"] == "Mike Wrench"

        total_reported = sum(r["total_sales_cents"] for b in report["buckets"] for r in b["rows"])
        assert total_reported == 40000

    def test_aware_now_uses_utc_week(self, db_session, org_a, mechanic_a, rates_a):
        add_sale(db_session, mechanic_a, 3000, datetime(2026, 3, 15, 19, 0), "TZ-1")
        now = datetime(2026, 3, 16, 1, 0, tzinfo=timezone(timedelta(hours=5)))

        report = settlement_service.weekly_report(org_a.id, weeks=2, now=now)
        previous, current = report["buckets"]

        assert current["week_label"] == "09/03/26 - 15/03/26"
        assert current["week_end"] == "2026-03-15T23:59:59Z"
        assert [r["total_sales_cents"] for r in current["rows"]] == [3000]
        assert previous["rows"] == []

        utc_report = settlement_service.weekly_report(org_a.id, weeks=2, now=datetime.now(timezone.utc))
        assert utc_report["weeks"] == 2

    def test_weeks_default_from_tenant(self, db_session, org_a):
        org_a.report_weeks = 4
        db_session.commit()
        report = settlement_service.weekly_report(org_a.id, now=NOW)
        assert report["weeks"] == 4
        assert len(report["buckets"]) == 4
        assert all(bucket["rows"] == [] for bucket in report["buckets"])

    @pytest.mark.parametrize("weeks", [0, 53])
    def test_weeks_out_of_range(self, db_session, org_a, weeks):
        with pytest.raises(ValidationError):
            settlement_service.weekly_report(org_a.id, weeks=weeks, now=NOW)

    def test_aggregator_accepts_injected_config(self, db_session, org_a, mechanic_a):
        add_sale(db_session, mechanic_a, 1000, datetime(2026, 3, 17), "I-1")
        aggregator = SettlementAggregator(load_tenant_config(org_a.id))
        report = aggregator.weekly_buckets(weeks=1, now=NOW)
        # No rate configured for mechanic in this test
        assert report["buckets"][0]["rows"][0]["commission_total_cents"] == 0


class TestPayouts:
    def test_payout_snapshots_totals(self, db_session, org_a, owner_a, mechanic_a, rates_a):
        add_sale(db_session, mechanic_a, 12000, datetime(2026, 3, 17), "P-1")

        payout = settlement_service.pay_employee(org_a.id, mechanic_a.id, owner_a.id, bonus_cents=500, salary_cents=30000)

        assert payout.sales_total_cents == 12000
        assert payout.commission_total_cents == 1200
        assert payout.net_cents == 1200 + 500 + 30000
        assert payout.paid_by_id == owner_a.id

    def test_payout_validation(self, db_session, org_a, owner_a, mechanic_a, owner_b):
        with pytest.raises(ValidationError):
            settlement_service.pay_employee(org_a.id, mechanic_a.id, owner_a.id, bonus_cents=-5)
        with pytest.raises(ReferenceNotFoundError):
            settlement_service.pay_employee(org_a.id, owner_b.id, owner_a.id)
        assert db_session.query(Payout).count() == 0
