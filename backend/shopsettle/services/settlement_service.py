"""
Settlement reporting: all-time employee totals and rolling weekly buckets.

WHY: Managers pay commission from these figures, so they must be
reproducible. Every report re-derives commission from the stored sales with
the same allocator the register uses; nothing is cached.

ORDERING:
- All-time rows follow employee username.
- Weekly rows are sorted by sales, highest first. Equal sales keep the order
  in which the employee was first seen: register sales by (created_at, id),
  then manual sales by (created_at, id), then payouts.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..errors import ValidationError
from ..models import Employee, EmployeeSale, Payout, Sale
from ..models.tenancy import MAX_REPORT_WEEKS
from ..time_utils import as_utc_naive, format_week_label, to_utc_z, utcnow, week_ranges
from ..validation import coerce_amount_cents
from .commission_service import CommissionAllocator
from .concurrency import unit_of_work
from .staff_service import get_employee_in_org, list_employees
from .tenant_service import TenantConfig, load_tenant_config


def find_week_index(ranges: list[tuple[datetime, datetime]], moment: datetime | None) -> int | None:
    """Index of the inclusive range containing `moment`, or None."""
    if moment is None:
        return None
    moment = as_utc_naive(moment)
    for index, (start, end) in enumerate(ranges):
        if start <= moment <= end:
            return index
    return None


def _empty_row(employee_id: int) -> dict:
    return {
        "employee_id": employee_id,
        "total_sales_cents": 0,
        "commission_total_cents": 0,
        "bonus_cents": 0,
        "salary_cents": 0,
    }


class SettlementAggregator:
    def __init__(self, config: TenantConfig, allocator: CommissionAllocator | None = None):
        self.config = config
        self.allocator = allocator or CommissionAllocator(config)

    def _sales(self, start: datetime | None = None, end: datetime | None = None) -> list[Sale]:
        q = (
            db.session.query(Sale)
            .options(selectinload(Sale.lines), selectinload(Sale.owner))
            .filter(Sale.org_id == self.config.org_id)
        )
        if start is not None:
            q = q.filter(Sale.created_at >= start)
        if end is not None:
            q = q.filter(Sale.created_at <= end)
        return q.order_by(Sale.created_at.asc(), Sale.id.asc()).all()

    def _employee_sales(self, start: datetime | None = None, end: datetime | None = None) -> list[EmployeeSale]:
        q = (
            db.session.query(EmployeeSale)
            .options(selectinload(EmployeeSale.employee))
            .filter(EmployeeSale.org_id == self.config.org_id)
        )
        if start is not None:
            q = q.filter(EmployeeSale.created_at >= start)
        if end is not None:
            q = q.filter(EmployeeSale.created_at <= end)
        return q.order_by(EmployeeSale.created_at.asc(), EmployeeSale.id.asc()).all()

    def _payouts(self, start: datetime, end: datetime) -> list[Payout]:
        return (
            db.session.query(Payout)
            .filter(
                Payout.org_id == self.config.org_id,
                Payout.created_at >= start,
                Payout.created_at <= end,
            )
            .order_by(Payout.created_at.asc(), Payout.id.asc())
            .all()
        )

    def sales_totals(self) -> dict[int, dict]:
        """All-time {employee_id: {total_sales_cents, commission_total_cents}}."""
        sales = self._sales()
        employee_sales = self._employee_sales()

        totals: dict[int, dict] = {}
        for sale in sales:
            row = totals.setdefault(sale.owner_id, _empty_row(sale.owner_id))
            row["total_sales_cents"] += sale.total_cents
        for entry in employee_sales:
            row = totals.setdefault(entry.employee_id, _empty_row(entry.employee_id))
            row["total_sales_cents"] += entry.amount_cents

        allocations = self.allocator.totals_by_employee(sales, employee_sales)
        for employee_id, allocation in allocations.items():
            totals[employee_id]["commission_total_cents"] = allocation.commission_cents
        return totals

    def employee_totals(self) -> dict:
        totals = self.sales_totals()
        rows = []
        for employee in list_employees(self.config.org_id, active_only=True):
            figures = totals.get(employee.id, _empty_row(employee.id))
            rows.append({
                "employee_id": employee.id,
                "display_name": employee.display_name,
                "role": employee.role,
                "total_sales_cents": figures["total_sales_cents"],
                "commission_total_cents": figures["commission_total_cents"],
            })

        return {
            "currency": self.config.currency_code,
            "use_profit_basis": self.config.use_profit_basis,
            "rows": rows,
            "grand_total_sales_cents": sum(r["total_sales_cents"] for r in rows),
            "grand_total_commission_cents": sum(r["commission_total_cents"] for r in rows),
        }

    def weekly_buckets(self, weeks: int | None = None, now: datetime | None = None) -> dict:
        if weeks is None:
            weeks = self.config.report_weeks
        if weeks < 1 or weeks > MAX_REPORT_WEEKS:
            raise ValidationError(f"weeks must be between 1 and {MAX_REPORT_WEEKS}")

        ranges = week_ranges(weeks, now=now)
        window_start, window_end = ranges[0][0], ranges[-1][1]
        buckets: list[dict[int, dict]] = [{} for _ in ranges]

        for sale in self._sales(window_start, window_end):
            index = find_week_index(ranges, sale.created_at)
            if index is None:
                continue
            allocation = self.allocator.allocate_sale(sale)
            row = buckets[index].setdefault(sale.owner_id, _empty_row(sale.owner_id))
            row["total_sales_cents"] += sale.total_cents
            row["commission_total_cents"] += allocation.commission_cents

        for entry in self._employee_sales(window_start, window_end):
            index = find_week_index(ranges, entry.created_at)
            if index is None:
                continue
            allocation = self.allocator.allocate_employee_sale(entry)
            row = buckets[index].setdefault(entry.employee_id, _empty_row(entry.employee_id))
            row["total_sales_cents"] += entry.amount_cents
            row["commission_total_cents"] += allocation.commission_cents

        for payout in self._payouts(window_start, window_end):
            index = find_week_index(ranges, payout.created_at)
            if index is None:
                continue
            row = buckets[index].setdefault(payout.employee_id, _empty_row(payout.employee_id))
            row["bonus_cents"] += payout.bonus_cents
            row["salary_cents"] += payout.salary_cents

        employees = {
            e.id: e
            for e in db.session.query(Employee).filter_by(org_id=self.config.org_id).all()
        }

        result = []
        for (start, end), bucket in zip(ranges, buckets):
            rows = []
            for row in bucket.values():
                employee = employees.get(row["employee_id"])
                row["display_name"] = employee.display_name if employee else "Unknown employee"
                row["role"] = employee.role if employee else None
                row["net_cents"] = row["commission_total_cents"] + row["bonus_cents"] + row["salary_cents"]
                rows.append(row)
            # list.sort is stable with reverse=True, so ties keep discovery order
            rows.sort(key=lambda r: r["total_sales_cents"], reverse=True)
            result.append({
                "week_label": format_week_label(start, end),
                "week_start": to_utc_z(start),
                "week_end": to_utc_z(end),
                "rows": rows,
            })

        return {
            "currency": self.config.currency_code,
            "weeks": weeks,
            "buckets": result,
        }


def settlement_report(org_id: int) -> dict:
    return SettlementAggregator(load_tenant_config(org_id)).employee_totals()


def weekly_report(org_id: int, weeks: int | None = None, now: datetime | None = None) -> dict:
    return SettlementAggregator(load_tenant_config(org_id)).weekly_buckets(weeks=weeks, now=now)


def pay_employee(
    org_id: int,
    employee_id: int,
    paid_by_id: int | None,
    bonus_cents=0,
    salary_cents=0,
) -> Payout:
    """
    Record a payout, snapshotting the employee's all-time settlement figures.
    """
    config = load_tenant_config(org_id)
    employee = get_employee_in_org(employee_id, org_id)
    bonus = coerce_amount_cents(bonus_cents if bonus_cents is not None else 0, "bonus_cents")
    salary = coerce_amount_cents(salary_cents if salary_cents is not None else 0, "salary_cents")

    figures = SettlementAggregator(config).sales_totals().get(employee.id, _empty_row(employee.id))

    payout = Payout(
        org_id=org_id,
        employee_id=employee.id,
        paid_by_id=paid_by_id,
        sales_total_cents=figures["total_sales_cents"],
        commission_total_cents=figures["commission_total_cents"],
        bonus_cents=bonus,
        salary_cents=salary,
        created_at=utcnow(),
    )
    with unit_of_work("record payout"):
        db.session.add(payout)

    current_app.logger.info(
        "Recorded payout %s for employee %s: commission=%s bonus=%s salary=%s",
        payout.id,
        employee.id,
        payout.commission_total_cents,
        bonus,
        salary,
    )
    return payout
