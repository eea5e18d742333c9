# Overview: Commission allocation for register sales and manual employee sales.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ..models import EmployeeSale, Sale
from ..money import clamp, round_cents
from .legacy_notes import decode_settlement_tokens


ZERO = Decimal(0)
ONE = Decimal(1)


def discount_multiplier(subtotal_cents: int, total_cents: int) -> Decimal:
    """
    Share of the pre-discount subtotal the customer actually paid.

    Spreads a cart-level discount across every line for commission purposes.
    Always within [0, 1], even for inconsistent stored totals.
    """
    if not subtotal_cents or subtotal_cents <= 0:
        return ZERO
    return clamp(Decimal(total_cents) / Decimal(subtotal_cents), ZERO, ONE)


@dataclass(frozen=True)
class LineAllocation:
    base_cents: int
    commission_cents: int
    flat_override: bool = False


@dataclass(frozen=True)
class Allocation:
    employee_id: int
    base_cents: int
    commission_cents: int

    def __add__(self, other: "Allocation") -> "Allocation":
        if other.employee_id != self.employee_id:
            raise ValueError("Cannot combine allocations for different employees")
        return Allocation(
            employee_id=self.employee_id,
            base_cents=self.base_cents + other.base_cents,
            commission_cents=self.commission_cents + other.commission_cents,
        )

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "commission_base_cents": self.base_cents,
            "commission_cents": self.commission_cents,
        }


class CommissionAllocator:
    """
    Computes commission entitlement from settled sales.

    Register sales attribute every line to the employee who rang the sale up.
    A line with a flat override earns override x quantity, still scaled by
    the discount multiplier; any other line earns its base times the owner's
    role rate. The base is price or profit depending on the tenant's
    commission basis.
    """

    def __init__(self, config):
        self.config = config
        self.use_profit_basis = config.use_profit_basis
        self.role_rates = config.role_rates

    def allocate_line(self, line, multiplier: Decimal, role: str | None) -> LineAllocation:
        quantity = Decimal(line.quantity)
        if self.use_profit_basis:
            unit_base = line.unit_profit_cents or 0
        else:
            unit_base = line.unit_price_cents
        base = Decimal(unit_base) * quantity * multiplier

        override = line.commission_flat_override_cents
        if override is not None:
            commission = Decimal(override) * quantity * multiplier
            return LineAllocation(round_cents(base), round_cents(commission), flat_override=True)

        commission = base * self.role_rates.rate_for(role)
        return LineAllocation(round_cents(base), round_cents(commission))

    def allocate_sale(self, sale: Sale) -> Allocation:
        role = sale.owner.role if sale.owner else None
        lines = list(sale.lines)

        if not lines:
            fallback = sale.profit_total_cents if self.use_profit_basis else sale.total_cents
            fallback = fallback or 0
            commission = Decimal(fallback) * self.role_rates.rate_for(role)
            return Allocation(sale.owner_id, fallback, round_cents(commission))

        multiplier = discount_multiplier(sale.subtotal_cents, sale.total_cents)
        base_total = 0
        commission_total = 0
        for line in lines:
            allocated = self.allocate_line(line, multiplier, role)
            base_total += allocated.base_cents
            commission_total += allocated.commission_cents
        return Allocation(sale.owner_id, base_total, commission_total)

    def employee_sale_profit_total(self, entry: EmployeeSale) -> int | None:
        if entry.profit_total_cents is not None:
            return entry.profit_total_cents
        return decode_settlement_tokens(entry.notes).get("profit_total")

    def employee_sale_base(self, entry: EmployeeSale) -> int:
        if self.use_profit_basis:
            return self.employee_sale_profit_total(entry) or 0
        return entry.amount_cents

    def allocate_employee_sale(self, entry: EmployeeSale, role: str | None = None) -> Allocation:
        if role is None and entry.employee is not None:
            role = entry.employee.role
        base = self.employee_sale_base(entry)
        commission = Decimal(base) * self.role_rates.rate_for(role)
        return Allocation(entry.employee_id, base, round_cents(commission))

    def totals_by_employee(
        self,
        sales: Iterable[Sale] = (),
        employee_sales: Iterable[EmployeeSale] = (),
    ) -> dict[int, Allocation]:
        """Sum allocations per employee. Keys keep first-seen order."""
        totals: dict[int, Allocation] = {}
        allocations = [self.allocate_sale(sale) for sale in sales]
        allocations += [self.allocate_employee_sale(entry) for entry in employee_sales]
        for allocation in allocations:
            current = totals.get(allocation.employee_id)
            totals[allocation.employee_id] = allocation if current is None else current + allocation
        return totals
