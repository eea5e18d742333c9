# Overview: Manually recorded employee sales (work billed outside the register).

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..errors import DuplicateInvoiceError, ValidationError
from ..models import EmployeeSale
from ..money import round_cents
from ..time_utils import utcnow
from ..validation import (
    coerce_amount_cents,
    coerce_int,
    coerce_optional_amount_cents,
    optional_text,
)
from .commission_service import ONE, CommissionAllocator, discount_multiplier
from .concurrency import unit_of_work
from .legacy_notes import append_settlement_tokens
from .sales_service import (
    RECORD_TYPE_EMPLOYEE_SALE,
    claim_invoice_number,
    invoice_number_taken,
    parse_invoice_number,
)
from .staff_service import get_employee_in_org
from .tenant_service import load_tenant_config


MAX_NOTES_LENGTH = 2000


def record_employee_sale(org_id: int, recorded_by_id: int | None, payload: dict) -> EmployeeSale:
    """
    Record a sale credited to one employee, with its settlement snapshot.

    subtotal_cents (pre-discount) and profit_cents are optional. When both
    are given the profit total is scaled by the entry's own discount
    multiplier (amount / subtotal).
    """
    config = load_tenant_config(org_id)

    invoice_number = parse_invoice_number(payload.get("invoice_number"))
    amount = coerce_amount_cents(payload.get("amount_cents"), "amount_cents")
    employee_id = coerce_int(payload.get("employee_id"), "employee_id", minimum=1)
    subtotal = coerce_optional_amount_cents(payload.get("subtotal_cents"), "subtotal_cents")
    profit = coerce_optional_amount_cents(payload.get("profit_cents"), "profit_cents")
    notes = optional_text(payload.get("notes"), "notes", max_length=MAX_NOTES_LENGTH)

    if subtotal is not None and subtotal < amount:
        raise ValidationError("subtotal_cents cannot be less than amount_cents")

    employee = get_employee_in_org(employee_id, org_id)

    multiplier = discount_multiplier(subtotal, amount) if subtotal is not None else ONE
    profit_total = None
    if profit is not None:
        profit_total = round_cents(max(Decimal(profit) * multiplier, Decimal(0)))

    entry = EmployeeSale(
        org_id=org_id,
        employee_id=employee.id,
        recorded_by_id=recorded_by_id,
        invoice_number=invoice_number,
        amount_cents=amount,
        profit_total_cents=profit_total,
        notes=notes,
        created_at=utcnow(),
    )

    allocation = CommissionAllocator(config).allocate_employee_sale(entry, role=employee.role)
    entry.commission_base_cents = allocation.base_cents
    entry.commission_total_cents = allocation.commission_cents

    if current_app.config.get("LEGACY_NOTES_TOKENS", True):
        entry.notes = append_settlement_tokens(
            notes,
            profit_total_cents=profit_total or 0,
            commission_total_cents=allocation.commission_cents,
            commission_base_cents=allocation.base_cents,
        )

    with unit_of_work("record employee sale"):
        if invoice_number_taken(config, invoice_number, RECORD_TYPE_EMPLOYEE_SALE):
            raise DuplicateInvoiceError(
                "Invoice number already exists",
                details={"invoice_number": invoice_number},
            )
        claim_invoice_number(config, invoice_number, RECORD_TYPE_EMPLOYEE_SALE)
        db.session.add(entry)

    current_app.logger.info(
        "Recorded employee sale %s for employee %s (%s cents)",
        invoice_number,
        employee.id,
        amount,
    )
    return entry


def list_employee_sales(org_id: int, employee_id: int | None = None, limit: int = 50) -> list[EmployeeSale]:
    q = db.session.query(EmployeeSale).filter_by(org_id=org_id)
    if employee_id is not None:
        q = q.filter_by(employee_id=employee_id)
    return q.order_by(EmployeeSale.created_at.desc(), EmployeeSale.id.desc()).limit(limit).all()
