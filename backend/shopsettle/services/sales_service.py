"""
Register sale completion (transaction builder).

WHY: A completed sale touches several rows at once: the order, its line
items, the invoice number claim and the customer's loyalty card. They are
written in one transaction so a failure part-way leaves nothing behind.

ORDER OF CHECKS (all before any write):
1. Input validation (cart, invoice number, CID, loyalty action)
2. Invoice number not already used in the tenant's numbering scope
3. Selected discount exists in this tenant
4. Redemption only when the card holds enough stamps

PRICING:
- subtotal = sum(unit price x quantity)
- discount = subtotal x percentage, unless the customer redeems a loyalty
  reward, which comps the whole sale regardless of the selected discount
- total = max(subtotal - discount, 0)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import DuplicateInvoiceError, ReferenceNotFoundError, ValidationError
from ..models import CatalogItem, Employee, EmployeeSale, InvoiceClaim, Sale, SaleLine
from ..models.sales import LOYALTY_NONE, LOYALTY_REDEEM, SALE_STATUS_COMPLETED
from ..money import bps_fraction, round_cents
from ..time_utils import utcnow
from ..validation import (
    coerce_amount_cents,
    coerce_int,
    coerce_optional_amount_cents,
    coerce_optional_int,
    require_text,
)
from . import loyalty_service
from .commission_service import discount_multiplier
from .concurrency import unit_of_work
from .discount_service import get_discount
from .notification_service import notify_sale_completed
from .staff_service import get_employee_in_org
from .tenant_service import TenantConfig, load_tenant_config


RECORD_TYPE_SALE = "sale"
RECORD_TYPE_EMPLOYEE_SALE = "employee_sale"

MAX_INVOICE_LENGTH = 64
MAX_CART_LINES = 200


@dataclass(frozen=True)
class CartItem:
    name: str
    unit_price_cents: int
    quantity: int
    catalog_item_id: int | None = None
    profit_cents: int = 0
    commission_flat_override_cents: int | None = None

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True)
class SaleTotals:
    subtotal_cents: int
    discount_cents: int
    total_cents: int
    profit_subtotal_cents: int
    profit_total_cents: int

    @property
    def multiplier(self) -> Decimal:
        return discount_multiplier(self.subtotal_cents, self.total_cents)


def compute_totals(
    items: Sequence[CartItem],
    percentage_bps: int | None = None,
    redeem: bool = False,
) -> SaleTotals:
    """Pure pricing math; rounds to whole cents at every boundary."""
    subtotal = round_cents(sum((Decimal(item.unit_price_cents) * item.quantity for item in items), Decimal(0)))

    discount = 0
    if percentage_bps is not None:
        discount = round_cents(Decimal(subtotal) * bps_fraction(percentage_bps))
    if redeem:
        discount = subtotal
    discount = min(discount, subtotal)

    total = round_cents(max(subtotal - discount, 0))

    profit_subtotal = round_cents(sum((Decimal(item.profit_cents) * item.quantity for item in items), Decimal(0)))
    multiplier = discount_multiplier(subtotal, total)
    profit_total = round_cents(max(Decimal(profit_subtotal) * multiplier, Decimal(0)))

    return SaleTotals(
        subtotal_cents=subtotal,
        discount_cents=discount,
        total_cents=total,
        profit_subtotal_cents=profit_subtotal,
        profit_total_cents=profit_total,
    )


def invoice_number_taken(config: TenantConfig, invoice_number: str, record_type: str) -> bool:
    """
    Application-level uniqueness check.

    Looks at the claim table and at the record tables themselves so rows
    imported without a claim still count. The claim's unique constraint is
    what actually stops concurrent duplicates.
    """
    scope = config.invoice_scope(record_type)
    claimed = (
        db.session.query(InvoiceClaim.id)
        .filter_by(org_id=config.org_id, scope=scope, invoice_number=invoice_number)
        .first()
    )
    if claimed:
        return True

    if config.shared_invoice_numbers:
        models = (Sale, EmployeeSale)
    elif record_type == RECORD_TYPE_SALE:
        models = (Sale,)
    else:
        models = (EmployeeSale,)

    for model in models:
        exists = (
            db.session.query(model.id)
            .filter_by(org_id=config.org_id, invoice_number=invoice_number)
            .first()
        )
        if exists:
            return True
    return False


def claim_invoice_number(config: TenantConfig, invoice_number: str, record_type: str) -> InvoiceClaim:
    claim = InvoiceClaim(
        org_id=config.org_id,
        scope=config.invoice_scope(record_type),
        invoice_number=invoice_number,
    )
    db.session.add(claim)
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise DuplicateInvoiceError(
            "Invoice number already exists",
            details={"invoice_number": invoice_number},
        ) from exc
    return claim


def parse_invoice_number(value) -> str:
    return require_text(
        value,
        "invoice_number",
        max_length=MAX_INVOICE_LENGTH,
        message="Invoice number is required",
    )


class TransactionBuilder:
    """
    Turns a validated cart into a persisted, completed Sale.

    Built per request with the tenant's immutable configuration. `sink`
    overrides the notification sink derived from the configuration.
    """

    def __init__(self, config: TenantConfig, sink=None):
        self.config = config
        self.sink = sink

    def _catalog_item(self, catalog_item_id: int) -> CatalogItem:
        item = (
            db.session.query(CatalogItem)
            .filter_by(id=catalog_item_id, org_id=self.config.org_id)
            .first()
        )
        if not item:
            raise ReferenceNotFoundError(
                "Catalog item not found",
                details={"catalog_item_id": catalog_item_id},
            )
        return item

    def parse_items(self, raw_items) -> list[CartItem]:
        """
        Validate cart lines. Catalog values fill any field the cart omits.
        """
        if not isinstance(raw_items, list) or not raw_items:
            raise ValidationError("Add at least one item")
        if len(raw_items) > MAX_CART_LINES:
            raise ValidationError(f"A sale can hold at most {MAX_CART_LINES} lines")

        items = []
        for index, raw in enumerate(raw_items):
            if not isinstance(raw, dict):
                raise ValidationError("Each item must be an object", details={"index": index})

            catalog_item_id = coerce_optional_int(raw.get("catalog_item_id"), "catalog_item_id", minimum=1)
            catalog = self._catalog_item(catalog_item_id) if catalog_item_id is not None else None

            name = raw.get("name")
            if name is None and catalog is not None:
                name = catalog.name
            name = require_text(name, "name", max_length=255, message="Each item needs a name")

            price = raw.get("unit_price_cents")
            if price is None and catalog is not None:
                price = catalog.price_cents
            price = coerce_amount_cents(price, "unit_price_cents")

            quantity = coerce_int(raw.get("quantity"), "quantity", minimum=1, maximum=10_000)

            profit = coerce_optional_amount_cents(raw.get("profit_cents"), "profit_cents")
            if profit is None:
                profit = catalog.profit_cents if catalog is not None else 0

            if "commission_flat_override_cents" in raw:
                override = coerce_optional_amount_cents(
                    raw.get("commission_flat_override_cents"),
                    "commission_flat_override_cents",
                )
            else:
                override = catalog.commission_flat_override_cents if catalog is not None else None

            items.append(
                CartItem(
                    name=name,
                    unit_price_cents=price,
                    quantity=quantity,
                    catalog_item_id=catalog_item_id,
                    profit_cents=profit or 0,
                    commission_flat_override_cents=override,
                )
            )
        return items

    def _resolve_loyalty(self, cid, loyalty_action) -> tuple[str | None, str]:
        cid = loyalty_service.normalize_cid(cid)
        action = loyalty_service.normalize_action(loyalty_action)

        if action != LOYALTY_NONE and not self.config.loyalty_enabled:
            current_app.logger.info(
                "Loyalty disabled for organization %s; ignoring '%s' action",
                self.config.org_id,
                action,
            )
            action = LOYALTY_NONE

        if action != LOYALTY_NONE and not cid:
            raise ValidationError(
                "CID is required to apply a loyalty action",
                details={"field": "cid"},
            )
        return cid, action

    def complete_sale(
        self,
        owner: Employee,
        *,
        invoice_number,
        items,
        discount_id=None,
        cid=None,
        loyalty_action=LOYALTY_NONE,
    ) -> Sale:
        if owner.org_id != self.config.org_id:
            raise ReferenceNotFoundError("Employee not found", details={"employee_id": owner.id})

        invoice_number = parse_invoice_number(invoice_number)
        cart = self.parse_items(items)
        cid, action = self._resolve_loyalty(cid, loyalty_action)
        discount_id = coerce_optional_int(discount_id, "discount_id", minimum=1)
        org_id = self.config.org_id

        with unit_of_work("complete sale"):
            if invoice_number_taken(self.config, invoice_number, RECORD_TYPE_SALE):
                raise DuplicateInvoiceError(
                    "Invoice number already exists",
                    details={"invoice_number": invoice_number},
                )

            percentage_bps = None
            if discount_id is not None:
                percentage_bps = get_discount(org_id, discount_id).percentage_bps

            if action == LOYALTY_REDEEM:
                loyalty_service.ensure_can_redeem(org_id, cid)

            totals = compute_totals(cart, percentage_bps, redeem=(action == LOYALTY_REDEEM))
            multiplier = totals.multiplier

            claim_invoice_number(self.config, invoice_number, RECORD_TYPE_SALE)

            sale = Sale(
                org_id=org_id,
                owner_id=owner.id,
                invoice_number=invoice_number,
                cid=cid,
                subtotal_cents=totals.subtotal_cents,
                discount_cents=totals.discount_cents,
                total_cents=totals.total_cents,
                profit_total_cents=totals.profit_total_cents,
                discount_id=discount_id,
                loyalty_action=action,
                status=SALE_STATUS_COMPLETED,
                created_at=utcnow(),
            )
            for item in cart:
                sale.lines.append(
                    SaleLine(
                        catalog_item_id=item.catalog_item_id,
                        item_name=item.name,
                        quantity=item.quantity,
                        unit_price_cents=item.unit_price_cents,
                        line_total_cents=item.line_total_cents,
                        unit_profit_cents=item.profit_cents,
                        profit_total_cents=round_cents(
                            max(Decimal(item.profit_cents) * item.quantity * multiplier, Decimal(0))
                        ),
                        commission_flat_override_cents=item.commission_flat_override_cents,
                    )
                )
            db.session.add(sale)
            db.session.flush()

            loyalty_service.apply_action(org_id, cid, action)

        notify_sale_completed(sale, owner.display_name, self.config, sink=self.sink)
        return sale


def complete_sale(org_id: int, owner_id: int, payload: dict, sink=None) -> Sale:
    """Load tenant configuration and complete one register sale."""
    config = load_tenant_config(org_id)
    owner = get_employee_in_org(owner_id, org_id)
    builder = TransactionBuilder(config, sink=sink)
    return builder.complete_sale(
        owner,
        invoice_number=payload.get("invoice_number"),
        items=payload.get("items"),
        discount_id=payload.get("discount_id"),
        cid=payload.get("cid"),
        loyalty_action=payload.get("loyalty_action") or LOYALTY_NONE,
    )


def get_sale(org_id: int, sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id, org_id=org_id).first()
    if not sale:
        raise ReferenceNotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def list_sales(org_id: int, owner_id: int | None = None, limit: int = 50) -> list[Sale]:
    q = db.session.query(Sale).filter_by(org_id=org_id)
    if owner_id is not None:
        q = q.filter_by(owner_id=owner_id)
    return q.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()
