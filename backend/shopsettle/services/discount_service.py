from __future__ import annotations

from decimal import Decimal, InvalidOperation

from ..extensions import db
from ..errors import ReferenceNotFoundError, ValidationError
from ..models import Discount, Sale
from ..money import fraction_to_bps


def parse_percentage(value) -> int:
    if value is None or isinstance(value, bool):
        raise ValidationError("Percentage is required")
    try:
        fraction = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("Percentage must be a number")
    if not fraction.is_finite() or fraction < 0 or fraction > 1:
        raise ValidationError("Percentage must be between 0 and 1")
    return fraction_to_bps(fraction)


def get_discount(org_id: int, discount_id) -> Discount:
    discount = None
    if isinstance(discount_id, int) and not isinstance(discount_id, bool):
        discount = db.session.query(Discount).filter_by(id=discount_id, org_id=org_id).first()
    if not discount:
        raise ReferenceNotFoundError(
            "Selected discount could not be found",
            details={"discount_id": discount_id},
        )
    return discount


def list_discounts(org_id: int) -> list[dict]:
    q = db.session.query(Discount).filter_by(org_id=org_id)
    return [d.to_dict() for d in q.order_by(Discount.updated_at.desc(), Discount.id.desc()).all()]


def create_discount(org_id: int, data: dict) -> dict:
    name = (data.get('name') or "").strip()
    if not name:
        raise ValidationError("Name is required")

    discount = Discount(
        org_id=org_id,
        name=name,
        percentage_bps=parse_percentage(data.get('percentage')),
    )
    db.session.add(discount)
    db.session.commit()
    return discount.to_dict()


def delete_discount(org_id: int, discount_id: int) -> None:
    discount = get_discount(org_id, discount_id)
    in_use = db.session.query(Sale.id).filter_by(org_id=org_id, discount_id=discount.id).first()
    if in_use:
        raise ValidationError("Discount is referenced by recorded sales", details={"discount_id": discount.id})
    db.session.delete(discount)
    db.session.commit()
