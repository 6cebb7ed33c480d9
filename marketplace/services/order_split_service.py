"""
Order splitting - turns supplier groups into one parent order plus one
supplier order per group.

split_order is pure: it builds transient model instances with
client-generated ids and never opens a session. Saving them and notifying
suppliers is left to the caller (see checkout_service).
"""
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from marketplace.exceptions import ValidationError
from marketplace.models import ParentOrder, SupplierOrder, OrderItem, OrderStatus, PaymentStatus
from marketplace.services.commission_service import resolve_commission_rate
from marketplace.services.supplier_grouping_service import SupplierGroup

_CENT = Decimal('0.01')


@dataclass(frozen=True)
class ShippingAddress:
    """Delivery address, copied onto every order as a snapshot."""

    street: str
    city: str
    state: str
    zip_code: str
    country: str

    def as_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ShippingAddress':
        missing = [
            name for name in ('street', 'city', 'state', 'zip_code', 'country')
            if not str(data.get(name) or data.get(_camel(name)) or '').strip()
        ]
        if missing:
            raise ValidationError(
                f"Shipping address is missing: {', '.join(missing)}",
                rule='shipping_address'
            )
        return cls(**{
            name: str(data.get(name) or data.get(_camel(name))).strip()
            for name in ('street', 'city', 'state', 'zip_code', 'country')
        })


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


@dataclass
class CheckoutInput:
    """Checkout data shared by every supplier order of one checkout."""

    shipping_address: ShippingAddress
    payment_method: str
    buyer_id: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if not self.payment_method or not str(self.payment_method).strip():
            raise ValidationError('Payment method is required', rule='payment_method')


@dataclass
class SplitResult:
    parent_order: ParentOrder
    child_orders: List[SupplierOrder] = field(default_factory=list)


def default_order_number(prefix: str, now: datetime) -> str:
    return f"{prefix}-{now.strftime('%Y%m%d')}-{uuid.uuid4().hex[:10].upper()}"


def validate_groups(groups: List[SupplierGroup]) -> None:
    """
    Check every group before any order is built.

    Business rules (stock, MOQ) must already have been enforced by the
    caller; a flagged group here means checkout was not blocked.
    """
    if not groups:
        raise ValidationError('Cannot place an order without items', rule='empty_cart')

    for group in groups:
        if group.has_stock_issues:
            names = ', '.join(item.product_name for item in group.stock_issue_items) or 'unknown items'
            raise ValidationError(
                f'Supplier "{group.supplier_name}" has stock or MOQ issues: {names}',
                supplier_id=group.supplier_id,
                rule='stock_issues'
            )
        if not group.items:
            raise ValidationError(
                f'Supplier "{group.supplier_name}" has no items',
                supplier_id=group.supplier_id,
                rule='empty_group'
            )
        for item in group.items:
            if not isinstance(item.quantity, int) or item.quantity <= 0:
                raise ValidationError(
                    f'Quantity for "{item.product_name}" must be greater than 0',
                    supplier_id=group.supplier_id,
                    rule='quantity'
                )
            if item.unit_price < 0:
                raise ValidationError(
                    f'Price for "{item.product_name}" cannot be negative',
                    supplier_id=group.supplier_id,
                    rule='unit_price'
                )
            if (item.shipping_cost or Decimal('0')) < 0:
                raise ValidationError(
                    f'Shipping cost for "{item.product_name}" cannot be negative',
                    supplier_id=group.supplier_id,
                    rule='shipping_cost'
                )
            expected = (item.unit_price * item.quantity).quantize(_CENT)
            if item.total_price.quantize(_CENT) != expected:
                raise ValidationError(
                    f'Total for "{item.product_name}" ({item.total_price}) does not match '
                    f'{item.quantity} x {item.unit_price}',
                    supplier_id=group.supplier_id,
                    rule='total_price'
                )


def split_order(
    groups: List[SupplierGroup],
    checkout: CheckoutInput,
    tiers: Iterable,
    *,
    now: Optional[datetime] = None,
    number_factory: Callable[[str, datetime], str] = default_order_number,
    parent_prefix: str = 'MVO',
    child_prefix: str = 'ORD',
) -> SplitResult:
    """
    Split supplier groups into a parent order and one supplier order per group.

    A parent is created for every checkout, including single-supplier ones,
    so buyers always track a checkout through the same shape.

    Raises:
        ValidationError: a precondition failed; no order is produced
        NoMatchingTierError / AmbiguousTierError: commission tiers are misconfigured
    """
    validate_groups(groups)

    tiers = list(tiers)
    now = now or datetime.now(timezone.utc)
    rates = [resolve_commission_rate(group.total, tiers) for group in groups]

    parent = ParentOrder(
        id=str(uuid.uuid4()),
        order_number=number_factory(parent_prefix, now),
        buyer_id=checkout.buyer_id,
        payment_method=checkout.payment_method,
        notes=checkout.notes,
        created_at=now,
    )

    children = []
    used_numbers = {parent.order_number}
    for sequence, (group, rate) in enumerate(zip(groups, rates)):
        order_number = number_factory(child_prefix, now)
        if order_number in used_numbers:
            raise ValidationError(f'Duplicate order number generated: {order_number}', rule='order_number')
        used_numbers.add(order_number)

        items = [
            OrderItem(
                position=position,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
                specifications=dict(item.specifications),
            )
            for position, item in enumerate(group.items)
        ]
        subtotal = sum((item.total_price for item in items), Decimal('0.00'))
        shipping = group.shipping_cost.quantize(_CENT)

        children.append(SupplierOrder(
            id=str(uuid.uuid4()),
            order_number=order_number,
            parent_order=parent,
            parent_order_id=parent.id,
            sequence=sequence,
            buyer_id=checkout.buyer_id,
            supplier_id=group.supplier_id,
            supplier_name=group.supplier_name,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=checkout.payment_method,
            subtotal=subtotal,
            shipping_cost=shipping,
            total_amount=subtotal + shipping,
            commission_rate=rate,
            estimated_delivery=group.estimated_delivery,
            shipping_address=checkout.shipping_address.as_dict(),
            notes=checkout.notes,
            created_at=now,
            updated_at=now,
            items=items,
        ))

    parent.total_amount = sum((child.total_amount for child in children), Decimal('0.00'))
    return SplitResult(parent_order=parent, child_orders=children)
