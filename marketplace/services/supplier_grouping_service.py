"""
Supplier grouping - partitions a multi-vendor cart into one group per supplier.
Pure functions over in-memory cart data; nothing here touches the database.
"""
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from marketplace.exceptions import ValidationError
from marketplace.utils.parsing import parse_bool, parse_decimal, parse_int

PLATFORM_STORE_ID = 'admin'
PLATFORM_STORE_NAME = 'Platform Store'

_CENT = Decimal('0.01')
_LEAD_TIME_RE = re.compile(
    r'(?P<low>\d+)(?:\s*(?:-|to)\s*(?P<high>\d+))?\s*(?P<unit>business days?|days?|weeks?|months?)',
    re.IGNORECASE,
)
_UNIT_DAYS = {'day': 1, 'week': 7, 'month': 30}


def to_money(value, field_name: str = 'amount') -> Decimal:
    """Coerce a number or numeric string to a Decimal with cent precision."""
    return parse_decimal(value, field_name, rule='amount_format').quantize(_CENT)


@dataclass
class CartItem:
    """One buyer-selected product line, tagged with its supplier."""

    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    moq: Optional[int] = None
    in_stock: Optional[bool] = None
    shipping_cost: Decimal = Decimal('0.00')
    lead_time: Optional[str] = None
    specifications: Dict[str, str] = field(default_factory=dict)

    @property
    def group_key(self) -> str:
        return self.supplier_id or PLATFORM_STORE_ID

    @property
    def below_moq(self) -> bool:
        return self.moq is not None and self.quantity < self.moq

    @property
    def has_stock_issue(self) -> bool:
        return self.in_stock is False or self.below_moq

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CartItem':
        """
        Build a cart item from a JSON payload.

        totalPrice is computed from quantity x unitPrice when the payload
        omits it. Both camelCase and snake_case keys are accepted.
        """
        def pick(*keys, default=None):
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return default

        product_id = pick('product_id', 'productId')
        if product_id is None:
            raise ValidationError('Cart item is missing productId', rule='product_id')

        quantity = parse_int(pick('quantity', default=0), f'quantity of product {product_id}', rule='quantity')

        unit_price = to_money(pick('unit_price', 'unitPrice', default=0), 'unit_price')
        total_price = pick('total_price', 'totalPrice')
        total_price = to_money(total_price, 'total_price') if total_price is not None else (unit_price * quantity).quantize(_CENT)
        moq = pick('moq')
        in_stock = pick('in_stock', 'inStock')
        specifications = pick('specifications', default={}) or {}

        return cls(
            product_id=str(product_id),
            product_name=str(pick('product_name', 'productName', default=product_id)),
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
            supplier_id=pick('supplier_id', 'supplierId'),
            supplier_name=pick('supplier_name', 'supplierName'),
            moq=parse_int(moq, 'moq') if moq is not None else None,
            in_stock=parse_bool(in_stock, 'in_stock') if in_stock is not None else None,
            shipping_cost=to_money(pick('shipping_cost', 'shippingCost', default=0), 'shipping_cost'),
            lead_time=pick('lead_time', 'leadTime'),
            specifications={str(k): str(v) for k, v in specifications.items()},
        )


@dataclass
class SupplierGroup:
    """Cart items of one supplier with aggregated totals. Derived, never persisted."""

    supplier_id: str
    supplier_name: str
    items: List[CartItem] = field(default_factory=list)
    subtotal: Decimal = Decimal('0.00')
    shipping_cost: Decimal = Decimal('0.00')
    estimated_delivery: Optional[str] = None
    has_stock_issues: bool = False

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.shipping_cost

    @property
    def stock_issue_items(self) -> List[CartItem]:
        return [item for item in self.items if item.has_stock_issue]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'supplier_id': self.supplier_id,
            'supplier_name': self.supplier_name,
            'items': [
                {
                    'product_id': item.product_id,
                    'product_name': item.product_name,
                    'quantity': item.quantity,
                    'unit_price': str(item.unit_price),
                    'total_price': str(item.total_price),
                    'has_stock_issue': item.has_stock_issue,
                }
                for item in self.items
            ],
            'subtotal': str(self.subtotal),
            'shipping_cost': str(self.shipping_cost),
            'total': str(self.total),
            'estimated_delivery': self.estimated_delivery,
            'has_stock_issues': self.has_stock_issues,
        }


def lead_time_days(lead_time: Optional[str]) -> Optional[int]:
    """
    Parse a lead time such as "7 days", "10-15 days" or "2 weeks" into days.

    Ranges count as their upper bound. Returns None when the text has no
    recognisable duration.
    """
    if not lead_time:
        return None
    match = _LEAD_TIME_RE.search(lead_time)
    if not match:
        return None
    amount = int(match.group('high') or match.group('low'))
    unit = match.group('unit').lower().split()[-1].rstrip('s')
    return amount * _UNIT_DAYS[unit]


def is_longer_lead_time(candidate: Optional[str], current: Optional[str]) -> bool:
    """True when candidate should replace current as the group's delivery estimate."""
    if not candidate:
        return False
    if not current:
        return True
    candidate_days = lead_time_days(candidate)
    current_days = lead_time_days(current)
    if candidate_days is not None and current_days is not None:
        return candidate_days > current_days
    # Unparseable text keeps the plain string ordering
    return candidate > current


def group_cart_items(items: List[CartItem]) -> List[SupplierGroup]:
    """
    Partition cart items into per-supplier groups.

    Groups come out in order of each supplier's first item in the cart and
    items keep their cart order inside a group. Items without a supplier go
    to the platform's own store.
    """
    groups: Dict[str, SupplierGroup] = {}

    for item in items:
        key = item.group_key
        group = groups.get(key)
        if group is None:
            if key == PLATFORM_STORE_ID:
                name = PLATFORM_STORE_NAME
            else:
                name = item.supplier_name or key
            group = SupplierGroup(supplier_id=key, supplier_name=name)
            groups[key] = group

        group.items.append(item)
        group.subtotal += item.total_price
        group.shipping_cost += item.shipping_cost or Decimal('0.00')
        if item.has_stock_issue:
            group.has_stock_issues = True
        if is_longer_lead_time(item.lead_time, group.estimated_delivery):
            group.estimated_delivery = item.lead_time

    return list(groups.values())


def flatten_groups(groups: List[SupplierGroup]) -> List[CartItem]:
    """Inverse of grouping: the cart items of all groups, group by group."""
    return [item for group in groups for item in group.items]
