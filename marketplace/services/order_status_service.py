"""
Order status engine - supplier order lifecycle, progress and buyer-facing
aggregate view across the supplier orders of one checkout.

    pending -> confirmed -> processing -> shipped -> delivered
        \\___________\\____________\\___________\\-> cancelled

delivered and cancelled are terminal. Transitions are triggered by
suppliers and admins; nothing here runs on a timer.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from marketplace.exceptions import InvalidTransitionError, ValidationError
from marketplace.models import SupplierOrder, OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)

ORDER_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]

ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

STATUS_PROGRESS = {
    OrderStatus.PENDING: 20,
    OrderStatus.CONFIRMED: 40,
    OrderStatus.PROCESSING: 60,
    OrderStatus.SHIPPED: 80,
    OrderStatus.DELIVERED: 100,
    OrderStatus.CANCELLED: 0,
}

PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PENDING},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),
}


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(getattr(value, 'value', value))
    except ValueError:
        raise ValidationError(f'Unknown order status: {value}', rule='status')


def parse_payment_status(value) -> PaymentStatus:
    try:
        return PaymentStatus(getattr(value, 'value', value))
    except ValueError:
        raise ValidationError(f'Unknown payment status: {value}', rule='payment_status')


def can_transition(current, new) -> bool:
    return parse_status(new) in ALLOWED_TRANSITIONS[parse_status(current)]


def status_progress(status) -> int:
    """Presentational completion percentage of a status."""
    return STATUS_PROGRESS[parse_status(status)]


def transition(order, new_status, *, now: Optional[datetime] = None):
    """
    Move an order to new_status in memory and return it.

    The order is left untouched when the move is not an edge of the
    lifecycle graph.
    """
    current = parse_status(order.status)
    target = parse_status(new_status)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current, target, getattr(order, 'order_number', None))

    now = now or datetime.now(timezone.utc)
    order.status = target.value
    order.updated_at = now
    if target is OrderStatus.DELIVERED:
        order.actual_delivery = now
    return order


def update_payment_status(order, new_status, *, now: Optional[datetime] = None):
    """Move an order's payment status; pending -> paid | failed, failed -> pending, paid -> refunded."""
    current = parse_payment_status(order.payment_status)
    target = parse_payment_status(new_status)
    if target not in PAYMENT_TRANSITIONS[current]:
        raise InvalidTransitionError(current, target, getattr(order, 'order_number', None))
    order.payment_status = target.value
    order.updated_at = now or datetime.now(timezone.utc)
    return order


@dataclass
class ChildProgress:
    order_id: str
    order_number: str
    supplier_id: str
    supplier_name: str
    status: str
    progress: int
    tracking_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'order_id': self.order_id,
            'order_number': self.order_number,
            'supplier_id': self.supplier_id,
            'supplier_name': self.supplier_name,
            'status': self.status,
            'progress': self.progress,
            'tracking_number': self.tracking_number,
        }


@dataclass
class AggregateView:
    """What the buyer sees for one checkout."""

    parent_order_id: str
    order_number: str
    total_amount: Any
    status: str
    progress: int
    children: List[ChildProgress] = field(default_factory=list)
    cancelled: List[ChildProgress] = field(default_factory=list)

    @property
    def is_multi_vendor(self) -> bool:
        return len(self.children) + len(self.cancelled) > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'parent_order_id': self.parent_order_id,
            'order_number': self.order_number,
            'total_amount': str(self.total_amount),
            'status': self.status,
            'progress': self.progress,
            'is_multi_vendor': self.is_multi_vendor,
            'children': [child.to_dict() for child in self.children],
            'cancelled': [child.to_dict() for child in self.cancelled],
        }


def aggregate_progress(parent_order, child_orders: List) -> AggregateView:
    """
    Buyer-facing status of a checkout.

    The overall status is that of the least advanced non-cancelled child.
    Cancelled children are reported separately and ignored for the minimum;
    when every child is cancelled the checkout is cancelled.
    """
    if not child_orders:
        raise ValidationError(f'Order {parent_order.order_number} has no supplier orders', rule='children')

    active, cancelled = [], []
    for order in child_orders:
        status = parse_status(order.status)
        entry = ChildProgress(
            order_id=order.id,
            order_number=order.order_number,
            supplier_id=order.supplier_id,
            supplier_name=order.supplier_name,
            status=status.value,
            progress=STATUS_PROGRESS[status],
            tracking_number=order.tracking_number,
        )
        (cancelled if status is OrderStatus.CANCELLED else active).append(entry)

    if active:
        overall = min((OrderStatus(child.status) for child in active), key=ORDER_FLOW.index)
    else:
        overall = OrderStatus.CANCELLED

    return AggregateView(
        parent_order_id=parent_order.id,
        order_number=parent_order.order_number,
        total_amount=parent_order.total_amount,
        status=overall.value,
        progress=STATUS_PROGRESS[overall],
        children=active,
        cancelled=cancelled,
    )


def status_counts(orders: List) -> Dict[str, int]:
    """Number of orders per status, every status present."""
    counts = Counter(parse_status(order.status).value for order in orders)
    return {status.value: counts.get(status.value, 0) for status in OrderStatus}


# =====================================================
# PERSISTED OPERATIONS
# =====================================================

def _notify(notifier, recipient_id, event: Dict[str, Any]) -> None:
    if notifier is None or not recipient_id:
        return
    try:
        notifier.notify(recipient_id, event)
    except Exception as e:
        logger.error(f"[NOTIFY] Failed to deliver {event.get('type')} to {recipient_id}: {e}")


def change_order_status(store, order_id: str, new_status, notifier=None,
                        tracking_number: Optional[str] = None):
    """Persist a status change of one supplier order and tell the buyer."""
    order = store.update_status(order_id, new_status, tracking_number=tracking_number)
    logger.info(f"[ORDERS] {order.order_number} is now {order.status}")

    _notify(notifier, order.buyer_id, {
        'type': 'order_status_changed',
        'order_id': order.id,
        'order_number': order.order_number,
        'status': order.status,
        'tracking_number': order.tracking_number,
        'message': f'Your order {order.order_number} status has been updated to: {order.status}',
    })
    return order


def fulfill_order(store, order_id: str, tracking_number: str, notifier=None):
    """Ship a processing order with its tracking number."""
    if not tracking_number or not tracking_number.strip():
        raise ValidationError('Tracking number is required to ship an order', rule='tracking_number')
    return change_order_status(
        store, order_id, OrderStatus.SHIPPED, notifier,
        tracking_number=tracking_number.strip()
    )


def supplier_orders(session: Session, supplier_id: str, status=None) -> List[SupplierOrder]:
    """A supplier's orders, newest first, optionally filtered by status."""
    query = session.query(SupplierOrder).filter(SupplierOrder.supplier_id == supplier_id)
    if status:
        query = query.filter(SupplierOrder.status == parse_status(status).value)
    return query.order_by(SupplierOrder.created_at.desc(), SupplierOrder.order_number).all()
