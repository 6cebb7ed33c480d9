"""
Checkout service - turns a multi-vendor cart into persisted orders.
Handles grouping, stock/MOQ blocking, splitting, persistence and supplier
notifications.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from marketplace.exceptions import ValidationError
from marketplace.services.commission_service import list_tiers
from marketplace.services.order_split_service import (
    CheckoutInput, SplitResult, default_order_number, split_order
)
from marketplace.services.ports import NotificationSink, OrderStore, PaymentGateway
from marketplace.services.supplier_grouping_service import CartItem, SupplierGroup, group_cart_items

logger = logging.getLogger(__name__)


def blocking_issues(groups: List[SupplierGroup]) -> List[Dict[str, Any]]:
    """Stock and MOQ problems that must be resolved before checkout, per supplier group."""
    issues = []
    for group in groups:
        if not group.has_stock_issues:
            continue
        issues.append({
            'supplier_id': group.supplier_id,
            'supplier_name': group.supplier_name,
            'items': [
                {
                    'product_id': item.product_id,
                    'product_name': item.product_name,
                    'reason': 'out_of_stock' if item.in_stock is False else 'below_moq',
                    'quantity': item.quantity,
                    'moq': item.moq,
                }
                for item in group.stock_issue_items
            ],
        })
    return issues


def preview_cart(items: List[CartItem]) -> Dict[str, Any]:
    """Grouped view of a cart with whatever blocks checkout."""
    groups = group_cart_items(items)
    issues = blocking_issues(groups)
    return {
        'groups': [group.to_dict() for group in groups],
        'total': str(sum((group.total for group in groups), Decimal('0.00'))),
        'can_checkout': bool(groups) and not issues,
        'issues': issues,
    }


def place_order(
    session: Session,
    items: List[CartItem],
    checkout: CheckoutInput,
    store: OrderStore,
    notifier: Optional[NotificationSink] = None,
    gateway: Optional[PaymentGateway] = None,
    number_factory=default_order_number,
    parent_prefix: str = 'MVO',
    child_prefix: str = 'ORD',
) -> SplitResult:
    """
    Place a checkout: one parent order and one supplier order per supplier.

    All-or-nothing: nothing is persisted when any group fails validation.
    Notification and payment-gateway failures are logged and never undo the
    orders once committed.
    """
    groups = group_cart_items(items)

    issues = blocking_issues(groups)
    if issues:
        first = issues[0]
        names = ', '.join(issue['supplier_name'] for issue in issues)
        logger.warning(f"[CHECKOUT] Blocked by stock/MOQ issues at: {names}")
        raise ValidationError(
            f'Resolve stock or minimum order quantity issues before checkout: {names}',
            supplier_id=first['supplier_id'],
            rule='stock_issues',
            payload={'issues': issues}
        )

    try:
        result = split_order(
            groups,
            checkout,
            list_tiers(session, active_only=True),
            number_factory=number_factory,
            parent_prefix=parent_prefix,
            child_prefix=child_prefix,
        )
        store.save(result.parent_order, result.child_orders)
        session.commit()
    except Exception:
        session.rollback()
        raise

    parent = result.parent_order
    logger.info(
        f"[CHECKOUT] {parent.order_number} placed: {len(result.child_orders)} supplier order(s), "
        f"total {parent.total_amount}"
    )

    if notifier is not None:
        for child in result.child_orders:
            try:
                notifier.notify(child.supplier_id, {
                    'type': 'order_created',
                    'order_id': child.id,
                    'order_number': child.order_number,
                    'parent_order_number': parent.order_number,
                    'total_amount': str(child.total_amount),
                    'item_count': len(child.items),
                })
            except Exception as e:
                logger.error(f"[NOTIFY] Failed to notify supplier {child.supplier_id}: {e}")

    if gateway is not None:
        try:
            reference = gateway.request_payment(parent, checkout.payment_method)
            logger.info(f"[CHECKOUT] Payment requested for {parent.order_number}: {reference}")
        except Exception as e:
            logger.error(f"[CHECKOUT] Payment request failed for {parent.order_number}: {e}")

    return result
