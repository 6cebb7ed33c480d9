"""Checkout blueprint - cart preview and order placement (JSON)."""
from flask import Blueprint, request, jsonify, current_app
from marketplace.database import get_session
from marketplace.exceptions import ValidationError
from marketplace.services.checkout_service import place_order, preview_cart
from marketplace.services.notification_service import get_notifier
from marketplace.services.order_split_service import CheckoutInput, ShippingAddress
from marketplace.services.order_store import SqlAlchemyOrderStore
from marketplace.services.supplier_grouping_service import CartItem

checkout_bp = Blueprint('checkout', __name__, url_prefix='/api')


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object', rule='body')
    return data


def _cart_items(data):
    raw_items = data.get('items')
    if not isinstance(raw_items, list):
        raise ValidationError('items must be a list of cart items', rule='items')
    return [CartItem.from_dict(item) for item in raw_items]


@checkout_bp.route('/cart/preview', methods=['POST'])
def preview():
    """Group a cart by supplier and report what blocks checkout."""
    data = _json_body()
    return jsonify(preview_cart(_cart_items(data)))


@checkout_bp.route('/checkout', methods=['POST'])
def checkout():
    """
    Place an order for a multi-vendor cart.

    Expected body:
        {"items": [...], "shipping_address": {...}, "payment_method": "T/T",
         "buyer_id": "...", "notes": "..."}
    """
    data = _json_body()
    items = _cart_items(data)
    checkout_input = CheckoutInput(
        shipping_address=ShippingAddress.from_dict(
            data.get('shipping_address') or data.get('shippingAddress') or {}
        ),
        payment_method=str(data.get('payment_method') or data.get('paymentMethod') or ''),
        buyer_id=data.get('buyer_id') or data.get('buyerId'),
        notes=data.get('notes'),
    )

    session = get_session()
    result = place_order(
        session,
        items,
        checkout_input,
        SqlAlchemyOrderStore(session),
        notifier=get_notifier(session),
        parent_prefix=current_app.config.get('PARENT_ORDER_PREFIX', 'MVO'),
        child_prefix=current_app.config.get('CHILD_ORDER_PREFIX', 'ORD'),
    )

    return jsonify({
        'status': 'ok',
        'parent_order': result.parent_order.to_dict(),
        'child_orders': [child.to_dict() for child in result.child_orders],
    }), 201
