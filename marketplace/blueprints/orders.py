"""Orders blueprint - buyer tracking and supplier/admin status changes (JSON)."""
from flask import Blueprint, request, jsonify
from marketplace.database import get_session
from marketplace.exceptions import ValidationError
from marketplace.services import order_status_service
from marketplace.services.notification_service import get_notifier
from marketplace.services.order_store import SqlAlchemyOrderStore

orders_bp = Blueprint('orders', __name__, url_prefix='/api')


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object', rule='body')
    return data


@orders_bp.route('/orders/<parent_id>', methods=['GET'])
def order_tracking(parent_id):
    """Buyer-facing view of one checkout across all its supplier orders."""
    store = SqlAlchemyOrderStore(get_session())
    parent = store.get_parent(parent_id)
    children = store.find_by_parent(parent_id)
    view = order_status_service.aggregate_progress(parent, children)
    return jsonify({
        'order': view.to_dict(),
        'supplier_orders': [child.to_dict() for child in children],
    })


@orders_bp.route('/suppliers/<supplier_id>/orders', methods=['GET'])
def list_supplier_orders(supplier_id):
    """A supplier's orders, optionally filtered by ?status=."""
    status = request.args.get('status', '').strip() or None
    orders = order_status_service.supplier_orders(get_session(), supplier_id, status=status)
    return jsonify({
        'orders': [order.to_dict() for order in orders],
        'counts': order_status_service.status_counts(orders),
    })


@orders_bp.route('/orders/<order_id>/status', methods=['POST'])
def update_status(order_id):
    data = _json_body()
    if not data.get('status'):
        raise ValidationError('status is required', rule='status')

    session = get_session()
    order = order_status_service.change_order_status(
        SqlAlchemyOrderStore(session),
        order_id,
        data['status'],
        notifier=get_notifier(session),
        tracking_number=data.get('tracking_number') or data.get('trackingNumber'),
    )
    return jsonify({'status': 'ok', 'order': order.to_dict()})


@orders_bp.route('/orders/<order_id>/fulfill', methods=['POST'])
def fulfill(order_id):
    """Ship a processing order with a tracking number."""
    data = _json_body()
    session = get_session()
    order = order_status_service.fulfill_order(
        SqlAlchemyOrderStore(session),
        order_id,
        str(data.get('tracking_number') or data.get('trackingNumber') or ''),
        notifier=get_notifier(session),
    )
    return jsonify({'status': 'ok', 'order': order.to_dict()})


@orders_bp.route('/orders/<order_id>/payment-status', methods=['POST'])
def update_payment_status(order_id):
    data = _json_body()
    if not data.get('payment_status'):
        raise ValidationError('payment_status is required', rule='payment_status')

    store = SqlAlchemyOrderStore(get_session())
    order = store.update_payment_status(order_id, data['payment_status'])
    return jsonify({'status': 'ok', 'order': order.to_dict()})
