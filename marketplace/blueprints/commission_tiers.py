"""Commission tier administration blueprint (JSON)."""
from flask import Blueprint, request, jsonify
from marketplace.database import get_session
from marketplace.exceptions import ValidationError
from marketplace.services import commission_service
from marketplace.utils.parsing import parse_bool

commission_tiers_bp = Blueprint('commission_tiers', __name__, url_prefix='/api/admin/commission-tiers')


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object', rule='body')
    return data


@commission_tiers_bp.route('', methods=['GET'])
def list_tiers():
    active_only = request.args.get('active', '').lower() in ('1', 'true')
    tiers = commission_service.list_tiers(get_session(), active_only=active_only)
    return jsonify({'tiers': [tier.to_dict() for tier in tiers]})


@commission_tiers_bp.route('', methods=['POST'])
def create_tier():
    data = _json_body()
    tier = commission_service.create_tier(
        get_session(),
        min_amount=data.get('min_amount'),
        max_amount=data.get('max_amount'),
        commission_rate=data.get('commission_rate'),
        description=data.get('description'),
        is_active=True if data.get('is_active') is None else parse_bool(data['is_active'], 'is_active'),
    )
    return jsonify({'status': 'ok', 'tier': tier.to_dict()}), 201


@commission_tiers_bp.route('/<int:tier_id>', methods=['PUT'])
def update_tier(tier_id):
    data = _json_body()
    tier = commission_service.update_tier(
        get_session(),
        tier_id,
        min_amount=data.get('min_amount'),
        max_amount=data['max_amount'] if 'max_amount' in data else ...,
        commission_rate=data.get('commission_rate'),
        description=data.get('description'),
    )
    return jsonify({'status': 'ok', 'tier': tier.to_dict()})


@commission_tiers_bp.route('/<int:tier_id>', methods=['DELETE'])
def delete_tier(tier_id):
    commission_service.delete_tier(get_session(), tier_id)
    return jsonify({'status': 'ok'})


@commission_tiers_bp.route('/<int:tier_id>/toggle', methods=['POST'])
def toggle_tier(tier_id):
    tier = commission_service.toggle_tier(get_session(), tier_id)
    return jsonify({'status': 'ok', 'tier': tier.to_dict()})


@commission_tiers_bp.route('/resolve', methods=['GET'])
def resolve_rate():
    """Commission that would apply to an order of ?amount=."""
    amount = request.args.get('amount')
    if amount is None:
        raise ValidationError('amount is required', rule='amount')
    tiers = commission_service.list_tiers(get_session(), active_only=True)
    rate = commission_service.resolve_commission_rate(amount, tiers)
    breakdown = commission_service.calculate_commission(amount, rate)
    return jsonify({key: str(value) for key, value in breakdown.items()})
