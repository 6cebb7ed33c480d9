"""
Commission tiers - rate resolution and admin management.

Tier ranges are half-open: [min_amount, max_amount), with max_amount None
meaning unbounded. The same convention drives both resolution and the
overlap check, so adjacent tiers such as [0, 1000) and [1000, None) are
valid and an amount of exactly 1000 belongs to the upper tier.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from marketplace.exceptions import (
    AmbiguousTierError, NoMatchingTierError, NotFoundError, OverlapError, ValidationError
)
from marketplace.models import CommissionTier
from marketplace.utils.parsing import parse_decimal

logger = logging.getLogger(__name__)

_CENT = Decimal('0.01')
_RATE_PLACES = Decimal('0.0001')


def _decimal(value, field_name: str) -> Decimal:
    return parse_decimal(value, field_name)


def tier_covers(tier, amount: Decimal) -> bool:
    """Whether the tier's range contains amount."""
    if amount < tier.min_amount:
        return False
    return tier.max_amount is None or amount < tier.max_amount


def resolve_commission_rate(amount, tiers: Iterable) -> Decimal:
    """
    Return the commission rate of the single active tier covering amount.

    Raises:
        NoMatchingTierError: no active tier covers the amount
        AmbiguousTierError: several active tiers cover it (overlapping configuration)
    """
    amount = _decimal(amount, 'amount')
    matches = [tier for tier in tiers if tier.is_active and tier_covers(tier, amount)]

    if not matches:
        logger.error(f"[COMMISSION] No active tier for amount {amount}")
        raise NoMatchingTierError(amount)
    if len(matches) > 1:
        tier_ids = sorted(tier.id for tier in matches)
        logger.error(f"[COMMISSION] Overlapping tiers {tier_ids} for amount {amount}")
        raise AmbiguousTierError(amount, tier_ids)

    return Decimal(str(matches[0].commission_rate))


def ranges_overlap(min_a: Decimal, max_a: Optional[Decimal], min_b: Decimal, max_b: Optional[Decimal]) -> bool:
    """Half-open range intersection; None as an upper bound means +infinity."""
    a_starts_before_b_ends = max_b is None or min_a < max_b
    b_starts_before_a_ends = max_a is None or min_b < max_a
    return a_starts_before_b_ends and b_starts_before_a_ends


def find_overlapping_tier(min_amount, max_amount, tiers: Iterable, exclude_id=None):
    """Return the first active tier (other than exclude_id) whose range overlaps, or None."""
    for tier in tiers:
        if exclude_id is not None and tier.id == exclude_id:
            continue
        if not tier.is_active:
            continue
        if ranges_overlap(min_amount, max_amount, tier.min_amount, tier.max_amount):
            return tier
    return None


def validate_tier(min_amount, max_amount, commission_rate, existing_tiers: Iterable,
                  exclude_id=None, is_active: bool = True) -> Dict[str, Optional[Decimal]]:
    """
    Validate a new or edited tier and return its normalized values.

    Inactive tiers are not checked for overlap; activating one later
    re-runs this validation.
    """
    min_amount = _decimal(min_amount, 'min_amount')
    max_amount = None if max_amount in (None, '') else _decimal(max_amount, 'max_amount')
    commission_rate = _decimal(commission_rate, 'commission_rate')

    if min_amount < 0:
        raise ValidationError('Minimum amount must be zero or greater', rule='min_amount')
    if max_amount is not None and max_amount <= min_amount:
        raise ValidationError('Maximum amount must be greater than minimum amount', rule='max_amount')
    if commission_rate < 0 or commission_rate > 1:
        raise ValidationError('Commission rate must be between 0 and 1 (0% to 100%)', rule='commission_rate')

    if is_active:
        conflict = find_overlapping_tier(min_amount, max_amount, existing_tiers, exclude_id=exclude_id)
        if conflict is not None:
            raise OverlapError(
                f"Range overlaps with existing tier {conflict.id}: {conflict.describe_range()}",
                conflicting_tier_id=conflict.id,
                conflicting_range=conflict.range_dict()
            )

    return {
        'min_amount': min_amount.quantize(_CENT),
        'max_amount': max_amount.quantize(_CENT) if max_amount is not None else None,
        'commission_rate': commission_rate.quantize(_RATE_PLACES),
    }


def calculate_commission(order_amount, commission_rate) -> Dict[str, Decimal]:
    """Split an order amount into the platform commission and the supplier payout."""
    order_amount = _decimal(order_amount, 'order_amount')
    commission_rate = _decimal(commission_rate, 'commission_rate')
    commission_amount = (order_amount * commission_rate).quantize(_CENT)
    return {
        'order_amount': order_amount.quantize(_CENT),
        'commission_rate': commission_rate,
        'commission_amount': commission_amount,
        'supplier_amount': (order_amount - commission_amount).quantize(_CENT),
    }


# =====================================================
# ADMIN OPERATIONS
# =====================================================

def list_tiers(session: Session, active_only: bool = False) -> List[CommissionTier]:
    query = session.query(CommissionTier)
    if active_only:
        query = query.filter(CommissionTier.is_active.is_(True))
    return query.order_by(CommissionTier.min_amount).all()


def _get_tier(session: Session, tier_id: int) -> CommissionTier:
    tier = session.query(CommissionTier).filter(CommissionTier.id == tier_id).first()
    if not tier:
        raise NotFoundError(f'Commission tier {tier_id} not found')
    return tier


def _lock_active_tiers(session: Session) -> List[CommissionTier]:
    """
    Load the active tiers, row-locked where the backend supports it, so two
    concurrent edits cannot both pass the overlap check.
    """
    query = session.query(CommissionTier).filter(CommissionTier.is_active.is_(True))
    if session.get_bind().dialect.name != 'sqlite':
        query = query.with_for_update()
    return query.all()


def create_tier(session: Session, min_amount, max_amount, commission_rate,
                description: str = None, is_active: bool = True) -> CommissionTier:
    """Create a commission tier after validating the non-overlap invariant."""
    try:
        values = validate_tier(
            min_amount, max_amount, commission_rate,
            _lock_active_tiers(session), is_active=is_active
        )
        tier = CommissionTier(description=description, is_active=is_active, **values)
        session.add(tier)
        session.commit()
        logger.info(f"[COMMISSION] Tier {tier.id} created: {tier.describe_range()} at {tier.commission_rate}")
        return tier
    except Exception:
        session.rollback()
        raise


def update_tier(session: Session, tier_id: int, min_amount=None, max_amount=..., commission_rate=None,
                description=None) -> CommissionTier:
    """
    Update a tier's range, rate or description.

    Omitted arguments keep their current value; pass max_amount=None to make
    the tier unbounded. Already-created orders keep their stamped rate.
    """
    try:
        tier = _get_tier(session, tier_id)
        values = validate_tier(
            tier.min_amount if min_amount is None else min_amount,
            tier.max_amount if max_amount is ... else max_amount,
            tier.commission_rate if commission_rate is None else commission_rate,
            _lock_active_tiers(session),
            exclude_id=tier.id,
            is_active=tier.is_active,
        )
        for key, value in values.items():
            setattr(tier, key, value)
        if description is not None:
            tier.description = description
        session.commit()
        logger.info(f"[COMMISSION] Tier {tier.id} updated: {tier.describe_range()} at {tier.commission_rate}")
        return tier
    except Exception:
        session.rollback()
        raise


def toggle_tier(session: Session, tier_id: int) -> CommissionTier:
    """Flip a tier's active flag; activation re-checks overlap."""
    try:
        tier = _get_tier(session, tier_id)
        if not tier.is_active:
            validate_tier(
                tier.min_amount, tier.max_amount, tier.commission_rate,
                _lock_active_tiers(session), exclude_id=tier.id
            )
        tier.is_active = not tier.is_active
        session.commit()
        logger.info(f"[COMMISSION] Tier {tier.id} {'activated' if tier.is_active else 'deactivated'}")
        return tier
    except Exception:
        session.rollback()
        raise


def delete_tier(session: Session, tier_id: int) -> None:
    try:
        tier = _get_tier(session, tier_id)
        session.delete(tier)
        session.commit()
        logger.info(f"[COMMISSION] Tier {tier_id} deleted")
    except Exception:
        session.rollback()
        raise
