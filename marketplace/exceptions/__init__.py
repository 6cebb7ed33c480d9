"""Custom exceptions for the marketplace order service."""


class MarketplaceError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class ValidationError(MarketplaceError):
    """Malformed or inconsistent input; identifies the offending supplier group and rule."""
    def __init__(self, message, supplier_id=None, rule=None, payload=None):
        payload = dict(payload or ())
        if supplier_id is not None:
            payload['supplier_id'] = supplier_id
        if rule is not None:
            payload['rule'] = rule
        super().__init__(message, 400, payload)
        self.supplier_id = supplier_id
        self.rule = rule


class NotFoundError(MarketplaceError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class InvalidTransitionError(MarketplaceError):
    """Raised when an order status change is not allowed by the lifecycle graph."""
    def __init__(self, current_status, requested_status, order_number=None):
        current = getattr(current_status, 'value', current_status)
        requested = getattr(requested_status, 'value', requested_status)
        target = f"Order {order_number}" if order_number else "Order"
        message = f"{target} cannot move from '{current}' to '{requested}'"
        super().__init__(message, 409, {'from': current, 'to': requested})
        self.current_status = current
        self.requested_status = requested


class CommissionConfigurationError(MarketplaceError):
    """Commission tiers are misconfigured; an operator must fix them."""
    def __init__(self, message, payload=None):
        super().__init__(message, 422, payload)


class NoMatchingTierError(CommissionConfigurationError):
    """No active commission tier covers the amount."""
    def __init__(self, amount):
        super().__init__(
            f"No active commission tier covers an order amount of {amount}",
            {'amount': str(amount)}
        )
        self.amount = amount


class AmbiguousTierError(CommissionConfigurationError):
    """More than one active commission tier covers the amount."""
    def __init__(self, amount, tier_ids):
        super().__init__(
            f"{len(tier_ids)} active commission tiers cover an order amount of {amount}",
            {'amount': str(amount), 'tier_ids': list(tier_ids)}
        )
        self.amount = amount
        self.tier_ids = list(tier_ids)


class OverlapError(MarketplaceError):
    """A commission tier edit would overlap an existing active tier."""
    def __init__(self, message, conflicting_tier_id=None, conflicting_range=None):
        payload = {}
        if conflicting_tier_id is not None:
            payload['conflicting_tier_id'] = conflicting_tier_id
        if conflicting_range is not None:
            payload['conflicting_range'] = conflicting_range
        super().__init__(message, 409, payload)
        self.conflicting_tier_id = conflicting_tier_id


class ConcurrentUpdateError(MarketplaceError):
    """The order was modified by another request since it was read."""
    def __init__(self, order_id):
        super().__init__(
            f"Order {order_id} was updated concurrently, reload and try again",
            409,
            {'order_id': order_id}
        )
        self.order_id = order_id
