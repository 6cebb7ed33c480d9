"""Models package - exports all SQLAlchemy models."""
from marketplace.models.supplier import Supplier
from marketplace.models.parent_order import ParentOrder
from marketplace.models.supplier_order import SupplierOrder, OrderStatus, PaymentStatus
from marketplace.models.order_item import OrderItem
from marketplace.models.commission_tier import CommissionTier

__all__ = [
    'Supplier',
    'ParentOrder', 'SupplierOrder', 'OrderStatus', 'PaymentStatus', 'OrderItem',
    'CommissionTier',
]
