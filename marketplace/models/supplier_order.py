"""Supplier (child) order model."""
import enum
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base


class OrderStatus(str, enum.Enum):
    """Lifecycle of a single supplier order."""
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    PROCESSING = 'processing'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'


class PaymentStatus(str, enum.Enum):
    """Payment status of a supplier order."""
    PENDING = 'pending'
    PAID = 'paid'
    FAILED = 'failed'
    REFUNDED = 'refunded'


class SupplierOrder(Base):
    """
    One supplier's share of a checkout.

    Items, amounts and the commission rate are frozen at creation. Only
    status, payment_status, tracking data and timestamps change afterwards.
    version_id guards concurrent status changes (optimistic locking).
    """

    __tablename__ = 'supplier_order'

    id = Column(String(36), primary_key=True)
    order_number = Column(String(64), nullable=False, unique=True)
    parent_order_id = Column(String(36), ForeignKey('parent_order.id'), nullable=True, index=True)
    sequence = Column(Integer, nullable=False, default=0)
    buyer_id = Column(String(64), nullable=True, index=True)
    supplier_id = Column(String(64), nullable=False, index=True)
    supplier_name = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(50), nullable=False)
    subtotal = Column(Numeric(14, 2), nullable=False)
    shipping_cost = Column(Numeric(14, 2), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False)
    commission_rate = Column(Numeric(6, 4), nullable=False)
    tracking_number = Column(String(100), nullable=True)
    estimated_delivery = Column(String(100), nullable=True)
    actual_delivery = Column(DateTime(timezone=True), nullable=True)
    shipping_address = Column(JSON, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version_id}

    # Relationships
    parent_order = relationship('ParentOrder', back_populates='children')
    items = relationship(
        'OrderItem',
        back_populates='order',
        cascade='all, delete-orphan',
        order_by='OrderItem.position',
    )

    @property
    def is_split(self):
        return self.parent_order_id is not None or self.parent_order is not None

    def to_dict(self):
        return {
            'id': self.id,
            'order_number': self.order_number,
            'parent_order_id': self.parent_order_id,
            'buyer_id': self.buyer_id,
            'supplier_id': self.supplier_id,
            'supplier_name': self.supplier_name,
            'status': self.status,
            'payment_status': self.payment_status,
            'payment_method': self.payment_method,
            'subtotal': str(self.subtotal),
            'shipping_cost': str(self.shipping_cost),
            'total_amount': str(self.total_amount),
            'commission_rate': str(self.commission_rate),
            'tracking_number': self.tracking_number,
            'estimated_delivery': self.estimated_delivery,
            'actual_delivery': self.actual_delivery.isoformat() if self.actual_delivery else None,
            'shipping_address': dict(self.shipping_address or {}),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'items': [item.to_dict() for item in self.items],
        }

    def __repr__(self):
        return f"<SupplierOrder(id='{self.id}', number='{self.order_number}', status='{self.status}')>"
