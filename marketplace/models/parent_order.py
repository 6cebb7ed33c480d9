"""Parent order model."""
from sqlalchemy import Column, String, Numeric, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from marketplace.database import Base


class ParentOrder(Base):
    """
    Buyer-facing aggregate of one checkout.

    Every checkout creates exactly one parent, wrapping one child
    (SupplierOrder) per supplier in the cart. The parent carries no
    lifecycle state of its own; its status is derived from the children.
    """

    __tablename__ = 'parent_order'

    id = Column(String(36), primary_key=True)
    order_number = Column(String(64), nullable=False, unique=True)
    buyer_id = Column(String(64), nullable=True, index=True)
    total_amount = Column(Numeric(14, 2), nullable=False)
    payment_method = Column(String(50), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    children = relationship(
        'SupplierOrder',
        back_populates='parent_order',
        order_by='SupplierOrder.sequence',
    )

    @property
    def child_order_ids(self):
        return [child.id for child in self.children]

    def to_dict(self):
        return {
            'id': self.id,
            'order_number': self.order_number,
            'buyer_id': self.buyer_id,
            'total_amount': str(self.total_amount),
            'payment_method': self.payment_method,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'child_order_ids': self.child_order_ids,
        }

    def __repr__(self):
        return f"<ParentOrder(id='{self.id}', number='{self.order_number}', total={self.total_amount})>"
