"""Order item model."""
from sqlalchemy import Column, Integer, String, Numeric, JSON, ForeignKey
from sqlalchemy.orm import relationship
from marketplace.database import Base


class OrderItem(Base):
    """
    Line of a supplier order.

    Stores a snapshot of the product at checkout so later catalog edits do
    not change historical orders.
    """

    __tablename__ = 'order_item'

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey('supplier_order.id'), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(String(64), nullable=False)
    product_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    total_price = Column(Numeric(14, 2), nullable=False)
    specifications = Column(JSON, nullable=True)

    # Relationships
    order = relationship('SupplierOrder', back_populates='items')

    def to_dict(self):
        return {
            'product_id': self.product_id,
            'product_name': self.product_name,
            'quantity': self.quantity,
            'unit_price': str(self.unit_price),
            'total_price': str(self.total_price),
            'specifications': dict(self.specifications or {}),
        }

    def __repr__(self):
        return f"<OrderItem(id={self.id}, product_id='{self.product_id}', qty={self.quantity})>"
