"""Commission tier model."""
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime
from sqlalchemy.sql import func
from marketplace.database import Base


class CommissionTier(Base):
    """
    Admin-configured order amount range mapped to a platform commission rate.

    The range is half-open: an amount matches when
    min_amount <= amount < max_amount; max_amount NULL means unbounded.
    Active tiers never overlap.
    """

    __tablename__ = 'commission_tier'

    id = Column(Integer, primary_key=True, autoincrement=True)
    min_amount = Column(Numeric(14, 2), nullable=False)
    max_amount = Column(Numeric(14, 2), nullable=True)
    commission_rate = Column(Numeric(6, 4), nullable=False)
    description = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def describe_range(self):
        upper = 'unbounded' if self.max_amount is None else f"{self.max_amount}"
        return f"[{self.min_amount}, {upper})"

    def range_dict(self):
        return {
            'min_amount': str(self.min_amount),
            'max_amount': None if self.max_amount is None else str(self.max_amount),
        }

    def to_dict(self):
        return {
            'id': self.id,
            **self.range_dict(),
            'commission_rate': str(self.commission_rate),
            'description': self.description,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f"<CommissionTier(id={self.id}, range={self.describe_range()}, rate={self.commission_rate})>"
