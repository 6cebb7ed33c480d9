"""SQLAlchemy-backed order store."""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from marketplace.exceptions import ConcurrentUpdateError, NotFoundError
from marketplace.models import ParentOrder, SupplierOrder
from marketplace.services.ports import OrderStore
from marketplace.services import order_status_service

logger = logging.getLogger(__name__)


class SqlAlchemyOrderStore(OrderStore):
    """
    Order store over a SQLAlchemy session.

    save() only adds and flushes; the caller owns the transaction. Status
    writes commit themselves because each one is a single-order atomic
    change. SupplierOrder.version_id turns a concurrent write of the same
    order into ConcurrentUpdateError instead of a lost update.
    """

    def __init__(self, session: Session):
        self.session = session

    def save(self, parent_order, child_orders: List) -> None:
        self.session.add(parent_order)
        self.session.add_all(child_orders)
        self.session.flush()
        logger.info(
            f"[ORDERS] Saved {parent_order.order_number} with {len(child_orders)} supplier order(s)"
        )

    def get(self, order_id: str) -> SupplierOrder:
        order = self.session.query(SupplierOrder).filter(SupplierOrder.id == order_id).first()
        if not order:
            raise NotFoundError(f'Order {order_id} not found')
        return order

    def get_parent(self, parent_id: str) -> ParentOrder:
        parent = self.session.query(ParentOrder).filter(ParentOrder.id == parent_id).first()
        if not parent:
            raise NotFoundError(f'Order {parent_id} not found')
        return parent

    def find_by_parent(self, parent_id: str) -> List[SupplierOrder]:
        return (
            self.session.query(SupplierOrder)
            .filter(SupplierOrder.parent_order_id == parent_id)
            .order_by(SupplierOrder.sequence)
            .all()
        )

    def update_status(self, order_id: str, new_status, tracking_number: Optional[str] = None, **fields):
        return self._commit_change(
            order_id,
            lambda order: self._apply_status(order, new_status, tracking_number, fields)
        )

    def update_payment_status(self, order_id: str, new_status):
        return self._commit_change(
            order_id,
            lambda order: order_status_service.update_payment_status(order, new_status)
        )

    @staticmethod
    def _apply_status(order, new_status, tracking_number, fields):
        order_status_service.transition(order, new_status)
        if tracking_number:
            order.tracking_number = tracking_number
        for key, value in fields.items():
            if key in ('estimated_delivery', 'notes') and value is not None:
                setattr(order, key, value)

    def _commit_change(self, order_id: str, change):
        try:
            order = self.get(order_id)
            change(order)
            self.session.commit()
            return order
        except StaleDataError:
            self.session.rollback()
            logger.warning(f"[ORDERS] Concurrent update detected on order {order_id}")
            raise ConcurrentUpdateError(order_id)
        except Exception:
            self.session.rollback()
            raise
