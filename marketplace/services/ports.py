"""
Ports consumed by the order core.

The checkout and status services talk to persistence, notification
delivery and payment capture only through these interfaces.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class OrderStore(ABC):
    """Persistence of parent and supplier orders."""

    @abstractmethod
    def save(self, parent_order, child_orders: List) -> None:
        """Persist a checkout's parent and children atomically."""

    @abstractmethod
    def get(self, order_id: str):
        """Return a supplier order by id or raise NotFoundError."""

    @abstractmethod
    def update_status(self, order_id: str, new_status, **fields):
        """
        Move a supplier order to new_status.

        Must refuse moves the lifecycle graph disallows and detect concurrent
        updates of the same order.
        """

    @abstractmethod
    def update_payment_status(self, order_id: str, new_status):
        """Move a supplier order's payment status."""

    @abstractmethod
    def find_by_parent(self, parent_id: str) -> List:
        """Supplier orders of a parent, in checkout order."""

    @abstractmethod
    def get_parent(self, parent_id: str):
        """Return a parent order by id or raise NotFoundError."""


class NotificationSink(ABC):
    """Delivery of order events to suppliers and buyers. Fire-and-forget."""

    @abstractmethod
    def notify(self, recipient_id: str, event: Dict[str, Any]) -> None:
        """Deliver one event to one recipient."""


class PaymentGateway(ABC):
    """External payment capture."""

    @abstractmethod
    def request_payment(self, parent_order, payment_method: str) -> Optional[str]:
        """Start payment for a checkout; returns the gateway's reference, if any."""
