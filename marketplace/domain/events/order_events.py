from dataclasses import dataclass
from decimal import Decimal

from .base import DomainEvent


@dataclass
class OrderPlacedEvent(DomainEvent):
    """Event: Order placed."""

    def __init__(self, order_id: str, customer_id: str, vendor_id: int, total_amount: Decimal):
        super().__init__(
            event_type="order.placed",
            payload={
                "order_id": order_id,
                "customer_id": customer_id,
                "vendor_id": vendor_id,
                "total_amount": str(total_amount),
            },
        )


@dataclass
class OrderStatusChangedEvent(DomainEvent):
    """Event: Order moved to a new status."""

    def __init__(self, order_id: str, old_status: str, new_status: str):
        super().__init__(
            event_type="order.status_changed",
            payload={"order_id": order_id, "old_status": old_status, "new_status": new_status},
        )
