from dataclasses import dataclass
from decimal import Decimal

from marketplace.domain.events import DomainEvent


@dataclass
class CommissionRecordedEvent(DomainEvent):
    """Event: Commission recorded for a placed order."""

    def __init__(self, commission_id: int, order_id: str, vendor_id: int, commission_amount: Decimal):
        super().__init__(
            event_type="commission.recorded",
            payload={
                "commission_id": commission_id,
                "order_id": order_id,
                "vendor_id": vendor_id,
                "commission_amount": str(commission_amount),
            },
        )


@dataclass
class CommissionPaidEvent(DomainEvent):
    """Event: Vendor earnings for a commission paid out."""

    def __init__(self, commission_id: int, vendor_id: int, vendor_earnings: Decimal):
        super().__init__(
            event_type="commission.paid",
            payload={
                "commission_id": commission_id,
                "vendor_id": vendor_id,
                "vendor_earnings": str(vendor_earnings),
            },
        )
