from .definitions import CommissionPaidEvent, CommissionRecordedEvent


__all__ = [
    "CommissionPaidEvent",
    "CommissionRecordedEvent",
]
