from .domain.models.commission import Commission, CommissionRate, CommissionStatus


__all__ = [
    "Commission",
    "CommissionRate",
    "CommissionStatus",
]
