"""
Request objects for order placement.

Dataclasses describing what a customer asked for, independent of how the
request reached the service layer.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class OrderItemRequest:
    """One requested product line."""

    product_id: Any  # Product UUID (str or uuid.UUID)
    quantity: int


@dataclass
class OrderRequest:
    """Products to buy plus where to ship and bill them."""

    items: List[OrderItemRequest] = field(default_factory=list)
    shipping_address: str = ""
    billing_address: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderRequest":
        """
        Build a request from a plain payload such as
        ``{"items": [{"product_id": ..., "quantity": 2}], "shipping_address": ..., "billing_address": ...}``.
        """
        items = [
            OrderItemRequest(product_id=item.get("product_id"), quantity=item.get("quantity"))
            for item in data.get("items") or []
        ]
        return cls(
            items=items,
            shipping_address=data.get("shipping_address", ""),
            billing_address=data.get("billing_address", ""),
        )

    def merged_quantities(self) -> Dict[str, int]:
        """Quantity per product id, summing repeated lines, in first-seen order."""
        merged: Dict[str, int] = {}
        for item in self.items:
            try:
                key = str(uuid.UUID(str(item.product_id)))
            except ValueError:
                key = str(item.product_id)
            merged[key] = merged.get(key, 0) + item.quantity
        return merged
