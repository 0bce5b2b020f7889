from prometheus_client import Counter, Histogram


# Order Metrics
orders_placed_total = Counter("marketplace_orders_placed_total", "Total orders placed", ["status"])
order_value = Histogram(
    "marketplace_order_value",
    "Order value distribution",
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 5000, float("inf")],
)
order_status_transitions_total = Counter(
    "marketplace_order_status_transitions_total", "Order status transitions", ["from_status", "to_status"]
)

# Stock Metrics
stock_decrement_conflicts = Counter(
    "marketplace_stock_decrement_conflict_total", "Conditional stock decrements that matched no row"
)

# Discount Metrics
discount_resolution_failures = Counter(
    "marketplace_discount_resolution_failures_total", "Discount code lookups that were rejected", ["reason"]
)

# Performance Metrics
order_placement_duration = Histogram("marketplace_order_placement_seconds", "Order placement time")
