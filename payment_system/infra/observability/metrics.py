from prometheus_client import Counter


# Define Prometheus metrics
commissions_recorded_total = Counter(
    "commissions_recorded_total", "Commissions recorded for placed orders", ["status"]
)

commission_volume_total = Counter("commission_volume_total", "Total platform commission recorded")

commission_payments_total = Counter("commission_payments_total", "Commission payouts processed", ["status"])
