"""Prometheus metrics for sales, payments and card repayments"""

from prometheus_client import Counter, Histogram

# Sale metrics
sale_created_counter = Counter(
    "hire_purchase_sales_created_total",
    "Sales recorded",
    ["product_type"],
)

sale_status_transition_counter = Counter(
    "hire_purchase_status_transitions_total",
    "Sale status changes caused by payments or edits",
    ["from_status", "to_status"],
)

# Payment metrics
installment_payment_counter = Counter(
    "hire_purchase_installment_payments_total",
    "Installments marked paid",
)

installment_payment_amount_histogram = Histogram(
    "hire_purchase_installment_payment_amount",
    "Installment amounts collected (minor units)",
    buckets=[50_000, 100_000, 250_000, 500_000, 1_000_000, 2_500_000],
)

card_repayment_counter = Counter(
    "hire_purchase_card_repayments_total",
    "Card-level repayments recorded",
)

card_unallocated_counter = Counter(
    "hire_purchase_card_unallocated_total",
    "Repayment amount left over after every usage was settled (minor units)",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_status_change(previous_status: str | None, new_status: str) -> None:
    """Count a status transition; unchanged statuses are not recorded"""
    if previous_status == new_status:
        return
    sale_status_transition_counter.labels(from_status=previous_status or "new", to_status=new_status).inc()


def record_installment_payment(amount_cents: int) -> None:
    installment_payment_counter.inc()
    installment_payment_amount_histogram.observe(amount_cents)


def record_card_repayment(unallocated_cents: int) -> None:
    card_repayment_counter.inc()
    if unallocated_cents > 0:
        card_unallocated_counter.inc(unallocated_cents)
