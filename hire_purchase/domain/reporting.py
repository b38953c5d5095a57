"""Portfolio reporting - dashboard totals across all sales"""

from datetime import date
from typing import List, Sequence
from hire_purchase.domain.models import (
    SaleSnapshot,
    PortfolioSummary,
    UpcomingPayment,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_OVERDUE,
)
from hire_purchase.domain.reconciliation import paid_so_far
from hire_purchase.domain.due_window import days_until


def upcoming_payments(sales: Sequence[SaleSnapshot], today: date, window_days: int = 7) -> List[UpcomingPayment]:
    """
    Next unpaid installment of every open sale, if it is within +/- window_days.

    Sorted by due date so the most urgent (or most overdue) comes first.
    """
    upcoming = []
    for sale in sales:
        if sale.status not in (STATUS_ACTIVE, STATUS_OVERDUE):
            continue

        unpaid = sorted((line for line in sale.lines if not line.paid), key=lambda l: l.sequence_number)
        if not unpaid:
            continue

        next_line = unpaid[0]
        distance = days_until(next_line.due_date, today)
        if -window_days <= distance <= window_days:
            upcoming.append(
                UpcomingPayment(
                    sale_id=sale.id,
                    name=sale.name,
                    status=sale.status,
                    sequence_number=next_line.sequence_number,
                    due_date=next_line.due_date,
                    amount_cents=next_line.amount_cents,
                    days_until=distance,
                )
            )

    return sorted(upcoming, key=lambda p: p.due_date)


def summarize_portfolio(sales: Sequence[SaleSnapshot], today: date, window_days: int = 7) -> PortfolioSummary:
    """
    Aggregate the dashboard figures.

    current_profit is recomputed from the lines (unclamped), not read from
    the stored per-sale value.
    """
    total_collected = sum(paid_so_far(s.terms, s.lines) for s in sales)
    total_cost = sum(s.terms.total_cost_cents for s in sales)

    return PortfolioSummary(
        total_sales_cents=sum(s.terms.selling_price_cents for s in sales),
        total_cost_cents=total_cost,
        total_collected_cents=total_collected,
        total_remaining_cents=sum(s.remaining_installment_cents for s in sales),
        total_profit_cents=sum(s.total_profit_cents for s in sales),
        current_profit_cents=total_collected - total_cost,
        credit_card_remaining_cents=sum(u.remaining_cents for s in sales for u in s.card_usages),
        active_count=sum(1 for s in sales if s.status == STATUS_ACTIVE),
        completed_count=sum(1 for s in sales if s.status == STATUS_COMPLETED),
        overdue_count=sum(1 for s in sales if s.status == STATUS_OVERDUE),
        upcoming_payments=upcoming_payments(sales, today, window_days),
    )
