"""Status and profit reconciliation - recompute a sale's derived fields from its lines"""

from datetime import date
from typing import Optional, Sequence
from hire_purchase.domain.models import (
    InstallmentLine,
    Reconciliation,
    SaleTerms,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_OVERDUE,
)
from hire_purchase.domain.exceptions import InvariantViolation, ValidationError


def total_profit(terms: SaleTerms) -> int:
    """Profit fixed by the sale terms, independent of payment history"""
    return terms.selling_price_cents - terms.cost_price_cents - terms.cost_bonus_cents


def paid_so_far(terms: SaleTerms, lines: Sequence[InstallmentLine]) -> int:
    """Cash collected from the customer: paid installments plus down payment"""
    return sum(line.amount_cents for line in lines if line.paid) + terms.customer_down_payment_cents


def reconcile(
    terms: SaleTerms,
    lines: Sequence[InstallmentLine],
    today: date,
    clamp_profit: bool = False,
    status_override: Optional[str] = None,
    completed_at: Optional[date] = None,
) -> Reconciliation:
    """
    Recompute remaining balance, profit, status and completion date.

    Rules:
    - completed: at least one line and nothing left unpaid
    - overdue: not completed and some unpaid line is due before today
    - active: otherwise
    - remaining is forced to 0 once completed
    - completed_at is re-derived on every call (today, or None)

    Pure and idempotent: the same snapshot and the same today always give
    the same result.

    Args:
        clamp_profit: cap current profit at min(paid so far, total profit)
        status_override: only "completed" is accepted; forces completion
            regardless of the lines (manual correction on edit)
        completed_at: completion date to keep when status_override is used
    """
    if status_override is not None and status_override != STATUS_COMPLETED:
        raise ValidationError(f"Status can only be overridden to '{STATUS_COMPLETED}'")

    unpaid_total = sum(line.amount_cents for line in lines if not line.paid)
    paid_total = sum(line.amount_cents for line in lines if line.paid)
    has_overdue = any(not line.paid and line.due_date < today for line in lines)

    if unpaid_total < 0 or paid_total < 0:
        raise InvariantViolation("Installment amounts must not be negative")

    if status_override == STATUS_COMPLETED:
        status = STATUS_COMPLETED
        finished_on = completed_at or today
    else:
        if unpaid_total == 0 and len(lines) > 0:
            status = STATUS_COMPLETED
        elif has_overdue:
            status = STATUS_OVERDUE
        else:
            status = STATUS_ACTIVE
        finished_on = today if status == STATUS_COMPLETED else None

    remaining = 0 if status == STATUS_COMPLETED else unpaid_total

    profit_target = total_profit(terms)
    collected = paid_so_far(terms, lines)
    if clamp_profit:
        current_profit = min(collected, profit_target)
    else:
        current_profit = collected - terms.total_cost_cents

    return Reconciliation(
        remaining_installment_cents=remaining,
        current_profit_cents=current_profit,
        total_profit_cents=profit_target,
        status=status,
        completed_at=finished_on,
    )
