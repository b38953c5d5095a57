"""Payment allocation - applying payments to installments and card usages"""

from datetime import date
from typing import List, Sequence
from hire_purchase.domain.models import InstallmentLine, CardUsageLine, Allocation, UsageDeduction
from hire_purchase.domain.exceptions import AlreadyPaidError, NotFoundError, ValidationError


def mark_installment_paid(
    lines: Sequence[InstallmentLine],
    line_id: str,
    paid_on: date,
) -> InstallmentLine:
    """
    Mark one caller-selected installment as paid.

    Raises:
        NotFoundError: line_id is not part of this schedule
        AlreadyPaidError: line was already paid (never counted twice)
    """
    for line in lines:
        if line.id == line_id:
            if line.paid:
                raise AlreadyPaidError(f"Installment {line.sequence_number} is already paid")
            line.paid = True
            line.paid_date = paid_on
            return line

    raise NotFoundError(f"Installment {line_id} not found")


def allocate_card_payment(usages: List[CardUsageLine], amount_cents: int) -> Allocation:
    """
    Spread a card repayment over usages in the given (creation) order.

    Greedy: each usage absorbs min(remaining, amount left). Settled usages
    are skipped without consuming anything. Whatever is left once every
    usage is settled is discarded and reported as unallocated.

    Mutates remaining_cents on the usages it touches.
    """
    if amount_cents < 0:
        raise ValidationError("Payment amount must not be negative")

    left = amount_cents
    deductions: List[UsageDeduction] = []

    for usage in usages:
        if left <= 0:
            break
        if usage.remaining_cents <= 0:
            continue

        deduct = min(usage.remaining_cents, left)
        usage.remaining_cents = max(0, usage.remaining_cents - deduct)
        left -= deduct

        deductions.append(
            UsageDeduction(usage_id=usage.id, deducted_cents=deduct, remaining_cents=usage.remaining_cents)
        )

    return Allocation(requested_cents=amount_cents, deductions=deductions, unallocated_cents=left)


def card_balance_after_payment(total_used_cents: int, total_paid_cents: int, amount_cents: int) -> int:
    """Card debt left after a repayment: used minus everything paid so far, floored at zero"""
    current_remaining = max(0, total_used_cents - total_paid_cents)
    return max(0, current_remaining - amount_cents)
