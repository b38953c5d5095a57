"""Installment schedule generation for product and card repayments"""

from datetime import date
from typing import List, Sequence
from hire_purchase.domain.models import InstallmentLine, CardPaymentLine
from hire_purchase.domain.exceptions import ValidationError
from hire_purchase.utils.date_utils import add_months


def monthly_installment(amount_cents: int, months: int) -> int:
    """Per-period amount: ceiling division, never rounded down"""
    if months <= 0:
        return 0
    return -(-amount_cents // months)


def generate_installment_schedule(
    principal_cents: int,
    months: int,
    due_day: int = 1,
    start_date: date | None = None,
) -> List[InstallmentLine]:
    """
    Generate a monthly hire-purchase schedule.

    Requirements:
    - Every line is ceil(principal / months); there is no remainder correction,
      so the schedule may over-collect by up to months-1 minor units
    - Line i (0-based) falls due in the (i+1)-th month after start_date
    - due_day is clamped to the last day of short months

    Args:
        principal_cents: Financed amount (selling price minus down payment)
        months: Number of monthly installments; <= 0 yields no lines
        due_day: Day of month each installment falls due (1-31)
        start_date: Sale date (default: today)

    Returns:
        InstallmentLine objects numbered 1..months

    Example:
        10000 over 3 months -> [3334, 3334, 3334] (sum 10002)
    """
    if principal_cents < 0:
        raise ValidationError("Principal must not be negative")
    if months <= 0:
        return []
    if not 1 <= due_day <= 31:
        raise ValidationError("Due day must be between 1 and 31")

    if start_date is None:
        start_date = date.today()

    per_month = monthly_installment(principal_cents, months)

    return [
        InstallmentLine(
            sequence_number=i + 1,
            due_date=add_months(start_date, i + 1, day=due_day),
            amount_cents=per_month,
        )
        for i in range(months)
    ]


def validate_schedule(lines: Sequence[InstallmentLine]) -> None:
    """
    Check a caller-supplied schedule before it replaces the stored one.

    Raises:
        ValidationError: numbering is not 1..N, an amount is negative, or
            paid_date is set on an unpaid line
    """
    numbers = sorted(line.sequence_number for line in lines)
    if numbers != list(range(1, len(lines) + 1)):
        raise ValidationError("Installment numbers must run 1..N without gaps or duplicates")

    for line in lines:
        if line.amount_cents < 0:
            raise ValidationError(f"Installment {line.sequence_number} has a negative amount")
        if line.paid_date is not None and not line.paid:
            raise ValidationError(f"Installment {line.sequence_number} has a paid date but is not paid")


def generate_card_payment_schedule(
    amount_cents: int,
    installments_count: int,
    start_date: date | None = None,
) -> List[CardPaymentLine]:
    """
    Generate the per-period schedule of a card usage.

    Due dates keep start_date's day of month (clamped), one month apart,
    the first one month after start_date.
    """
    if amount_cents < 0:
        raise ValidationError("Card usage amount must not be negative")
    if installments_count <= 0:
        return []

    if start_date is None:
        start_date = date.today()

    per_month = monthly_installment(amount_cents, installments_count)

    return [
        CardPaymentLine(
            sequence_number=i + 1,
            due_date=add_months(start_date, i + 1),
            amount_cents=per_month,
        )
        for i in range(installments_count)
    ]
