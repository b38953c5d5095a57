"""Due-window queries for dashboards and card alerts"""

from datetime import date, timedelta
from typing import Iterable, Sequence
from hire_purchase.domain.models import (
    InstallmentLine,
    CardUsageLine,
    CardSummary,
    DueWindow,
    DUE_OVERDUE,
    DUE_SOON,
    DUE_LATER,
)
from hire_purchase.utils.date_utils import days_in_month, same_month


def classify_line(line: InstallmentLine, today: date, window_days: int = 7) -> str:
    """Bucket a single unpaid line: overdue, due_soon (today..today+W inclusive) or later"""
    if line.due_date < today:
        return DUE_OVERDUE
    if line.due_date <= today + timedelta(days=window_days):
        return DUE_SOON
    return DUE_LATER


def classify_due(lines: Iterable[InstallmentLine], today: date, window_days: int = 7) -> DueWindow:
    """Bucket every unpaid line relative to today; paid lines are ignored"""
    window = DueWindow()
    for line in lines:
        if line.paid:
            continue
        getattr(window, classify_line(line, today, window_days)).append(line)
    return window


def due_in_month(lines: Iterable[InstallmentLine], today: date) -> int:
    """Sum of unpaid amounts falling due in today's calendar month"""
    return sum(line.amount_cents for line in lines if not line.paid and same_month(line.due_date, today))


def due_within(lines: Iterable[InstallmentLine], today: date, window_days: int = 7) -> int:
    """Sum of unpaid amounts due from today through today + window_days"""
    horizon = today + timedelta(days=window_days)
    return sum(line.amount_cents for line in lines if not line.paid and today <= line.due_date <= horizon)


def days_until(due_date: date, today: date) -> int:
    """Signed day distance; negative when the date has passed"""
    return (due_date - today).days


def days_until_due_day(due_day: int, today: date) -> int:
    """
    Days until the next occurrence of a day-of-month.

    Wraps into the next month when the day has already passed this month:
    on the 25th of a 30-day month, due day 5 is (30 - 25) + 5 = 10 days away.
    """
    current_day = today.day
    if due_day >= current_day:
        return due_day - current_day
    return (days_in_month(today.year, today.month) - current_day) + due_day


def summarize_card(
    credit_limit_cents: int,
    statement_due_day: int,
    usages: Sequence[CardUsageLine],
    repayments_cents: Iterable[int],
    today: date,
    window_days: int = 7,
    alert_days: int = 3,
) -> CardSummary:
    """
    Revolving-limit position of a card.

    Limit consumption is usage minus card-level repayments (not the per-usage
    remaining balances); due amounts come from the per-usage payment lines.
    """
    total_used = sum(u.amount_cents for u in usages)
    total_remaining = sum(u.remaining_cents for u in usages)
    total_paid = sum(repayments_cents)
    net_used = max(0, total_used - total_paid)

    payment_lines = [p for u in usages for p in u.payments]
    days_left = days_until_due_day(statement_due_day, today)

    return CardSummary(
        total_used_cents=total_used,
        total_remaining_cents=total_remaining,
        total_card_paid_cents=total_paid,
        net_used_cents=net_used,
        available_balance_cents=credit_limit_cents - net_used,
        card_debt_cents=net_used,
        utilization_rate=round(net_used / credit_limit_cents * 100, 2) if credit_limit_cents > 0 else 0.0,
        due_within_window_cents=due_within(payment_lines, today, window_days),
        due_this_month_cents=due_in_month(payment_lines, today),
        days_until_due=days_left,
        due_soon=days_left <= alert_days,
    )
