"""Domain models - pure Python dataclasses representing ledger entities"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

# Sale lifecycle
STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"
STATUS_OVERDUE = "overdue"
SALE_STATUSES = (STATUS_ACTIVE, STATUS_COMPLETED, STATUS_OVERDUE)

# Due-window buckets
DUE_OVERDUE = "overdue"
DUE_SOON = "due_soon"
DUE_LATER = "later"


@dataclass
class InstallmentLine:
    """One scheduled product-payment period of a sale"""

    sequence_number: int
    due_date: date
    amount_cents: int
    paid: bool = False
    paid_date: Optional[date] = None
    id: Optional[str] = None


@dataclass
class CardPaymentLine(InstallmentLine):
    """One scheduled repayment period of a card usage (display/due-tracking only)"""


@dataclass
class CardUsageLine:
    """Portion of a sale financed on a credit card"""

    amount_cents: int
    installments_count: int
    monthly_payment_cents: int
    remaining_cents: int
    id: Optional[str] = None
    credit_card_id: Optional[str] = None
    payments: List[CardPaymentLine] = field(default_factory=list)


@dataclass
class SaleTerms:
    """Financial terms of a sale that the derived fields are computed from"""

    cost_price_cents: int
    cost_bonus_cents: int
    selling_price_cents: int
    customer_down_payment_cents: int = 0
    down_payment_installment: bool = False

    @property
    def total_cost_cents(self) -> int:
        return self.cost_price_cents + self.cost_bonus_cents

    @property
    def financed_cents(self) -> int:
        return self.selling_price_cents - self.customer_down_payment_cents


@dataclass
class Reconciliation:
    """Derived aggregate fields of a sale, ready to persist verbatim"""

    remaining_installment_cents: int
    current_profit_cents: int
    total_profit_cents: int
    status: str
    completed_at: Optional[date]


@dataclass
class UsageDeduction:
    """Amount taken off a single card usage by one repayment"""

    usage_id: Optional[str]
    deducted_cents: int
    remaining_cents: int


@dataclass
class Allocation:
    """Outcome of spreading a card repayment over outstanding usages"""

    requested_cents: int
    deductions: List[UsageDeduction]
    unallocated_cents: int

    @property
    def applied_cents(self) -> int:
        return sum(d.deducted_cents for d in self.deductions)


@dataclass
class DueWindow:
    """Unpaid lines bucketed relative to a reference day"""

    overdue: List[InstallmentLine] = field(default_factory=list)
    due_soon: List[InstallmentLine] = field(default_factory=list)
    later: List[InstallmentLine] = field(default_factory=list)

    def total(self, bucket: str) -> int:
        return sum(line.amount_cents for line in getattr(self, bucket))


@dataclass
class CardSummary:
    """Revolving-limit position of one credit card"""

    total_used_cents: int
    total_remaining_cents: int
    total_card_paid_cents: int
    net_used_cents: int
    available_balance_cents: int
    card_debt_cents: int
    utilization_rate: float
    due_within_window_cents: int
    due_this_month_cents: int
    days_until_due: int
    due_soon: bool


@dataclass
class SaleSnapshot:
    """Read-only view of a persisted sale used for portfolio reporting"""

    id: str
    name: str
    status: str
    terms: SaleTerms
    remaining_installment_cents: int
    total_profit_cents: int
    lines: List[InstallmentLine]
    card_usages: List[CardUsageLine] = field(default_factory=list)


@dataclass
class UpcomingPayment:
    sale_id: str
    name: str
    status: str
    sequence_number: int
    due_date: date
    amount_cents: int
    days_until: int


@dataclass
class PortfolioSummary:
    """Dashboard totals across all sales"""

    total_sales_cents: int
    total_cost_cents: int
    total_collected_cents: int
    total_remaining_cents: int
    total_profit_cents: int
    current_profit_cents: int
    credit_card_remaining_cents: int
    active_count: int
    completed_count: int
    overdue_count: int
    upcoming_payments: List[UpcomingPayment]
