"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from typing import List, Literal, Optional

ProductType = Literal["iPad", "iPhone", "MacBook", "Notebook", "other"]
SaleStatus = Literal["active", "completed", "overdue"]


# --- Requests ---


class InstallmentInput(BaseModel):
    """Explicit installment line supplied by the caller instead of a generated one"""

    installment_number: int = Field(..., ge=1)
    due_date: date
    amount_cents: int = Field(..., ge=0)
    paid: bool = False
    paid_date: Optional[date] = None


class CardUsageInput(BaseModel):
    """Portion of the sale charged to a credit card"""

    credit_card_id: str = Field(..., min_length=1)
    amount_cents: int = Field(..., ge=0)
    installments: int = Field(..., ge=1, description="Number of monthly card installments")
    remaining_cents: Optional[int] = Field(None, ge=0, description="Defaults to the full amount")
    payments: Optional[List[InstallmentInput]] = Field(None, description="Generated when omitted")

    @model_validator(mode="after")
    def check_remaining(self) -> "CardUsageInput":
        if self.remaining_cents is not None and self.remaining_cents > self.amount_cents:
            raise ValueError("remaining_cents cannot exceed amount_cents")
        return self


class SaleRequest(BaseModel):
    """Request body for POST /v1/sales and PUT /v1/sales/{id}"""

    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: Optional[str] = None

    product_type: ProductType = "other"
    product_type_other: Optional[str] = None
    product_model: str = Field(..., min_length=1)
    serial_number: Optional[str] = None

    cost_price_cents: int = Field(0, ge=0)
    cost_bonus_cents: int = Field(0, ge=0)
    down_payment_for_purchase_cents: int = Field(0, ge=0)

    selling_price_cents: int = Field(..., gt=0)
    customer_down_payment_cents: int = Field(0, ge=0)
    down_payment_installment: bool = False
    down_payment_months: Optional[int] = Field(None, ge=1)

    installment_months: int = Field(0, ge=0)
    payment_due_day: int = Field(1, ge=1, le=31)
    start_date: Optional[date] = Field(None, description="Schedule anchor; defaults to today")

    installments: Optional[List[InstallmentInput]] = Field(None, description="Generated when omitted")
    credit_cards: List[CardUsageInput] = Field(default_factory=list)

    # Manual completion on edit
    status: Optional[Literal["completed"]] = None
    completed_at: Optional[date] = None

    @model_validator(mode="after")
    def check_down_payment(self) -> "SaleRequest":
        if self.customer_down_payment_cents > self.selling_price_cents:
            raise ValueError("customer_down_payment_cents cannot exceed selling_price_cents")
        return self


class PayInstallmentRequest(BaseModel):
    """Request body for POST /v1/sales/{id}/pay"""

    installment_id: str = Field(..., min_length=1)
    paid_date: Optional[date] = None


class CreditCardRequest(BaseModel):
    """Request body for POST /v1/credit-cards"""

    name: str = Field(..., min_length=1)
    credit_limit_cents: int = Field(0, ge=0)
    statement_due_day: int = Field(..., ge=1, le=31)


class CreditCardUpdateRequest(BaseModel):
    """Request body for PUT /v1/credit-cards/{id}"""

    name: Optional[str] = Field(None, min_length=1)
    credit_limit_cents: Optional[int] = Field(None, ge=0)
    statement_due_day: Optional[int] = Field(None, ge=1, le=31)


class CardRepaymentRequest(BaseModel):
    """Request body for POST /v1/credit-cards/{id}/pay"""

    amount_cents: int = Field(..., gt=0)
    payment_date: date


# --- Responses ---


class InstallmentSchema(BaseModel):
    id: str
    installment_number: int
    due_date: date
    amount_cents: int
    paid: bool
    paid_date: Optional[date] = None


class CardUsageSchema(BaseModel):
    id: str
    credit_card_id: str
    amount_cents: int
    installments: int
    monthly_payment_cents: int
    remaining_cents: int
    payments: List[InstallmentSchema]

    # Sale this usage funds
    sale_id: str
    sale_name: str
    product_model: str
    sale_status: SaleStatus


class SaleResponse(BaseModel):
    id: str
    name: str
    phone: str
    address: Optional[str] = None
    product_type: str
    product_type_other: Optional[str] = None
    product_model: str
    serial_number: Optional[str] = None
    cost_price_cents: int
    cost_bonus_cents: int
    down_payment_for_purchase_cents: int
    selling_price_cents: int
    customer_down_payment_cents: int
    down_payment_installment: bool
    down_payment_months: Optional[int] = None
    down_payment_monthly_cents: Optional[int] = None
    installment_months: int
    monthly_payment_cents: int
    payment_due_day: int
    remaining_installment_cents: int
    total_profit_cents: int
    current_profit_cents: int
    status: SaleStatus
    created_at: Optional[datetime] = None
    completed_at: Optional[date] = None
    installments: List[InstallmentSchema]
    credit_cards: List[CardUsageSchema]


class PaymentResponse(BaseModel):
    """Response for POST /v1/sales/{id}/pay"""

    sale_id: str
    installment_id: str
    paid_date: date
    status: SaleStatus
    remaining_installment_cents: int
    current_profit_cents: int
    completed_at: Optional[date] = None


class DueLineSchema(BaseModel):
    installment_number: int
    due_date: date
    amount_cents: int
    bucket: Literal["overdue", "due_soon", "later"]


class DueWindowResponse(BaseModel):
    """Response for GET /v1/sales/{id}/due"""

    sale_id: str
    as_of: date
    window_days: int
    overdue_cents: int
    due_soon_cents: int
    later_cents: int
    due_this_month_cents: int
    lines: List[DueLineSchema]


class CreditCardResponse(BaseModel):
    id: str
    name: str
    credit_limit_cents: int
    statement_due_day: int
    total_used_cents: int
    total_remaining_cents: int
    total_card_paid_cents: int
    available_balance_cents: int
    card_debt_cents: int
    utilization_rate: float
    due_within_7_days_cents: int
    monthly_due_this_month_cents: int
    days_until_due: int
    due_soon: bool
    usages: List[CardUsageSchema]


class CardRepaymentSchema(BaseModel):
    id: str
    payment_date: date
    amount_cents: int
    remaining_balance_cents: int
    unallocated_cents: int


class UsageDeductionSchema(BaseModel):
    usage_id: str
    deducted_cents: int
    remaining_cents: int


class CardRepaymentResponse(BaseModel):
    """Response for POST /v1/credit-cards/{id}/pay"""

    payment: CardRepaymentSchema
    total_paid_cents: int
    remaining_balance_cents: int
    deductions: List[UsageDeductionSchema]


class UpcomingPaymentSchema(BaseModel):
    sale_id: str
    name: str
    status: SaleStatus
    installment_number: int
    due_date: date
    amount_cents: int
    days_until: int


class DashboardResponse(BaseModel):
    """Response for GET /v1/dashboard"""

    total_sales_cents: int
    total_cost_cents: int
    total_collected_cents: int
    total_remaining_cents: int
    total_profit_cents: int
    current_profit_cents: int
    credit_card_remaining_cents: int
    active_customers: int
    completed_customers: int
    overdue_customers: int
    upcoming_payments: List[UpcomingPaymentSchema]
