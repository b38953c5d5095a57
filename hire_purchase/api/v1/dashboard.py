"""GET /v1/dashboard - portfolio summary"""

from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hire_purchase.api.v1.schemas import DashboardResponse, UpcomingPaymentSchema
from hire_purchase.api.dependencies import get_settings, get_today
from hire_purchase.config import Settings
from hire_purchase.infrastructure.database.session import get_db
from hire_purchase.infrastructure.database.repositories import SaleRepository, snapshot_of
from hire_purchase.domain.reporting import summarize_portfolio

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    """
    Sales, collections and profit across all customers.

    Upcoming payments lists each open sale whose next unpaid installment is
    due within +/- upcoming_window_days of today.
    """
    sales = [snapshot_of(sale) for sale in SaleRepository(db).list_sales()]
    summary = summarize_portfolio(sales, today, settings.upcoming_window_days)

    return DashboardResponse(
        total_sales_cents=summary.total_sales_cents,
        total_cost_cents=summary.total_cost_cents,
        total_collected_cents=summary.total_collected_cents,
        total_remaining_cents=summary.total_remaining_cents,
        total_profit_cents=summary.total_profit_cents,
        current_profit_cents=summary.current_profit_cents,
        credit_card_remaining_cents=summary.credit_card_remaining_cents,
        active_customers=summary.active_count,
        completed_customers=summary.completed_count,
        overdue_customers=summary.overdue_count,
        upcoming_payments=[
            UpcomingPaymentSchema(
                sale_id=p.sale_id,
                name=p.name,
                status=p.status,
                installment_number=p.sequence_number,
                due_date=p.due_date,
                amount_cents=p.amount_cents,
                days_until=p.days_until,
            )
            for p in summary.upcoming_payments
        ],
    )
