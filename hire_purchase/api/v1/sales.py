"""/v1/sales - hire-purchase sales, schedules and installment payments"""

import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from hire_purchase.api.v1.schemas import (
    SaleRequest,
    SaleResponse,
    SaleStatus,
    InstallmentSchema,
    CardUsageSchema,
    CardUsageInput,
    InstallmentInput,
    PayInstallmentRequest,
    PaymentResponse,
    DueWindowResponse,
    DueLineSchema,
)
from hire_purchase.api.dependencies import get_request_id, get_settings, get_today
from hire_purchase.api.errors import fail
from hire_purchase.config import Settings
from hire_purchase.infrastructure.database.session import get_db
from hire_purchase.infrastructure.database.models import Sale
from hire_purchase.infrastructure.database.repositories import SaleRepository, installment_lines_of, terms_of
from hire_purchase.domain.models import (
    InstallmentLine,
    CardPaymentLine,
    CardUsageLine,
    SaleTerms,
    DUE_OVERDUE,
    DUE_SOON,
    DUE_LATER,
)
from hire_purchase.domain.installments import (
    generate_installment_schedule,
    generate_card_payment_schedule,
    monthly_installment,
    validate_schedule,
)
from hire_purchase.domain.reconciliation import reconcile
from hire_purchase.domain.due_window import classify_line, classify_due, due_in_month
from hire_purchase.infrastructure.observability.metrics import (
    sale_created_counter,
    record_status_change,
    record_installment_payment,
)
from hire_purchase.infrastructure.observability.logging import log_reconciliation

router = APIRouter()


def parse_id(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID format")


def _explicit_lines(items: List[InstallmentInput], today: date, line_type=InstallmentLine) -> List[InstallmentLine]:
    return [
        line_type(
            sequence_number=item.installment_number,
            due_date=item.due_date,
            amount_cents=item.amount_cents,
            paid=item.paid,
            paid_date=item.paid_date or (today if item.paid else None),
        )
        for item in items
    ]


def _card_usage(item: CardUsageInput, start: date, today: date) -> CardUsageLine:
    if item.payments is not None:
        payments = _explicit_lines(item.payments, today, line_type=CardPaymentLine)
        validate_schedule(payments)
    else:
        payments = generate_card_payment_schedule(item.amount_cents, item.installments, start)

    return CardUsageLine(
        credit_card_id=item.credit_card_id,
        amount_cents=item.amount_cents,
        installments_count=item.installments,
        monthly_payment_cents=monthly_installment(item.amount_cents, item.installments),
        remaining_cents=item.amount_cents if item.remaining_cents is None else item.remaining_cents,
        payments=payments,
    )


def build_schedule(
    payload: SaleRequest, today: date
) -> Tuple[SaleTerms, List[InstallmentLine], List[CardUsageLine], Dict[str, Any]]:
    """
    Turn a validated request into sale terms, installment lines, card usages
    and the column values to store. Lines are generated unless supplied.
    """
    terms = SaleTerms(
        cost_price_cents=payload.cost_price_cents,
        cost_bonus_cents=payload.cost_bonus_cents,
        selling_price_cents=payload.selling_price_cents,
        customer_down_payment_cents=payload.customer_down_payment_cents,
        down_payment_installment=payload.down_payment_installment,
    )
    start = payload.start_date or today

    if payload.installments is not None:
        lines = _explicit_lines(payload.installments, today)
        validate_schedule(lines)
        lines.sort(key=lambda l: l.sequence_number)
    else:
        lines = generate_installment_schedule(
            terms.financed_cents,
            payload.installment_months,
            payload.payment_due_day,
            start,
        )

    usages = [_card_usage(item, start, today) for item in payload.credit_cards]

    down_payment_monthly = None
    if payload.down_payment_installment and payload.down_payment_months:
        down_payment_monthly = monthly_installment(payload.customer_down_payment_cents, payload.down_payment_months)

    details = payload.model_dump(
        exclude={"installments", "credit_cards", "start_date", "status", "completed_at", "down_payment_months"}
    )
    details.update(
        down_payment_months=payload.down_payment_months if payload.down_payment_installment else None,
        down_payment_monthly_cents=down_payment_monthly,
        installment_months=len(lines),
        monthly_payment_cents=lines[0].amount_cents if lines else 0,
    )
    return terms, lines, usages, details


def _installment_schema(row) -> InstallmentSchema:
    return InstallmentSchema(
        id=str(row.id),
        installment_number=row.installment_number,
        due_date=row.due_date,
        amount_cents=row.amount_cents,
        paid=row.paid,
        paid_date=row.paid_date,
    )


def card_usage_schema(usage) -> CardUsageSchema:
    return CardUsageSchema(
        id=str(usage.id),
        credit_card_id=str(usage.credit_card_id),
        amount_cents=usage.amount_cents,
        installments=usage.installments_count,
        monthly_payment_cents=usage.monthly_payment_cents,
        remaining_cents=usage.remaining_cents,
        payments=[_installment_schema(p) for p in usage.payments],
        sale_id=str(usage.sale_id),
        sale_name=usage.sale.name,
        product_model=usage.sale.product_model,
        sale_status=usage.sale.status,
    )


def sale_response(sale: Sale) -> SaleResponse:
    return SaleResponse(
        id=str(sale.id),
        name=sale.name,
        phone=sale.phone,
        address=sale.address,
        product_type=sale.product_type,
        product_type_other=sale.product_type_other,
        product_model=sale.product_model,
        serial_number=sale.serial_number,
        cost_price_cents=sale.cost_price_cents,
        cost_bonus_cents=sale.cost_bonus_cents,
        down_payment_for_purchase_cents=sale.down_payment_for_purchase_cents,
        selling_price_cents=sale.selling_price_cents,
        customer_down_payment_cents=sale.customer_down_payment_cents,
        down_payment_installment=sale.down_payment_installment,
        down_payment_months=sale.down_payment_months,
        down_payment_monthly_cents=sale.down_payment_monthly_cents,
        installment_months=sale.installment_months,
        monthly_payment_cents=sale.monthly_payment_cents,
        payment_due_day=sale.payment_due_day,
        remaining_installment_cents=sale.remaining_installment_cents,
        total_profit_cents=sale.total_profit_cents,
        current_profit_cents=sale.current_profit_cents,
        status=sale.status,
        created_at=sale.created_at,
        completed_at=sale.completed_at,
        installments=[_installment_schema(row) for row in sale.installments],
        credit_cards=[card_usage_schema(usage) for usage in sale.card_usages],
    )


@router.get("/sales", response_model=List[SaleResponse])
def list_sales(
    status: Optional[SaleStatus] = Query(None, description="Filter by lifecycle status"),
    db: Session = Depends(get_db),
):
    """List sales with their schedules, newest first"""
    return [sale_response(sale) for sale in SaleRepository(db).list_sales(status)]


@router.post("/sales", response_model=SaleResponse, status_code=201)
def create_sale(
    payload: SaleRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    """
    Record a new sale.

    Flow:
    1. Build (or accept) the installment schedule and card usages
    2. Reconcile derived fields from the schedule
    3. Persist sale, lines and usages in one transaction
    """
    request_id = get_request_id(request)

    try:
        terms, lines, usages, details = build_schedule(payload, today)
        result = reconcile(terms, lines, today, clamp_profit=settings.clamp_current_profit)

        db_sale = SaleRepository(db).create_sale(details, lines, usages, result)
        db.commit()
    except Exception as e:
        raise fail(db, e, request_id)

    sale_created_counter.labels(product_type=payload.product_type).inc()
    record_status_change(None, result.status)
    log_reconciliation(request_id, str(db_sale.id), "sale_created", None, result)

    db.refresh(db_sale)
    return sale_response(db_sale)


@router.get("/sales/{sale_id}", response_model=SaleResponse)
def get_sale(sale_id: str, db: Session = Depends(get_db)):
    """Retrieve one sale with installments and card usages"""
    sale = SaleRepository(db).get_sale(parse_id(sale_id, "sale"))
    if not sale:
        raise HTTPException(status_code=404, detail="Sale not found")
    return sale_response(sale)


@router.put("/sales/{sale_id}", response_model=SaleResponse)
def replace_sale(
    sale_id: str,
    payload: SaleRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    """
    Replace a sale's terms and schedule.

    Every installment, card usage and card payment line is deleted and
    recreated from the request; nothing is diffed. A status of "completed"
    forces completion regardless of the lines.
    """
    request_id = get_request_id(request)
    sale_uuid = parse_id(sale_id, "sale")

    try:
        repo = SaleRepository(db)
        db_sale = repo.require_sale(sale_uuid)
        previous_status = db_sale.status

        terms, lines, usages, details = build_schedule(payload, today)
        result = reconcile(
            terms,
            lines,
            today,
            clamp_profit=settings.clamp_current_profit,
            status_override=payload.status,
            completed_at=payload.completed_at,
        )

        repo.replace_sale(db_sale, details, lines, usages, result)
        db.commit()
    except Exception as e:
        raise fail(db, e, request_id)

    record_status_change(previous_status, result.status)
    log_reconciliation(request_id, sale_id, "sale_replaced", previous_status, result)

    db.refresh(db_sale)
    return sale_response(db_sale)


@router.delete("/sales/{sale_id}")
def delete_sale(sale_id: str, request: Request, db: Session = Depends(get_db)):
    """Delete a sale together with its lines and card usages"""
    request_id = get_request_id(request)
    sale_uuid = parse_id(sale_id, "sale")

    try:
        repo = SaleRepository(db)
        repo.delete_sale(repo.require_sale(sale_uuid))
        db.commit()
    except Exception as e:
        raise fail(db, e, request_id)

    return {"message": "Sale deleted successfully"}


@router.post("/sales/{sale_id}/pay", response_model=PaymentResponse)
def pay_installment(
    sale_id: str,
    payload: PayInstallmentRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    """
    Mark one installment paid and reconcile the sale.

    Mark-paid, reconcile and persist happen in a single transaction; an
    already-paid installment is rejected with 409.
    """
    request_id = get_request_id(request)
    sale_uuid = parse_id(sale_id, "sale")
    installment_id = str(parse_id(payload.installment_id, "installment"))
    paid_on = payload.paid_date or today

    try:
        repo = SaleRepository(db)
        db_sale = repo.require_sale(sale_uuid)
        previous_status = db_sale.status

        lines = repo.mark_paid(db_sale, installment_id, paid_on)
        result = reconcile(terms_of(db_sale), lines, today, clamp_profit=settings.clamp_current_profit)
        repo.apply_reconciliation(db_sale, result)
        db.commit()
    except Exception as e:
        raise fail(db, e, request_id)

    paid_amount = next(line.amount_cents for line in lines if line.id == installment_id)
    record_installment_payment(paid_amount)
    record_status_change(previous_status, result.status)
    log_reconciliation(request_id, sale_id, "installment_paid", previous_status, result)

    return PaymentResponse(
        sale_id=sale_id,
        installment_id=installment_id,
        paid_date=paid_on,
        status=result.status,
        remaining_installment_cents=result.remaining_installment_cents,
        current_profit_cents=result.current_profit_cents,
        completed_at=result.completed_at,
    )


@router.get("/sales/{sale_id}/due", response_model=DueWindowResponse)
def get_due_window(
    sale_id: str,
    window_days: Optional[int] = Query(None, ge=0, le=365),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    """Classify a sale's unpaid installments as overdue, due soon or later"""
    sale = SaleRepository(db).get_sale(parse_id(sale_id, "sale"))
    if not sale:
        raise HTTPException(status_code=404, detail="Sale not found")

    window = settings.due_soon_window_days if window_days is None else window_days
    lines = installment_lines_of(sale)
    buckets = classify_due(lines, today, window)

    return DueWindowResponse(
        sale_id=sale_id,
        as_of=today,
        window_days=window,
        overdue_cents=buckets.total(DUE_OVERDUE),
        due_soon_cents=buckets.total(DUE_SOON),
        later_cents=buckets.total(DUE_LATER),
        due_this_month_cents=due_in_month(lines, today),
        lines=[
            DueLineSchema(
                installment_number=line.sequence_number,
                due_date=line.due_date,
                amount_cents=line.amount_cents,
                bucket=classify_line(line, today, window),
            )
            for line in lines
            if not line.paid
        ],
    )
