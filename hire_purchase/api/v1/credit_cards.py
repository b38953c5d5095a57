"""/v1/credit-cards - revolving cards, their usages and card-level repayments"""

from datetime import date
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from hire_purchase.api.v1.schemas import (
    CreditCardRequest,
    CreditCardUpdateRequest,
    CreditCardResponse,
    CardRepaymentRequest,
    CardRepaymentResponse,
    CardRepaymentSchema,
    UsageDeductionSchema,
)
from hire_purchase.api.v1.sales import parse_id, card_usage_schema
from hire_purchase.api.dependencies import get_request_id, get_settings, get_today
from hire_purchase.api.errors import fail
from hire_purchase.config import Settings
from hire_purchase.infrastructure.database.session import get_db
from hire_purchase.infrastructure.database.models import CreditCard, CardRepayment
from hire_purchase.infrastructure.database.repositories import CreditCardRepository, card_usages_of
from hire_purchase.domain.due_window import summarize_card
from hire_purchase.infrastructure.observability.metrics import record_card_repayment
from hire_purchase.infrastructure.observability.logging import log_card_repayment

router = APIRouter()


def card_response(card: CreditCard, today: date, settings: Settings) -> CreditCardResponse:
    summary = summarize_card(
        card.credit_limit_cents,
        card.statement_due_day,
        card_usages_of(card.usages),
        (r.amount_cents for r in card.repayments),
        today,
        window_days=settings.due_soon_window_days,
        alert_days=settings.card_due_alert_days,
    )
    return CreditCardResponse(
        id=str(card.id),
        name=card.name,
        credit_limit_cents=card.credit_limit_cents,
        statement_due_day=card.statement_due_day,
        total_used_cents=summary.total_used_cents,
        total_remaining_cents=summary.total_remaining_cents,
        total_card_paid_cents=summary.total_card_paid_cents,
        available_balance_cents=summary.available_balance_cents,
        card_debt_cents=summary.card_debt_cents,
        utilization_rate=summary.utilization_rate,
        due_within_7_days_cents=summary.due_within_window_cents,
        monthly_due_this_month_cents=summary.due_this_month_cents,
        days_until_due=summary.days_until_due,
        due_soon=summary.due_soon,
        usages=[card_usage_schema(usage) for usage in card.usages],
    )


def _repayment_schema(repayment: CardRepayment) -> CardRepaymentSchema:
    return CardRepaymentSchema(
        id=str(repayment.id),
        payment_date=repayment.payment_date,
        amount_cents=repayment.amount_cents,
        remaining_balance_cents=repayment.remaining_balance_cents,
        unallocated_cents=repayment.unallocated_cents,
    )


@router.get("/credit-cards", response_model=List[CreditCardResponse])
def list_credit_cards(
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    """List cards with limit usage and upcoming card dues"""
    return [card_response(card, today, settings) for card in CreditCardRepository(db).list_cards()]


@router.post("/credit-cards", response_model=CreditCardResponse, status_code=201)
def create_credit_card(
    payload: CreditCardRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    request_id = get_request_id(request)
    try:
        card = CreditCardRepository(db).create_card(payload.name, payload.credit_limit_cents, payload.statement_due_day)
        db.commit()
    except Exception as e:
        raise fail(db, e, request_id)

    db.refresh(card)
    return card_response(card, today, settings)


@router.get("/credit-cards/{card_id}", response_model=CreditCardResponse)
def get_credit_card(
    card_id: str,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    card = CreditCardRepository(db).get_card(parse_id(card_id, "credit card"))
    if not card:
        raise HTTPException(status_code=404, detail="Credit card not found")
    return card_response(card, today, settings)


@router.put("/credit-cards/{card_id}", response_model=CreditCardResponse)
def update_credit_card(
    card_id: str,
    payload: CreditCardUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    """Update name, limit or statement due day; usages are untouched"""
    request_id = get_request_id(request)
    card_uuid = parse_id(card_id, "credit card")

    try:
        repo = CreditCardRepository(db)
        card = repo.update_card(repo.require_card(card_uuid), **payload.model_dump())
        db.commit()
    except Exception as e:
        raise fail(db, e, request_id)

    db.refresh(card)
    return card_response(card, today, settings)


@router.delete("/credit-cards/{card_id}")
def delete_credit_card(card_id: str, request: Request, db: Session = Depends(get_db)):
    """Delete a card with its usages and repayment history"""
    request_id = get_request_id(request)
    card_uuid = parse_id(card_id, "credit card")

    try:
        repo = CreditCardRepository(db)
        repo.delete_card(repo.require_card(card_uuid))
        db.commit()
    except Exception as e:
        raise fail(db, e, request_id)

    return {"message": "Credit card deleted successfully"}


@router.post("/credit-cards/{card_id}/pay", response_model=CardRepaymentResponse)
def pay_credit_card(
    card_id: str,
    payload: CardRepaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Record a card-level repayment.

    The amount is spread over the card's usages oldest first; anything left
    after every usage is settled is recorded as unallocated.
    """
    request_id = get_request_id(request)
    card_uuid = parse_id(card_id, "credit card")

    try:
        repo = CreditCardRepository(db)
        card = repo.require_card(card_uuid)
        repayment, allocation = repo.record_repayment(card, payload.amount_cents, payload.payment_date)
        total_paid = sum(r.amount_cents for r in card.repayments)
        db.commit()
    except Exception as e:
        raise fail(db, e, request_id)

    record_card_repayment(allocation.unallocated_cents)
    log_card_repayment(request_id, card_id, allocation, repayment.remaining_balance_cents)

    return CardRepaymentResponse(
        payment=_repayment_schema(repayment),
        total_paid_cents=total_paid,
        remaining_balance_cents=repayment.remaining_balance_cents,
        deductions=[
            UsageDeductionSchema(
                usage_id=d.usage_id,
                deducted_cents=d.deducted_cents,
                remaining_cents=d.remaining_cents,
            )
            for d in allocation.deductions
        ],
    )


@router.get("/credit-cards/{card_id}/payments", response_model=List[CardRepaymentSchema])
def list_credit_card_payments(card_id: str, db: Session = Depends(get_db)):
    """Repayment history, most recent first"""
    card_uuid = parse_id(card_id, "credit card")
    repo = CreditCardRepository(db)
    if not repo.get_card(card_uuid):
        raise HTTPException(status_code=404, detail="Credit card not found")
    return [_repayment_schema(r) for r in repo.list_repayments(card_uuid)]
