"""Data access layer for sales and credit cards"""

import uuid
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple
from sqlalchemy.orm import Session
from hire_purchase.infrastructure.database.models import (
    Sale,
    SaleInstallment,
    CreditCard,
    CardUsage,
    CardPayment,
    CardRepayment,
    utcnow,
)
from hire_purchase.domain.models import (
    InstallmentLine,
    CardPaymentLine,
    CardUsageLine,
    SaleTerms,
    SaleSnapshot,
    Reconciliation,
    Allocation,
)
from hire_purchase.domain.allocation import mark_installment_paid, allocate_card_payment, card_balance_after_payment
from hire_purchase.domain.exceptions import NotFoundError, InvariantViolation


def terms_of(sale: Sale) -> SaleTerms:
    return SaleTerms(
        cost_price_cents=sale.cost_price_cents,
        cost_bonus_cents=sale.cost_bonus_cents,
        selling_price_cents=sale.selling_price_cents,
        customer_down_payment_cents=sale.customer_down_payment_cents,
        down_payment_installment=sale.down_payment_installment,
    )


def installment_lines_of(sale: Sale) -> List[InstallmentLine]:
    """Detached domain copies of a sale's installment rows"""
    return [
        InstallmentLine(
            id=str(row.id),
            sequence_number=row.installment_number,
            due_date=row.due_date,
            amount_cents=row.amount_cents,
            paid=row.paid,
            paid_date=row.paid_date,
        )
        for row in sale.installments
    ]


def card_usages_of(usages: Iterable[CardUsage]) -> List[CardUsageLine]:
    """Detached domain copies of card usage rows, order preserved"""
    return [
        CardUsageLine(
            id=str(usage.id),
            credit_card_id=str(usage.credit_card_id),
            amount_cents=usage.amount_cents,
            installments_count=usage.installments_count,
            monthly_payment_cents=usage.monthly_payment_cents,
            remaining_cents=usage.remaining_cents,
            payments=[
                CardPaymentLine(
                    id=str(p.id),
                    sequence_number=p.installment_number,
                    due_date=p.due_date,
                    amount_cents=p.amount_cents,
                    paid=p.paid,
                    paid_date=p.paid_date,
                )
                for p in usage.payments
            ],
        )
        for usage in usages
    ]


def snapshot_of(sale: Sale) -> SaleSnapshot:
    return SaleSnapshot(
        id=str(sale.id),
        name=sale.name,
        status=sale.status,
        terms=terms_of(sale),
        remaining_installment_cents=sale.remaining_installment_cents,
        total_profit_cents=sale.total_profit_cents,
        lines=installment_lines_of(sale),
        card_usages=card_usages_of(sale.card_usages),
    )


class SaleRepository:
    """Repository for sales and their installment schedules"""

    def __init__(self, db: Session):
        self.db = db

    def list_sales(self, status: Optional[str] = None) -> List[Sale]:
        """Fetch sales, newest first, optionally filtered by status"""
        query = self.db.query(Sale)
        if status:
            query = query.filter(Sale.status == status)
        return query.order_by(Sale.created_at.desc()).all()

    def get_sale(self, sale_id: uuid.UUID) -> Optional[Sale]:
        return self.db.query(Sale).filter(Sale.id == sale_id).first()

    def require_sale(self, sale_id: uuid.UUID) -> Sale:
        sale = self.get_sale(sale_id)
        if sale is None:
            raise NotFoundError(f"Sale {sale_id} not found")
        return sale

    def create_sale(
        self,
        details: Dict[str, Any],
        lines: List[InstallmentLine],
        usages: List[CardUsageLine],
        result: Reconciliation,
    ) -> Sale:
        """Persist a new sale together with its schedule and card usages"""
        db_sale = Sale(**details)
        self.db.add(db_sale)
        self._attach_schedule(db_sale, lines, usages)
        self.apply_reconciliation(db_sale, result)
        self.db.flush()
        return db_sale

    def replace_sale(
        self,
        db_sale: Sale,
        details: Dict[str, Any],
        lines: List[InstallmentLine],
        usages: List[CardUsageLine],
        result: Reconciliation,
    ) -> Sale:
        """
        Overwrite terms and recreate every installment, card usage and card
        payment line. Old rows are deleted before new ones are inserted.
        """
        for field, value in details.items():
            setattr(db_sale, field, value)

        db_sale.installments.clear()
        db_sale.card_usages.clear()
        self.db.flush()

        self._attach_schedule(db_sale, lines, usages)
        self.apply_reconciliation(db_sale, result)
        self.db.flush()
        return db_sale

    def delete_sale(self, db_sale: Sale) -> None:
        self.db.delete(db_sale)
        self.db.flush()

    def mark_paid(self, db_sale: Sale, installment_id: str, paid_on: date) -> List[InstallmentLine]:
        """
        Mark one installment of this sale paid.

        Returns the updated domain lines so the caller can reconcile them.
        """
        lines = installment_lines_of(db_sale)
        paid_line = mark_installment_paid(lines, installment_id, paid_on)

        for row in db_sale.installments:
            if str(row.id) == paid_line.id:
                row.paid = True
                row.paid_date = paid_line.paid_date

        return lines

    def apply_reconciliation(self, db_sale: Sale, result: Reconciliation) -> None:
        """Write derived fields verbatim; refuse corrupt state"""
        if result.remaining_installment_cents < 0:
            raise InvariantViolation(f"Negative remaining balance for sale {db_sale.id}")

        db_sale.remaining_installment_cents = result.remaining_installment_cents
        db_sale.current_profit_cents = result.current_profit_cents
        db_sale.total_profit_cents = result.total_profit_cents
        db_sale.status = result.status
        db_sale.completed_at = result.completed_at

    def _attach_schedule(self, db_sale: Sale, lines: List[InstallmentLine], usages: List[CardUsageLine]) -> None:
        for line in lines:
            db_sale.installments.append(
                SaleInstallment(
                    installment_number=line.sequence_number,
                    due_date=line.due_date,
                    amount_cents=line.amount_cents,
                    paid=line.paid,
                    paid_date=line.paid_date,
                )
            )

        # Usages of one sale share a timestamp; position keeps their order
        created_at = utcnow()
        for position, usage in enumerate(usages):
            try:
                card_id = uuid.UUID(str(usage.credit_card_id))
            except ValueError:
                raise NotFoundError(f"Credit card {usage.credit_card_id} not found")
            if self.db.get(CreditCard, card_id) is None:
                raise NotFoundError(f"Credit card {usage.credit_card_id} not found")

            db_sale.card_usages.append(
                CardUsage(
                    credit_card_id=card_id,
                    position=position,
                    created_at=created_at,
                    amount_cents=usage.amount_cents,
                    installments_count=usage.installments_count,
                    monthly_payment_cents=usage.monthly_payment_cents,
                    remaining_cents=usage.remaining_cents,
                    payments=[
                        CardPayment(
                            installment_number=p.sequence_number,
                            due_date=p.due_date,
                            amount_cents=p.amount_cents,
                            paid=p.paid,
                            paid_date=p.paid_date,
                        )
                        for p in usage.payments
                    ],
                )
            )


class CreditCardRepository:
    """Repository for credit cards, their usages and repayments"""

    def __init__(self, db: Session):
        self.db = db

    def list_cards(self) -> List[CreditCard]:
        return self.db.query(CreditCard).order_by(CreditCard.created_at.desc()).all()

    def get_card(self, card_id: uuid.UUID) -> Optional[CreditCard]:
        return self.db.query(CreditCard).filter(CreditCard.id == card_id).first()

    def require_card(self, card_id: uuid.UUID) -> CreditCard:
        card = self.get_card(card_id)
        if card is None:
            raise NotFoundError(f"Credit card {card_id} not found")
        return card

    def create_card(self, name: str, credit_limit_cents: int, statement_due_day: int) -> CreditCard:
        db_card = CreditCard(name=name, credit_limit_cents=credit_limit_cents, statement_due_day=statement_due_day)
        self.db.add(db_card)
        self.db.flush()
        return db_card

    def update_card(self, db_card: CreditCard, **fields: Any) -> CreditCard:
        for field, value in fields.items():
            if value is not None:
                setattr(db_card, field, value)
        self.db.flush()
        return db_card

    def delete_card(self, db_card: CreditCard) -> None:
        self.db.delete(db_card)
        self.db.flush()

    def record_repayment(
        self,
        db_card: CreditCard,
        amount_cents: int,
        payment_date: date,
    ) -> Tuple[CardRepayment, Allocation]:
        """
        Record a card-level repayment and allocate it over the card's usages.

        The allocator is the only writer of CardUsage.remaining_cents.
        """
        total_used = sum(u.amount_cents for u in db_card.usages)
        total_paid = sum(r.amount_cents for r in db_card.repayments)

        usages = card_usages_of(db_card.usages)
        allocation = allocate_card_payment(usages, amount_cents)

        rows = {str(u.id): u for u in db_card.usages}
        for deduction in allocation.deductions:
            if deduction.remaining_cents < 0:
                raise InvariantViolation(f"Negative remaining balance for card usage {deduction.usage_id}")
            rows[deduction.usage_id].remaining_cents = deduction.remaining_cents

        repayment = CardRepayment(
            credit_card_id=db_card.id,
            payment_date=payment_date,
            amount_cents=amount_cents,
            remaining_balance_cents=card_balance_after_payment(total_used, total_paid, amount_cents),
            unallocated_cents=allocation.unallocated_cents,
        )
        db_card.repayments.append(repayment)
        self.db.flush()
        return repayment, allocation

    def list_repayments(self, card_id: uuid.UUID) -> List[CardRepayment]:
        return (
            self.db.query(CardRepayment)
            .filter(CardRepayment.credit_card_id == card_id)
            .order_by(CardRepayment.payment_date.desc())
            .all()
        )
