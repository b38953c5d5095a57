"""SQLAlchemy ORM models for sales, installments and credit cards"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, BigInteger, Boolean, DateTime, Date, Integer, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Sale(Base):
    """Hire-purchase sale to one customer (aggregate root)"""

    __tablename__ = "sale"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Customer
    name = Column(Text, nullable=False)
    phone = Column(String(32), nullable=False)
    address = Column(Text, nullable=True)

    # Product
    product_type = Column(String(32), nullable=False)
    product_type_other = Column(Text, nullable=True)
    product_model = Column(Text, nullable=False)
    serial_number = Column(Text, nullable=True)

    # Cost side
    cost_price_cents = Column(BigInteger, nullable=False, default=0)
    cost_bonus_cents = Column(BigInteger, nullable=False, default=0)
    down_payment_for_purchase_cents = Column(BigInteger, nullable=False, default=0)

    # Selling side
    selling_price_cents = Column(BigInteger, nullable=False)
    customer_down_payment_cents = Column(BigInteger, nullable=False, default=0)
    down_payment_installment = Column(Boolean, nullable=False, default=False)
    down_payment_months = Column(Integer, nullable=True)
    down_payment_monthly_cents = Column(BigInteger, nullable=True)

    # Schedule
    installment_months = Column(Integer, nullable=False, default=0)
    monthly_payment_cents = Column(BigInteger, nullable=False, default=0)
    payment_due_day = Column(Integer, nullable=False, default=1)

    # Derived (written only from reconciliation results)
    remaining_installment_cents = Column(BigInteger, nullable=False, default=0)
    total_profit_cents = Column(BigInteger, nullable=False, default=0)
    current_profit_cents = Column(BigInteger, nullable=False, default=0)
    status = Column(String(16), nullable=False, default="active", index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    completed_at = Column(Date, nullable=True)

    installments = relationship(
        "SaleInstallment",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleInstallment.installment_number",
    )
    card_usages = relationship(
        "CardUsage",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="CardUsage.position",
    )


class SaleInstallment(Base):
    """Scheduled product-payment period"""

    __tablename__ = "installment_line"
    __table_args__ = (UniqueConstraint("sale_id", "installment_number"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sale_id = Column(Uuid(as_uuid=True), ForeignKey("sale.id", ondelete="CASCADE"), nullable=False, index=True)
    installment_number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    paid = Column(Boolean, nullable=False, default=False)
    paid_date = Column(Date, nullable=True)

    sale = relationship("Sale", back_populates="installments")


class CreditCard(Base):
    """Revolving-limit card used to fund purchases across sales"""

    __tablename__ = "credit_card"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    credit_limit_cents = Column(BigInteger, nullable=False, default=0)
    statement_due_day = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Allocation walks usages oldest first
    usages = relationship(
        "CardUsage",
        back_populates="credit_card",
        cascade="all, delete",
        order_by="[CardUsage.created_at, CardUsage.position]",
    )
    repayments = relationship(
        "CardRepayment",
        back_populates="credit_card",
        cascade="all, delete-orphan",
        order_by="CardRepayment.payment_date.desc()",
    )


class CardUsage(Base):
    """Portion of a sale charged to a credit card"""

    __tablename__ = "card_usage"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    credit_card_id = Column(Uuid(as_uuid=True), ForeignKey("credit_card.id", ondelete="CASCADE"), nullable=False, index=True)
    sale_id = Column(Uuid(as_uuid=True), ForeignKey("sale.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    amount_cents = Column(BigInteger, nullable=False)
    installments_count = Column(Integer, nullable=False)
    monthly_payment_cents = Column(BigInteger, nullable=False)
    remaining_cents = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    credit_card = relationship("CreditCard", back_populates="usages")
    sale = relationship("Sale", back_populates="card_usages")
    payments = relationship(
        "CardPayment",
        back_populates="usage",
        cascade="all, delete-orphan",
        order_by="CardPayment.installment_number",
    )


class CardPayment(Base):
    """Scheduled repayment period of a card usage (due tracking only)"""

    __tablename__ = "card_payment_line"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    usage_id = Column(Uuid(as_uuid=True), ForeignKey("card_usage.id", ondelete="CASCADE"), nullable=False, index=True)
    installment_number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    paid = Column(Boolean, nullable=False, default=False)
    paid_date = Column(Date, nullable=True)

    usage = relationship("CardUsage", back_populates="payments")


class CardRepayment(Base):
    """Card-level repayment, allocated across the card's usages"""

    __tablename__ = "card_repayment"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    credit_card_id = Column(Uuid(as_uuid=True), ForeignKey("credit_card.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_date = Column(Date, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    remaining_balance_cents = Column(BigInteger, nullable=False)
    unallocated_cents = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    credit_card = relationship("CreditCard", back_populates="repayments")
