from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Numeric, ForeignKey, Text, func, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from ..database import Base


class AdSpend(Base):
    """
    Advertising spend at (month, channel) grain.
    channel is free text: a sales channel or an ad network ("meta", "google").
    """
    __tablename__ = "ad_spend"

    id         = Column(Integer, primary_key=True)
    month      = Column(Date, nullable=False)        # first day of month
    channel    = Column(String(50), nullable=False)
    amount     = Column(Numeric(14, 2), nullable=False, default=0)
    notes      = Column(Text, nullable=False, default="")
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint("month", "channel"),)


class PaymentTypeFee(Base):
    """Card / PIX processor fee (%) per (month, channel, payment type label)."""
    __tablename__ = "payment_type_fees"

    id           = Column(Integer, primary_key=True)
    month        = Column(Date, nullable=False)
    channel      = Column(String(20), nullable=False)
    payment_type = Column(String(200), nullable=False)
    percent      = Column(Numeric(8, 4), nullable=False, default=0)
    updated_at   = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint("month", "channel", "payment_type"),)


class Bill(Base):
    __tablename__ = "bills"

    id             = Column(Integer, primary_key=True)
    description    = Column(String(500), nullable=False)
    invoice_number = Column(String(100))
    total_amount   = Column(Numeric(14, 2), nullable=False)
    due_date       = Column(DateTime)                 # anchored at 12:00 UTC
    status         = Column(String(20), nullable=False, default="pending")   # derived
    created_at     = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at     = Column(DateTime, onupdate=func.now())

    payments = relationship(
        "BillPayment", back_populates="bill",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="BillPayment.due_date",
    )


class BillPayment(Base):
    """One installment of a bill. paid_at NULL = not yet paid."""
    __tablename__ = "bill_payments"

    id       = Column(Integer, primary_key=True)
    bill_id  = Column(Integer, ForeignKey("bills.id", ondelete="CASCADE"), nullable=False)
    amount   = Column(Numeric(14, 2), nullable=False)
    due_date = Column(DateTime, nullable=False)
    paid_at  = Column(DateTime)
    notes    = Column(Text, nullable=False, default="")

    bill = relationship("Bill", back_populates="payments")


class ImportLog(Base):
    """
    Audit log for every file ingestion (orders export or items export).
    """
    __tablename__ = "import_logs"

    id               = Column(Integer, primary_key=True)
    source_type      = Column(String(30), nullable=False)   # 'orders' | 'items'
    channel          = Column(String(20), nullable=False)
    file_name        = Column(String(500))
    start_time       = Column(DateTime, server_default=func.now(), nullable=False)
    end_time         = Column(DateTime)
    status           = Column(String(20), nullable=False, default="running")
    records_imported = Column(Integer, default=0)
    records_rejected = Column(Integer, default=0)
    error_message    = Column(Text)
