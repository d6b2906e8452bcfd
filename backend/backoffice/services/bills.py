"""
Bills to pay and their installments.

Bill.status is derived from the paid installments after every payment mutation:
    paid sum <= 0          → pending
    0 < paid sum < total   → partial
    paid sum >= total      → paid
There is no terminal state; editing or removing a payment can move a paid bill
back to partial or pending.
"""
import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ..constants import ALL_BILL_STATUSES, BILL_PAID, BILL_PARTIAL, BILL_PENDING
from ..errors import NotFoundError, ValidationFailed
from ..models.finance import Bill, BillPayment
from ..schemas.bills import BillOut, BillPaymentOut, BillsDashboard, BillsMonthRow, DuePayment
from ..utils.parsing import is_blank, month_key, parse_date_only_as_noon

logger = logging.getLogger(__name__)

_UNSET = object()


def bill_status(total: float, paid_sum: float) -> str:
    if paid_sum <= 0:
        return BILL_PENDING
    if paid_sum >= total:
        return BILL_PAID
    return BILL_PARTIAL


def _paid_sum(bill: Bill) -> float:
    return sum(float(p.amount) for p in bill.payments if p.paid_at is not None)


def recompute_bill_status(bill: Bill) -> str:
    previous = bill.status
    bill.status = bill_status(float(bill.total_amount), _paid_sum(bill))
    if previous != bill.status:
        logger.info("Bill %s status %s → %s", bill.id, previous, bill.status)
    return bill.status


def _required_date(raw, field: str) -> datetime:
    value = parse_date_only_as_noon(raw)
    if value is None:
        raise ValidationFailed(f"Invalid {field} {raw!r}: expected YYYY-MM-DD")
    return value


def _optional_date(raw, field: str) -> Optional[datetime]:
    if is_blank(raw):
        return None
    return _required_date(raw, field)


def bill_out(bill: Bill) -> BillOut:
    paid = _paid_sum(bill)
    return BillOut(
        id=bill.id,
        description=bill.description,
        invoice_number=bill.invoice_number,
        total_amount=float(bill.total_amount),
        due_date=bill.due_date,
        status=bill.status,
        paid_amount=round(paid, 2),
        open_amount=round(max(0.0, float(bill.total_amount) - paid), 2),
        payments=[BillPaymentOut.model_validate(p) for p in bill.payments],
    )


# =============================================================================
# Bills
# =============================================================================

def get_bill(db: Session, bill_id: int) -> Bill:
    bill = (
        db.query(Bill)
        .options(selectinload(Bill.payments))
        .filter(Bill.id == bill_id)
        .first()
    )
    if bill is None:
        raise NotFoundError("Bill", bill_id)
    return bill


def list_bills(db: Session, status: Optional[str] = None) -> list[Bill]:
    q = db.query(Bill).options(selectinload(Bill.payments))
    if status:
        if status not in ALL_BILL_STATUSES:
            raise ValidationFailed(f"Invalid status {status!r}: expected one of {', '.join(ALL_BILL_STATUSES)}")
        q = q.filter(Bill.status == status)
    # Bills without a due date sort last
    return q.order_by(Bill.due_date.is_(None), Bill.due_date, Bill.id).all()


def create_bill(db: Session, description: str, total_amount: float,
                invoice_number: Optional[str] = None, due_date=None) -> Bill:
    bill = Bill(
        description=description,
        invoice_number=invoice_number or None,
        total_amount=total_amount,
        due_date=_optional_date(due_date, "due_date"),
        status=BILL_PENDING,
    )
    db.add(bill)
    db.commit()
    logger.info("Created bill %s (%s, %.2f)", bill.id, description, total_amount)
    return get_bill(db, bill.id)


def update_bill(db: Session, bill_id: int, description: Optional[str] = None,
                total_amount: Optional[float] = None, invoice_number=_UNSET, due_date=_UNSET) -> Bill:
    bill = get_bill(db, bill_id)
    if description is not None:
        if not description.strip():
            raise ValidationFailed("description must not be empty")
        bill.description = description.strip()
    if total_amount is not None:
        if total_amount <= 0:
            raise ValidationFailed("total_amount must be positive")
        bill.total_amount = total_amount
    if invoice_number is not _UNSET:
        bill.invoice_number = invoice_number or None
    if due_date is not _UNSET:
        bill.due_date = _optional_date(due_date, "due_date")
    recompute_bill_status(bill)
    db.commit()
    return get_bill(db, bill_id)


def delete_bill(db: Session, bill_id: int) -> None:
    bill = get_bill(db, bill_id)
    db.delete(bill)
    db.commit()
    logger.info("Deleted bill %s", bill_id)


# =============================================================================
# Payments / installments
# =============================================================================

def _get_payment(db: Session, bill_id: int, payment_id: int) -> BillPayment:
    payment = (
        db.query(BillPayment)
        .filter(BillPayment.id == payment_id, BillPayment.bill_id == bill_id)
        .first()
    )
    if payment is None:
        raise NotFoundError("BillPayment", payment_id)
    return payment


def add_payment(db: Session, bill_id: int, amount: float, due_date, paid_at=None, notes: str = "") -> Bill:
    bill = get_bill(db, bill_id)
    bill.payments.append(BillPayment(
        amount=amount,
        due_date=_required_date(due_date, "due_date"),
        paid_at=_optional_date(paid_at, "paid_at"),
        notes=notes or "",
    ))
    recompute_bill_status(bill)
    db.commit()
    return get_bill(db, bill_id)


def add_installments(db: Session, bill_id: int, installments: list[tuple]) -> Bill:
    """Append unpaid installments given as (due_date, amount) pairs; all or none."""
    bill = get_bill(db, bill_id)
    if not installments:
        raise ValidationFailed("At least one installment is required")
    new_payments = [
        BillPayment(amount=amount, due_date=_required_date(due, "due_date"), notes="")
        for due, amount in installments
    ]
    bill.payments.extend(new_payments)
    recompute_bill_status(bill)
    db.commit()
    logger.info("Bill %s: added %d installment(s)", bill_id, len(new_payments))
    return get_bill(db, bill_id)


def update_payment(db: Session, bill_id: int, payment_id: int, amount: Optional[float] = None,
                   due_date=None, paid_at=_UNSET, notes: Optional[str] = None) -> Bill:
    """paid_at=None marks the installment unpaid; leave it unset to keep the current value."""
    payment = _get_payment(db, bill_id, payment_id)
    if amount is not None:
        payment.amount = amount
    if due_date is not None:
        payment.due_date = _required_date(due_date, "due_date")
    if paid_at is not _UNSET:
        payment.paid_at = _optional_date(paid_at, "paid_at")
    if notes is not None:
        payment.notes = notes
    db.flush()

    bill = get_bill(db, bill_id)
    recompute_bill_status(bill)
    db.commit()
    return get_bill(db, bill_id)


def delete_payment(db: Session, bill_id: int, payment_id: int) -> Bill:
    bill = get_bill(db, bill_id)
    payment = _get_payment(db, bill_id, payment_id)
    bill.payments.remove(payment)
    recompute_bill_status(bill)
    db.commit()
    return get_bill(db, bill_id)


# =============================================================================
# Dashboard
# =============================================================================

def bills_dashboard(db: Session, today: Optional[date] = None) -> BillsDashboard:
    """Installments bucketed by due month with paid / pending totals."""
    today = today or datetime.now(timezone.utc).date()
    rows = (
        db.query(BillPayment, Bill.description)
        .join(Bill, Bill.id == BillPayment.bill_id)
        .order_by(BillPayment.due_date, BillPayment.id)
        .all()
    )

    months: dict[str, list[DuePayment]] = defaultdict(list)
    overdue = 0.0
    for payment, description in rows:
        item = DuePayment(
            id=payment.id,
            bill_id=payment.bill_id,
            amount=float(payment.amount),
            due_date=payment.due_date,
            paid_at=payment.paid_at,
            notes=payment.notes or "",
            bill_description=description,
        )
        months[month_key(payment.due_date)].append(item)
        if payment.paid_at is None and payment.due_date.date() < today:
            overdue += item.amount

    month_rows = []
    for key in sorted(months):
        payments = months[key]
        paid = sum(p.amount for p in payments if p.paid_at is not None)
        total = sum(p.amount for p in payments)
        month_rows.append(BillsMonthRow(
            month=key, total=round(total, 2), paid=round(paid, 2),
            pending=round(total - paid, 2), payments=payments,
        ))

    total = sum(r.total for r in month_rows)
    paid = sum(r.paid for r in month_rows)
    return BillsDashboard(
        total=round(total, 2),
        paid=round(paid, 2),
        pending=round(total - paid, 2),
        overdue=round(overdue, 2),
        months=month_rows,
    )
