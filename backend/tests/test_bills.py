from datetime import date

import pytest

from backoffice.errors import NotFoundError, ValidationFailed
from backoffice.models import Bill, BillPayment
from backoffice.schemas.bills import BillIn, BillPaymentIn
from backoffice.services.bills import (
    add_installments,
    add_payment,
    bill_out,
    bill_status,
    bills_dashboard,
    create_bill,
    delete_bill,
    delete_payment,
    get_bill,
    list_bills,
    update_bill,
    update_payment,
)


@pytest.fixture()
def bill(db):
    return create_bill(db, "Embalagens", 300, invoice_number="NF-123", due_date="2026-01-20")


def test_bill_status_thresholds():
    assert bill_status(300, 0) == "pending"
    assert bill_status(300, 150) == "partial"
    assert bill_status(300, 300) == "paid"
    assert bill_status(300, 310) == "paid"


def test_new_bill_is_pending(bill):
    out = bill_out(bill)
    assert out.status == "pending"
    assert out.due_date == date(2026, 1, 20)
    assert out.paid_amount == 0.0
    assert out.open_amount == 300.0
    assert out.payments == []


def test_status_follows_paid_installments(db, bill):
    bill = add_payment(db, bill.id, 150, "2026-01-20", paid_at="2026-01-18")
    assert bill.status == "partial"

    bill = add_payment(db, bill.id, 150, "2026-02-20", paid_at="2026-02-19")
    assert bill.status == "paid"
    assert bill_out(bill).open_amount == 0.0

    # A paid bill is not terminal: removing an installment moves it back
    second = bill.payments[-1]
    bill = delete_payment(db, bill.id, second.id)
    assert bill.status == "partial"
    assert db.query(BillPayment).count() == 1


def test_unpaid_installments_keep_bill_pending(db, bill):
    bill = add_installments(db, bill.id, [("2026-01-20", 100), ("2026-02-20", 100), ("2026-03-20", 100)])
    assert bill.status == "pending"
    assert [p.due_date.date() for p in bill.payments] == [
        date(2026, 1, 20), date(2026, 2, 20), date(2026, 3, 20),
    ]
    assert all(p.due_date.hour == 12 for p in bill.payments)

    first = bill.payments[0]
    bill = update_payment(db, bill.id, first.id, paid_at="2026-01-19")
    assert bill.status == "partial"

    bill = update_payment(db, bill.id, first.id, paid_at=None)
    assert bill.status == "pending"


def test_update_payment_keeps_paid_at_when_not_given(db, bill):
    bill = add_payment(db, bill.id, 300, "2026-01-20", paid_at="2026-01-20")
    payment = bill.payments[0]
    bill = update_payment(db, bill.id, payment.id, notes="pix")
    assert bill.status == "paid"
    assert bill.payments[0].notes == "pix"


def test_installments_reject_bad_dates(db, bill):
    with pytest.raises(ValidationFailed):
        add_installments(db, bill.id, [("2026-01-20", 100), ("20/13/2026", 100)])
    with pytest.raises(ValidationFailed):
        add_installments(db, bill.id, [])
    assert get_bill(db, bill.id).payments == []


def test_raising_total_recomputes_status(db, bill):
    add_payment(db, bill.id, 300, "2026-01-20", paid_at="2026-01-20")
    bill = update_bill(db, bill.id, total_amount=500)
    assert bill.status == "partial"

    bill = update_bill(db, bill.id, due_date=None, invoice_number=None)
    assert bill.due_date is None
    assert bill.invoice_number is None


def test_list_bills_filter_and_order(db, bill):
    create_bill(db, "Aluguel", 2000, due_date="2026-01-05")
    create_bill(db, "Sem vencimento", 50)
    assert [b.description for b in list_bills(db)] == ["Aluguel", "Embalagens", "Sem vencimento"]
    assert list_bills(db, "paid") == []
    with pytest.raises(ValidationFailed):
        list_bills(db, "overdue")


def test_missing_bill_and_payment(db, bill):
    with pytest.raises(NotFoundError):
        get_bill(db, 999)
    with pytest.raises(NotFoundError):
        delete_payment(db, bill.id, 999)


def test_delete_bill_cascades(db, bill):
    add_installments(db, bill.id, [("2026-01-20", 150), ("2026-02-20", 150)])
    delete_bill(db, bill.id)
    assert db.query(Bill).count() == 0
    assert db.query(BillPayment).count() == 0


def test_dashboard_buckets_by_due_month(db, bill):
    bill = add_installments(db, bill.id, [("2026-01-20", 100), ("2026-02-20", 200)])
    update_payment(db, bill.id, bill.payments[0].id, paid_at="2026-01-20")

    result = bills_dashboard(db, today=date(2026, 3, 1))
    assert [m.month for m in result.months] == ["2026-01", "2026-02"]
    jan, feb = result.months
    assert (jan.total, jan.paid, jan.pending) == (100.0, 100.0, 0.0)
    assert (feb.total, feb.paid, feb.pending) == (200.0, 0.0, 200.0)
    assert feb.payments[0].bill_description == "Embalagens"
    assert feb.payments[0].due_date == date(2026, 2, 20)
    assert result.total == 300.0
    assert result.paid == 100.0
    assert result.overdue == 200.0

    assert bills_dashboard(db, today=date(2026, 2, 1)).overdue == 0.0


def test_amounts_accept_brazilian_format():
    assert BillIn(description=" Frete ", total_amount="R$ 1.234,50").total_amount == 1234.5
    assert BillIn(description="Frete", total_amount="1.234,50").description == "Frete"
    assert BillPaymentIn(amount="99,90", due_date="2026-01-20").amount == 99.9
