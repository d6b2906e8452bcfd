from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.bills import (
    BillIn, BillOut, BillPaymentIn, BillPaymentUpdate, BillsDashboard, BillUpdate, InstallmentsIn,
)
from ..services import bills as svc

router = APIRouter()


@router.get("/dashboard", response_model=BillsDashboard)
def bills_dashboard(db: Session = Depends(get_db)):
    return svc.bills_dashboard(db)


@router.get("", response_model=List[BillOut])
def list_bills(status: Optional[str] = Query(None), db: Session = Depends(get_db)):
    return [svc.bill_out(b) for b in svc.list_bills(db, status)]


@router.post("", response_model=BillOut, status_code=status.HTTP_201_CREATED)
def create_bill(body: BillIn, db: Session = Depends(get_db)):
    bill = svc.create_bill(
        db, body.description, body.total_amount,
        invoice_number=body.invoice_number, due_date=body.due_date,
    )
    return svc.bill_out(bill)


@router.get("/{bill_id}", response_model=BillOut)
def get_bill(bill_id: int, db: Session = Depends(get_db)):
    return svc.bill_out(svc.get_bill(db, bill_id))


@router.put("/{bill_id}", response_model=BillOut)
def update_bill(bill_id: int, body: BillUpdate, db: Session = Depends(get_db)):
    # Only fields present in the request body are changed
    fields = body.model_dump(exclude_unset=True)
    return svc.bill_out(svc.update_bill(db, bill_id, **fields))


@router.delete("/{bill_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_bill(bill_id: int, db: Session = Depends(get_db)):
    svc.delete_bill(db, bill_id)


@router.post("/{bill_id}/payments", response_model=BillOut, status_code=status.HTTP_201_CREATED)
def add_payment(bill_id: int, body: BillPaymentIn, db: Session = Depends(get_db)):
    bill = svc.add_payment(db, bill_id, body.amount, body.due_date, paid_at=body.paid_at, notes=body.notes)
    return svc.bill_out(bill)


@router.post("/{bill_id}/installments", response_model=BillOut, status_code=status.HTTP_201_CREATED)
def add_installments(bill_id: int, body: InstallmentsIn, db: Session = Depends(get_db)):
    pairs = [(i.due_date, i.amount) for i in body.installments]
    return svc.bill_out(svc.add_installments(db, bill_id, pairs))


@router.patch("/{bill_id}/payments/{payment_id}", response_model=BillOut)
def update_payment(bill_id: int, payment_id: int, body: BillPaymentUpdate, db: Session = Depends(get_db)):
    fields = body.model_dump(exclude_unset=True)
    return svc.bill_out(svc.update_payment(db, bill_id, payment_id, **fields))


@router.delete("/{bill_id}/payments/{payment_id}", response_model=BillOut)
def delete_payment(bill_id: int, payment_id: int, db: Session = Depends(get_db)):
    return svc.bill_out(svc.delete_payment(db, bill_id, payment_id))
