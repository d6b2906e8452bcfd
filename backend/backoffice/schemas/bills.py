from datetime import date, datetime
from typing import Annotated, Optional, List

from pydantic import BaseModel, BeforeValidator, Field, field_validator

from ..utils.parsing import is_blank, parse_locale_number

def _locale_amount(v):
    # Accepts 1234.5, "1234,50" or "R$ 1.234,50" as typed in the bills form
    if isinstance(v, str):
        return parse_locale_number(v)
    return v

def _as_date(v):
    # Stored dates are anchored at 12:00 UTC; expose the calendar day only
    if isinstance(v, datetime):
        return v.date()
    return v

Amount = Annotated[float, BeforeValidator(_locale_amount)]
CalendarDay = Annotated[date, BeforeValidator(_as_date)]

class BillIn(BaseModel):
    description: str
    invoice_number: Optional[str] = None
    total_amount: Amount = Field(..., gt=0)
    due_date: Optional[str] = None          # YYYY-MM-DD

    @field_validator("description")
    @classmethod
    def _strip_description(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("description must not be empty")
        return v

class BillUpdate(BaseModel):
    description: Optional[str] = None
    invoice_number: Optional[str] = None
    total_amount: Optional[Amount] = Field(None, gt=0)
    due_date: Optional[str] = None

class BillPaymentIn(BaseModel):
    amount: Amount = Field(..., gt=0)
    due_date: str
    paid_at: Optional[str] = None
    notes: str = ""

class InstallmentIn(BaseModel):
    due_date: str
    amount: Amount = Field(..., gt=0)

class InstallmentsIn(BaseModel):
    installments: List[InstallmentIn] = Field(..., min_length=1)

class BillPaymentUpdate(BaseModel):
    """Partial update; sending paid_at: null explicitly marks the installment unpaid."""
    amount: Optional[Amount] = Field(None, gt=0)
    due_date: Optional[str] = None
    paid_at: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("due_date")
    @classmethod
    def _due_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and is_blank(v):
            raise ValueError("due_date must not be empty")
        return v

class BillPaymentOut(BaseModel):
    id: int
    bill_id: int
    amount: float
    due_date: CalendarDay
    paid_at: Optional[CalendarDay] = None
    notes: str

    class Config:
        from_attributes = True

class BillOut(BaseModel):
    id: int
    description: str
    invoice_number: Optional[str] = None
    total_amount: float
    due_date: Optional[CalendarDay] = None
    status: str
    paid_amount: float
    open_amount: float
    payments: List[BillPaymentOut]

class DuePayment(BillPaymentOut):
    bill_description: str

class BillsMonthRow(BaseModel):
    month: str                      # YYYY-MM of the installment due date
    total: float
    paid: float
    pending: float
    payments: List[DuePayment]

class BillsDashboard(BaseModel):
    total: float
    paid: float
    pending: float
    overdue: float                  # unpaid installments due before today
    months: List[BillsMonthRow]
