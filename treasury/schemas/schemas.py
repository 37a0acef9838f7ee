from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field


class OrganizationRead(BaseModel):
    id: int
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


class MembershipRead(BaseModel):
    organization_id: int
    organization_name: str
    role: str


class MeRead(BaseModel):
    id: int
    email: EmailStr
    name: Optional[str] = None
    memberships: List[MembershipRead] = []


class MemberBase(BaseModel):
    full_name: str = Field(min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


class MemberCreate(MemberBase):
    organization_id: int


class MemberUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None


class MemberRead(MemberBase):
    id: int
    organization_id: int
    email: Optional[str] = None
    is_active: bool
    joined_at: datetime

    class Config:
        from_attributes = True


class MemberSummary(BaseModel):
    id: int
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    class Config:
        from_attributes = True


class MemberImportResult(BaseModel):
    created: int
    skipped: int
    members: List[MemberRead] = []


class DuesRead(BaseModel):
    id: int
    organization_id: int
    member_id: int
    month: int
    year: int
    amount: int
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DuesStatusView(BaseModel):
    dues_id: Optional[int] = None
    month: int
    year: int
    amount: int
    total_paid: int
    remaining_amount: int
    status: str


class UnpaidMemberRead(BaseModel):
    member: MemberSummary
    dues_id: int
    dues_amount: int
    total_paid: int
    remaining_amount: int
    status: str

    class Config:
        from_attributes = True


class MemberYearStatusRead(BaseModel):
    member: MemberSummary
    year: int
    monthly_status: Dict[int, DuesStatusView] = {}


class SetDuesRequest(BaseModel):
    organization_id: int
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1970, le=9999)
    amount: int = Field(gt=0)
    member_id: Optional[int] = None


class EnsureDuesRequest(BaseModel):
    organization_id: int
    member_id: int
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1970, le=9999)
    amount: Optional[int] = Field(default=None, gt=0)


class SetDuesBatchResult(BaseModel):
    created_or_updated: int = Field(alias="createdOrUpdated")
    created: int
    updated: int

    class Config:
        populate_by_name = True


class DuesConfigRead(BaseModel):
    organization_id: int
    amount: int
    currency: str


class DuesConfigUpdate(BaseModel):
    amount: int = Field(gt=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class PaymentCreate(BaseModel):
    dues_id: int
    amount: int
    method: Optional[str] = None
    note: Optional[str] = None


class PaymentRecorded(BaseModel):
    ok: bool = True
    payment_id: int
    status: str


class PaymentsCleared(BaseModel):
    ok: bool = True
    deleted: int


class TransactionBase(BaseModel):
    type: Literal["INCOME", "EXPENSE"]
    amount: int = Field(gt=0)
    category: Optional[str] = None
    occurred_at: Optional[datetime] = None
    note: Optional[str] = None


class TransactionCreate(TransactionBase):
    organization_id: int


class TransactionUpdate(BaseModel):
    type: Optional[Literal["INCOME", "EXPENSE"]] = None
    amount: Optional[int] = Field(default=None, gt=0)
    category: Optional[str] = None
    occurred_at: Optional[datetime] = None
    note: Optional[str] = None


class TransactionRead(TransactionBase):
    id: int
    organization_id: int
    occurred_at: datetime
    created_by_name: Optional[str] = None

    class Config:
        from_attributes = True


class ReminderRunRequest(BaseModel):
    organization_id: int
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = Field(default=None, ge=1970, le=9999)


class ReminderRunResult(BaseModel):
    ok: bool
    sent: int
    failed: int
    month: int
    year: int

    class Config:
        from_attributes = True


class MonthlyArrearsRead(BaseModel):
    month: int
    year: int
    unpaid_amount: int

    class Config:
        from_attributes = True


class OrganizationSummaryRead(BaseModel):
    income: int
    expense: int
    balance: int
    total_unpaid_amount: int
    monthly_arrears: List[MonthlyArrearsRead] = []

    class Config:
        from_attributes = True
