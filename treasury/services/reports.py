from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from ..constants import DuesStatus, TransactionType
from ..core.errors import NotFound
from ..models.models import Dues, Member, Organization, Payment, Transaction
from ..utils.csv_utils import rows_to_csv
from .balances import calculate_balance
from .dues import get_dues_config
from .dues_status import trailing_periods


@dataclass
class CsvReport:
    filename: str
    content: str


@dataclass
class MonthlyArrears:
    month: int
    year: int
    unpaid_amount: int


@dataclass
class OrganizationSummary:
    income: int
    expense: int
    balance: int
    total_unpaid_amount: int
    monthly_arrears: List[MonthlyArrears] = field(default_factory=list)


def _get_organization_or_404(session: Session, organization_id: int) -> Organization:
    organization = session.get(Organization, organization_id)
    if organization is None:
        raise NotFound("Organization not found")
    return organization


def _transaction_total(session: Session, organization_id: int, transaction_type: str) -> int:
    total = (
        session.query(func.coalesce(func.sum(Transaction.amount), 0))
        .filter(Transaction.organization_id == organization_id, Transaction.type == transaction_type)
        .scalar()
    )
    return int(total or 0)


def _payments_total_for_year(session: Session, organization_id: int, year: int) -> int:
    total = (
        session.query(func.coalesce(func.sum(Payment.amount), 0))
        .join(Dues, Dues.id == Payment.dues_id)
        .filter(
            Dues.organization_id == organization_id,
            Payment.paid_at >= datetime(year, 1, 1),
            Payment.paid_at < datetime(year + 1, 1, 1),
        )
        .scalar()
    )
    return int(total or 0)


def organization_summary(session: Session, organization_id: int, today: Optional[date] = None) -> OrganizationSummary:
    """Dashboard figures for one organization.

    Income counts income transactions plus dues payments received this calendar
    year. Arrears cover the trailing twelve months in chronological order; an
    active member without a dues record for a month owes the default amount.
    """
    _get_organization_or_404(session, organization_id)
    reference = today or date.today()

    income = _transaction_total(session, organization_id, TransactionType.INCOME)
    income += _payments_total_for_year(session, organization_id, reference.year)
    expense = _transaction_total(session, organization_id, TransactionType.EXPENSE)

    all_dues = (
        session.query(Dues)
        .options(selectinload(Dues.payments))
        .filter(Dues.organization_id == organization_id)
        .all()
    )
    total_unpaid = 0
    by_period: Dict[tuple, Dict[int, Dues]] = {}
    for dues in all_dues:
        balance = calculate_balance(dues)
        if balance.status in DuesStatus.UNSETTLED:
            total_unpaid += balance.remaining_amount
        by_period.setdefault((dues.month, dues.year), {})[dues.member_id] = dues

    default_amount, _ = get_dues_config(session, organization_id)
    member_ids = [
        row[0]
        for row in session.query(Member.id)
        .filter(Member.organization_id == organization_id, Member.is_active.is_(True))
        .all()
    ]
    arrears: List[MonthlyArrears] = []
    for month, year in reversed(trailing_periods(reference, 12)):
        period_dues = by_period.get((month, year), {})
        unpaid = 0
        for member_id in member_ids:
            dues = period_dues.get(member_id)
            if dues is None:
                unpaid += default_amount
            else:
                unpaid += calculate_balance(dues).remaining_amount
        arrears.append(MonthlyArrears(month=month, year=year, unpaid_amount=unpaid))

    return OrganizationSummary(
        income=income,
        expense=expense,
        balance=income - expense,
        total_unpaid_amount=total_unpaid,
        monthly_arrears=arrears,
    )


def _slug(value: str) -> str:
    return "".join(ch if ch.isalnum() else "_" for ch in value).strip("_") or "organization"


def generate_payments_report(session: Session, organization_id: int, as_of: Optional[date] = None) -> CsvReport:
    organization = _get_organization_or_404(session, organization_id)
    payments = (
        session.query(Payment)
        .join(Dues, Dues.id == Payment.dues_id)
        .options(joinedload(Payment.member), joinedload(Payment.dues), joinedload(Payment.created_by))
        .filter(Dues.organization_id == organization_id)
        .order_by(Payment.paid_at.desc(), Payment.id.desc())
        .all()
    )
    headers = ["id", "member", "amount", "method", "paid_at", "month", "year", "note", "created_by"]
    rows = [
        [
            str(payment.id),
            payment.member.full_name if payment.member else "",
            str(payment.amount),
            payment.method or "",
            payment.paid_at.isoformat(),
            str(payment.dues.month),
            str(payment.dues.year),
            payment.note or "",
            payment.created_by.name if payment.created_by and payment.created_by.name else "",
        ]
        for payment in payments
    ]
    stamp = (as_of or date.today()).isoformat()
    return CsvReport(filename=f"payments_{_slug(organization.name)}_{stamp}.csv", content=rows_to_csv(headers, rows))


def generate_transactions_report(session: Session, organization_id: int, as_of: Optional[date] = None) -> CsvReport:
    organization = _get_organization_or_404(session, organization_id)
    transactions = (
        session.query(Transaction)
        .options(joinedload(Transaction.created_by))
        .filter(Transaction.organization_id == organization_id)
        .order_by(Transaction.occurred_at.desc(), Transaction.id.desc())
        .all()
    )
    headers = ["id", "type", "amount", "category", "occurred_at", "note", "created_by"]
    rows = [
        [
            str(transaction.id),
            transaction.type,
            str(transaction.amount),
            transaction.category or "",
            transaction.occurred_at.isoformat(),
            transaction.note or "",
            transaction.created_by_name or "",
        ]
        for transaction in transactions
    ]
    stamp = (as_of or date.today()).isoformat()
    return CsvReport(
        filename=f"transactions_{_slug(organization.name)}_{stamp}.csv",
        content=rows_to_csv(headers, rows),
    )
