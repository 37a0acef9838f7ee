"""Read-side rollups over dues records.

``unpaid_members_for_period`` materializes missing dues for the period so that
every row it returns references a concrete record a reminder or payment can
point at. ``yearly_status_matrix`` and ``member_payment_history`` never write;
months without a record are simply absent (matrix) or reported as unbilled
(history).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from ..constants import DuesStatus
from ..core.errors import NotFound, ValidationError
from ..models.models import Dues, Member, Organization
from .balances import DuesBalance, calculate_balance, unbilled_balance
from .dues import ensure_dues, get_dues_config, validate_period

logger = logging.getLogger(__name__)


@dataclass
class UnpaidMember:
    member: Member
    dues_id: int
    dues_amount: int
    total_paid: int
    remaining_amount: int
    status: str


@dataclass
class MemberYearStatus:
    member: Member
    year: int
    monthly_status: Dict[int, DuesBalance] = field(default_factory=dict)

    @property
    def member_id(self) -> int:
        return self.member.id


def _active_members(session: Session, organization_id: int) -> List[Member]:
    return (
        session.query(Member)
        .filter(Member.organization_id == organization_id, Member.is_active.is_(True))
        .order_by(Member.full_name.asc(), Member.id.asc())
        .all()
    )


def _require_organization(session: Session, organization_id: int) -> None:
    if session.get(Organization, organization_id) is None:
        raise NotFound("Organization not found")


def outstanding_dues_for_member(session: Session, member_id: int) -> List[DuesBalance]:
    """Every dues record of the member that still has money owing, oldest period first."""
    if session.get(Member, member_id) is None:
        raise NotFound("Member not found")

    records = (
        session.query(Dues)
        .options(selectinload(Dues.payments))
        .filter(Dues.member_id == member_id)
        .order_by(Dues.year.asc(), Dues.month.asc())
        .all()
    )
    outstanding: List[DuesBalance] = []
    for dues in records:
        balance = calculate_balance(dues)
        if balance.status != dues.status:
            logger.warning(
                "Dues %s stored status %s disagrees with payments (%s)", dues.id, dues.status, balance.status
            )
        if balance.status in DuesStatus.UNSETTLED and balance.remaining_amount > 0:
            outstanding.append(balance)
    return outstanding


def unpaid_members_for_period(session: Session, organization_id: int, month: int, year: int) -> List[UnpaidMember]:
    validate_period(month, year)
    _require_organization(session, organization_id)
    default_amount, _ = get_dues_config(session, organization_id)

    members = _active_members(session, organization_id)
    existing = {
        dues.member_id: dues
        for dues in session.query(Dues)
        .options(selectinload(Dues.payments))
        .filter(Dues.organization_id == organization_id, Dues.month == month, Dues.year == year)
        .all()
    }

    unpaid: List[UnpaidMember] = []
    for member in members:
        dues = existing.get(member.id)
        if dues is None:
            dues = ensure_dues(session, organization_id, member.id, month, year, default_amount)
        balance = calculate_balance(dues)
        if balance.status == DuesStatus.PAID:
            continue
        unpaid.append(
            UnpaidMember(
                member=member,
                dues_id=dues.id,
                dues_amount=balance.amount,
                total_paid=balance.total_paid,
                remaining_amount=balance.remaining_amount,
                status=balance.status,
            )
        )
    return unpaid


def yearly_status_matrix(session: Session, organization_id: int, year: int) -> List[MemberYearStatus]:
    validate_period(1, year)
    _require_organization(session, organization_id)

    members = _active_members(session, organization_id)
    records = (
        session.query(Dues)
        .options(selectinload(Dues.payments))
        .filter(Dues.organization_id == organization_id, Dues.year == year)
        .all()
    )
    by_member: Dict[int, Dict[int, DuesBalance]] = {}
    for dues in records:
        by_member.setdefault(dues.member_id, {})[dues.month] = calculate_balance(dues)

    return [
        MemberYearStatus(
            member=member,
            year=year,
            monthly_status=dict(sorted(by_member.get(member.id, {}).items())),
        )
        for member in members
    ]


def trailing_periods(today: date, months: int) -> List[tuple[int, int]]:
    periods = []
    month, year = today.month, today.year
    for _ in range(months):
        periods.append((month, year))
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return periods


def member_payment_history(
    session: Session,
    member_id: int,
    months: int = 12,
    today: Optional[date] = None,
) -> List[DuesBalance]:
    """The member's last ``months`` periods, newest first; unbilled months use the default amount."""
    if months < 1:
        raise ValidationError("months must be at least 1")
    member = session.get(Member, member_id)
    if member is None:
        raise NotFound("Member not found")

    periods = trailing_periods(today or date.today(), months)
    default_amount, _ = get_dues_config(session, member.organization_id)
    records = {
        (dues.month, dues.year): dues
        for dues in session.query(Dues)
        .options(selectinload(Dues.payments))
        .filter(Dues.member_id == member_id, Dues.year >= periods[-1][1], Dues.year <= periods[0][1])
        .all()
    }

    history: List[DuesBalance] = []
    for month, year in periods:
        dues = records.get((month, year))
        if dues is None:
            history.append(unbilled_balance(month, year, default_amount))
        else:
            history.append(calculate_balance(dues))
    return history
