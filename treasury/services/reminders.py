from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from html import escape
from typing import Any, Callable, List, Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from ..constants import DuesStatus
from ..core.errors import NotFound
from ..models.models import Dues, Member, Organization
from .balances import calculate_balance
from .dues import get_dues_config, validate_period
from .email import mask_email, send_email
from .whatsapp import send_whatsapp

logger = logging.getLogger(__name__)

EmailSender = Callable[[str, str, str], Any]
WhatsAppSender = Callable[[str, str], Any]


@dataclass
class ReminderCandidate:
    member: Member
    dues_id: int
    month: int
    year: int
    remaining_amount: int
    status: str


@dataclass
class ReminderRunResult:
    ok: bool
    sent: int
    failed: int
    month: int
    year: int


def dues_needing_reminder(session: Session, organization_id: int, month: int, year: int) -> List[ReminderCandidate]:
    """Dues of the period that still have money owing, with the member's contact details loaded."""
    validate_period(month, year)
    if session.get(Organization, organization_id) is None:
        raise NotFound("Organization not found")

    records = (
        session.query(Dues)
        .join(Member, Member.id == Dues.member_id)
        .options(joinedload(Dues.member), selectinload(Dues.payments))
        .filter(Dues.organization_id == organization_id, Dues.month == month, Dues.year == year)
        .order_by(Member.full_name.asc(), Dues.id.asc())
        .all()
    )
    candidates: List[ReminderCandidate] = []
    for dues in records:
        balance = calculate_balance(dues)
        if balance.status not in DuesStatus.UNSETTLED:
            continue
        candidates.append(
            ReminderCandidate(
                member=dues.member,
                dues_id=dues.id,
                month=month,
                year=year,
                remaining_amount=balance.remaining_amount,
                status=balance.status,
            )
        )
    return candidates


def _format_amount(amount: int, currency: str) -> str:
    return f"{currency} {amount:,}".replace(",", ".")


def build_reminder_message(candidate: ReminderCandidate, currency: str) -> tuple[str, str, str]:
    """Return ``(subject, text, html)`` for one reminder."""
    period = f"{candidate.month}/{candidate.year}"
    amount = _format_amount(candidate.remaining_amount, currency)
    name = candidate.member.full_name
    subject = f"Pengingat iuran bulan {period}"
    text = (
        f"Halo {name},\n\n"
        f"Anda memiliki tagihan iuran sebesar {amount} untuk bulan {period}. "
        "Mohon segera melakukan pembayaran. Terima kasih."
    )
    html = (
        f"<p>Halo <b>{escape(name)}</b>,</p>"
        f"<p>Anda memiliki tagihan iuran sebesar <b>{escape(amount)}</b> untuk bulan {period}. "
        "Mohon segera melakukan pembayaran. Terima kasih.</p>"
    )
    return subject, text, html


def send_monthly_reminders(
    session: Session,
    organization_id: int,
    month: Optional[int] = None,
    year: Optional[int] = None,
    today: Optional[date] = None,
    email_sender: Optional[EmailSender] = None,
    whatsapp_sender: Optional[WhatsAppSender] = None,
) -> ReminderRunResult:
    """Send one email and one WhatsApp message per unsettled dues of the period.

    Each send is attempted once. A failure is logged and counted and the loop
    moves on to the next recipient.
    """
    email_sender = email_sender or send_email
    whatsapp_sender = whatsapp_sender or send_whatsapp
    reference = today or date.today()
    month = month if month is not None else reference.month
    year = year if year is not None else reference.year

    candidates = dues_needing_reminder(session, organization_id, month, year)
    _, currency = get_dues_config(session, organization_id)

    sent = 0
    failed = 0
    for candidate in candidates:
        member = candidate.member
        subject, text, html = build_reminder_message(candidate, currency)
        if member.email:
            try:
                email_sender(member.email, subject, html)
                sent += 1
            except Exception:
                failed += 1
                logger.exception(
                    "Reminder email to member %s (%s) failed", member.id, mask_email(member.email)
                )
        if member.phone:
            try:
                if whatsapp_sender(member.phone, text) is not None:
                    sent += 1
            except Exception:
                failed += 1
                logger.exception("Reminder WhatsApp message to member %s failed", member.id)

    logger.info(
        "Monthly reminders for organization %s %02d/%s: candidates=%s sent=%s failed=%s",
        organization_id,
        month,
        year,
        len(candidates),
        sent,
        failed,
    )
    return ReminderRunResult(ok=True, sent=sent, failed=failed, month=month, year=year)
